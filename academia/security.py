import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from jose import jwt, JWTError
from passlib.context import CryptContext
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlmodel import select

from .config import settings
from .db import get_session
from .models import User


logger = logging.getLogger(__name__)

ROLES = ("admin", "coordinator", "teacher", "student")
# Roles que pueden confirmar una inscripción con correlativas pendientes
SUPERVISOR_ROLES = ("admin", "coordinator")
STAFF_ROLES = ("admin", "coordinator", "teacher")

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def create_access_token(subject: str, expires_minutes: Optional[int] = None, extra: Optional[Dict[str, Any]] = None) -> str:
    effective_minutes = expires_minutes if expires_minutes is not None else settings.access_token_expire_minutes
    to_encode: Dict[str, Any] = {"sub": subject}
    if extra:
        to_encode.update(extra)
    if effective_minutes is not None and effective_minutes > 0:
        expire = datetime.now(timezone.utc) + timedelta(minutes=effective_minutes)
        to_encode["exp"] = int(expire.timestamp())
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def authenticate_token(token: str, session) -> User:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED, detail="No autenticado", headers={"WWW-Authenticate": "Bearer"}
    )
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        logger.debug("Token rechazado")
        raise credentials_exception
    email = payload.get("sub")
    if not email:
        raise credentials_exception
    user = session.exec(select(User).where(User.email == email)).first()
    if not user or not user.is_active:
        raise credentials_exception
    return user


def get_current_user(token: str = Depends(oauth2_scheme), session=Depends(get_session)) -> User:
    return authenticate_token(token, session)


def require_roles(*roles: str):
    def _inner(user: User = Depends(get_current_user)) -> User:
        if user.role not in roles:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Permisos insuficientes")
        return user

    return _inner
