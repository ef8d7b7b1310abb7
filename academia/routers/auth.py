import logging
from fastapi import APIRouter, Depends, HTTPException
from fastapi.security import OAuth2PasswordRequestForm
from typing import Literal, Optional
from pydantic import BaseModel, Field
from sqlmodel import select

from ..db import get_session
from ..models import User
from ..security import (
    verify_password,
    get_password_hash,
    create_access_token,
    get_current_user,
    normalize_email,
)


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    must_change_password: bool = False


def _issue_token(user: User) -> TokenResponse:
    token = create_access_token(user.email, extra={"role": user.role})
    return TokenResponse(access_token=token, must_change_password=user.must_change_password)


@router.post("/token", response_model=TokenResponse)
def login(form_data: OAuth2PasswordRequestForm = Depends(), session=Depends(get_session)):
    email = normalize_email(form_data.username)
    user = session.exec(select(User).where(User.email == email)).first()
    if not user or not verify_password(form_data.password, user.hashed_password):
        logger.info("Login fallido para %s", email)
        raise HTTPException(status_code=400, detail="Credenciales inválidas")
    if not user.is_active:
        raise HTTPException(status_code=400, detail="Usuario inactivo")
    return _issue_token(user)


class SignupRequest(BaseModel):
    email: str = Field(min_length=5, max_length=255)
    full_name: str = Field(min_length=3, max_length=120)
    password: str = Field(min_length=8, max_length=128)
    role: Literal["teacher", "student"] = "student"


@router.post("/signup", response_model=TokenResponse)
def signup(payload: SignupRequest, session=Depends(get_session)):
    email = normalize_email(payload.email)
    existing = session.exec(select(User).where(User.email == email)).first()
    if existing:
        raise HTTPException(status_code=400, detail="Usuario ya existe")
    user = User(
        email=email,
        full_name=payload.full_name.strip(),
        hashed_password=get_password_hash(payload.password),
        role=payload.role,
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    logger.info("Alta de usuario %s (%s)", user.email, user.role)
    return _issue_token(user)


class ChangePasswordRequest(BaseModel):
    # opcional solo cuando la cuenta tiene un cambio de contraseña pendiente
    current_password: Optional[str] = None
    new_password: str = Field(min_length=8)


@router.post("/change-password", response_model=TokenResponse)
def change_password(
    payload: ChangePasswordRequest,
    user: User = Depends(get_current_user),
    session=Depends(get_session),
):
    if not user.must_change_password or payload.current_password is not None:
        if not payload.current_password or not verify_password(payload.current_password, user.hashed_password):
            raise HTTPException(status_code=400, detail="Contraseña actual incorrecta")
    if verify_password(payload.new_password, user.hashed_password):
        raise HTTPException(status_code=400, detail="La nueva contraseña debe ser diferente")
    user.hashed_password = get_password_hash(payload.new_password)
    user.must_change_password = False
    session.add(user)
    session.commit()
    session.refresh(user)
    return _issue_token(user)
