from pydantic import BaseModel, Field
import logging
import os
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv


_ROOT_DIR = Path(__file__).resolve().parents[1]
load_dotenv(_ROOT_DIR / ".env")
load_dotenv()  # fallback al directorio de trabajo actual


def _normalize_env(value: Optional[str], default: str) -> str:
    if value is None:
        return default
    cleaned = value.strip().lower()
    return cleaned or default


def _resolve_access_token_expiry() -> Optional[int]:
    raw = os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES")
    if raw is None or not raw.strip():
        return None
    try:
        minutes = int(raw)
    except ValueError:
        return None
    return minutes if minutes > 0 else None


def _env_list(name: str, default: List[str]) -> List[str]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return list(default)
    return [item.strip() for item in raw.split(",") if item.strip()]


def _resolve_log_level() -> str:
    level = (os.getenv("LOG_LEVEL") or "INFO").strip().upper()
    if not isinstance(logging.getLevelName(level), int):
        return "INFO"
    return level


class Settings(BaseModel):
    app_name: str = "Gestión Académica"
    secret_key: str = os.getenv("SECRET_KEY", "dev-secret-key-change")
    access_token_expire_minutes: Optional[int] = _resolve_access_token_expiry()
    algorithm: str = os.getenv("ALGORITHM", "HS256")
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./data.db")
    debug: bool = os.getenv("DEBUG", "false").lower() == "true"
    environment: str = _normalize_env(os.getenv("APP_ENV") or os.getenv("ENVIRONMENT"), "dev")
    log_level: str = _resolve_log_level()
    default_enrollment_period: str = os.getenv("DEFAULT_ENROLLMENT_PERIOD", "1er Cuatrimestre 2025")
    cors_origins: List[str] = Field(
        default_factory=lambda: _env_list("CORS_ORIGINS", ["http://localhost:5173", "http://127.0.0.1:5173"])
    )

    @property
    def is_production(self) -> bool:
        return self.environment in {"prod", "production"}


settings = Settings()


def configure_logging(level: Optional[str] = None) -> None:
    """Configure the root logger once; later calls only adjust the level."""
    effective = level or settings.log_level
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(
            level=effective,
            format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        )
    root.setLevel(effective)
