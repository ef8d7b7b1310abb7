from __future__ import annotations

from datetime import datetime
from pathlib import Path
import secrets
from typing import Dict, List, Optional, Tuple

import typer
from dotenv import dotenv_values
from sqlalchemy import create_engine, text
from sqlalchemy.exc import SQLAlchemyError

APP = typer.Typer(add_completion=False, help="Asistente para crear o actualizar el archivo .env de Gestión Académica.")

ROOT_DIR = Path(__file__).resolve().parents[1]
ENV_PATH = ROOT_DIR / ".env"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
DEFAULT_PERIOD = "1er Cuatrimestre 2025"
DEFAULT_CORS_ORIGINS = "http://localhost:5173,http://127.0.0.1:5173"

# Secciones del .env generado: (título, claves en orden)
SECTIONS: List[Tuple[str, Tuple[str, ...]]] = [
    ("Entorno", ("APP_ENV", "ENVIRONMENT", "DEBUG", "LOG_LEVEL")),
    ("Autenticación", ("SECRET_KEY", "ALGORITHM", "ACCESS_TOKEN_EXPIRE_MINUTES")),
    ("Base de datos", ("DATABASE_URL",)),
    ("Inscripciones", ("DEFAULT_ENROLLMENT_PERIOD",)),
    ("Servidor", ("CORS_ORIGINS",)),
]


def _load_existing_env() -> Dict[str, str]:
    if not ENV_PATH.exists():
        return {}
    raw = dotenv_values(ENV_PATH)
    return {k: v for k, v in raw.items() if isinstance(k, str) and v is not None}


def _format_env_value(value: str) -> str:
    if any(ch in value for ch in ' #"\n'):
        escaped = value.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    return value


def _bool_from_env(value: Optional[str], default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    return default


def _normalize_origins(raw: str) -> str:
    origins = [item.strip().rstrip("/") for item in raw.split(",") if item.strip()]
    return ",".join(dict.fromkeys(origins))


def _validate_database_connection(url: str) -> tuple[bool, str]:
    """Open a connection and run ``SELECT 1``; returns ``(ok, error)``."""
    engine = create_engine(url, pool_pre_ping=True)
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        return False, str(exc)
    finally:
        engine.dispose()
    return True, ""


def _ask(key: str, existing: Dict[str, str], fallback: str, label: Optional[str] = None) -> str:
    default = existing.get(key) or fallback
    return typer.prompt(label or key, default=default).strip() or default


def _ask_log_level(existing: Dict[str, str]) -> str:
    default = (existing.get("LOG_LEVEL") or "INFO").upper()
    while True:
        level = typer.prompt("LOG_LEVEL [DEBUG/INFO/WARNING/ERROR]", default=default).strip().upper()
        if level in LOG_LEVELS:
            return level
        typer.secho("Nivel de log no reconocido.", fg=typer.colors.RED)


def _ask_database_url(existing: Dict[str, str]) -> str:
    url = _ask("DATABASE_URL", existing, "sqlite:///./data.db")
    if not typer.confirm("¿Probar la conexión ahora?", default=url.startswith("sqlite")):
        return url
    ok, error = _validate_database_connection(url)
    if ok:
        typer.secho("Conexión exitosa.", fg=typer.colors.GREEN)
    else:
        # se guarda igual: la base puede no estar levantada todavía
        typer.secho(f"No se pudo conectar: {error}", fg=typer.colors.YELLOW)
    return url


def _collect_values(existing: Dict[str, str]) -> Dict[str, str]:
    app_env = _ask("APP_ENV", existing, existing.get("ENVIRONMENT") or "dev")
    debug_default = _bool_from_env(existing.get("DEBUG"), app_env not in {"prod", "production"})

    values = {
        "APP_ENV": app_env,
        "ENVIRONMENT": app_env,
        "DEBUG": "true" if typer.confirm("¿Activar modo DEBUG?", default=debug_default) else "false",
        "LOG_LEVEL": _ask_log_level(existing),
        "SECRET_KEY": typer.prompt(
            "SECRET_KEY",
            default=existing.get("SECRET_KEY") or secrets.token_urlsafe(32),
            hide_input=True,
            show_default=False,
        ).strip(),
        "ALGORITHM": _ask("ALGORITHM", existing, "HS256"),
    }
    expire = typer.prompt(
        "ACCESS_TOKEN_EXPIRE_MINUTES (vacío: sin vencimiento)",
        default=existing.get("ACCESS_TOKEN_EXPIRE_MINUTES") or "",
        show_default=False,
    ).strip()
    if expire:
        values["ACCESS_TOKEN_EXPIRE_MINUTES"] = expire
    values["DATABASE_URL"] = _ask_database_url(existing)
    values["DEFAULT_ENROLLMENT_PERIOD"] = _ask("DEFAULT_ENROLLMENT_PERIOD", existing, DEFAULT_PERIOD)
    values["CORS_ORIGINS"] = _normalize_origins(
        _ask("CORS_ORIGINS", existing, DEFAULT_CORS_ORIGINS, label="CORS_ORIGINS (separados por coma)")
    )
    return values


def _write_env_file(managed_values: Dict[str, str], previous_values: Dict[str, str]) -> None:
    lines = [f"# Generado por scripts/configure_env.py el {datetime.utcnow():%Y-%m-%d %H:%M} UTC"]
    written = set()
    for title, keys in SECTIONS:
        present = [key for key in keys if managed_values.get(key)]
        if not present:
            continue
        lines.extend(["", f"# {title}"])
        lines.extend(f"{key}={_format_env_value(managed_values[key])}" for key in present)
        written.update(present)

    leftovers = {k: v for k, v in managed_values.items() if k not in written and v}
    extras = {k: v for k, v in previous_values.items() if k not in managed_values}
    extras.update(leftovers)
    if extras:
        lines.extend(["", "# Otras variables"])
        lines.extend(f"{key}={_format_env_value(extras[key])}" for key in sorted(extras))

    lines.append("")
    ENV_PATH.write_text("\n".join(lines), encoding="utf-8")


@APP.command()
def run() -> None:
    typer.secho(f"Configuración de {ENV_PATH}", fg=typer.colors.CYAN, bold=True)
    existing = _load_existing_env()
    values = _collect_values(existing)

    for key, value in values.items():
        typer.echo(f"  {key} = {'********' if key == 'SECRET_KEY' else value}")
    if not typer.confirm("¿Guardar?", default=True):
        raise typer.Exit(code=0)

    _write_env_file(values, existing)
    typer.secho("Archivo .env actualizado.", fg=typer.colors.GREEN)


if __name__ == "__main__":
    APP()
