import logging
from typing import Generator

from sqlalchemy import event
from sqlmodel import SQLModel, create_engine, Session

from .config import settings


logger = logging.getLogger(__name__)


def _build_engine(url: str):
    # SQLite en tests comparte la conexión entre hilos del TestClient
    if url.startswith("sqlite"):
        new_engine = create_engine(url, echo=settings.debug, connect_args={"check_same_thread": False})

        @event.listens_for(new_engine, "connect")
        def _enable_foreign_keys(dbapi_connection, _record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return new_engine
    return create_engine(url, echo=settings.debug, pool_pre_ping=True)


engine = _build_engine(settings.database_url)


def init_db():
    # Importar modelos para asegurar que todas las tablas estén registradas en el metadata
    from . import models  # noqa: F401

    logger.info("Creando tablas en %s", engine.url.render_as_string(hide_password=True))
    SQLModel.metadata.create_all(engine)


def get_session() -> Generator[Session, None, None]:
    session = Session(engine)
    try:
        yield session
    finally:
        session.close()
