import os

# Configurar SQLite de pruebas antes de importar la app
TEST_DB_PATH = os.path.abspath("test.db")
os.environ["DATABASE_URL"] = f"sqlite:///{TEST_DB_PATH}"
os.environ["APP_ENV"] = "test"
os.environ.setdefault("LOG_LEVEL", "WARNING")

try:
    os.remove(TEST_DB_PATH)
except FileNotFoundError:
    pass

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlmodel import Session, select  # noqa: E402


@pytest.fixture(scope="session")
def client():
    import academia.db as db
    import academia.main as main

    assert TEST_DB_PATH in str(db.engine.url), f"Engine apunta a {db.engine.url}"
    # Crear tablas explícitamente; el lifespan (y su seed) no corre sin context manager
    db.init_db()

    client = TestClient(main.app)
    yield client
    client.close()


def _ensure_user(email: str, password: str, role: str, full_name: str) -> None:
    from academia.db import engine
    from academia.models import User
    from academia.security import get_password_hash

    with Session(engine) as session:
        if session.exec(select(User).where(User.email == email)).first():
            return
        session.add(User(email=email, full_name=full_name, hashed_password=get_password_hash(password), role=role))
        session.commit()


def _login(client: TestClient, email: str, password: str) -> str:
    res = client.post("/auth/token", data={"username": email, "password": password}, headers={"Content-Type": "application/x-www-form-urlencoded"})
    assert res.status_code == 200, res.text
    return res.json()["access_token"]


@pytest.fixture()
def admin_token(client: TestClient):
    _ensure_user("admin@test.com", "admin123", "admin", "Admin Test")
    return _login(client, "admin@test.com", "admin123")


@pytest.fixture()
def coordinator_token(client: TestClient):
    _ensure_user("coordinator@test.com", "coord123", "coordinator", "Coordinador Test")
    return _login(client, "coordinator@test.com", "coord123")


@pytest.fixture()
def teacher_token(client: TestClient):
    email = "teacher@test.com"
    client.post("/auth/signup", json={
        "email": email,
        "full_name": "Docente Test",
        "password": "teacher123",
        "role": "teacher",
    })
    return _login(client, email, "teacher123")
