import importlib.util
from pathlib import Path

import pytest


SCRIPT_PATH = Path(__file__).resolve().parents[1] / "scripts" / "configure_env.py"


@pytest.fixture(scope="module")
def configure_env():
    spec = importlib.util.spec_from_file_location("configure_env", SCRIPT_PATH)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_format_env_value_quotes_when_needed(configure_env):
    assert configure_env._format_env_value("plain") == "plain"
    assert configure_env._format_env_value("1er Cuatrimestre 2025") == '"1er Cuatrimestre 2025"'
    assert configure_env._format_env_value('a"b') == '"a\\"b"'


def test_bool_from_env(configure_env):
    assert configure_env._bool_from_env("YES", False) is True
    assert configure_env._bool_from_env("off", True) is False
    assert configure_env._bool_from_env("quizás", True) is True
    assert configure_env._bool_from_env(None, False) is False


def test_normalize_origins_deduplicates(configure_env):
    raw = "http://localhost:5173/, http://localhost:5173 ,,https://academia.example"
    assert configure_env._normalize_origins(raw) == "http://localhost:5173,https://academia.example"


def test_write_env_file_preserves_extra_keys(configure_env, tmp_path, monkeypatch):
    env_path = tmp_path / ".env"
    monkeypatch.setattr(configure_env, "ENV_PATH", env_path)

    configure_env._write_env_file({"LOG_LEVEL": "DEBUG"}, {"LOG_LEVEL": "INFO", "CUSTOM": "valor"})

    assert env_path.exists()
    assert configure_env._load_existing_env() == {"LOG_LEVEL": "DEBUG", "CUSTOM": "valor"}


def test_validate_database_connection(configure_env, tmp_path):
    ok, error = configure_env._validate_database_connection(f"sqlite:///{tmp_path / 'probe.db'}")
    assert ok is True
    assert error == ""


def test_write_env_file_groups_keys_by_section(configure_env, tmp_path, monkeypatch):
    env_path = tmp_path / ".env"
    monkeypatch.setattr(configure_env, "ENV_PATH", env_path)

    configure_env._write_env_file(
        {"DATABASE_URL": "sqlite:///./data.db", "APP_ENV": "dev", "DEFAULT_ENROLLMENT_PERIOD": "2do Cuatrimestre 2025"},
        {},
    )

    lines = [line for line in env_path.read_text(encoding="utf-8").splitlines() if line.startswith("#")]
    assert lines[1:] == ["# Entorno", "# Base de datos", "# Inscripciones"]
    assert configure_env._load_existing_env()["DEFAULT_ENROLLMENT_PERIOD"] == "2do Cuatrimestre 2025"
