import pytest

from fleetops.core.config import DEFAULT_CORS_REGEX, load_settings
from fleetops.db.memory import MemoryStore
from fleetops.main import build_store


def test_defaults(monkeypatch):
    for name in ("MONGO_URL", "MONGO_DB", "STORE_BACKEND", "JWT_EXPIRE_MIN", "LOG_LEVEL", "CORS_ORIGIN_REGEX"):
        monkeypatch.delenv(name, raising=False)

    settings = load_settings()

    assert settings.mongo_url is None
    assert settings.mongo_db == "fleetops"
    assert settings.store_backend == "mongo"
    assert settings.jwt_expire_min == 1440
    assert settings.log_level == "INFO"
    assert settings.cors_origin_regex == DEFAULT_CORS_REGEX


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("STORE_BACKEND", "Memory")
    monkeypatch.setenv("JWT_EXPIRE_MIN", "15")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = load_settings()

    assert settings.store_backend == "memory"
    assert settings.jwt_expire_min == 15
    assert settings.log_level == "DEBUG"


def test_unknown_backend_is_rejected(monkeypatch):
    monkeypatch.setenv("STORE_BACKEND", "postgres")

    with pytest.raises(RuntimeError):
        load_settings()


def test_build_store_memory(monkeypatch):
    monkeypatch.setenv("STORE_BACKEND", "memory")

    assert isinstance(build_store(load_settings()), MemoryStore)


def test_build_store_mongo_requires_url(monkeypatch):
    monkeypatch.setenv("STORE_BACKEND", "mongo")
    monkeypatch.delenv("MONGO_URL", raising=False)

    with pytest.raises(RuntimeError, match="MONGO_URL"):
        build_store(load_settings())
