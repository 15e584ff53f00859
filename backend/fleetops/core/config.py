import os
from dataclasses import dataclass
from functools import lru_cache

DEFAULT_CORS_REGEX = r"^http://(localhost|127\.0\.0\.1)(:\d+)?$"


@dataclass(frozen=True)
class Settings:
    mongo_url: str | None
    mongo_db: str
    store_backend: str
    jwt_secret: str
    jwt_expire_min: int
    log_level: str
    cors_origin_regex: str


def load_settings() -> Settings:
    backend = os.getenv("STORE_BACKEND", "mongo").strip().lower()
    if backend not in ("mongo", "memory"):
        raise RuntimeError(f"STORE_BACKEND must be 'mongo' or 'memory', got {backend!r}")

    return Settings(
        mongo_url=os.getenv("MONGO_URL"),
        mongo_db=os.getenv("MONGO_DB", "fleetops"),
        store_backend=backend,
        jwt_secret=os.getenv("JWT_SECRET", "dev-secret-change-me"),
        jwt_expire_min=int(os.getenv("JWT_EXPIRE_MIN", "1440")),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        cors_origin_regex=os.getenv("CORS_ORIGIN_REGEX", DEFAULT_CORS_REGEX),
    )


@lru_cache
def get_settings() -> Settings:
    return load_settings()
