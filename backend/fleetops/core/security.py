from datetime import datetime, timedelta, timezone

import bcrypt
import jwt

from fleetops.core.config import get_settings

JWT_ALG = "HS256"


def create_access_token(data: dict, role: str) -> str:
    settings = get_settings()
    now = datetime.now(timezone.utc)

    payload = data.copy()
    payload["role"] = role
    payload["iat"] = int(now.timestamp())
    payload["exp"] = int((now + timedelta(minutes=settings.jwt_expire_min)).timestamp())

    return jwt.encode(payload, settings.jwt_secret, algorithm=JWT_ALG)


def decode_access_token(token: str) -> dict:
    """Verify signature and expiry; raises jwt.InvalidTokenError on failure."""
    return jwt.decode(token, get_settings().jwt_secret, algorithms=[JWT_ALG])


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("ascii")


def verify_password(password: str, stored: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), stored.encode("ascii"))
    except ValueError:
        # not a bcrypt hash
        return False
