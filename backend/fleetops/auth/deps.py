from typing import Optional

import jwt
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from fleetops.core.security import decode_access_token
from fleetops.schemas.user import Role

bearer = HTTPBearer(auto_error=False)


def get_current_user(creds: Optional[HTTPAuthorizationCredentials] = Depends(bearer)):
    if creds is None:
        raise HTTPException(status_code=401, detail="Access denied")
    try:
        payload = decode_access_token(creds.credentials)
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid token")

    sub = payload.get("sub")
    role = payload.get("role")
    if not sub or role not in {r.value for r in Role}:
        raise HTTPException(status_code=401, detail="Invalid token")
    return {"sub": sub, "role": role}


def require_roles(*allowed: Role):
    allowed_values = {Role(r).value for r in allowed}

    def _guard(user=Depends(get_current_user)):
        if user["role"] not in allowed_values:
            raise HTTPException(status_code=403, detail="Forbidden")
        return user

    return _guard
