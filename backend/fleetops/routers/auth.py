import logging

from fastapi import APIRouter, Depends, HTTPException

from fleetops.core.security import create_access_token, verify_password
from fleetops.db.store import Entity, Store
from fleetops.deps import get_store
from fleetops.schemas.user import LoginIn, LoginOut

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=LoginOut)
async def login(body: LoginIn, store: Store = Depends(get_store)):
    email = body.email.strip().lower()
    user = await store.find_one(Entity.USERS, {"email": email})

    if not user or not verify_password(body.password, user["password_hash"]):
        logger.info("failed login for %s", email)
        raise HTTPException(status_code=400, detail="Invalid credentials")

    token = create_access_token({"sub": str(user["id"])}, role=user["role"])
    return {"token": token, "user": user}
