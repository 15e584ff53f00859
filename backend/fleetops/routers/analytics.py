from fastapi import APIRouter, Depends

from fleetops.auth.deps import get_current_user
from fleetops.db.store import Store
from fleetops.deps import get_store
from fleetops.schemas.analytics import KpisOut
from fleetops.services.analytics import dashboard_kpis

router = APIRouter(prefix="/analytics", tags=["analytics"])


@router.get("/kpis", response_model=KpisOut)
async def get_kpis(user=Depends(get_current_user), store: Store = Depends(get_store)):
    return await dashboard_kpis(store)
