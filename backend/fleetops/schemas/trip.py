import enum
from datetime import datetime
from typing import Optional

from pydantic import Field

from fleetops.schemas._base import ApiModel
from fleetops.schemas.fleet import DriverOut, VehicleOut


class TripStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    DISPATCHED = "DISPATCHED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class DispatchIn(ApiModel):
    vehicle_id: int
    driver_id: int
    cargo_weight: float = Field(gt=0, allow_inf_nan=False)


class CompleteIn(ApiModel):
    end_odometer: float = Field(allow_inf_nan=False)


class TripOut(ApiModel):
    id: int
    vehicle_id: int
    driver_id: int
    cargo_weight: float
    status: TripStatus
    start_odometer: Optional[float] = None
    end_odometer: Optional[float] = None
    created_at: datetime

class TripDetailOut(TripOut):
    vehicle: Optional[VehicleOut] = None
    driver: Optional[DriverOut] = None
