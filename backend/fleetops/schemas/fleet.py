import enum
from datetime import datetime
from typing import Annotated, Optional

from pydantic import AfterValidator, Field, field_validator

from fleetops.schemas._base import ApiModel, as_utc


class VehicleStatus(str, enum.Enum):
    AVAILABLE = "AVAILABLE"
    ON_TRIP = "ON_TRIP"
    IN_SHOP = "IN_SHOP"
    RETIRED = "RETIRED"


class DriverStatus(str, enum.Enum):
    ON_DUTY = "ON_DUTY"
    OFF_DUTY = "OFF_DUTY"
    SUSPENDED = "SUSPENDED"
    ON_TRIP = "ON_TRIP"


def _not_on_trip(value):
    # ON_TRIP is owned by the dispatch engine
    if value == "ON_TRIP":
        raise ValueError("ON_TRIP is set by dispatch only")
    return value


ManualVehicleStatus = Annotated[VehicleStatus, AfterValidator(_not_on_trip)]
ManualDriverStatus = Annotated[DriverStatus, AfterValidator(_not_on_trip)]


class VehicleCreate(ApiModel):
    name: str = Field(min_length=1, max_length=120)
    license_plate: str = Field(min_length=2, max_length=32)
    max_load_capacity: float = Field(gt=0)
    odometer: float = Field(default=0, ge=0)
    status: ManualVehicleStatus = VehicleStatus.AVAILABLE


class VehicleStatusUpdate(ApiModel):
    status: ManualVehicleStatus


class VehicleOut(ApiModel):
    id: int
    name: str
    license_plate: str
    max_load_capacity: float
    odometer: float
    status: VehicleStatus
    current_trip_id: Optional[int] = None


class DriverCreate(ApiModel):
    name: str = Field(min_length=1, max_length=120)
    license_type: str = Field(min_length=1, max_length=32)
    license_expiry: datetime
    safety_score: float = Field(default=100, ge=0, le=100)
    status: ManualDriverStatus = DriverStatus.OFF_DUTY

    @field_validator("license_expiry")
    @classmethod
    def _utc(cls, value: datetime) -> datetime:
        return as_utc(value)


class DriverStatusUpdate(ApiModel):
    status: ManualDriverStatus


class DriverOut(ApiModel):
    id: int
    name: str
    license_type: str
    license_expiry: datetime
    safety_score: float
    status: DriverStatus
    current_trip_id: Optional[int] = None
