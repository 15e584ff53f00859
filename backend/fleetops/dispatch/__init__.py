from fleetops.dispatch.engine import DispatchEngine
from fleetops.dispatch.errors import (
    CargoExceedsCapacity,
    DispatchError,
    DriverUnavailable,
    InvalidOdometerReading,
    InvalidTripState,
    LicenseExpired,
    VehicleUnavailable,
)

__all__ = [
    "CargoExceedsCapacity",
    "DispatchEngine",
    "DispatchError",
    "DriverUnavailable",
    "InvalidOdometerReading",
    "InvalidTripState",
    "LicenseExpired",
    "VehicleUnavailable",
]
