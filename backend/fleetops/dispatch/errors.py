"""Rejections raised by the dispatch engine.

All of them are terminal for the call that raised them and are raised before
anything is committed.
"""


class DispatchError(Exception):
    default_message = "Dispatch rejected"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class VehicleUnavailable(DispatchError):
    default_message = "Vehicle unavailable"


class CargoExceedsCapacity(DispatchError):
    default_message = "Cargo exceeds capacity"


class DriverUnavailable(DispatchError):
    default_message = "Driver unavailable"


class LicenseExpired(DispatchError):
    default_message = "Driver license expired"


class InvalidTripState(DispatchError):
    default_message = "Invalid trip"


class InvalidOdometerReading(DispatchError):
    default_message = "Invalid odometer reading"
