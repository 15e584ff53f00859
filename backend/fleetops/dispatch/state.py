"""Trip lifecycle as a tagged variant.

The persisted ``status`` columns on trips, vehicles and drivers move together;
``trip_state`` reads a trip record back into one of the variants below and
refuses records whose fields disagree with their status.
"""

from dataclasses import dataclass
from typing import Any, Mapping, Union

from fleetops.schemas.trip import TripStatus


@dataclass(frozen=True)
class Draft:
    pass


@dataclass(frozen=True)
class Dispatched:
    vehicle_id: int
    driver_id: int
    start_odometer: float


@dataclass(frozen=True)
class Completed:
    vehicle_id: int
    driver_id: int
    start_odometer: float
    end_odometer: float


@dataclass(frozen=True)
class Cancelled:
    pass


TripState = Union[Draft, Dispatched, Completed, Cancelled]


def trip_state(record: Mapping[str, Any]) -> TripState:
    status = TripStatus(record["status"])
    start = record.get("start_odometer")
    end = record.get("end_odometer")

    if status is TripStatus.DRAFT:
        return Draft()
    if status is TripStatus.CANCELLED:
        return Cancelled()
    if start is None:
        raise ValueError(f"trip {record.get('id')} is {status.value} without a start odometer")
    if status is TripStatus.DISPATCHED:
        if end is not None:
            raise ValueError(f"trip {record.get('id')} is DISPATCHED but has an end odometer")
        return Dispatched(record["vehicle_id"], record["driver_id"], start)
    if end is None or end <= start:
        raise ValueError(f"trip {record.get('id')} is COMPLETED with end odometer {end!r}")
    return Completed(record["vehicle_id"], record["driver_id"], start, end)
