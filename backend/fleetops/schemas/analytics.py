from fleetops.schemas._base import ApiModel


class KpisOut(ApiModel):
    active_fleet: int
    in_shop: int
    utilization_rate: float
    pending_cargo: float
