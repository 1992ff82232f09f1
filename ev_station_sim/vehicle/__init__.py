"""vehicle – EV entity, charging curve and arrival generator."""

from .charging_curve import (
    charging_curve, charging_progress, battery_level_at,
    energy_delivered_at, charging_duration_minutes,
)
from .vehicle import (
    Vehicle, VehicleType, VehicleStatus, VehicleSnapshot, InvalidTransitionError,
)
from .generator import (
    ArrivalGenerator, GeneratorConfig, VehicleTypeSpec, default_type_specs,
    is_rush_hour, RUSH_HOURS,
)

__all__ = [
    "charging_curve", "charging_progress", "battery_level_at",
    "energy_delivered_at", "charging_duration_minutes",
    "Vehicle", "VehicleType", "VehicleStatus", "VehicleSnapshot", "InvalidTransitionError",
    "ArrivalGenerator", "GeneratorConfig", "VehicleTypeSpec", "default_type_specs",
    "is_rush_hour", "RUSH_HOURS",
]
