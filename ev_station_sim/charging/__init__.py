"""charging – stations, slots, waiting queue and assignment policy."""

from .station import ChargingStation, StationSnapshot
from .assignment import AssignmentPolicy

__all__ = ["ChargingStation", "StationSnapshot", "AssignmentPolicy"]
