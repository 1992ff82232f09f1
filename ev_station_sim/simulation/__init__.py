"""simulation – parameters, notifications and the tick-loop engine."""

from .parameters import SimulationParameters, ConfigurationError
from .events import SimulationListeners, VehicleEvent, VehicleEventKind
from .engine import (
    SimulationEngine, SimulationResult, StopReason, SystemMetrics, TickReport,
    calculate_batch_size, calculate_delay_ms, TIME_STEP,
)

__all__ = [
    "SimulationParameters", "ConfigurationError",
    "SimulationListeners", "VehicleEvent", "VehicleEventKind",
    "SimulationEngine", "SimulationResult", "StopReason", "SystemMetrics", "TickReport",
    "calculate_batch_size", "calculate_delay_ms", "TIME_STEP",
]
