"""analytics – rolling histories and simulation statistics."""

from .rolling import RollingHistory, DEFAULT_HISTORY_SIZE
from .statistics import SimulationStatistics, StatisticsSnapshot

__all__ = [
    "RollingHistory", "DEFAULT_HISTORY_SIZE",
    "SimulationStatistics", "StatisticsSnapshot",
]
