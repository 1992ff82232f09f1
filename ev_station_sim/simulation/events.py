"""
Simulation Events Module
Notification payloads and listener registry for simulation consumers.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Callable, List, Tuple, Any
from datetime import datetime

from ev_station_sim.vehicle import VehicleSnapshot
from ev_station_sim.charging import StationSnapshot
from ev_station_sim.analytics import StatisticsSnapshot

logger = logging.getLogger(__name__)


class VehicleEventKind(Enum):
    ARRIVED = auto()
    REJECTED = auto()
    COMPLETED = auto()


@dataclass(frozen=True)
class VehicleEvent:
    """One vehicle occurrence with a human-readable description."""
    kind: VehicleEventKind
    vehicle: VehicleSnapshot
    description: str
    timestamp: datetime


@dataclass
class SimulationListeners:
    """
    Callbacks registered by consumers (renderers, loggers, recorders).

    Every payload is an immutable copy. A listener that raises is logged
    and skipped; the simulation keeps running.
    """
    stations_updated: List[Callable[[Tuple[StationSnapshot, ...]], None]] = field(default_factory=list)
    statistics_updated: List[Callable[[StatisticsSnapshot], None]] = field(default_factory=list)
    time_updated: List[Callable[[datetime], None]] = field(default_factory=list)
    vehicle_event: List[Callable[[VehicleEvent], None]] = field(default_factory=list)

    def emit_stations(self, stations: Tuple[StationSnapshot, ...]) -> None:
        self._dispatch(self.stations_updated, stations)

    def emit_statistics(self, statistics: StatisticsSnapshot) -> None:
        self._dispatch(self.statistics_updated, statistics)

    def emit_time(self, current_time: datetime) -> None:
        self._dispatch(self.time_updated, current_time)

    def emit_vehicle_event(self, event: VehicleEvent) -> None:
        self._dispatch(self.vehicle_event, event)

    def clear(self) -> None:
        self.stations_updated.clear()
        self.statistics_updated.clear()
        self.time_updated.clear()
        self.vehicle_event.clear()

    @staticmethod
    def _dispatch(callbacks: List[Callable[[Any], None]], payload: Any) -> None:
        for callback in list(callbacks):
            try:
                callback(payload)
            except Exception:
                logger.warning("Listener %r failed", callback, exc_info=True)
