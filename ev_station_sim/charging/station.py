"""
Charging Station Module
Bounded charging slots plus a bounded FIFO waiting queue.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from typing import Deque, List, Optional, Tuple
from datetime import datetime

from ev_station_sim.vehicle import Vehicle, VehicleStatus, VehicleSnapshot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StationSnapshot:
    """Read-only view of a station at one instant."""
    id: int
    capacity: int
    max_queue_size: int
    charging: Tuple[VehicleSnapshot, ...]
    waiting: Tuple[VehicleSnapshot, ...]
    utilization: float
    current_power_output_kw: float
    estimated_wait_minutes: float

    @property
    def free_slots(self) -> int:
        return max(0, self.capacity - len(self.charging))

    @property
    def queue_length(self) -> int:
        return len(self.waiting)

    @property
    def load(self) -> int:
        return len(self.charging) + len(self.waiting)


class ChargingStation:
    """
    A station with ``capacity`` charging slots and a waiting queue of at most
    ``max_queue_size`` vehicles.

    Arrivals charge immediately when a slot is free, queue when there is
    room, and are rejected otherwise. Each tick, finished sessions free
    their slots and the queue head moves in, strictly first-in first-out.
    """

    def __init__(self, station_id: int, capacity: int, max_queue_size: int = 10):
        if capacity < 1:
            raise ValueError(f"Station {station_id} needs at least one slot")
        if max_queue_size < 0:
            raise ValueError(f"Station {station_id} queue size cannot be negative")

        self.id = station_id
        self.capacity = capacity
        self.max_queue_size = max_queue_size

        self.charging_vehicles: List[Vehicle] = []
        self.waiting_queue: Deque[Vehicle] = deque()

        self.stats = {
            'total_arrivals': 0,
            'immediate_service': 0,
            'queued': 0,
            'rejected': 0,
            'completed_sessions': 0,
            'peak_queue_length': 0,
        }

    # =========================================================================
    # STATE PROPERTIES
    # =========================================================================

    @property
    def has_free_slot(self) -> bool:
        return len(self.charging_vehicles) < self.capacity

    @property
    def free_slots(self) -> int:
        return max(0, self.capacity - len(self.charging_vehicles))

    @property
    def queue_length(self) -> int:
        return len(self.waiting_queue)

    @property
    def load(self) -> int:
        """Vehicles charging plus vehicles waiting."""
        return len(self.charging_vehicles) + len(self.waiting_queue)

    @property
    def utilization(self) -> float:
        """Occupied slots as a percentage (0-100)."""
        if self.capacity <= 0:
            return 0.0
        return len(self.charging_vehicles) / self.capacity * 100

    @property
    def can_accept_vehicle(self) -> bool:
        """Queue has room; a full queue makes the station ineligible."""
        return len(self.waiting_queue) < self.max_queue_size

    @property
    def current_power_output_kw(self) -> float:
        return sum(v.charging_power_kw for v in self.charging_vehicles)

    # =========================================================================
    # ADMISSION
    # =========================================================================

    def add_vehicle(self, vehicle: Vehicle, current_time: datetime) -> VehicleStatus:
        """
        Admit an arriving vehicle.

        Returns the resulting status: CHARGING, WAITING or REJECTED.
        """
        self.stats['total_arrivals'] += 1

        if self.has_free_slot:
            vehicle.station_id = self.id
            self._start_charging(vehicle, current_time)
            self.stats['immediate_service'] += 1
        elif self.can_accept_vehicle:
            vehicle.station_id = self.id
            self.waiting_queue.append(vehicle)
            self.stats['queued'] += 1
            if len(self.waiting_queue) > self.stats['peak_queue_length']:
                self.stats['peak_queue_length'] = len(self.waiting_queue)
            logger.debug("Station %d: %s queued at position %d",
                         self.id, vehicle.display_name, len(self.waiting_queue))
        else:
            vehicle.reject()
            self.stats['rejected'] += 1
            logger.debug("Station %d: %s rejected, queue full", self.id, vehicle.display_name)

        return vehicle.status

    def _start_charging(self, vehicle: Vehicle, current_time: datetime) -> None:
        vehicle.start_charging(current_time)
        self.charging_vehicles.append(vehicle)
        logger.debug("Station %d: %s charging until %s", self.id, vehicle.display_name,
                     vehicle.charging_end_time.strftime('%H:%M'))

    # =========================================================================
    # SIMULATION STEP
    # =========================================================================

    def process_completed_charging(self, current_time: datetime) -> List[Vehicle]:
        """
        Reclaim slots from finished sessions, then promote queued vehicles.

        Returns the vehicles that completed this tick.
        """
        completed = [v for v in self.charging_vehicles if v.is_finished_charging(current_time)]

        for vehicle in completed:
            self.charging_vehicles.remove(vehicle)
            vehicle.complete()
            self.stats['completed_sessions'] += 1

        while self.has_free_slot and self.waiting_queue:
            self._start_charging(self.waiting_queue.popleft(), current_time)

        return completed

    # =========================================================================
    # UTILITY METHODS
    # =========================================================================

    def estimated_wait_time_minutes(self, current_time: datetime) -> float:
        """Mean remaining charge time when every slot is busy, else 0."""
        if self.has_free_slot or not self.charging_vehicles:
            return 0.0
        remaining = [
            v.remaining_charging_time(current_time).total_seconds() / 60
            for v in self.charging_vehicles
        ]
        return sum(remaining) / len(remaining)

    def get_vehicle_at_slot(self, slot_index: int) -> Optional[Vehicle]:
        if 0 <= slot_index < len(self.charging_vehicles):
            return self.charging_vehicles[slot_index]
        return None

    def active_vehicles(self) -> List[Vehicle]:
        return list(self.charging_vehicles) + list(self.waiting_queue)

    def clear(self) -> None:
        """Drop all vehicles and counters."""
        self.charging_vehicles.clear()
        self.waiting_queue.clear()
        for key in self.stats:
            self.stats[key] = 0

    def snapshot(self, current_time: datetime) -> StationSnapshot:
        return StationSnapshot(
            id=self.id,
            capacity=self.capacity,
            max_queue_size=self.max_queue_size,
            charging=tuple(v.snapshot(current_time) for v in self.charging_vehicles),
            waiting=tuple(v.snapshot(current_time) for v in self.waiting_queue),
            utilization=self.utilization,
            current_power_output_kw=self.current_power_output_kw,
            estimated_wait_minutes=self.estimated_wait_time_minutes(current_time),
        )

    def __repr__(self) -> str:
        return (f"ChargingStation(id={self.id}, slots={len(self.charging_vehicles)}/"
                f"{self.capacity}, queue={len(self.waiting_queue)}/{self.max_queue_size}, "
                f"utilization={self.utilization:.0f}%)")
