"""
Vehicle Module
Electric vehicle entity with battery parameters, lifecycle timestamps and
a one-way charging state machine.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Dict, Any
from datetime import datetime, timedelta

from ev_station_sim.vehicle.charging_curve import (
    charging_progress,
    battery_level_at,
    energy_delivered_at,
    charging_duration_minutes,
)


class VehicleType(Enum):
    """Vehicle classes served by the charging facility."""
    CAR = "Car"
    TRUCK = "Truck"
    BUS = "Bus"


class VehicleStatus(Enum):
    """Position of a vehicle in its charging lifecycle."""
    WAITING = "Waiting"
    CHARGING = "Charging"
    COMPLETED = "Completed"
    REJECTED = "Rejected"


class InvalidTransitionError(RuntimeError):
    """Raised when a vehicle is asked to make a transition its state forbids."""


@dataclass(frozen=True)
class VehicleSnapshot:
    """Read-only copy of a vehicle, handed to consumers and statistics."""
    id: str
    number: int
    vehicle_type: VehicleType
    status: VehicleStatus
    station_id: Optional[int]
    battery_capacity_kwh: float
    initial_battery_level: float
    battery_level: float
    target_battery_level: float
    charging_power_kw: float
    charging_duration_minutes: float
    arrival_time: datetime
    charging_start_time: Optional[datetime]
    charging_end_time: Optional[datetime]
    current_battery_level: float
    energy_delivered_kwh: float

    @property
    def display_name(self) -> str:
        return f"{self.vehicle_type.value} #{self.id}"

    @property
    def waiting_time_minutes(self) -> float:
        if self.charging_start_time is None:
            return 0.0
        return (self.charging_start_time - self.arrival_time).total_seconds() / 60

    @property
    def energy_requested_kwh(self) -> float:
        return self.battery_capacity_kwh * (
            self.target_battery_level - self.initial_battery_level) / 100.0

    def to_dict(self) -> Dict[str, Any]:
        """Flat dict for DataFrame construction."""
        return {
            'id': self.id,
            'vehicle_type': self.vehicle_type.value,
            'status': self.status.value,
            'station_id': self.station_id,
            'battery_capacity_kwh': self.battery_capacity_kwh,
            'initial_battery_level': self.initial_battery_level,
            'battery_level': self.battery_level,
            'target_battery_level': self.target_battery_level,
            'charging_power_kw': self.charging_power_kw,
            'charging_duration_minutes': self.charging_duration_minutes,
            'arrival_time': self.arrival_time,
            'charging_start_time': self.charging_start_time,
            'charging_end_time': self.charging_end_time,
            'waiting_time_minutes': self.waiting_time_minutes,
            'energy_requested_kwh': self.energy_requested_kwh,
            'energy_delivered_kwh': self.energy_delivered_kwh,
        }


@dataclass(eq=False)
class Vehicle:
    """
    Electric vehicle arriving at the facility.

    Owned by exactly one station once admitted. The charging duration is
    computed once at creation from the energy needed and the charging power;
    every later evaluation uses the simulated clock passed in by the caller.
    """
    number: int
    vehicle_type: VehicleType
    battery_capacity_kwh: float
    battery_level: float             # Current level (0-100 %)
    target_battery_level: float      # Level at which charging stops
    charging_power_kw: float
    arrival_time: datetime
    charging_start_time: Optional[datetime] = None
    charging_end_time: Optional[datetime] = None
    station_id: Optional[int] = None
    status: VehicleStatus = VehicleStatus.WAITING

    initial_battery_level: float = field(init=False)
    charging_duration_minutes: float = field(init=False)

    def __post_init__(self):
        if not 0.0 <= self.battery_level <= 100.0:
            raise ValueError(f"Battery level {self.battery_level} outside 0-100%")
        if not 0.0 <= self.target_battery_level <= 100.0:
            raise ValueError(f"Target level {self.target_battery_level} outside 0-100%")
        if self.target_battery_level <= self.battery_level:
            raise ValueError(
                f"Target level {self.target_battery_level:.1f}% must exceed "
                f"current level {self.battery_level:.1f}%"
            )
        if self.battery_capacity_kwh <= 0 or self.charging_power_kw <= 0:
            raise ValueError("Battery capacity and charging power must be positive")

        self.initial_battery_level = self.battery_level
        self.charging_duration_minutes = charging_duration_minutes(
            self.battery_capacity_kwh,
            self.battery_level,
            self.target_battery_level,
            self.charging_power_kw
        )

    # ========================================================================
    # IDENTITY
    # ========================================================================

    @property
    def id(self) -> str:
        return f"{self.number:04d}"

    @property
    def display_name(self) -> str:
        return f"{self.vehicle_type.value} #{self.id}"

    # ========================================================================
    # STATE MACHINE
    # ========================================================================

    def start_charging(self, current_time: datetime) -> None:
        """WAITING -> CHARGING, starting the full duration from ``current_time``."""
        if self.status != VehicleStatus.WAITING:
            raise InvalidTransitionError(
                f"Vehicle {self.id} cannot start charging from {self.status.name}"
            )
        self.charging_start_time = current_time
        self.charging_end_time = current_time + timedelta(minutes=self.charging_duration_minutes)
        self.status = VehicleStatus.CHARGING

    def complete(self) -> None:
        """CHARGING -> COMPLETED. The level is forced to the target exactly."""
        if self.status != VehicleStatus.CHARGING:
            raise InvalidTransitionError(
                f"Vehicle {self.id} cannot complete from {self.status.name}"
            )
        self.status = VehicleStatus.COMPLETED
        self.battery_level = self.target_battery_level

    def reject(self) -> None:
        """WAITING -> REJECTED (admission failure, terminal)."""
        if self.status != VehicleStatus.WAITING:
            raise InvalidTransitionError(
                f"Vehicle {self.id} cannot be rejected from {self.status.name}"
            )
        self.status = VehicleStatus.REJECTED

    def is_finished_charging(self, current_time: datetime) -> bool:
        return (
            self.status == VehicleStatus.CHARGING
            and self.charging_end_time is not None
            and self.charging_end_time <= current_time
        )

    # ========================================================================
    # CHARGING PROGRESS
    # ========================================================================

    @property
    def waiting_time(self) -> timedelta:
        """Time spent in the queue before a slot was assigned."""
        if self.charging_start_time is None:
            return timedelta(0)
        return self.charging_start_time - self.arrival_time

    @property
    def energy_requested_kwh(self) -> float:
        return self.battery_capacity_kwh * (
            self.target_battery_level - self.initial_battery_level) / 100.0

    def remaining_charging_time(self, current_time: datetime) -> timedelta:
        if self.charging_end_time is None or self.status != VehicleStatus.CHARGING:
            return timedelta(0)
        return max(timedelta(0), self.charging_end_time - current_time)

    def get_charging_progress(self, current_time: datetime) -> float:
        """Progress (0.0 - 1.0) along the charging curve."""
        if (self.charging_start_time is None or self.charging_end_time is None
                or self.status != VehicleStatus.CHARGING):
            return 0.0
        elapsed = (current_time - self.charging_start_time).total_seconds() / 60
        total = (self.charging_end_time - self.charging_start_time).total_seconds() / 60
        return charging_progress(elapsed, total)

    def get_current_battery_level(self, current_time: datetime) -> float:
        if self.status != VehicleStatus.CHARGING:
            return self.battery_level
        return battery_level_at(
            self.initial_battery_level,
            self.target_battery_level,
            self.get_charging_progress(current_time)
        )

    def energy_delivered_kwh(self, current_time: datetime) -> float:
        if self.status == VehicleStatus.COMPLETED:
            return self.energy_requested_kwh
        return energy_delivered_at(
            self.battery_capacity_kwh,
            self.initial_battery_level,
            self.target_battery_level,
            self.get_charging_progress(current_time)
        )

    # ========================================================================
    # SNAPSHOT
    # ========================================================================

    def snapshot(self, current_time: Optional[datetime] = None) -> VehicleSnapshot:
        now = current_time or self.charging_end_time or self.arrival_time
        return VehicleSnapshot(
            id=self.id,
            number=self.number,
            vehicle_type=self.vehicle_type,
            status=self.status,
            station_id=self.station_id,
            battery_capacity_kwh=self.battery_capacity_kwh,
            initial_battery_level=self.initial_battery_level,
            battery_level=self.battery_level,
            target_battery_level=self.target_battery_level,
            charging_power_kw=self.charging_power_kw,
            charging_duration_minutes=self.charging_duration_minutes,
            arrival_time=self.arrival_time,
            charging_start_time=self.charging_start_time,
            charging_end_time=self.charging_end_time,
            current_battery_level=self.get_current_battery_level(now),
            energy_delivered_kwh=self.energy_delivered_kwh(now),
        )

    def __repr__(self) -> str:
        return (f"Vehicle({self.display_name}, {self.status.name}, "
                f"{self.battery_level:.1f}%->{self.target_battery_level:.1f}%, "
                f"{self.charging_power_kw:.0f}kW)")
