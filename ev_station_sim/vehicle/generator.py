"""
Vehicle Generator Module
Stochastic per-minute arrival generation modulated by time of day.

Each simulated minute, every vehicle class gets one independent Bernoulli
trial with probability ``rate_per_hour * multiplier / 60``. This approximates
a Poisson process only while that probability is well below 1: at most one
vehicle per class can arrive per minute, so heavy rates are under-counted.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Dict, Optional, Tuple, FrozenSet
from datetime import datetime

import numpy as np

from ev_station_sim.vehicle.vehicle import Vehicle, VehicleType

logger = logging.getLogger(__name__)

RUSH_HOURS: FrozenSet[int] = frozenset({7, 8, 9, 17, 18, 19})

# Generation order within a minute; fixed so seeded runs are reproducible.
VEHICLE_TYPE_ORDER: Tuple[VehicleType, ...] = (
    VehicleType.CAR, VehicleType.TRUCK, VehicleType.BUS
)


@dataclass
class VehicleTypeSpec:
    """
    Parameter ranges for one vehicle class.

    Capacity and power are whole numbers drawn from ``[low, high)``;
    battery and target levels are uniform floats over their ranges.
    """
    vehicle_type: VehicleType
    capacity_range_kwh: Tuple[int, int]
    power_range_kw: Tuple[int, int]
    battery_level_range: Tuple[float, float]
    target_level_range: Tuple[float, float]

    def __post_init__(self):
        for name in ('capacity_range_kwh', 'power_range_kw',
                     'battery_level_range', 'target_level_range'):
            low, high = getattr(self, name)
            if low > high:
                raise ValueError(f"{self.vehicle_type.value}: {name} low > high")
        if self.capacity_range_kwh[0] <= 0 or self.power_range_kw[0] <= 0:
            raise ValueError(f"{self.vehicle_type.value}: capacity and power must be positive")
        if self.battery_level_range[1] > self.target_level_range[0]:
            raise ValueError(
                f"{self.vehicle_type.value}: battery level range must lie below target range"
            )


def default_type_specs() -> Dict[VehicleType, VehicleTypeSpec]:
    """Real-world inspired specs for cars, trucks and buses."""
    return {
        VehicleType.CAR: VehicleTypeSpec(
            VehicleType.CAR, (60, 80), (50, 150), (10.0, 40.0), (80.0, 90.0)
        ),
        VehicleType.TRUCK: VehicleTypeSpec(
            VehicleType.TRUCK, (200, 300), (150, 350), (15.0, 40.0), (75.0, 85.0)
        ),
        VehicleType.BUS: VehicleTypeSpec(
            VehicleType.BUS, (250, 400), (100, 350), (20.0, 40.0), (85.0, 95.0)
        ),
    }


@dataclass
class GeneratorConfig:
    """Configuration for the arrival generator."""
    arrival_rates_per_hour: Dict[VehicleType, float] = field(default_factory=lambda: {
        VehicleType.CAR: 12.0,
        VehicleType.TRUCK: 4.0,
        VehicleType.BUS: 2.0,
    })
    rush_hour_multiplier: float = 2.0
    rush_hours: FrozenSet[int] = RUSH_HOURS
    type_specs: Dict[VehicleType, VehicleTypeSpec] = field(default_factory=default_type_specs)


def is_rush_hour(hour: int, rush_hours: FrozenSet[int] = RUSH_HOURS) -> bool:
    """Morning 7-9 and evening 17-19 (inclusive) by default."""
    return hour in rush_hours


class ArrivalGenerator:
    """
    Generates arriving vehicles for each simulated minute.

    The random source is injected so runs are reproducible; vehicle ids are
    sequential across the whole run.
    """

    def __init__(
        self,
        config: Optional[GeneratorConfig] = None,
        rng: Optional[np.random.Generator] = None
    ):
        self.config = config or GeneratorConfig()
        self.rng = rng if rng is not None else np.random.default_rng()

        self._next_number: int = 1
        self.total_generated: int = 0
        self.generated_by_type: Dict[VehicleType, int] = {t: 0 for t in VehicleType}

    def reset(self) -> None:
        """Restart id numbering and counters (the rng is left as is)."""
        self._next_number = 1
        self.total_generated = 0
        self.generated_by_type = {t: 0 for t in VehicleType}

    # ========================================================================
    # PROBABILITIES
    # ========================================================================

    def arrival_probability(self, vehicle_type: VehicleType, hour: int) -> float:
        """Per-minute arrival probability for one class at the given hour."""
        rate = self.config.arrival_rates_per_hour.get(vehicle_type, 0.0)
        multiplier = (
            self.config.rush_hour_multiplier
            if is_rush_hour(hour, self.config.rush_hours) else 1.0
        )
        return (rate * multiplier) / 60.0

    # ========================================================================
    # VEHICLE CREATION
    # ========================================================================

    def create_vehicle(self, vehicle_type: VehicleType, arrival_time: datetime) -> Vehicle:
        """Create one vehicle with class-ranged randomized parameters."""
        spec = self.config.type_specs[vehicle_type]

        vehicle = Vehicle(
            number=self._next_number,
            vehicle_type=vehicle_type,
            battery_capacity_kwh=self._draw_whole(spec.capacity_range_kwh),
            charging_power_kw=self._draw_whole(spec.power_range_kw),
            battery_level=float(self.rng.uniform(*spec.battery_level_range)),
            target_battery_level=float(self.rng.uniform(*spec.target_level_range)),
            arrival_time=arrival_time,
        )

        self._next_number += 1
        self.total_generated += 1
        self.generated_by_type[vehicle_type] += 1
        return vehicle

    def _draw_whole(self, bounds: Tuple[int, int]) -> float:
        low, high = bounds
        if high <= low:
            return float(low)
        return float(self.rng.integers(low, high))

    # ========================================================================
    # MAIN GENERATION INTERFACE
    # ========================================================================

    def step(self, current_time: datetime) -> List[Vehicle]:
        """
        Run one Bernoulli trial per vehicle class for the current minute.

        Returns the (possibly empty) list of arrivals, at most one per class.
        """
        arrivals = []
        for vehicle_type in VEHICLE_TYPE_ORDER:
            probability = self.arrival_probability(vehicle_type, current_time.hour)
            draw = self.rng.random()
            if draw < probability:
                vehicle = self.create_vehicle(vehicle_type, current_time)
                logger.debug("Generated %s at %s", vehicle.display_name,
                             current_time.strftime('%H:%M'))
                arrivals.append(vehicle)
        return arrivals

    def __repr__(self) -> str:
        rates = ", ".join(
            f"{t.value}={r:g}/h" for t, r in self.config.arrival_rates_per_hour.items()
        )
        return f"ArrivalGenerator({rates}, generated={self.total_generated})"
