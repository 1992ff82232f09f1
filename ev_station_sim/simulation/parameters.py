"""
Simulation Parameters Module
Read-only configuration for one simulation run.
"""

from __future__ import annotations

import json
import math
import numbers
from dataclasses import dataclass, asdict, fields
from typing import Dict, List, Optional, Any
from datetime import datetime

from ev_station_sim.vehicle import VehicleType, GeneratorConfig


class ConfigurationError(ValueError):
    """Raised when simulation parameters violate their contract."""

    def __init__(self, problems: List[str]):
        self.problems = problems
        super().__init__("Invalid simulation parameters: " + "; ".join(problems))


def _is_whole(value: Any) -> bool:
    return isinstance(value, numbers.Integral) and not isinstance(value, bool)


def _is_finite(value: Any) -> bool:
    return (isinstance(value, numbers.Real) and not isinstance(value, bool)
            and math.isfinite(value))


@dataclass
class SimulationParameters:
    """Complete parameter set for simulation configuration."""
    # Facility
    num_stations: int = 3
    slots_per_station: int = 4
    max_queue_size: int = 10

    # Run length
    simulation_duration_hours: float = 8.0
    start_time: Optional[datetime] = None       # None = wall-clock now

    # Traffic
    arrival_rate_cars_per_hour: float = 12.0
    arrival_rate_trucks_per_hour: float = 4.0
    arrival_rate_buses_per_hour: float = 2.0
    rush_hour_multiplier: float = 2.0

    # Pacing (1x = one tick per 100 ms, 100x = one tick per 1 ms)
    simulation_speed: float = 1.0
    realtime_pacing: bool = True

    # Random seed
    random_seed: Optional[int] = None

    @property
    def total_system_capacity(self) -> int:
        return self.num_stations * self.slots_per_station

    @property
    def total_expected_vehicles_per_hour(self) -> float:
        return (self.arrival_rate_cars_per_hour
                + self.arrival_rate_trucks_per_hour
                + self.arrival_rate_buses_per_hour)

    @property
    def arrival_rates(self) -> Dict[VehicleType, float]:
        return {
            VehicleType.CAR: self.arrival_rate_cars_per_hour,
            VehicleType.TRUCK: self.arrival_rate_trucks_per_hour,
            VehicleType.BUS: self.arrival_rate_buses_per_hour,
        }

    def validate(self) -> None:
        """Raise ConfigurationError listing every violated constraint."""
        problems = []

        counts = (('num_stations', 1), ('slots_per_station', 1), ('max_queue_size', 0))
        for name, minimum in counts:
            value = getattr(self, name)
            if not _is_whole(value):
                problems.append(f"{name} must be an integer (got {value!r})")
            elif value < minimum:
                problems.append(f"{name} must be >= {minimum} (got {value})")

        # (name, strictly positive)
        quantities = (
            ('simulation_duration_hours', True),
            ('arrival_rate_cars_per_hour', False),
            ('arrival_rate_trucks_per_hour', False),
            ('arrival_rate_buses_per_hour', False),
            ('rush_hour_multiplier', False),
            ('simulation_speed', True),
        )
        for name, positive in quantities:
            value = getattr(self, name)
            if not _is_finite(value):
                problems.append(f"{name} must be a finite number (got {value!r})")
            elif positive and value <= 0:
                problems.append(f"{name} must be > 0 (got {value})")
            elif value < 0:
                problems.append(f"{name} must be >= 0 (got {value})")

        if self.random_seed is not None and not _is_whole(self.random_seed):
            problems.append(f"random_seed must be an integer or None (got {self.random_seed!r})")

        if problems:
            raise ConfigurationError(problems)

    def to_generator_config(self) -> GeneratorConfig:
        return GeneratorConfig(
            arrival_rates_per_hour=self.arrival_rates,
            rush_hour_multiplier=self.rush_hour_multiplier,
        )

    # ========================================================================
    # SERIALIZATION
    # ========================================================================

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary (for serialization)."""
        d = asdict(self)
        d['start_time'] = self.start_time.isoformat() if self.start_time else None
        return d

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> SimulationParameters:
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigurationError([f"unknown parameter '{key}'" for key in unknown])
        values = dict(data)
        if isinstance(values.get('start_time'), str):
            values['start_time'] = datetime.fromisoformat(values['start_time'])
        return cls(**values)

    @classmethod
    def from_json(cls, filepath: str) -> SimulationParameters:
        with open(filepath) as f:
            return cls.from_dict(json.load(f))
