"""
Simulation Statistics Module
Counters, rolling time series and derived metrics for a simulation run.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import List, Dict, Any, Tuple
from datetime import timedelta

import numpy as np
import pandas as pd

from ev_station_sim.vehicle import Vehicle, VehicleSnapshot, VehicleType
from ev_station_sim.analytics.rolling import RollingHistory, DEFAULT_HISTORY_SIZE

RECENT_WINDOW = 50

_VEHICLE_COLUMNS = [
    'id', 'vehicle_type', 'status', 'station_id', 'battery_capacity_kwh',
    'initial_battery_level', 'battery_level', 'target_battery_level',
    'charging_power_kw', 'charging_duration_minutes', 'arrival_time',
    'charging_start_time', 'charging_end_time', 'waiting_time_minutes',
    'energy_requested_kwh', 'energy_delivered_kwh',
]


def _format_elapsed(elapsed: timedelta) -> str:
    total_seconds = int(elapsed.total_seconds())
    hours, remainder = divmod(total_seconds, 3600)
    minutes, seconds = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


@dataclass(frozen=True)
class StatisticsSnapshot:
    """Immutable copy of the statistics at a batch boundary."""
    total_generated: int
    total_rejected: int
    total_processed: int
    average_waiting_time: float          # minutes
    average_utilization: float           # %
    max_queue_length: int
    peak_power_output_kw: float
    current_power_output_kw: float
    total_energy_delivered_kwh: float
    simulation_time: timedelta
    throughput: float                    # completed vehicles per simulated hour
    utilization_history: Tuple[float, ...]
    power_output_history: Tuple[float, ...]
    queue_length_history: Tuple[int, ...]

    @property
    def processing_efficiency(self) -> float:
        if self.total_generated == 0:
            return 0.0
        return self.total_processed / self.total_generated * 100

    @property
    def rejection_rate(self) -> float:
        if self.total_generated == 0:
            return 0.0
        return self.total_rejected / self.total_generated * 100

    @property
    def average_energy_per_vehicle(self) -> float:
        if self.total_processed == 0:
            return 0.0
        return self.total_energy_delivered_kwh / self.total_processed

    @property
    def simulation_time_formatted(self) -> str:
        return _format_elapsed(self.simulation_time)


class SimulationStatistics:
    """
    Aggregates everything the engine reports during a run.

    Counters are monotonic within a run; the three time series keep only the
    last ``history_size`` ticks. Derived averages over completed vehicles use
    the full completed record, which is retained for per-type breakdowns.
    """

    def __init__(self, history_size: int = DEFAULT_HISTORY_SIZE):
        self.history_size = history_size

        self.utilization_history = RollingHistory(history_size, dtype=float)
        self.power_output_history = RollingHistory(history_size, dtype=float)
        self.queue_length_history = RollingHistory(history_size, dtype=np.int64)

        self._completed: List[VehicleSnapshot] = []
        self._total_waiting_minutes: float = 0.0
        self.reset()

    def reset(self) -> None:
        """Clear every counter, history and record."""
        self._completed.clear()
        self._total_waiting_minutes = 0.0
        self.utilization_history.clear()
        self.power_output_history.clear()
        self.queue_length_history.clear()

        self.total_generated: int = 0
        self.total_rejected: int = 0
        self.total_processed: int = 0
        self.rejected_by_type: Dict[VehicleType, int] = {t: 0 for t in VehicleType}

        self.average_waiting_time: float = 0.0
        self.average_utilization: float = 0.0
        self.max_queue_length: int = 0
        self.peak_power_output_kw: float = 0.0
        self.current_power_output_kw: float = 0.0
        self.total_energy_delivered_kwh: float = 0.0
        self.simulation_time: timedelta = timedelta(0)

    # ========================================================================
    # EVENT RECORDING
    # ========================================================================

    def record_generated(self, vehicle: Vehicle) -> None:
        self.total_generated += 1

    def record_rejected(self, vehicle: Vehicle) -> None:
        self.total_rejected += 1
        self.rejected_by_type[vehicle.vehicle_type] += 1

    def add_completed_vehicle(self, vehicle: VehicleSnapshot) -> None:
        """Fold a completed vehicle into the energy and waiting-time metrics."""
        self._completed.append(vehicle)
        self.total_processed = len(self._completed)
        self.total_energy_delivered_kwh += vehicle.energy_requested_kwh
        self._total_waiting_minutes += vehicle.waiting_time_minutes
        self.average_waiting_time = self._total_waiting_minutes / self.total_processed

    # ========================================================================
    # PER-TICK METRICS
    # ========================================================================

    def update_utilization(self, utilization: float) -> None:
        self.utilization_history.append(utilization)
        self.average_utilization = self.utilization_history.mean()

    def update_power_output(self, power_kw: float) -> None:
        self.current_power_output_kw = power_kw
        self.power_output_history.append(power_kw)
        if power_kw > self.peak_power_output_kw:
            self.peak_power_output_kw = power_kw

    def update_queue_length(self, queue_length: int) -> None:
        self.queue_length_history.append(queue_length)
        if queue_length > self.max_queue_length:
            self.max_queue_length = queue_length

    # ========================================================================
    # DERIVED METRICS
    # ========================================================================

    @property
    def completed_vehicles(self) -> List[VehicleSnapshot]:
        return list(self._completed)

    @property
    def processing_efficiency(self) -> float:
        """Processed vehicles as a percentage of generated ones."""
        if self.total_generated == 0:
            return 0.0
        return self.total_processed / self.total_generated * 100

    @property
    def rejection_rate(self) -> float:
        if self.total_generated == 0:
            return 0.0
        return self.total_rejected / self.total_generated * 100

    @property
    def average_energy_per_vehicle(self) -> float:
        if self.total_processed == 0:
            return 0.0
        return self.total_energy_delivered_kwh / self.total_processed

    @property
    def simulation_time_formatted(self) -> str:
        return _format_elapsed(self.simulation_time)

    def get_throughput(self) -> float:
        """Completed vehicles per simulated hour (0 for runs under 6 minutes)."""
        hours = self.simulation_time.total_seconds() / 3600
        if hours < 0.1:
            return 0.0
        return self.total_processed / hours

    def get_recent_utilization(self, count: int = RECENT_WINDOW) -> List[float]:
        return self.utilization_history.latest(count).tolist()

    def get_recent_power_output(self, count: int = RECENT_WINDOW) -> List[float]:
        return self.power_output_history.latest(count).tolist()

    def get_recent_queue_length(self, count: int = RECENT_WINDOW) -> List[int]:
        return self.queue_length_history.latest(count).tolist()

    # ========================================================================
    # DATAFRAME INTERFACE
    # ========================================================================

    def get_dataframe(self) -> pd.DataFrame:
        """One row per completed vehicle."""
        if not self._completed:
            return pd.DataFrame(columns=_VEHICLE_COLUMNS)
        return pd.DataFrame([v.to_dict() for v in self._completed], columns=_VEHICLE_COLUMNS)

    def get_history_dataframe(self) -> pd.DataFrame:
        """Retained per-tick series, oldest first."""
        return pd.DataFrame({
            'utilization_percent': self.utilization_history.values(),
            'power_output_kw': self.power_output_history.values(),
            'max_queue_length': self.queue_length_history.values(),
        })

    def get_vehicle_type_statistics(self) -> Dict[VehicleType, int]:
        """Completed vehicle count per type."""
        df = self.get_dataframe()
        if df.empty:
            return {}
        counts = df.groupby('vehicle_type').size()
        return {VehicleType(name): int(count) for name, count in counts.items()}

    def get_average_waiting_time_by_type(self) -> Dict[VehicleType, float]:
        df = self.get_dataframe()
        if df.empty:
            return {}
        means = df.groupby('vehicle_type')['waiting_time_minutes'].mean()
        return {VehicleType(name): float(value) for name, value in means.items()}

    def get_average_energy_by_type(self) -> Dict[VehicleType, float]:
        df = self.get_dataframe()
        if df.empty:
            return {}
        means = df.groupby('vehicle_type')['energy_requested_kwh'].mean()
        return {VehicleType(name): float(value) for name, value in means.items()}

    # ========================================================================
    # SNAPSHOT AND REPORTING
    # ========================================================================

    def snapshot(self) -> StatisticsSnapshot:
        return StatisticsSnapshot(
            total_generated=self.total_generated,
            total_rejected=self.total_rejected,
            total_processed=self.total_processed,
            average_waiting_time=self.average_waiting_time,
            average_utilization=self.average_utilization,
            max_queue_length=self.max_queue_length,
            peak_power_output_kw=self.peak_power_output_kw,
            current_power_output_kw=self.current_power_output_kw,
            total_energy_delivered_kwh=self.total_energy_delivered_kwh,
            simulation_time=self.simulation_time,
            throughput=self.get_throughput(),
            utilization_history=tuple(self.utilization_history.values().tolist()),
            power_output_history=tuple(self.power_output_history.values().tolist()),
            queue_length_history=tuple(self.queue_length_history.values().tolist()),
        )

    def get_summary_stats(self) -> Dict[str, Any]:
        """Flat summary suitable for JSON export."""
        return {
            'total_generated': self.total_generated,
            'total_processed': self.total_processed,
            'total_rejected': self.total_rejected,
            'processing_efficiency': self.processing_efficiency,
            'rejection_rate': self.rejection_rate,
            'avg_wait_time': self.average_waiting_time,
            'avg_utilization': self.average_utilization,
            'max_queue_length': self.max_queue_length,
            'peak_power_kw': self.peak_power_output_kw,
            'total_energy_kwh': self.total_energy_delivered_kwh,
            'avg_energy_per_vehicle_kwh': self.average_energy_per_vehicle,
            'throughput_per_hour': self.get_throughput(),
            'simulation_time': self.simulation_time_formatted,
            'completed_by_type': {
                t.value: n for t, n in self.get_vehicle_type_statistics().items()
            },
            'rejected_by_type': {t.value: n for t, n in self.rejected_by_type.items()},
            'avg_wait_by_type': {
                t.value: w for t, w in self.get_average_waiting_time_by_type().items()
            },
        }

    def export_json(self, filepath: str) -> None:
        with open(filepath, 'w') as f:
            json.dump(self.get_summary_stats(), f, indent=2, default=str)

    def generate_report(self) -> str:
        """Text report of the run so far."""
        stats = self.get_summary_stats()
        by_type = "\n".join(
            f"  • {t.value}: {n} completed, "
            f"{self.get_average_waiting_time_by_type().get(t, 0.0):.1f} min avg wait, "
            f"{self.get_average_energy_by_type().get(t, 0.0):.1f} kWh avg energy"
            for t, n in self.get_vehicle_type_statistics().items()
        ) or "  • none completed"

        return f"""
{'='*60}
CHARGING FACILITY REPORT
{'='*60}

DURATION: {stats['simulation_time']}

VEHICLES:
  • Generated: {stats['total_generated']}
  • Completed: {stats['total_processed']} ({stats['processing_efficiency']:.1f}%)
  • Rejected: {stats['total_rejected']} ({stats['rejection_rate']:.1f}%)
  • Throughput: {stats['throughput_per_hour']:.2f} vehicles/hour

SERVICE:
  • Avg wait time: {stats['avg_wait_time']:.1f} min
  • Avg utilization: {stats['avg_utilization']:.1f}%
  • Max queue length: {stats['max_queue_length']}

ENERGY:
  • Total delivered: {stats['total_energy_kwh']:.1f} kWh
  • Avg per vehicle: {stats['avg_energy_per_vehicle_kwh']:.1f} kWh
  • Peak power: {stats['peak_power_kw']:.0f} kW

BY TYPE:
{by_type}
{'='*60}
"""

    def __repr__(self) -> str:
        return (f"SimulationStatistics(generated={self.total_generated}, "
                f"processed={self.total_processed}, rejected={self.total_rejected})")
