"""
Simulation Engine Module
Discrete-time driver for the charging facility: one tick per simulated minute.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
import uuid
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import List, Dict, Optional, Any, Tuple
from datetime import datetime, timedelta

import numpy as np
import pandas as pd

from ev_station_sim.vehicle import ArrivalGenerator, VehicleSnapshot, VehicleStatus
from ev_station_sim.charging import ChargingStation, StationSnapshot, AssignmentPolicy
from ev_station_sim.analytics import SimulationStatistics, StatisticsSnapshot, DEFAULT_HISTORY_SIZE
from ev_station_sim.simulation.parameters import SimulationParameters
from ev_station_sim.simulation.events import SimulationListeners, VehicleEvent, VehicleEventKind
from ev_station_sim.utils.run_directory import RunDirectory

logger = logging.getLogger(__name__)

TIME_STEP = timedelta(minutes=1)
BASE_DELAY_MS = 100


class StopReason(Enum):
    """Reasons for simulation termination."""
    COMPLETED = auto()       # Reached the configured end time
    USER_STOP = auto()       # stop() requested or task cancelled


@dataclass(frozen=True)
class SystemMetrics:
    total_charging: int
    total_waiting: int
    total_power_kw: float


@dataclass(frozen=True)
class TickReport:
    """Vehicles that changed hands during one tick."""
    timestamp: datetime
    arrived: Tuple[VehicleSnapshot, ...] = ()
    rejected: Tuple[VehicleSnapshot, ...] = ()
    completed: Tuple[VehicleSnapshot, ...] = ()
    events: Tuple[VehicleEvent, ...] = field(default=(), repr=False)


@dataclass
class SimulationResult:
    """Complete result package from simulation run."""
    simulation_id: str
    stop_reason: StopReason
    stop_message: str
    ticks: int
    start_time: datetime
    final_time: datetime
    wall_clock_time_seconds: float

    statistics: StatisticsSnapshot
    summary_statistics: Dict[str, Any]
    completed_vehicles: pd.DataFrame
    history: pd.DataFrame
    report: str

    parameters: SimulationParameters

    def save(self, run_dir: RunDirectory) -> str:
        """Write CSV data, a JSON summary and the text report into ``run_dir``."""
        run_dir.write_frame("completed_vehicles.csv", self.completed_vehicles)
        run_dir.write_frame("history.csv", self.history, index=True, index_label="tick")

        run_dir.write_json("summary.json", {
            'simulation_id': self.simulation_id,
            'stop_reason': self.stop_reason.name,
            'stop_message': self.stop_message,
            'ticks': self.ticks,
            'start_time': self.start_time.isoformat(),
            'final_time': self.final_time.isoformat(),
            'wall_clock_time_seconds': self.wall_clock_time_seconds,
            'summary_statistics': self.summary_statistics,
            'parameters': self.parameters.to_dict(),
        })
        run_dir.write_text("report.txt", self.report)

        return run_dir.root


def calculate_batch_size(speed: float) -> int:
    """Ticks between snapshot emissions; fewer emissions at higher speeds."""
    if speed <= 1:
        return 1
    if speed <= 10:
        return 5
    if speed <= 50:
        return 10
    return 20


def calculate_delay_ms(speed: float) -> int:
    """Pacing delay per tick: 100 ms / speed, clamped to [1, 100]."""
    delay = int(BASE_DELAY_MS / speed)
    return max(1, min(delay, BASE_DELAY_MS))


class SimulationEngine:
    """
    Main simulation driver.

    Responsibilities:
    - Own simulated time and the per-minute tick loop
    - Route arrivals through the assignment policy into stations
    - Fold completions, rejections and station metrics into statistics
    - Emit batched immutable snapshots to registered listeners

    The engine is the single writer of simulation state. Every tick and
    every query runs under one lock, so other threads only ever observe
    whole ticks.
    """

    def __init__(
        self,
        rng: Optional[np.random.Generator] = None,
        policy: Optional[AssignmentPolicy] = None,
        history_size: int = DEFAULT_HISTORY_SIZE
    ):
        self.id = str(uuid.uuid4())[:8]
        self._injected_rng = rng
        self.rng: Optional[np.random.Generator] = rng
        self.policy = policy or AssignmentPolicy()
        self.statistics = SimulationStatistics(history_size)
        self.listeners = SimulationListeners()

        self.params: Optional[SimulationParameters] = None
        self.generator: Optional[ArrivalGenerator] = None
        self._stations: List[ChargingStation] = []

        self._start_time: Optional[datetime] = None
        self._current_time: Optional[datetime] = None
        self._end_time: Optional[datetime] = None
        self.current_step: int = 0

        # Run state
        self._running = False
        self._stop_requested = False
        self._stop_event: Optional[asyncio.Event] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._lock = threading.RLock()

    # ========================================================================
    # INITIALIZATION
    # ========================================================================

    def initialize(self, parameters: SimulationParameters) -> None:
        """Reset all state and build the stations for a new run."""
        if self._running:
            raise RuntimeError("Cannot initialize while the simulation is running")
        parameters.validate()

        with self._lock:
            self.params = parameters
            if self._injected_rng is None:
                self.rng = np.random.default_rng(parameters.random_seed)
            self.generator = ArrivalGenerator(parameters.to_generator_config(), self.rng)
            self.statistics.reset()

            self._stations = [
                ChargingStation(
                    station_id=i,
                    capacity=parameters.slots_per_station,
                    max_queue_size=parameters.max_queue_size
                )
                for i in range(1, parameters.num_stations + 1)
            ]

            self._start_time = parameters.start_time or datetime.now()
            self._current_time = self._start_time
            self._end_time = self._start_time + timedelta(hours=parameters.simulation_duration_hours)
            self.current_step = 0
            self._stop_requested = False

        logger.info("Initialized %d stations x %d slots (queue %d), %s -> %s",
                    parameters.num_stations, parameters.slots_per_station,
                    parameters.max_queue_size, self._start_time.strftime('%Y-%m-%d %H:%M'),
                    self._end_time.strftime('%Y-%m-%d %H:%M'))

    # ========================================================================
    # TICK
    # ========================================================================

    def step(self) -> TickReport:
        """
        Run one tick at the current time, notify vehicle events, then advance
        the clock by one minute.
        """
        if self._running:
            raise RuntimeError("Cannot step while the simulation is running")
        report = self._tick()
        self._emit_vehicle_events(report)
        self._advance()
        return report

    def _tick(self) -> TickReport:
        if self.params is None or self.generator is None:
            raise RuntimeError("Call initialize() before running the simulation")

        with self._lock:
            now = self._current_time
            arrived, rejected, completed, events = [], [], [], []

            # 1. Arrivals and assignment
            for vehicle in self.generator.step(now):
                self.statistics.record_generated(vehicle)
                station = self.policy.assign(vehicle, self._stations, now)
                snapshot = vehicle.snapshot(now)

                if station is None or vehicle.status == VehicleStatus.REJECTED:
                    self.statistics.record_rejected(vehicle)
                    rejected.append(snapshot)
                    events.append(VehicleEvent(
                        VehicleEventKind.REJECTED, snapshot,
                        f"{vehicle.display_name} rejected - all stations full", now
                    ))
                else:
                    arrived.append(snapshot)
                    events.append(VehicleEvent(
                        VehicleEventKind.ARRIVED, snapshot,
                        f"{vehicle.display_name} arrived at Station {station.id}", now
                    ))

            # 2. Slot reclamation and queue promotion
            for station in self._stations:
                for vehicle in station.process_completed_charging(now):
                    snapshot = vehicle.snapshot(now)
                    self.statistics.add_completed_vehicle(snapshot)
                    completed.append(snapshot)
                    events.append(VehicleEvent(
                        VehicleEventKind.COMPLETED, snapshot,
                        f"{vehicle.display_name} completed charging at Station {station.id}", now
                    ))

            # 3. Per-tick station metrics
            self._update_statistics()
            self.current_step += 1

        return TickReport(
            timestamp=now,
            arrived=tuple(arrived),
            rejected=tuple(rejected),
            completed=tuple(completed),
            events=tuple(events),
        )

    def _update_statistics(self) -> None:
        if not self._stations:
            return
        utilization = sum(s.utilization for s in self._stations) / len(self._stations)
        self.statistics.update_utilization(utilization)
        self.statistics.update_queue_length(max(s.queue_length for s in self._stations))
        self.statistics.update_power_output(sum(s.current_power_output_kw for s in self._stations))

    def _advance(self) -> None:
        with self._lock:
            self._current_time = self._current_time + TIME_STEP
            self.statistics.simulation_time = self._current_time - self._start_time

    # ========================================================================
    # MAIN SIMULATION LOOP
    # ========================================================================

    async def run(self, parameters: Optional[SimulationParameters] = None) -> SimulationResult:
        """
        Execute the tick loop until the end time or a stop request.

        Passing ``parameters`` starts a fresh run; without them the run
        continues from the state set up by ``initialize()``.
        Stopping, by ``stop()`` or by cancelling the task, is a normal
        return reported as ``StopReason.USER_STOP``.
        """
        if self._running:
            raise RuntimeError("Simulation is already running")
        if parameters is not None:
            self.initialize(parameters)
        elif self.params is None:
            raise RuntimeError("No parameters: call initialize() or pass them to run()")

        self._stop_requested = False
        self._loop = asyncio.get_running_loop()
        self._stop_event = asyncio.Event()
        self._running = True

        speed = self.params.simulation_speed
        batch_size = calculate_batch_size(speed)
        delay_ms = calculate_delay_ms(speed)
        wall_start = time.perf_counter()

        logger.info("Simulation %s started at %gx (batch=%d, delay=%dms)",
                    self.id, speed, batch_size, delay_ms)

        try:
            try:
                await self._run_ticks(batch_size, delay_ms)
            except asyncio.CancelledError:
                # Task cancellation ends the run like stop()
                self._stop_requested = True
                task = asyncio.current_task()
                if task is not None and hasattr(task, "uncancel"):
                    task.uncancel()
                logger.info("Simulation %s cancelled", self.id)

            self._emit_snapshot()

        finally:
            self._running = False
            self._stop_event = None
            self._loop = None

        if self._stop_requested and self._current_time < self._end_time:
            stop_reason = StopReason.USER_STOP
            stop_message = f"Stopped after {self.current_step} ticks"
        else:
            stop_reason = StopReason.COMPLETED
            stop_message = f"Completed all {self.current_step} ticks"

        logger.info("Simulation %s finished: %s", self.id, stop_message)
        return self._build_result(stop_reason, stop_message, time.perf_counter() - wall_start)

    async def _run_ticks(self, batch_size: int, delay_ms: int) -> None:
        ticks_since_update = 0
        while self._current_time < self._end_time:
            if self._stop_requested:
                break

            report = self._tick()
            self._emit_vehicle_events(report)

            ticks_since_update += 1
            if ticks_since_update >= batch_size:
                self._emit_snapshot()
                ticks_since_update = 0

            self._advance()

            if self.params.realtime_pacing:
                await self._pace(delay_ms)
            else:
                await asyncio.sleep(0)

    async def _pace(self, delay_ms: int) -> None:
        """Sleep between ticks; returns early when stop() is called."""
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=delay_ms / 1000)
        except asyncio.TimeoutError:
            pass

    def stop(self) -> None:
        """Request cooperative cancellation. Safe from any thread, at any time."""
        if not self._running:
            return
        self._stop_requested = True
        loop, event = self._loop, self._stop_event
        if loop is not None and event is not None and not loop.is_closed():
            loop.call_soon_threadsafe(event.set)

    def run_in_background(self, parameters: Optional[SimulationParameters] = None) -> Future:
        """Run on a dedicated worker thread with its own event loop."""
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"simulation-{self.id}")
        future = executor.submit(asyncio.run, self.run(parameters))
        executor.shutdown(wait=False)
        return future

    # ========================================================================
    # NOTIFICATIONS
    # ========================================================================

    def _emit_vehicle_events(self, report: TickReport) -> None:
        for event in report.events:
            logger.debug(event.description)
            self.listeners.emit_vehicle_event(event)

    def _emit_snapshot(self) -> None:
        with self._lock:
            stations = self._station_snapshots()
            statistics = self.statistics.snapshot()
            current_time = self._current_time
        self.listeners.emit_stations(stations)
        self.listeners.emit_statistics(statistics)
        self.listeners.emit_time(current_time)

    # ========================================================================
    # QUERY SURFACE
    # ========================================================================

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def current_time(self) -> Optional[datetime]:
        return self._current_time

    @property
    def start_time(self) -> Optional[datetime]:
        return self._start_time

    @property
    def end_time(self) -> Optional[datetime]:
        return self._end_time

    def _station_snapshots(self) -> Tuple[StationSnapshot, ...]:
        return tuple(s.snapshot(self._current_time) for s in self._stations)

    def get_stations(self) -> Tuple[StationSnapshot, ...]:
        with self._lock:
            return self._station_snapshots()

    def get_station_by_id(self, station_id: int) -> Optional[StationSnapshot]:
        with self._lock:
            for station in self._stations:
                if station.id == station_id:
                    return station.snapshot(self._current_time)
        return None

    def get_all_active_vehicles(self) -> List[VehicleSnapshot]:
        """Charging and queued vehicles across all stations."""
        with self._lock:
            return [
                v.snapshot(self._current_time)
                for station in self._stations
                for v in station.active_vehicles()
            ]

    def get_system_metrics(self) -> SystemMetrics:
        with self._lock:
            return SystemMetrics(
                total_charging=sum(len(s.charging_vehicles) for s in self._stations),
                total_waiting=sum(s.queue_length for s in self._stations),
                total_power_kw=sum(s.current_power_output_kw for s in self._stations),
            )

    def get_statistics(self) -> StatisticsSnapshot:
        with self._lock:
            return self.statistics.snapshot()

    # ========================================================================
    # RESULT
    # ========================================================================

    def _build_result(self, stop_reason: StopReason, stop_message: str,
                      wall_clock_seconds: float) -> SimulationResult:
        with self._lock:
            return SimulationResult(
                simulation_id=self.id,
                stop_reason=stop_reason,
                stop_message=stop_message,
                ticks=self.current_step,
                start_time=self._start_time,
                final_time=self._current_time,
                wall_clock_time_seconds=wall_clock_seconds,
                statistics=self.statistics.snapshot(),
                summary_statistics=self.statistics.get_summary_stats(),
                completed_vehicles=self.statistics.get_dataframe(),
                history=self.statistics.get_history_dataframe(),
                report=self.statistics.generate_report(),
                parameters=self.params,
            )

    def __repr__(self) -> str:
        status = "running" if self._running else "idle"
        return (f"SimulationEngine({self.id}, {status}, stations={len(self._stations)}, "
                f"steps={self.current_step})")
