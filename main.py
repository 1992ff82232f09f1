"""
EV Station Sim - Main Entry Point
Run this file to simulate a multi-station EV charging facility.
"""

import argparse
import asyncio
import logging
import sys
from datetime import datetime

from ev_station_sim.simulation import (
    SimulationEngine, SimulationParameters, ConfigurationError, VehicleEventKind
)
from ev_station_sim.utils import RunDirectory


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="EV Charging Facility Simulation",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )

    # Facility configuration
    parser.add_argument(
        "--num-stations", type=int, default=3,
        help="Number of charging stations"
    )
    parser.add_argument(
        "--slots-per-station", type=int, default=4,
        help="Charging slots at each station"
    )
    parser.add_argument(
        "--max-queue-size", type=int, default=10,
        help="Waiting queue capacity per station"
    )

    # Traffic configuration
    parser.add_argument(
        "--car-rate", type=float, default=12.0,
        help="Car arrivals per hour"
    )
    parser.add_argument(
        "--truck-rate", type=float, default=4.0,
        help="Truck arrivals per hour"
    )
    parser.add_argument(
        "--bus-rate", type=float, default=2.0,
        help="Bus arrivals per hour"
    )
    parser.add_argument(
        "--rush-multiplier", type=float, default=2.0,
        help="Arrival rate multiplier during 7-9h and 17-19h"
    )

    # Simulation configuration
    parser.add_argument(
        "--duration", type=float, default=8.0,
        help="Simulation duration in hours"
    )
    parser.add_argument(
        "--start-time", type=str, default=None,
        help="Simulated start time (ISO format, default: now)"
    )
    parser.add_argument(
        "--speed", type=float, default=1.0,
        help="Simulation speed multiplier (1x = one simulated minute per 100 ms)"
    )
    parser.add_argument(
        "--no-pacing", action="store_true",
        help="Run as fast as possible without per-tick delays"
    )
    parser.add_argument(
        "--seed", type=int, default=None,
        help="Random seed for reproducibility"
    )
    parser.add_argument(
        "--config", type=str, default=None,
        help="JSON file with simulation parameters (overrides the flags above)"
    )

    # Output configuration
    parser.add_argument(
        "--output-dir", type=str, default="./simulation_output",
        help="Directory to save results"
    )
    parser.add_argument(
        "--run-name", type=str, default=None,
        help="Name for this run's output folder"
    )
    parser.add_argument(
        "--progress-interval", type=int, default=60,
        help="Print progress every N simulated minutes (0 disables)"
    )
    parser.add_argument(
        "--quiet", action="store_true",
        help="Reduce output verbosity"
    )
    parser.add_argument(
        "--log-level", type=str, default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level"
    )

    return parser.parse_args(argv)


def build_parameters(args) -> SimulationParameters:
    """Create parameters from a --config file or the individual flags."""
    if args.config:
        return SimulationParameters.from_json(args.config)

    return SimulationParameters(
        num_stations=args.num_stations,
        slots_per_station=args.slots_per_station,
        max_queue_size=args.max_queue_size,
        simulation_duration_hours=args.duration,
        start_time=datetime.fromisoformat(args.start_time) if args.start_time else None,
        arrival_rate_cars_per_hour=args.car_rate,
        arrival_rate_trucks_per_hour=args.truck_rate,
        arrival_rate_buses_per_hour=args.bus_rate,
        rush_hour_multiplier=args.rush_multiplier,
        simulation_speed=args.speed,
        realtime_pacing=not args.no_pacing,
        random_seed=args.seed,
    )


def attach_console_listeners(engine: SimulationEngine, progress_interval: int, verbose: bool):
    """Print periodic progress and, when verbose, rejections."""
    last_printed = {'minute': -1}

    def on_statistics(stats):
        minute = int(stats.simulation_time.total_seconds() // 60)
        if progress_interval <= 0 or minute // progress_interval == last_printed['minute']:
            return
        last_printed['minute'] = minute // progress_interval
        print(f"[{stats.simulation_time_formatted}] "
              f"generated={stats.total_generated} "
              f"completed={stats.total_processed} "
              f"rejected={stats.total_rejected} "
              f"util={stats.average_utilization:.1f}% "
              f"power={stats.current_power_output_kw:.0f}kW")

    def on_vehicle_event(event):
        if event.kind == VehicleEventKind.REJECTED:
            print(f"  {event.timestamp.strftime('%H:%M')} {event.description}")

    engine.listeners.statistics_updated.append(on_statistics)
    if verbose:
        engine.listeners.vehicle_event.append(on_vehicle_event)


def main(argv=None):
    """Main entry point for the charging facility simulation."""
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )

    try:
        params = build_parameters(args)
        params.validate()
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    print("=" * 70)
    print("EV CHARGING FACILITY SIMULATION")
    print("=" * 70)
    print(f"Facility: {params.num_stations} stations x {params.slots_per_station} slots "
          f"(queue {params.max_queue_size}), capacity {params.total_system_capacity}")
    print(f"Traffic: {params.arrival_rate_cars_per_hour:g} cars, "
          f"{params.arrival_rate_trucks_per_hour:g} trucks, "
          f"{params.arrival_rate_buses_per_hour:g} buses per hour "
          f"(rush x{params.rush_hour_multiplier:g})")
    print(f"Duration: {params.simulation_duration_hours} hours at {params.simulation_speed:g}x"
          f"{'' if params.realtime_pacing else ' (no pacing)'}")
    if params.random_seed is not None:
        print(f"Random seed: {params.random_seed}")
    print("=" * 70)
    print()

    engine = SimulationEngine()
    attach_console_listeners(engine, args.progress_interval, verbose=not args.quiet)

    try:
        result = asyncio.run(engine.run(params))
    except KeyboardInterrupt:
        print("\nInterrupted.")
        return 130

    run_dir = RunDirectory(args.output_dir, run_name=args.run_name)
    run_dir.save_metadata(params.to_dict(), extra={'cli_args': vars(args)})
    print(f"\nSaving results to {run_dir.root}...")
    result.save(run_dir)

    # Print summary
    print(result.report)
    print(f"Stop reason: {result.stop_reason.name}")
    print(f"Ticks completed: {result.ticks}")
    print(f"Wall clock time: {result.wall_clock_time_seconds:.2f} seconds")
    print("=" * 70)
    print(f"Results saved to: {run_dir.root}")
    print("=" * 70)

    return 0


def run_quick_demo():
    """Run a quick demonstration with default settings."""
    print("Running quick demo simulation...")
    print()

    params = SimulationParameters(
        num_stations=3,
        slots_per_station=4,
        max_queue_size=6,
        simulation_duration_hours=2.0,
        start_time=datetime(2025, 6, 2, 7, 0),
        arrival_rate_cars_per_hour=24.0,
        arrival_rate_trucks_per_hour=6.0,
        arrival_rate_buses_per_hour=3.0,
        realtime_pacing=False,
        random_seed=42,
    )

    engine = SimulationEngine()
    attach_console_listeners(engine, progress_interval=15, verbose=True)
    result = asyncio.run(engine.run(params))

    print("\nQuick demo completed!")
    print(result.report)

    return result


if __name__ == "__main__":
    # Check if running demo mode
    if len(sys.argv) > 1 and sys.argv[1] == "demo":
        run_quick_demo()
    else:
        sys.exit(main())
