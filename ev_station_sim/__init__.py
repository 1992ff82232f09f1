"""
EV Station Sim
==============
Discrete-time simulation of an EV charging facility: mixed vehicle
traffic, multi-slot stations with bounded queues, least-loaded
assignment and rolling service statistics.

Package layout
--------------
ev_station_sim/
    vehicle/      – EV entity, charging curve, arrival generator
    charging/     – stations, waiting queue, assignment policy
    analytics/    – rolling histories, simulation statistics
    simulation/   – parameters, listeners, tick-loop engine
    utils/        – per-run output directories
"""

from .simulation import SimulationEngine, SimulationParameters, SimulationResult, StopReason

__all__ = ["SimulationEngine", "SimulationParameters", "SimulationResult", "StopReason"]

__version__ = "0.1.0"
