"""
Station Assignment Module
Greedy least-load routing of arriving vehicles to stations.
"""

from __future__ import annotations

from typing import Iterable, Optional, Tuple
from datetime import datetime

from ev_station_sim.vehicle import Vehicle
from ev_station_sim.charging.station import ChargingStation


class AssignmentPolicy:
    """
    Picks the station for each new arrival.

    Only stations whose queue is not full are eligible. Eligible stations
    are ranked by total load, then estimated wait, then id. Each decision
    is independent; vehicles already queued are never rebalanced.
    """

    def rank_key(self, station: ChargingStation,
                 current_time: datetime) -> Tuple[int, float, int]:
        return (
            station.load,
            station.estimated_wait_time_minutes(current_time),
            station.id,
        )

    def select_station(
        self,
        stations: Iterable[ChargingStation],
        current_time: datetime
    ) -> Optional[ChargingStation]:
        """Best eligible station, or None when every queue is full."""
        eligible = [s for s in stations if s.can_accept_vehicle]
        if not eligible:
            return None
        return min(eligible, key=lambda s: self.rank_key(s, current_time))

    def assign(
        self,
        vehicle: Vehicle,
        stations: Iterable[ChargingStation],
        current_time: datetime
    ) -> Optional[ChargingStation]:
        """
        Place ``vehicle`` at the best station.

        Returns the station, or None after marking the vehicle REJECTED.
        """
        station = self.select_station(stations, current_time)
        if station is None:
            vehicle.reject()
            return None
        station.add_vehicle(vehicle, current_time)
        return station

    def __repr__(self) -> str:
        return "AssignmentPolicy(load, estimated_wait, id)"
