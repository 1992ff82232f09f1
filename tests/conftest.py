"""
Shared pytest fixtures for the EV Station Sim test suite.
"""

from datetime import datetime

import pytest

from ev_station_sim.vehicle import Vehicle, VehicleType

# 10:00 is outside both rush-hour windows.
START = datetime(2025, 6, 2, 10, 0, 0)


@pytest.fixture
def car():
    """60 kWh car charging 20% -> 80% at 60 kW: 36 kWh over 36 minutes."""
    return Vehicle(
        number=1,
        vehicle_type=VehicleType.CAR,
        battery_capacity_kwh=60.0,
        battery_level=20.0,
        target_battery_level=80.0,
        charging_power_kw=60.0,
        arrival_time=START,
    )


@pytest.fixture
def truck():
    """300 kWh truck charging 25% -> 85% at 180 kW: 180 kWh over 60 minutes."""
    return Vehicle(
        number=2,
        vehicle_type=VehicleType.TRUCK,
        battery_capacity_kwh=300.0,
        battery_level=25.0,
        target_battery_level=85.0,
        charging_power_kw=180.0,
        arrival_time=START,
    )
