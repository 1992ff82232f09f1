"""
Unit tests for Vehicle, VehicleSnapshot and the charging state machine.

Covers:
- Construction: computed duration, identity formatting, validation
- Transitions: WAITING -> CHARGING -> COMPLETED, WAITING -> REJECTED
- Illegal transitions raise InvalidTransitionError
- Progress and battery level: monotonic, clamped at the end time
- Energy accounting before and after completion
- Snapshots are immutable copies
"""

import dataclasses
from datetime import datetime, timedelta

import pytest

from ev_station_sim.vehicle import (
    Vehicle,
    VehicleType,
    VehicleStatus,
    InvalidTransitionError,
)

TS = datetime(2025, 6, 2, 10, 0, 0)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def make_vehicle(number=1, vehicle_type=VehicleType.CAR, capacity=60.0,
                 level=20.0, target=80.0, power=60.0, arrival=TS):
    return Vehicle(
        number=number,
        vehicle_type=vehicle_type,
        battery_capacity_kwh=capacity,
        battery_level=level,
        target_battery_level=target,
        charging_power_kw=power,
        arrival_time=arrival,
    )


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------

class TestVehicleConstruction:
    def test_duration_computed_from_energy_and_power(self, car):
        assert car.charging_duration_minutes == pytest.approx(36.0)

    def test_starts_waiting(self, car):
        assert car.status == VehicleStatus.WAITING
        assert car.charging_start_time is None
        assert car.station_id is None

    def test_id_is_zero_padded(self):
        assert make_vehicle(number=7).id == "0007"

    def test_display_name(self):
        assert make_vehicle(number=12, vehicle_type=VehicleType.BUS).display_name == "Bus #0012"

    def test_initial_level_remembered(self, car):
        assert car.initial_battery_level == 20.0

    def test_target_must_exceed_level(self):
        with pytest.raises(ValueError):
            make_vehicle(level=80.0, target=80.0)

    def test_level_out_of_range(self):
        with pytest.raises(ValueError):
            make_vehicle(level=-1.0)
        with pytest.raises(ValueError):
            make_vehicle(target=101.0)

    def test_power_must_be_positive(self):
        with pytest.raises(ValueError):
            make_vehicle(power=0.0)

    def test_vehicles_compare_by_identity(self):
        assert make_vehicle() != make_vehicle()


# ---------------------------------------------------------------------------
# State machine
# ---------------------------------------------------------------------------

class TestVehicleTransitions:
    def test_start_charging_sets_times(self, car):
        start = TS + timedelta(minutes=5)
        car.start_charging(start)
        assert car.status == VehicleStatus.CHARGING
        assert car.charging_start_time == start
        assert car.charging_end_time == start + timedelta(minutes=36)

    def test_waiting_time(self, car):
        car.start_charging(TS + timedelta(minutes=12))
        assert car.waiting_time == timedelta(minutes=12)

    def test_cannot_start_twice(self, car):
        car.start_charging(TS)
        with pytest.raises(InvalidTransitionError):
            car.start_charging(TS)

    def test_complete_forces_target_level(self, car):
        car.start_charging(TS)
        car.complete()
        assert car.status == VehicleStatus.COMPLETED
        assert car.battery_level == 80.0

    def test_cannot_complete_while_waiting(self, car):
        with pytest.raises(InvalidTransitionError):
            car.complete()

    def test_reject_from_waiting(self, car):
        car.reject()
        assert car.status == VehicleStatus.REJECTED

    def test_cannot_reject_while_charging(self, car):
        car.start_charging(TS)
        with pytest.raises(InvalidTransitionError):
            car.reject()

    def test_rejected_is_terminal(self, car):
        car.reject()
        with pytest.raises(InvalidTransitionError):
            car.start_charging(TS)

    def test_is_finished_charging(self, car):
        car.start_charging(TS)
        assert not car.is_finished_charging(TS + timedelta(minutes=35))
        assert car.is_finished_charging(TS + timedelta(minutes=36))


# ---------------------------------------------------------------------------
# Progress
# ---------------------------------------------------------------------------

class TestChargingProgress:
    def test_no_progress_while_waiting(self, car):
        assert car.get_charging_progress(TS + timedelta(minutes=10)) == 0.0
        assert car.get_current_battery_level(TS + timedelta(minutes=10)) == 20.0

    def test_midway_level(self, car):
        car.start_charging(TS)
        # progress 0.475 at half time
        assert car.get_current_battery_level(TS + timedelta(minutes=18)) == pytest.approx(48.5)

    def test_level_reaches_target_at_end(self, car):
        car.start_charging(TS)
        assert car.get_charging_progress(TS + timedelta(minutes=36)) == 1.0
        assert car.get_current_battery_level(TS + timedelta(minutes=36)) == pytest.approx(80.0)

    def test_progress_clamped_after_end(self, car):
        car.start_charging(TS)
        assert car.get_charging_progress(TS + timedelta(hours=3)) == 1.0

    def test_level_monotonic(self, truck):
        truck.start_charging(TS)
        levels = [truck.get_current_battery_level(TS + timedelta(minutes=m)) for m in range(0, 70)]
        assert all(b >= a for a, b in zip(levels, levels[1:]))
        assert levels[0] == pytest.approx(25.0)
        assert levels[-1] == pytest.approx(85.0)

    def test_remaining_time(self, car):
        car.start_charging(TS)
        assert car.remaining_charging_time(TS + timedelta(minutes=6)) == timedelta(minutes=30)
        assert car.remaining_charging_time(TS + timedelta(minutes=50)) == timedelta(0)


# ---------------------------------------------------------------------------
# Energy
# ---------------------------------------------------------------------------

class TestEnergy:
    def test_energy_requested(self, car):
        assert car.energy_requested_kwh == pytest.approx(36.0)

    def test_energy_requested_unchanged_after_completion(self, car):
        car.start_charging(TS)
        car.complete()
        assert car.energy_requested_kwh == pytest.approx(36.0)

    def test_energy_delivered_after_completion(self, car):
        car.start_charging(TS)
        car.complete()
        assert car.energy_delivered_kwh(TS + timedelta(minutes=36)) == pytest.approx(36.0)

    def test_energy_delivered_partial(self, car):
        car.start_charging(TS)
        assert car.energy_delivered_kwh(TS + timedelta(minutes=18)) == pytest.approx(36.0 * 0.475)


# ---------------------------------------------------------------------------
# Snapshot
# ---------------------------------------------------------------------------

class TestVehicleSnapshot:
    def test_snapshot_copies_state(self, car):
        car.start_charging(TS + timedelta(minutes=4))
        snap = car.snapshot(TS + timedelta(minutes=4))
        assert snap.id == "0001"
        assert snap.status == VehicleStatus.CHARGING
        assert snap.waiting_time_minutes == pytest.approx(4.0)
        assert snap.energy_requested_kwh == pytest.approx(36.0)

    def test_snapshot_is_frozen(self, car):
        snap = car.snapshot(TS)
        with pytest.raises(dataclasses.FrozenInstanceError):
            snap.battery_level = 99.0

    def test_snapshot_not_affected_by_later_changes(self, car):
        snap = car.snapshot(TS)
        car.start_charging(TS)
        assert snap.status == VehicleStatus.WAITING

    def test_to_dict_uses_enum_values(self, car):
        row = car.snapshot(TS).to_dict()
        assert row['vehicle_type'] == "Car"
        assert row['status'] == "Waiting"
