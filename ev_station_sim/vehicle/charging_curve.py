"""
Charging Curve Module
Pure functions describing how a battery fills during a charging session.

The curve fast-charges early and tapers towards the target level:

    f(x) = x - 0.2 * x**3        x in [0, 1]

f(0) = 0 and f(1) = 0.8, so the curve alone never reaches the target.
Completion is clamped explicitly by :func:`charging_progress`.
"""

from __future__ import annotations

CURVE_TAPER = 0.2


def charging_curve(x: float) -> float:
    """Eased progress for an elapsed fraction ``x`` of the charge duration."""
    x = min(1.0, max(0.0, x))
    return x - CURVE_TAPER * x ** 3


def charging_progress(elapsed_minutes: float, total_minutes: float) -> float:
    """
    Progress (0.0 - 1.0) of a session after ``elapsed_minutes``.

    Returns 0 before the session starts and exactly 1.0 once the full
    duration has elapsed; in between the nonlinear curve applies.
    """
    if elapsed_minutes < 0:
        return 0.0
    if elapsed_minutes >= total_minutes:
        return 1.0
    if elapsed_minutes == 0:
        return 0.0
    return charging_curve(elapsed_minutes / total_minutes)


def battery_level_at(start_level: float, target_level: float, progress: float) -> float:
    """Battery level (%) reached at the given progress."""
    return start_level + (target_level - start_level) * progress


def energy_delivered_at(capacity_kwh: float, start_level: float,
                        target_level: float, progress: float) -> float:
    """Energy (kWh) delivered at the given progress."""
    return capacity_kwh * (target_level - start_level) / 100.0 * progress


def charging_duration_minutes(capacity_kwh: float, start_level: float,
                              target_level: float, power_kw: float) -> float:
    """Minutes needed to deliver the energy between two levels at ``power_kw``."""
    energy_needed = capacity_kwh * (target_level - start_level) / 100.0
    return (energy_needed / power_kw) * 60
