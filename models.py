"""Record types for the health and screen-time datasets."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class HealthRecord:
    """One day of health data."""

    date: str  # ISO YYYY-MM-DD
    steps: int
    sleep_minutes: float
    active_energy_kcal: float
    workout_minutes: float


@dataclass(frozen=True)
class ScreenTimeRecord:
    """Minutes spent in one app on one day."""

    date: str
    app: str
    minutes: float
    category: str
