"""Shared test helpers for wellness_stats tests.

Regular functions (not fixtures) that can be imported by any test module.
"""

from __future__ import annotations

from datetime import date, timedelta

from llm import AskError
from models import HealthRecord, ScreenTimeRecord


def iso_dates(start: str, days: int) -> list[str]:
    """Return *days* consecutive ISO dates beginning at *start*."""
    first = date.fromisoformat(start)
    return [(first + timedelta(days=i)).isoformat() for i in range(days)]


def make_health(
    days: int = 7,
    start: str = "2024-01-01",
    steps: int = 10000,
    sleep: float = 480,
    energy: float = 500,
    workout: float = 30,
) -> list[HealthRecord]:
    """Build *days* identical health records on consecutive dates."""
    return [
        HealthRecord(
            date=d,
            steps=steps,
            sleep_minutes=sleep,
            active_energy_kcal=energy,
            workout_minutes=workout,
        )
        for d in iso_dates(start, days)
    ]


def make_health_series(start: str = "2024-01-01", **series: list[float]) -> list[HealthRecord]:
    """Build health records from per-field value lists.

    Fields not given default to the ideal targets (10000 steps, 480 min
    sleep, 500 kcal, 30 min workout).  All given lists must be the same
    length.

    Example:
        make_health_series(workout=[20, 20, 0])
    """
    length = len(next(iter(series.values())))
    defaults = {"steps": 10000, "sleep": 480, "energy": 500, "workout": 30}
    values = {k: series.get(k, [v] * length) for k, v in defaults.items()}
    return [
        HealthRecord(
            date=d,
            steps=values["steps"][i],
            sleep_minutes=values["sleep"][i],
            active_energy_kcal=values["energy"][i],
            workout_minutes=values["workout"][i],
        )
        for i, d in enumerate(iso_dates(start, length))
    ]


def make_screen_time(rows: list[tuple[str, str, float, str]]) -> list[ScreenTimeRecord]:
    """Build screen-time records from (date, app, minutes, category) tuples."""
    return [ScreenTimeRecord(date=d, app=a, minutes=m, category=c) for d, a, m, c in rows]


def daily_screen_time(
    days: int = 7,
    start: str = "2024-01-01",
    app: str = "Safari",
    minutes: float = 240,
    category: str = "Productivity",
) -> list[ScreenTimeRecord]:
    """One record per day for a single app."""
    return [
        ScreenTimeRecord(date=d, app=app, minutes=minutes, category=category)
        for d in iso_dates(start, days)
    ]


class FakeChatClient:
    """In-memory ChatClient that records every call.

    Args:
        answer: Text returned from ``complete``.
        error: If given, raised from ``complete`` instead of answering.
    """

    def __init__(self, answer: str = "You walk a lot.", error: AskError | None = None):
        self.answer = answer
        self.error = error
        self.calls: list[dict] = []

    def complete(self, system: str, user: str, max_tokens: int) -> str:
        self.calls.append({"system": system, "user": user, "max_tokens": max_tokens})
        if self.error is not None:
            raise self.error
        return self.answer
