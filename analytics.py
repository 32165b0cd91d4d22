"""Core data processing for health and screen-time analytics.

Loads the daily health and per-app screen-time exports, computes the
dashboard metrics (averages, rankings, wellness score, streaks) and the
chart series.  Used by both the CLI (wellness_summary.py) and the web
dashboard (app.py).
"""

from __future__ import annotations

import csv
import json
import logging
import math
import os
from concurrent.futures import ThreadPoolExecutor
from datetime import date, datetime
from typing import Any, Callable, Iterable

from models import HealthRecord, ScreenTimeRecord

logger = logging.getLogger(__name__)

HEALTH_REQUIRED_FIELDS = (
    "date",
    "steps",
    "sleep_minutes",
    "active_energy_kcal",
    "workout_minutes",
)
SCREEN_TIME_REQUIRED_FIELDS = ("date", "app", "minutes", "category")

# Wellness score targets
IDEAL_STEPS = 10000
IDEAL_SLEEP_MINUTES = 480
IDEAL_WORKOUT_MINUTES = 30
IDEAL_SCREEN_TIME_MINUTES = 240

STEPS_WEIGHT = 0.30
SLEEP_WEIGHT = 0.30
WORKOUT_WEIGHT = 0.25
SCREEN_TIME_WEIGHT = 0.15

# Streak thresholds are a separate policy from the score targets above.
STREAK_THRESHOLDS: dict[str, tuple[str, float]] = {
    "workout": ("workout_minutes", 15),
    "sleep": ("sleep_minutes", 420),
    "steps": ("steps", 8000),
}

TOP_APPS_LIMIT = 10
CHART_TOP_APPS_LIMIT = 8
WEEKLY_WINDOW_DAYS = 7

EXAMPLE_QUESTIONS = [
    "How does exercise relate to sleep?",
    "How have my steps trended over the past month?",
    "How does time using Twitter differ weekday vs. weekend?",
    "What is my average screen time per day?",
    "Which app do I use the most?",
    "How many days did I work out in the last 90 days?",
]


# ---------------------------------------------------------------------------
# Small numeric helpers
# ---------------------------------------------------------------------------

def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives.

    ``round()`` uses banker's rounding (``round(2.5) == 2``); dashboard
    averages round halves up instead.
    """
    return int(math.floor(value + 0.5))


def rounded_mean(values: list[float]) -> int:
    """Mean of *values* rounded half-up, or 0 for an empty list."""
    if not values:
        return 0
    return round_half_up(sum(values) / len(values))


def _as_number(value: object, field: str) -> int | float:
    """Coerce a JSON value into a non-negative number.

    Integral floats come back as ``int`` so totals stay readable.

    Raises:
        ValueError: If *value* is not numeric, is NaN or infinite, or is
            negative.
    """
    if isinstance(value, bool):
        raise ValueError(f"{field} must be a number, got {value!r}")
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        raise ValueError(f"{field} must be a number, got {value!r}") from None
    if not math.isfinite(number) or number < 0:
        raise ValueError(f"{field} must be a finite non-negative number, got {value!r}")
    return int(number) if number.is_integer() else number


def _as_count(value: object, field: str) -> int:
    """Like ``_as_number`` but the value must also be a whole number."""
    number = _as_number(value, field)
    if not isinstance(number, int):
        raise ValueError(f"{field} must be a whole number, got {value!r}")
    return number


def _parse_date(value: object) -> str:
    """Validate an ISO date or timestamp string and return YYYY-MM-DD."""
    if not isinstance(value, str):
        raise ValueError(f"date must be a string, got {value!r}")
    try:
        return date.fromisoformat(value).isoformat()
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(value).date().isoformat()
    except ValueError:
        raise ValueError(f"invalid date {value!r}") from None


def format_minutes(minutes: float) -> str:
    """Format a minute count as ``"7h 5m"``."""
    total = round_half_up(minutes)
    return f"{total // 60}h {total % 60}m"


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

def _read_json_list(path: str, label: str) -> list:
    """Read a JSON array from *path*, degrading to an empty list on failure.

    Args:
        path: Filesystem path to the JSON export.
        label: Human-readable dataset name used in log messages.

    Returns:
        The decoded list, or ``[]`` if the file is missing, unreadable,
        not valid JSON, or not a top-level array.
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        logger.error("Error loading %s: file not found: %s", label, path)
        return []
    except (OSError, ValueError) as e:
        logger.error("Error loading %s from %s: %s", label, path, e)
        return []

    if not isinstance(data, list):
        logger.error(
            "Error loading %s from %s: expected a JSON array, got %s",
            label, path, type(data).__name__,
        )
        return []
    return data


def _require_fields(entry: object, fields: tuple[str, ...]) -> dict:
    if not isinstance(entry, dict):
        raise ValueError(f"expected an object, got {type(entry).__name__}")
    missing = [f for f in fields if f not in entry]
    if missing:
        raise ValueError(f"missing required fields: {', '.join(missing)}")
    return entry


def _parse_health_entry(entry: object) -> HealthRecord:
    data = _require_fields(entry, HEALTH_REQUIRED_FIELDS)
    return HealthRecord(
        date=_parse_date(data["date"]),
        steps=_as_count(data["steps"], "steps"),
        sleep_minutes=_as_number(data["sleep_minutes"], "sleep_minutes"),
        active_energy_kcal=_as_number(data["active_energy_kcal"], "active_energy_kcal"),
        workout_minutes=_as_number(data["workout_minutes"], "workout_minutes"),
    )


def _parse_screen_time_entry(entry: object) -> ScreenTimeRecord:
    data = _require_fields(entry, SCREEN_TIME_REQUIRED_FIELDS)
    app = data["app"]
    if not isinstance(app, str) or not app.strip():
        raise ValueError(f"app must be a non-empty string, got {app!r}")
    return ScreenTimeRecord(
        date=_parse_date(data["date"]),
        app=app,
        minutes=_as_number(data["minutes"], "minutes"),
        category=str(data["category"]),
    )


def load_health_data(path: str) -> list[HealthRecord]:
    """Load daily health records from a JSON export.

    Invalid records are skipped with a warning.  Duplicate dates keep the
    first record seen.  The result is sorted chronologically.

    Args:
        path: Path to a JSON array of objects with keys date, steps,
            sleep_minutes, active_energy_kcal, workout_minutes.

    Returns:
        List of HealthRecord, oldest first.  Empty when the file cannot
        be loaded; this function never raises for bad input.
    """
    records: list[HealthRecord] = []
    seen_dates: set[str] = set()
    for idx, entry in enumerate(_read_json_list(path, "health data")):
        try:
            record = _parse_health_entry(entry)
        except ValueError as e:
            logger.warning("Skipping health record %d: %s", idx, e)
            continue
        if record.date in seen_dates:
            logger.warning("Skipping health record %d: duplicate date %s", idx, record.date)
            continue
        seen_dates.add(record.date)
        records.append(record)

    records.sort(key=lambda r: r.date)
    return records


def load_screen_time_data(path: str) -> list[ScreenTimeRecord]:
    """Load per-app screen-time records from a JSON export.

    Records keep their file order, which decides tie-breaks in app and
    category rankings.  Invalid records are skipped with a warning.
    """
    records: list[ScreenTimeRecord] = []
    for idx, entry in enumerate(_read_json_list(path, "screen time data")):
        try:
            records.append(_parse_screen_time_entry(entry))
        except ValueError as e:
            logger.warning("Skipping screen time record %d: %s", idx, e)
    return records


def load_datasets(
    health_path: str,
    screen_time_path: str,
) -> tuple[list[HealthRecord], list[ScreenTimeRecord]]:
    """Load both datasets concurrently.

    The two files have no ordering dependency, so each is read on its own
    worker thread.

    Returns:
        A (health_records, screen_time_records) tuple.
    """
    with ThreadPoolExecutor(max_workers=2) as pool:
        health_future = pool.submit(load_health_data, health_path)
        screen_future = pool.submit(load_screen_time_data, screen_time_path)
        health = health_future.result()
        screen_time = screen_future.result()

    logger.info(
        "Loaded %d health records and %d screen time records",
        len(health), len(screen_time),
    )
    return health, screen_time


# ---------------------------------------------------------------------------
# Aggregation helpers
# ---------------------------------------------------------------------------

def sum_minutes_by(
    records: Iterable[ScreenTimeRecord],
    key_fn: Callable[[ScreenTimeRecord], str],
) -> dict[str, float]:
    """Sum minutes per key, preserving first-seen key order."""
    totals: dict[str, float] = {}
    for r in records:
        key = key_fn(r)
        totals[key] = totals.get(key, 0) + r.minutes
    return totals


def rank_totals(totals: dict[str, float], label: str) -> list[dict]:
    """Rank a totals dict descending by minutes.

    ``sorted`` is stable, so ties keep their first-seen order.

    Args:
        totals: Mapping of name to summed minutes.
        label: Key name for the name field in each output dict
            (e.g. "app" or "category").

    Returns:
        List of ``{label: name, "minutes": total}`` dicts.
    """
    ranked = sorted(totals.items(), key=lambda kv: kv[1], reverse=True)
    return [{label: name, "minutes": minutes} for name, minutes in ranked]


def _daily_screen_totals(screen_time: Iterable[ScreenTimeRecord]) -> list[dict]:
    """Total screen time per date, sorted chronologically."""
    totals = sum_minutes_by(screen_time, lambda r: r.date)
    return [{"date": d, "total": totals[d]} for d in sorted(totals)]


def _health_averages(health: list[HealthRecord]) -> dict[str, int]:
    return {
        "avg_steps": rounded_mean([r.steps for r in health]),
        "avg_sleep": rounded_mean([r.sleep_minutes for r in health]),
        "avg_energy": rounded_mean([r.active_energy_kcal for r in health]),
        "avg_workout": rounded_mean([r.workout_minutes for r in health]),
    }


def _sub_score(actual: float, ideal: float) -> float:
    return max(0.0, min(100.0, actual / ideal * 100))


def _inverse_sub_score(actual: float, ideal: float) -> float:
    # Less is better; zero usage is treated as one minute.
    return max(0.0, min(100.0, ideal / (actual or 1) * 100))


def compute_wellness_scores(
    avg_steps: float,
    avg_sleep: float,
    avg_workout: float,
    avg_screen_time: float,
) -> dict[str, float | int]:
    """Compute the 0-100 wellness score and its four sub-scores.

    Steps, sleep and workout score ``actual / ideal``; screen time scores
    ``ideal / actual``.  Each sub-score is clamped to [0, 100] and the
    composite is weighted 30/30/25/15.

    Returns:
        Dict with keys score (int), steps_score, sleep_score,
        workout_score, screen_time_score (floats).
    """
    steps_score = _sub_score(avg_steps, IDEAL_STEPS)
    sleep_score = _sub_score(avg_sleep, IDEAL_SLEEP_MINUTES)
    workout_score = _sub_score(avg_workout, IDEAL_WORKOUT_MINUTES)
    screen_time_score = _inverse_sub_score(avg_screen_time, IDEAL_SCREEN_TIME_MINUTES)
    score = round_half_up(
        steps_score * STEPS_WEIGHT
        + sleep_score * SLEEP_WEIGHT
        + workout_score * WORKOUT_WEIGHT
        + screen_time_score * SCREEN_TIME_WEIGHT
    )
    return {
        "score": score,
        "steps_score": steps_score,
        "sleep_score": sleep_score,
        "workout_score": workout_score,
        "screen_time_score": screen_time_score,
    }


def _weekly_score(
    health: list[HealthRecord],
    screen_time: list[ScreenTimeRecord],
) -> int:
    """Wellness score over the trailing week of health records."""
    last_week = health[-WEEKLY_WINDOW_DAYS:]
    week_dates = {r.date for r in last_week}
    week_totals = sum_minutes_by(
        (r for r in screen_time if r.date in week_dates), lambda r: r.date,
    )
    averages = _health_averages(last_week)
    return compute_wellness_scores(
        averages["avg_steps"],
        averages["avg_sleep"],
        averages["avg_workout"],
        rounded_mean(list(week_totals.values())),
    )["score"]


def _current_streak(newest_first: list[HealthRecord], field: str, threshold: float) -> int:
    streak = 0
    for r in newest_first:
        if getattr(r, field) < threshold:
            break
        streak += 1
    return streak


def _best_streak(oldest_first: list[HealthRecord], field: str, threshold: float) -> int:
    best = 0
    run = 0
    for r in oldest_first:
        if getattr(r, field) >= threshold:
            run += 1
            best = max(best, run)
        else:
            run = 0
    return best


def compute_streaks(health: list[HealthRecord]) -> dict[str, dict[str, int]]:
    """Compute current and best habit streaks.

    The current streak counts back from the most recent date and stops at
    the first day below threshold.  The best streak is the longest run of
    qualifying days anywhere in the window, so ``current <= best``.

    Args:
        health: Health records in any order; they are sorted by date here.

    Returns:
        ``{"current": {workout, sleep, steps}, "best": {workout, sleep, steps}}``
    """
    oldest_first = sorted(health, key=lambda r: r.date)
    newest_first = oldest_first[::-1]
    current = {}
    best = {}
    for habit, (field, threshold) in STREAK_THRESHOLDS.items():
        current[habit] = _current_streak(newest_first, field, threshold)
        best[habit] = _best_streak(oldest_first, field, threshold)
    return {"current": current, "best": best}


def _empty_metrics() -> dict[str, Any]:
    return {
        "health": {
            "avg_steps": 0,
            "avg_sleep": 0,
            "avg_energy": 0,
            "avg_workout": 0,
            "workout_days": 0,
            "total_days": 0,
        },
        "screen_time": {
            "top_apps": [],
            "top_categories": [],
            "daily_totals": [],
            "avg_daily": 0,
        },
        "wellness": {
            "score": 0,
            "steps_score": 0,
            "sleep_score": 0,
            "workout_score": 0,
            "screen_time_score": 0,
            "weekly_score": 0,
            "weekly_change": 0,
        },
        "streaks": {
            "current": {"workout": 0, "sleep": 0, "steps": 0},
            "best": {"workout": 0, "sleep": 0, "steps": 0},
        },
    }


def compute_metrics(
    health: list[HealthRecord],
    screen_time: list[ScreenTimeRecord],
) -> dict[str, Any]:
    """Compute every derived dashboard metric from the two datasets.

    Pure and deterministic: the same inputs always produce the same dict.
    Nothing is cached; callers recompute on every load.

    Args:
        health: Daily health records, oldest first.  The trailing
            7 records form the weekly comparison window.
        screen_time: Per-app screen-time records in file order.

    Returns:
        Dict with sections health, screen_time, wellness and streaks.
        When either input is empty every number is 0 and every list is
        empty.
    """
    if not health or not screen_time:
        return _empty_metrics()

    averages = _health_averages(health)
    daily_totals = _daily_screen_totals(screen_time)
    avg_daily = rounded_mean([d["total"] for d in daily_totals])

    wellness = compute_wellness_scores(
        averages["avg_steps"],
        averages["avg_sleep"],
        averages["avg_workout"],
        avg_daily,
    )
    weekly_score = _weekly_score(health, screen_time)
    wellness["weekly_score"] = weekly_score
    wellness["weekly_change"] = weekly_score - wellness["score"]

    return {
        "health": {
            **averages,
            "workout_days": sum(1 for r in health if r.workout_minutes > 0),
            "total_days": len(health),
        },
        "screen_time": {
            "top_apps": rank_totals(sum_minutes_by(screen_time, lambda r: r.app), "app")[:TOP_APPS_LIMIT],
            "top_categories": rank_totals(sum_minutes_by(screen_time, lambda r: r.category), "category"),
            "daily_totals": daily_totals,
            "avg_daily": avg_daily,
        },
        "wellness": wellness,
        "streaks": compute_streaks(health),
    }


# ---------------------------------------------------------------------------
# Rolling average helpers (pure Python, no pandas)
# ---------------------------------------------------------------------------

def _rolling_avg(values: list[float], window: int) -> list[float]:
    """Compute rolling average, using available values when the window is not yet full.

    Args:
        values: Numeric series to smooth.
        window: Maximum number of trailing values to average.

    Returns:
        List of floats the same length as *values*.
    """
    result = []
    for i in range(len(values)):
        start = max(0, i - window + 1)
        w = values[start : i + 1]
        result.append(sum(w) / len(w))
    return result


def _build_chart_series(values: list[float]) -> dict[str, list[float]]:
    """Raw values plus 7-day and 28-day rolling averages (rounded to 2dp)."""
    return {
        "values": values,
        "avg_7d": [round(v, 2) for v in _rolling_avg(values, 7)],
        "avg_28d": [round(v, 2) for v in _rolling_avg(values, 28)],
    }


def compute_chart_data(
    health: list[HealthRecord],
    screen_time: list[ScreenTimeRecord],
) -> dict[str, Any]:
    """Compute the daily chart series for Chart.js rendering.

    Returns:
        Dict with keys dates (health record dates), steps, sleep,
        workout, energy (each a series dict with values, avg_7d,
        avg_28d) and screen_time (a series dict plus its own dates,
        since screen-time days need not line up with health days).
    """
    daily_totals = _daily_screen_totals(screen_time)
    return {
        "dates": [r.date for r in health],
        "steps": _build_chart_series([r.steps for r in health]),
        "sleep": _build_chart_series([r.sleep_minutes for r in health]),
        "workout": _build_chart_series([r.workout_minutes for r in health]),
        "energy": _build_chart_series([r.active_energy_kcal for r in health]),
        "screen_time": {
            "dates": [d["date"] for d in daily_totals],
            **_build_chart_series([d["total"] for d in daily_totals]),
        },
    }


def list_categories(screen_time: list[ScreenTimeRecord]) -> list[str]:
    """Return ``"All"`` followed by the sorted distinct app categories."""
    return ["All"] + sorted({r.category for r in screen_time})


def compute_top_apps(
    screen_time: list[ScreenTimeRecord],
    category: str | None = None,
    limit: int = CHART_TOP_APPS_LIMIT,
) -> list[dict]:
    """Rank apps by total minutes, optionally within one category.

    Args:
        screen_time: Per-app screen-time records.
        category: Category to filter on.  ``None`` or ``"All"`` keeps
            every record.
        limit: Maximum number of apps to return.

    Returns:
        List of ``{"app", "minutes"}`` dicts, most used first.
    """
    if category and category != "All":
        screen_time = [r for r in screen_time if r.category == category]
    return rank_totals(sum_minutes_by(screen_time, lambda r: r.app), "app")[:limit]


# ---------------------------------------------------------------------------
# Custom two-metric chart
# ---------------------------------------------------------------------------

METRIC_RELATIONSHIPS: dict[str, list[str]] = {
    "steps": ["workout", "sleep", "energy", "screen_time"],
    "workout": ["steps", "sleep", "energy"],
    "sleep": ["steps", "workout", "energy", "screen_time"],
    "energy": ["steps", "workout", "sleep"],
    "screen_time": ["steps", "sleep"],
}

METRIC_LABELS: dict[str, str] = {
    "steps": "Steps",
    "workout": "Workout (min)",
    "sleep": "Sleep (min)",
    "energy": "Energy (kcal)",
    "screen_time": "Screen Time (min)",
}

_HEALTH_FIELDS = {
    "steps": "steps",
    "workout": "workout_minutes",
    "sleep": "sleep_minutes",
    "energy": "active_energy_kcal",
}


def compute_custom_chart(
    health: list[HealthRecord],
    screen_time: list[ScreenTimeRecord],
    first: str,
    second: str,
    days: int = 30,
) -> list[dict]:
    """Build a day-by-day series comparing two metrics.

    Args:
        health: Daily health records, oldest first.
        screen_time: Per-app screen-time records.
        first: Metric key from ``METRIC_RELATIONSHIPS``.
        second: Metric key listed as related to *first*.
        days: Number of trailing health days to include.

    Returns:
        List of dicts with keys date, *first* and *second*.

    Raises:
        ValueError: If the pair is not a supported comparison or *days*
            is not positive.
    """
    if first not in METRIC_RELATIONSHIPS or second not in METRIC_RELATIONSHIPS[first]:
        raise ValueError(f"Unsupported metric pair: {first!r} vs {second!r}")
    if days < 1:
        raise ValueError(f"days must be positive, got {days}")

    screen_by_date = sum_minutes_by(screen_time, lambda r: r.date)

    def value(record: HealthRecord, metric: str) -> float:
        if metric == "screen_time":
            return screen_by_date.get(record.date, 0)
        return getattr(record, _HEALTH_FIELDS[metric])

    return [
        {"date": r.date, first: value(r, first), second: value(r, second)}
        for r in health[-days:]
    ]


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------

def generate_notifications(
    metrics: dict[str, Any],
    health: list[HealthRecord],
) -> list[dict[str, str]]:
    """Derive streak, goal and warning notifications from the last week.

    Returns:
        List of dicts with keys id, type (success, warning or info),
        title and message.  Empty when there is no health data.
    """
    if not health:
        return []

    notifications: list[dict[str, str]] = []
    recent = health[-WEEKLY_WINDOW_DAYS:]
    latest = recent[-1]
    avg_steps = sum(r.steps for r in recent) / len(recent)
    avg_sleep = sum(r.sleep_minutes for r in recent) / len(recent)
    current = metrics["streaks"]["current"]
    best = metrics["streaks"]["best"]

    if current["workout"] >= 3:
        notifications.append({
            "id": "workout-streak",
            "type": "success",
            "title": "Workout Streak!",
            "message": f"You've maintained your workout streak for {current['workout']} days! Keep it up!",
        })

    if current["sleep"] >= 5:
        notifications.append({
            "id": "sleep-streak",
            "type": "success",
            "title": "Sleep Streak!",
            "message": f"Great sleep consistency! {current['sleep']} days of good sleep.",
        })

    if latest.steps >= IDEAL_STEPS:
        notifications.append({
            "id": "steps-goal",
            "type": "success",
            "title": "Step Goal Achieved!",
            "message": f"Congratulations! You've reached {latest.steps:,} steps today.",
        })

    if len(recent) >= 3 and avg_steps < STREAK_THRESHOLDS["steps"][1]:
        notifications.append({
            "id": "steps-warning",
            "type": "warning",
            "title": "Low Step Count",
            "message": f"Your average steps ({round_half_up(avg_steps):,}) have been below 8,000 for the past week.",
        })

    if len(recent) >= 3 and avg_sleep < STREAK_THRESHOLDS["sleep"][1]:
        notifications.append({
            "id": "sleep-warning",
            "type": "warning",
            "title": "Sleep Alert",
            "message": f"Your average sleep ({format_minutes(avg_sleep)}) has been below 7 hours.",
        })

    if best["workout"] > 0 and current["workout"] == 0:
        notifications.append({
            "id": "streak-reminder",
            "type": "info",
            "title": "Start a New Streak!",
            "message": f"Your best workout streak was {best['workout']} days. You can beat it!",
        })

    return notifications


# ---------------------------------------------------------------------------
# Dashboard payload
# ---------------------------------------------------------------------------

def build_dashboard_payload(
    health: list[HealthRecord],
    screen_time: list[ScreenTimeRecord],
) -> dict[str, Any]:
    """One-call entry point: compute everything the web dashboard renders.

    Args:
        health: Daily health records from ``load_health_data``.
        screen_time: Screen-time records from ``load_screen_time_data``.

    Returns:
        Dict with keys: generated_at (ISO timestamp), metrics, charts,
        categories, top_apps_by_category, notifications,
        metric_relationships, metric_labels, example_questions.
    """
    metrics = compute_metrics(health, screen_time)
    categories = list_categories(screen_time)
    return {
        "generated_at": datetime.now().isoformat(),
        "metrics": metrics,
        "charts": compute_chart_data(health, screen_time),
        "categories": categories,
        "top_apps_by_category": {c: compute_top_apps(screen_time, c) for c in categories},
        "notifications": generate_notifications(metrics, health),
        "metric_relationships": METRIC_RELATIONSHIPS,
        "metric_labels": METRIC_LABELS,
        "example_questions": EXAMPLE_QUESTIONS,
    }


# ---------------------------------------------------------------------------
# CLI helpers
# ---------------------------------------------------------------------------

def save_metrics_files(
    metrics: dict[str, Any],
    output_dir: str = "wellness_analytics",
) -> None:
    """Write metrics.json, daily_totals.csv and top_apps.csv to output_dir.

    Creates the output directory if it doesn't exist.

    Args:
        metrics: Metrics dict from ``compute_metrics``.
        output_dir: Directory path for output files.
    """
    os.makedirs(output_dir, exist_ok=True)

    with open(f"{output_dir}/metrics.json", "w") as f:
        json.dump(metrics, f, indent=2)

    with open(f"{output_dir}/daily_totals.csv", "w", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=["date", "total"])
        writer.writeheader()
        writer.writerows(metrics["screen_time"]["daily_totals"])

    with open(f"{output_dir}/top_apps.csv", "w", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=["app", "minutes"])
        writer.writeheader()
        writer.writerows(metrics["screen_time"]["top_apps"])


def print_summary_report(metrics: dict[str, Any]) -> None:
    """Print the CLI summary report to stdout.

    Args:
        metrics: Metrics dict from ``compute_metrics``.
    """
    health = metrics["health"]
    screen = metrics["screen_time"]
    wellness = metrics["wellness"]
    streaks = metrics["streaks"]

    print(f"\n{'=' * 60}")
    print("Wellness Summary")
    print(f"{'=' * 60}")

    if not health["total_days"]:
        print("No data available.")
        print(f"{'=' * 60}")
        return

    print(f"Days of Data: {health['total_days']:,}")
    print(f"Average Steps/Day: {health['avg_steps']:,}")
    print(f"Average Sleep: {format_minutes(health['avg_sleep'])}")
    print(f"Average Active Energy: {health['avg_energy']:,} kcal")
    print(f"Average Workout: {health['avg_workout']} min")
    print(f"Workout Days: {health['workout_days']} of {health['total_days']}")

    change = wellness["weekly_change"]
    print(f"\nWellness Score: {wellness['score']}/100")
    print(f"  Steps:       {wellness['steps_score']:.0f}")
    print(f"  Sleep:       {wellness['sleep_score']:.0f}")
    print(f"  Exercise:    {wellness['workout_score']:.0f}")
    print(f"  Screen Time: {wellness['screen_time_score']:.0f}")
    print(f"This Week: {wellness['weekly_score']} ({'+' if change > 0 else ''}{change})")

    print("\nStreaks (current / best):")
    for habit in ("workout", "sleep", "steps"):
        print(f"  {habit.capitalize():<8} {streaks['current'][habit]:>3} / {streaks['best'][habit]} days")

    print(f"\nAverage Daily Screen Time: {screen['avg_daily']} min ({format_minutes(screen['avg_daily'])})")
    if screen["top_apps"]:
        print("\nTop Apps:")
        for i, app in enumerate(screen["top_apps"], 1):
            print(f"  {i:<3} {app['app']:<24} {app['minutes']:,} min")
    if screen["top_categories"]:
        print("\nCategories:")
        for cat in screen["top_categories"]:
            print(f"  {cat['category']:<24} {cat['minutes']:,} min")

    print(f"{'=' * 60}")
