"""Exact answers computed from the datasets for natural-language questions.

A question is matched against an ordered list of independent keyword
rules.  Every rule that applies contributes one key to a sparse result
dict, which is rendered into the LLM prompt so the model quotes exact
numbers instead of estimating them.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable

from analytics import rank_totals, round_half_up, rounded_mean, sum_minutes_by
from models import HealthRecord, ScreenTimeRecord

TREND_WINDOW_DAYS = 30
RELATIONSHIP_WINDOW_DAYS = 30
CONTEXT_LIST_SIZE = 5

APP_ALIASES: dict[str, tuple[str, ...]] = {
    "twitter": ("twitter", "x app", "x"),
    "instagram": ("instagram", "ig"),
    "facebook": ("facebook", "fb"),
    "youtube": ("youtube", "yt"),
    "tiktok": ("tiktok", "tt"),
    "snapchat": ("snapchat", "snap"),
    "whatsapp": ("whatsapp", "wa"),
    "messenger": ("messenger", "fb messenger"),
}

_TREND_FIELDS = {
    "steps": "steps",
    "sleep": "sleep_minutes",
    "workout": "workout_minutes",
}


def is_weekend(day: str) -> bool:
    """True if the ISO date falls on a Saturday or Sunday."""
    return date.fromisoformat(day).weekday() >= 5


def _contains_any(text: str, *words: str) -> bool:
    return any(w in text for w in words)


def extract_app_name(question: str, screen_time: list[ScreenTimeRecord]) -> str | None:
    """Resolve the app a question is about.

    Observed app names are matched as case-insensitive substrings first.
    Failing that, the alias table is tried: aliases match on word
    boundaries (so "x" does not fire inside "exercise") and map to the
    observed app whose name contains the alias key or vice versa.

    Returns:
        The app name as spelled in the data, or None.
    """
    question_lower = question.lower()
    apps = list(dict.fromkeys(r.app for r in screen_time))

    for app in apps:
        if app.lower() in question_lower:
            return app

    for key, variations in APP_ALIASES.items():
        if any(re.search(rf"\b{re.escape(v)}\b", question_lower) for v in variations):
            for app in apps:
                name = app.lower()
                if key in name or name in key:
                    return app
    return None


def compute_all_app_totals(screen_time: list[ScreenTimeRecord]) -> list[dict]:
    """Rank every app (not just the chart's top N) by total minutes."""
    return rank_totals(sum_minutes_by(screen_time, lambda r: r.app), "app")


def _usage_bucket(daily: dict[str, float]) -> dict[str, Any]:
    total = sum(daily.values())
    return {
        "days": len(daily),
        "total_minutes": total,
        "avg_minutes": round_half_up(total / len(daily)) if daily else 0,
        "daily_breakdown": [{"date": d, "minutes": daily[d]} for d in sorted(daily)],
    }


def compute_app_weekday_weekend_stats(
    app_name: str,
    screen_time: list[ScreenTimeRecord],
) -> dict[str, Any]:
    """Split one app's usage into weekday and weekend buckets.

    Records for the same date are summed first, so ``days`` counts
    distinct dates.  Weekend is decided from the record's own date with
    no timezone adjustment.

    Returns:
        Dict with keys app_name, weekday and weekend.  Each bucket has
        days, total_minutes, avg_minutes and a chronological
        daily_breakdown of ``{"date", "minutes"}``.
    """
    target = app_name.lower()
    per_date = sum_minutes_by((r for r in screen_time if r.app.lower() == target), lambda r: r.date)
    weekday = {d: m for d, m in per_date.items() if not is_weekend(d)}
    weekend = {d: m for d, m in per_date.items() if is_weekend(d)}
    return {
        "app_name": app_name,
        "weekday": _usage_bucket(weekday),
        "weekend": _usage_bucket(weekend),
    }


def compute_trend_stats(health: list[HealthRecord], metric: str) -> dict[str, Any] | None:
    """Compare the trailing 30 days of a metric against the 30 before them.

    Args:
        health: Daily health records, oldest first.
        metric: One of "steps", "sleep", "workout".

    Returns:
        Dict with keys recent_30_days, previous_30_days, change,
        percent_change, trend (increasing, decreasing or stable) and
        daily_values.  None when there is no earlier window to compare
        against.
    """
    field = _TREND_FIELDS[metric]
    recent = health[-TREND_WINDOW_DAYS:]
    previous = health[-2 * TREND_WINDOW_DAYS : -TREND_WINDOW_DAYS]
    if not previous:
        return None

    recent_avg = rounded_mean([getattr(r, field) for r in recent])
    previous_avg = rounded_mean([getattr(r, field) for r in previous])
    change = recent_avg - previous_avg
    percent_change = round_half_up(change / previous_avg * 100) if previous_avg > 0 else 0

    if change > 0:
        trend = "increasing"
    elif change < 0:
        trend = "decreasing"
    else:
        trend = "stable"

    return {
        "recent_30_days": recent_avg,
        "previous_30_days": previous_avg,
        "change": change,
        "percent_change": percent_change,
        "trend": trend,
        "daily_values": [{"date": r.date, "value": getattr(r, field)} for r in recent],
    }


def compute_exercise_sleep_relationship(health: list[HealthRecord]) -> dict[str, int]:
    """Average sleep on workout vs non-workout days over the last 30 days."""
    recent = health[-RELATIONSHIP_WINDOW_DAYS:]
    with_workout = [r.sleep_minutes for r in recent if r.workout_minutes > 0]
    without_workout = [r.sleep_minutes for r in recent if r.workout_minutes <= 0]
    avg_with = rounded_mean(with_workout)
    avg_without = rounded_mean(without_workout)
    return {
        "avg_sleep_with_workout": avg_with,
        "avg_sleep_no_workout": avg_without,
        "difference": avg_with - avg_without,
        "workout_days": len(with_workout),
        "no_workout_days": len(without_workout),
    }


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class InsightContext:
    """Everything a rule may read."""

    question: str
    question_lower: str
    metrics: dict[str, Any]
    health: list[HealthRecord]
    screen_time: list[ScreenTimeRecord]


@dataclass(frozen=True)
class InsightRule:
    """One keyword rule: when ``applies`` holds, ``compute`` runs.

    ``compute`` returns a dict whose entries are merged into the result,
    or None to contribute nothing.
    """

    name: str
    applies: Callable[[str], bool]
    compute: Callable[[InsightContext], dict[str, Any] | None]


def _asks_about_app_usage(q: str) -> bool:
    return _contains_any(q, "app", "use")


def _most_used(ctx: InsightContext) -> dict[str, Any] | None:
    ranking = compute_all_app_totals(ctx.screen_time)
    if not ranking:
        return None
    return {"most_used_app": ranking[0], "top_apps": ranking[:CONTEXT_LIST_SIZE]}


def _least_used(ctx: InsightContext) -> dict[str, Any] | None:
    ranking = compute_all_app_totals(ctx.screen_time)
    if not ranking:
        return None
    return {
        "least_used_app": ranking[-1],
        "bottom_apps": ranking[-CONTEXT_LIST_SIZE:][::-1],
    }


def _weekday_weekend(ctx: InsightContext) -> dict[str, Any] | None:
    app_name = extract_app_name(ctx.question, ctx.screen_time)
    if app_name is None:
        return None
    return {"app_weekday_weekend": compute_app_weekday_weekend_stats(app_name, ctx.screen_time)}


def _asks_about_trend(q: str) -> bool:
    return _contains_any(q, "trend", "change", "increase", "decrease")


def _trend(metric: str) -> Callable[[InsightContext], dict[str, Any] | None]:
    def compute(ctx: InsightContext) -> dict[str, Any] | None:
        stats = compute_trend_stats(ctx.health, metric)
        if stats is None:
            return None
        return {f"{metric}_trend": stats}
    return compute


def _exercise_sleep(ctx: InsightContext) -> dict[str, Any] | None:
    if not ctx.health:
        return None
    return {"exercise_sleep_relationship": compute_exercise_sleep_relationship(ctx.health)}


INSIGHT_RULES: list[InsightRule] = [
    InsightRule(
        "most_used_app",
        lambda q: "most" in q and _asks_about_app_usage(q),
        _most_used,
    ),
    InsightRule(
        "least_used_app",
        lambda q: "least" in q and _asks_about_app_usage(q),
        _least_used,
    ),
    InsightRule(
        "app_weekday_weekend",
        lambda q: _contains_any(q, "weekday", "weekend", "week day", "week end"),
        _weekday_weekend,
    ),
    InsightRule(
        "steps_trend",
        lambda q: _asks_about_trend(q) and "step" in q,
        _trend("steps"),
    ),
    InsightRule(
        "sleep_trend",
        lambda q: _asks_about_trend(q) and "sleep" in q,
        _trend("sleep"),
    ),
    InsightRule(
        "workout_trend",
        lambda q: _asks_about_trend(q) and _contains_any(q, "workout", "exercise"),
        _trend("workout"),
    ),
    InsightRule(
        "exercise_sleep_relationship",
        lambda q: _contains_any(q, "exercise", "workout") and "sleep" in q,
        _exercise_sleep,
    ),
]


def extract_computed_insights(
    question: str,
    metrics: dict[str, Any],
    health: list[HealthRecord],
    screen_time: list[ScreenTimeRecord],
    rules: list[InsightRule] | None = None,
) -> dict[str, Any]:
    """Compute the exact answers relevant to *question*.

    Every rule is evaluated in order against the lowercased question;
    rules are independent and may all fire.  Keys for rules that do not
    apply, or that have no data to work with, are left out.

    Args:
        question: Free-text user question.
        metrics: Metrics dict from ``analytics.compute_metrics``.
        health: Daily health records, oldest first.
        screen_time: Per-app screen-time records.
        rules: Rule list to evaluate.  Defaults to ``INSIGHT_RULES``.

    Returns:
        Sparse dict.  Possible keys: most_used_app, top_apps,
        least_used_app, bottom_apps, app_weekday_weekend, steps_trend,
        sleep_trend, workout_trend, exercise_sleep_relationship.
    """
    ctx = InsightContext(
        question=question,
        question_lower=question.lower(),
        metrics=metrics,
        health=health,
        screen_time=screen_time,
    )
    insights: dict[str, Any] = {}
    for rule in INSIGHT_RULES if rules is None else rules:
        if not rule.applies(ctx.question_lower):
            continue
        result = rule.compute(ctx)
        if result:
            insights.update(result)
    return insights
