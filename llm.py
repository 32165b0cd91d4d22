"""Question answering over the health data via a hosted chat-completion model.

The client is created once by the caller (see ``create_chat_client``) and
passed into ``ask_question`` / ``ask_chart_question``.  Each question is
sent with the dashboard statistics plus any exact answers from
``insights.extract_computed_insights``.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Protocol

import openai

from analytics import format_minutes, rounded_mean
from insights import compute_all_app_totals, extract_computed_insights, is_weekend
from models import HealthRecord, ScreenTimeRecord

logger = logging.getLogger(__name__)

MODEL = "gpt-4o-mini"
TEMPERATURE = 0.7
QUESTION_MAX_TOKENS = 300
CHART_QUESTION_MAX_TOKENS = 250
RECENT_DAYS = 30

API_KEY_ENV = "OPENAI_API_KEY"
SETUP_HINT = f"Set your OpenAI API key in the environment: {API_KEY_ENV}=your_key_here"
FAILURE_MESSAGE = "Failed to get answer. Please check your API key and try again."


class AskError(Exception):
    """A question could not be answered."""


class MissingApiKeyError(AskError):
    """No API key is configured; the user must set one before asking."""

    def __init__(self) -> None:
        super().__init__(f"OpenAI API key not found. Please set {API_KEY_ENV}.")


class ChatClient(Protocol):
    def complete(self, system: str, user: str, max_tokens: int) -> str: ...


class OpenAIChatClient:
    """``ChatClient`` backed by the OpenAI chat completions API."""

    def __init__(self, api_key: str, model: str = MODEL, temperature: float = TEMPERATURE):
        self._client = openai.OpenAI(api_key=api_key)
        self.model = model
        self.temperature = temperature

    def complete(self, system: str, user: str, max_tokens: int) -> str:
        try:
            response = self._client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": user},
                ],
                temperature=self.temperature,
                max_tokens=max_tokens,
            )
        except openai.OpenAIError as e:
            logger.exception("OpenAI API error")
            raise AskError(FAILURE_MESSAGE) from e
        return response.choices[0].message.content or ""


def create_chat_client(api_key: str | None, model: str = MODEL) -> OpenAIChatClient:
    """Build the chat client once at startup.

    Raises:
        MissingApiKeyError: If *api_key* is empty or None.
    """
    if not api_key or not api_key.strip():
        raise MissingApiKeyError()
    return OpenAIChatClient(api_key.strip(), model=model)


# ---------------------------------------------------------------------------
# Prompt formatting
# ---------------------------------------------------------------------------

def _signed(value: float) -> str:
    return f"+{value}" if value > 0 else f"{value}"


def _format_app(app: dict) -> str:
    return f"{app['app']} ({app['minutes']} min)"


def _format_short_date(day: str) -> str:
    d = date.fromisoformat(day)
    return f"{d:%b} {d.day}"


def _format_trend(title: str, unit: str, stats: dict[str, Any], show_hours: bool = False) -> str:
    recent = stats["recent_30_days"]
    previous = stats["previous_30_days"]
    recent_text = f"{recent} {unit}"
    previous_text = f"{previous} {unit}"
    if show_hours:
        recent_text += f" ({format_minutes(recent)})"
        previous_text += f" ({format_minutes(previous)})"
    change_unit = unit.split("/")[0]
    return (
        f"\n{title} Trend (Last 30 days vs Previous 30 days):\n"
        f"- Recent 30 days average: {recent_text}\n"
        f"- Previous 30 days average: {previous_text}\n"
        f"- Change: {_signed(stats['change'])} {change_unit} "
        f"({_signed(stats['percent_change'])}%) - {stats['trend']}\n"
    )


def format_insights(insights: dict[str, Any]) -> str:
    """Render computed insights as the prompt's COMPUTED INSIGHTS section.

    Returns an empty string when there is nothing to add.
    """
    if not insights:
        return ""

    text = "\n\nCOMPUTED INSIGHTS (extracted directly from data):\n"

    if "most_used_app" in insights:
        app = insights["most_used_app"]
        text += "\nMOST USED APP (EXACT ANSWER):\n"
        text += f"- App: {app['app']}\n"
        text += f"- Total minutes: {app['minutes']} min\n"
        if insights.get("top_apps"):
            text += f"- Top 5 apps for reference: {', '.join(_format_app(a) for a in insights['top_apps'])}\n"

    if "least_used_app" in insights:
        app = insights["least_used_app"]
        text += "\nLEAST USED APP (EXACT ANSWER):\n"
        text += f"- App: {app['app']}\n"
        text += f"- Total minutes: {app['minutes']} min\n"
        if insights.get("bottom_apps"):
            text += f"- Bottom 5 apps for reference: {', '.join(_format_app(a) for a in insights['bottom_apps'])}\n"

    if "app_weekday_weekend" in insights:
        stats = insights["app_weekday_weekend"]
        weekday = stats["weekday"]
        weekend = stats["weekend"]
        diff = weekend["avg_minutes"] - weekday["avg_minutes"]
        text += f"\n{stats['app_name']} - Weekday vs Weekend Usage:\n"
        text += f"- Weekdays ({weekday['days']} days): Average {weekday['avg_minutes']} min/day, Total {weekday['total_minutes']} min\n"
        text += f"- Weekends ({weekend['days']} days): Average {weekend['avg_minutes']} min/day, Total {weekend['total_minutes']} min\n"
        text += f"- Difference: {diff} min ({'more' if diff > 0 else 'less'} on weekends)\n"
        for label, bucket in (("Weekday", weekday), ("Weekend", weekend)):
            breakdown = ", ".join(f"{d['date']}: {d['minutes']} min" for d in bucket["daily_breakdown"])
            text += f"- {label} breakdown: {breakdown}\n"

    if "steps_trend" in insights:
        text += _format_trend("Steps", "steps/day", insights["steps_trend"])
    if "sleep_trend" in insights:
        text += _format_trend("Sleep", "min/day", insights["sleep_trend"], show_hours=True)
    if "workout_trend" in insights:
        text += _format_trend("Workout", "min/day", insights["workout_trend"])

    if "exercise_sleep_relationship" in insights:
        rel = insights["exercise_sleep_relationship"]
        with_workout = rel["avg_sleep_with_workout"]
        no_workout = rel["avg_sleep_no_workout"]
        diff = rel["difference"]
        text += "\nExercise vs Sleep Relationship:\n"
        text += f"- Average sleep on workout days: {with_workout} min ({format_minutes(with_workout)}) ({rel['workout_days']} days)\n"
        text += f"- Average sleep on non-workout days: {no_workout} min ({format_minutes(no_workout)}) ({rel['no_workout_days']} days)\n"
        text += f"- Difference: {_signed(diff)} min ({'more' if diff > 0 else 'less'} sleep on workout days)\n"

    return text


def _app_usage_by_date(screen_time: list[ScreenTimeRecord]) -> dict[str, dict[str, float]]:
    usage: dict[str, dict[str, float]] = {}
    for r in screen_time:
        day = usage.setdefault(r.date, {})
        day[r.app] = day.get(r.app, 0) + r.minutes
    return usage


def build_question_prompt(
    question: str,
    metrics: dict[str, Any],
    health: list[HealthRecord],
    screen_time: list[ScreenTimeRecord],
    insights: dict[str, Any],
) -> str:
    """Build the user prompt for a general question about the data."""
    h = metrics["health"]
    s = metrics["screen_time"]
    recent = health[-RECENT_DAYS:]
    recent_steps = ", ".join(f"{r.date}:{r.steps}" for r in recent)
    recent_sleep = ", ".join(f"{r.date}:{r.sleep_minutes}" for r in recent)
    recent_workout = ", ".join(f"{r.date}:{r.workout_minutes}" for r in recent)
    top_apps = ", ".join(_format_app(a) for a in s["top_apps"])
    top_categories = ", ".join(f"{c['category']} ({c['minutes']} min)" for c in s["top_categories"])

    usage = _app_usage_by_date(screen_time)
    recent_usage = "; ".join(
        f"{day}{' (weekend)' if is_weekend(day) else ''}: "
        + ", ".join(f"{app} {minutes}" for app, minutes in usage[day].items())
        for day in sorted(usage)[-RECENT_DAYS:]
    )

    return f"""You are a health data assistant. Answer questions about health and screen time data.

Health Data (last {h['total_days']} days):
- Average steps per day: {h['avg_steps']}
- Average sleep per day: {h['avg_sleep']} minutes ({format_minutes(h['avg_sleep'])})
- Average active energy per day: {h['avg_energy']} kcal
- Average workout minutes per day: {h['avg_workout']}
- Days with workouts: {h['workout_days']} out of {h['total_days']}
- Recent 30 days steps (date, value): {recent_steps}
- Recent 30 days sleep (date, minutes): {recent_sleep}
- Recent 30 days workout (date, minutes): {recent_workout}

Screen Time Data:
- Top apps: {top_apps}
- Top categories: {top_categories}
- Average daily screen time: {s['avg_daily']} minutes
- Recent app usage by date (minutes): {recent_usage}
{format_insights(insights)}

User question: {question}

CRITICAL INSTRUCTIONS:
- If the COMPUTED INSIGHTS section contains an EXACT ANSWER (marked with "EXACT ANSWER"), you MUST use that exact answer. Do NOT guess, estimate, or use approximate values from other sections.
- The EXACT ANSWER sections are calculated directly from ALL the data - they are accurate and complete.
- For questions about "most used app" or "least used app", the EXACT ANSWER above is the definitive answer. Use the app name and minutes exactly as shown.
- Do NOT use the "Top apps" list from the Screen Time Data section for these questions - that only shows the top 10, not all apps.
- Be specific with data when relevant. Keep it concise and friendly."""


def _chart_data_block(
    chart_context: str,
    metrics: dict[str, Any],
    health: list[HealthRecord],
    screen_time: list[ScreenTimeRecord],
) -> str:
    """Summarise the data behind one dashboard chart, or "" if unknown."""
    recent = health[-RECENT_DAYS:]

    if chart_context == "steps" and recent:
        steps = [r.steps for r in recent]
        breakdown = ", ".join(f"{_format_short_date(r.date)}: {r.steps}" for r in recent)
        return (
            "\nCHART-SPECIFIC DATA (Steps Over Time - Last 30 Days):\n"
            f"- Average steps: {rounded_mean(steps)}\n"
            f"- Maximum steps: {max(steps)}\n"
            f"- Minimum steps: {min(steps)}\n"
            f"- Daily breakdown: {breakdown}\n"
        )

    if chart_context == "steps-vs-exercise" and recent:
        breakdown = "; ".join(
            f"{_format_short_date(r.date)}: {r.steps} steps, {r.workout_minutes} min exercise"
            for r in recent
        )
        return (
            "\nCHART-SPECIFIC DATA (Steps vs Exercise - Last 30 Days):\n"
            f"- Average steps: {rounded_mean([r.steps for r in recent])}\n"
            f"- Average exercise: {rounded_mean([r.workout_minutes for r in recent])} min\n"
            f"- Daily breakdown: {breakdown}\n"
        )

    if chart_context == "sleep-vs-exercise" and recent:
        avg_sleep = rounded_mean([r.sleep_minutes for r in recent])
        breakdown = "; ".join(
            f"{_format_short_date(r.date)}: {r.sleep_minutes} min sleep, {r.workout_minutes} min exercise"
            for r in recent
        )
        return (
            "\nCHART-SPECIFIC DATA (Sleep vs Exercise - Last 30 Days):\n"
            f"- Average sleep: {avg_sleep} min ({format_minutes(avg_sleep)})\n"
            f"- Average exercise: {rounded_mean([r.workout_minutes for r in recent])} min\n"
            f"- Daily breakdown: {breakdown}\n"
        )

    if chart_context == "screen-time":
        daily = metrics["screen_time"]["daily_totals"][-RECENT_DAYS:]
        if not daily:
            return ""
        totals = [d["total"] for d in daily]
        avg = rounded_mean(totals)
        breakdown = ", ".join(f"{_format_short_date(d['date'])}: {d['total']} min" for d in daily)
        return (
            "\nCHART-SPECIFIC DATA (Daily Screen Time - Last 30 Days):\n"
            f"- Average screen time: {avg} min ({format_minutes(avg)})\n"
            f"- Maximum: {max(totals)} min\n"
            f"- Minimum: {min(totals)} min\n"
            f"- Daily breakdown: {breakdown}\n"
        )

    if chart_context == "top-apps":
        apps = compute_all_app_totals(screen_time)
        if not apps:
            return ""
        top_ten = ", ".join(f"{a['app']}: {a['minutes']} min" for a in apps[:10])
        return (
            "\nCHART-SPECIFIC DATA (Top Apps by Total Time):\n"
            f"- All apps with usage: {', '.join(_format_app(a) for a in apps)}\n"
            f"- Top 10 apps: {top_ten}\n"
        )

    return ""


def build_chart_prompt(
    question: str,
    chart_title: str,
    chart_context: str,
    metrics: dict[str, Any],
    health: list[HealthRecord],
    screen_time: list[ScreenTimeRecord],
    insights: dict[str, Any],
) -> str:
    """Build the user prompt for a question about one dashboard chart."""
    chart_data = _chart_data_block(chart_context, metrics, health, screen_time)
    return f"""You are a health data assistant. Answer questions about a specific chart: "{chart_title}".
{chart_data}
User question: {question}
{format_insights(insights)}

IMPORTANT: Focus your answer specifically on the chart data shown above. Be concise, specific, and use the exact numbers from the chart-specific data."""


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------

def ask_question(
    client: ChatClient | None,
    question: str,
    metrics: dict[str, Any],
    health: list[HealthRecord],
    screen_time: list[ScreenTimeRecord],
) -> str:
    """Answer a general question about the health and screen-time data.

    Args:
        client: Chat client from ``create_chat_client``, or None when no
            API key is configured.
        question: Free-text user question.
        metrics: Metrics dict from ``analytics.compute_metrics``.
        health: Daily health records, oldest first.
        screen_time: Per-app screen-time records.

    Returns:
        The model's answer text.

    Raises:
        MissingApiKeyError: If *client* is None.
        AskError: If the API call fails.  Nothing is retried.
    """
    if client is None:
        raise MissingApiKeyError()
    insights = extract_computed_insights(question, metrics, health, screen_time)
    prompt = build_question_prompt(question, metrics, health, screen_time, insights)
    return client.complete(
        "You are a helpful health data assistant. Answer questions accurately using the provided statistics.",
        prompt,
        QUESTION_MAX_TOKENS,
    )


def ask_chart_question(
    client: ChatClient | None,
    question: str,
    chart_title: str,
    chart_context: str,
    metrics: dict[str, Any],
    health: list[HealthRecord],
    screen_time: list[ScreenTimeRecord],
) -> str:
    """Answer a question scoped to a single dashboard chart.

    Same contract as ``ask_question``, with a shorter answer budget and a
    prompt focused on the chart identified by *chart_context* (steps,
    steps-vs-exercise, sleep-vs-exercise, screen-time, top-apps).
    """
    if client is None:
        raise MissingApiKeyError()
    insights = extract_computed_insights(question, metrics, health, screen_time)
    prompt = build_chart_prompt(
        question, chart_title, chart_context, metrics, health, screen_time, insights,
    )
    return client.complete(
        f'You are a helpful health data assistant. Answer questions about the specific chart: "{chart_title}". '
        "Focus on the chart-specific data provided.",
        prompt,
        CHART_QUESTION_MAX_TOKENS,
    )
