"""Tests for llm.py: client construction, prompt building and ask entry points."""

from __future__ import annotations

import logging
from types import SimpleNamespace
from unittest.mock import MagicMock

import openai
import pytest

from analytics import compute_metrics
from helpers import FakeChatClient, make_health_series, make_screen_time
from insights import compute_trend_stats, extract_computed_insights
from llm import (
    CHART_QUESTION_MAX_TOKENS,
    FAILURE_MESSAGE,
    MODEL,
    QUESTION_MAX_TOKENS,
    AskError,
    MissingApiKeyError,
    OpenAIChatClient,
    _format_short_date,
    ask_chart_question,
    ask_question,
    build_question_prompt,
    create_chat_client,
    format_insights,
)


@pytest.fixture()
def data(sample_health, sample_screen_time):
    return {
        "metrics": compute_metrics(sample_health, sample_screen_time),
        "health": sample_health,
        "screen_time": sample_screen_time,
    }


def _ask(client, question, data):
    return ask_question(client, question, data["metrics"], data["health"], data["screen_time"])


def _ask_chart(client, question, title, context, data):
    return ask_chart_question(
        client, question, title, context,
        data["metrics"], data["health"], data["screen_time"],
    )


# ── Client ──


class TestCreateChatClient:
    @pytest.mark.parametrize("key", [None, "", "   "])
    def test_missing_key(self, key):
        with pytest.raises(MissingApiKeyError) as exc_info:
            create_chat_client(key)
        assert "OPENAI_API_KEY" in str(exc_info.value)

    def test_missing_key_is_an_ask_error(self):
        assert issubclass(MissingApiKeyError, AskError)

    def test_builds_openai_client(self):
        client = create_chat_client(" sk-test ")
        assert isinstance(client, OpenAIChatClient)
        assert client.model == MODEL


class TestOpenAIChatClient:
    def _client(self):
        client = OpenAIChatClient("sk-test")
        client._client = MagicMock()
        return client

    def test_returns_message_content(self):
        client = self._client()
        client._client.chat.completions.create.return_value = SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content="Walk more."))]
        )
        assert client.complete("sys", "user", 300) == "Walk more."

        kwargs = client._client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o-mini"
        assert kwargs["temperature"] == 0.7
        assert kwargs["max_tokens"] == 300
        assert kwargs["messages"] == [
            {"role": "system", "content": "sys"},
            {"role": "user", "content": "user"},
        ]

    def test_api_error_becomes_ask_error(self, caplog):
        client = self._client()
        client._client.chat.completions.create.side_effect = openai.OpenAIError("boom")
        with caplog.at_level(logging.ERROR):
            with pytest.raises(AskError) as exc_info:
                client.complete("sys", "user", 300)
        assert str(exc_info.value) == FAILURE_MESSAGE
        assert "OpenAI API error" in caplog.text


# ── Prompt formatting ──


class TestFormatInsights:
    def test_empty(self):
        assert format_insights({}) == ""

    def test_most_used_app(self):
        text = format_insights({
            "most_used_app": {"app": "B", "minutes": 250},
            "top_apps": [{"app": "B", "minutes": 250}, {"app": "A", "minutes": 100}],
        })
        assert "COMPUTED INSIGHTS" in text
        assert "MOST USED APP (EXACT ANSWER)" in text
        assert "- App: B" in text
        assert "B (250 min), A (100 min)" in text

    def test_least_used_app(self):
        text = format_insights({"least_used_app": {"app": "C", "minutes": 40}})
        assert "LEAST USED APP (EXACT ANSWER)" in text
        assert "- Total minutes: 40 min" in text

    def test_steps_trend(self):
        health = make_health_series(steps=[8000] * 30 + [10000] * 30)
        text = format_insights({"steps_trend": compute_trend_stats(health, "steps")})
        assert "Steps Trend (Last 30 days vs Previous 30 days)" in text
        assert "- Change: +2000 steps (+25%) - increasing" in text

    def test_sleep_trend_shows_hours(self):
        health = make_health_series(sleep=[420] * 30 + [480] * 30)
        text = format_insights({"sleep_trend": compute_trend_stats(health, "sleep")})
        assert "- Recent 30 days average: 480 min/day (8h 0m)" in text

    def test_weekday_weekend(self):
        screen_time = make_screen_time([
            ("2024-01-06", "Twitter", 90, "Social"),
            ("2024-01-08", "Twitter", 30, "Social"),
        ])
        insights = extract_computed_insights("Twitter on weekends?", {}, [], screen_time)
        text = format_insights(insights)
        assert "Twitter - Weekday vs Weekend Usage" in text
        assert "- Difference: 60 min (more on weekends)" in text

    def test_short_date(self):
        assert _format_short_date("2024-01-05") == "Jan 5"


class TestBuildQuestionPrompt:
    def test_contains_stats_and_question(self, data):
        prompt = build_question_prompt(
            "How am I doing?", data["metrics"], data["health"], data["screen_time"], {},
        )
        assert "Average steps per day: 10000" in prompt
        assert "Average sleep per day: 480 minutes (8h 0m)" in prompt
        assert "Safari (1680 min)" in prompt
        assert "2024-01-06 (weekend)" in prompt
        assert "User question: How am I doing?" in prompt
        assert "COMPUTED INSIGHTS (extracted directly from data)" not in prompt


# ── Entry points ──


class TestAskQuestion:
    def test_no_client(self, data):
        with pytest.raises(MissingApiKeyError):
            _ask(None, "Which app do I use the most?", data)

    def test_sends_exact_answer(self, data):
        client = FakeChatClient(answer="Safari.")
        assert _ask(client, "Which app do I use the most?", data) == "Safari."

        call = client.calls[0]
        assert call["max_tokens"] == QUESTION_MAX_TOKENS == 300
        assert "MOST USED APP (EXACT ANSWER)" in call["user"]
        assert "- App: Safari" in call["user"]

    def test_client_error_propagates(self, data):
        client = FakeChatClient(error=AskError(FAILURE_MESSAGE))
        with pytest.raises(AskError):
            _ask(client, "How am I doing?", data)


class TestAskChartQuestion:
    def test_no_client(self, data):
        with pytest.raises(MissingApiKeyError):
            _ask_chart(None, "Any pattern?", "Steps Over Time", "steps", data)

    def test_steps_chart(self, data):
        client = FakeChatClient()
        _ask_chart(client, "Any pattern?", "Steps Over Time", "steps", data)

        call = client.calls[0]
        assert call["max_tokens"] == CHART_QUESTION_MAX_TOKENS == 250
        assert '"Steps Over Time"' in call["system"]
        assert "CHART-SPECIFIC DATA (Steps Over Time - Last 30 Days)" in call["user"]
        assert "- Maximum steps: 10000" in call["user"]
        assert "Jan 1: 10000" in call["user"]

    def test_screen_time_chart(self, data):
        client = FakeChatClient()
        _ask_chart(client, "Too much?", "Daily Screen Time", "screen-time", data)
        assert "- Average screen time: 240 min (4h 0m)" in client.calls[0]["user"]

    def test_top_apps_chart(self, data):
        client = FakeChatClient()
        _ask_chart(client, "Which one?", "Top Apps", "top-apps", data)
        assert "Safari (1680 min), Instagram (1120 min), Twitter (560 min)" in client.calls[0]["user"]

    def test_sleep_vs_exercise_chart(self, data):
        client = FakeChatClient()
        _ask_chart(client, "Related?", "Sleep vs Exercise", "sleep-vs-exercise", data)
        assert "- Average sleep: 480 min (8h 0m)" in client.calls[0]["user"]

    def test_unknown_chart_has_no_chart_data(self, data):
        client = FakeChatClient()
        _ask_chart(client, "What is this?", "Mystery", "mystery", data)
        assert "CHART-SPECIFIC DATA" not in client.calls[0]["user"]
