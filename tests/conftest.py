"""Shared fixtures for wellness_stats tests."""

from __future__ import annotations

from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from helpers import FakeChatClient, make_health, make_screen_time


# ── Sample datasets ──


def _sample_screen_time() -> list:
    rows = []
    for i in range(14):
        day = f"2024-01-{i + 1:02d}"
        rows.append((day, "Safari", 120, "Productivity"))
        rows.append((day, "Instagram", 80, "Social"))
        rows.append((day, "Twitter", 40, "Social"))
    return make_screen_time(rows)


@pytest.fixture()
def sample_health():
    """Fourteen days of health records at the ideal targets."""
    return make_health(days=14)


@pytest.fixture()
def sample_screen_time():
    """Fourteen days of three apps totalling 240 minutes per day."""
    return _sample_screen_time()


@pytest.fixture()
def fake_chat_client():
    return FakeChatClient()


@pytest.fixture()
def client(sample_health, sample_screen_time, fake_chat_client, monkeypatch):
    """TestClient for app.py with mocked datasets and chat client.

    Patches load_datasets so no export files are needed, resets the
    module-level cache, and overrides the chat client dependency.
    """
    import app as app_module

    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    app_module.app.dependency_overrides[app_module.get_chat_client] = lambda: fake_chat_client
    try:
        with patch.object(
            app_module, "_cache", {"data": None, "built_at": 0.0}
        ):
            with patch(
                "app.load_datasets", return_value=(sample_health, sample_screen_time)
            ):
                with TestClient(app_module.app) as tc:
                    yield tc
    finally:
        app_module.app.dependency_overrides.clear()
