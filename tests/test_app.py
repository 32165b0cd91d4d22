"""Tests for the FastAPI app (app.py) routes and caching behaviour."""

from __future__ import annotations

from unittest.mock import patch

from fastapi.testclient import TestClient

from llm import FAILURE_MESSAGE, SETUP_HINT, AskError, OpenAIChatClient


# ── HTML page ────────────────────────────────


class TestDashboardPage:
    def test_returns_200(self, client):
        response = client.get("/")
        assert response.status_code == 200

    def test_content_type_is_html(self, client):
        response = client.get("/")
        assert "text/html" in response.headers["content-type"]

    def test_contains_page_title(self, client):
        response = client.get("/")
        assert "Wellness Dashboard" in response.text

    def test_payload_injected(self, client):
        """The template placeholder is replaced with the payload JSON."""
        response = client.get("/")
        assert "const DASHBOARD_DATA = {};" not in response.text
        assert "const DASHBOARD_DATA = {" in response.text
        assert '"wellness"' in response.text

    def test_compare_metrics_chart_wired(self, client):
        """The comparison chart reads the relationship table and calls the API."""
        text = client.get("/").text
        assert 'id="chart-custom"' in text
        assert "api/custom-chart" in text
        assert '"metric_relationships"' in text
        assert '"Workout (min)"' in text

    def test_missing_template_returns_500(self, client, tmp_path):
        with patch("app.TEMPLATE_PATH", tmp_path / "missing.html"):
            response = client.get("/")
        assert response.status_code == 500


# ── JSON API routes ───────────────────────────


class TestApiData:
    def test_returns_200(self, client):
        response = client.get("/api/data")
        assert response.status_code == 200

    def test_content_type_is_json(self, client):
        response = client.get("/api/data")
        assert "application/json" in response.headers["content-type"]

    def test_payload_sections(self, client):
        data = client.get("/api/data").json()
        for key in ("generated_at", "metrics", "charts", "categories", "notifications"):
            assert key in data, f"Missing key: {key}"

    def test_metrics(self, client):
        metrics = client.get("/api/data").json()["metrics"]
        assert metrics["wellness"]["score"] == 100
        assert metrics["health"]["total_days"] == 14
        assert metrics["screen_time"]["avg_daily"] == 240


class TestApiRefresh:
    def test_response_has_status_refreshed(self, client):
        data = client.get("/api/refresh").json()
        assert data["status"] == "refreshed"

    def test_response_has_generated_at(self, client):
        data = client.get("/api/refresh").json()
        assert "generated_at" in data


class TestApiTopApps:
    def test_all(self, client):
        data = client.get("/api/top-apps").json()
        assert data["category"] == "All"
        assert [a["app"] for a in data["apps"]] == ["Safari", "Instagram", "Twitter"]

    def test_category_filter(self, client):
        data = client.get("/api/top-apps", params={"category": "Social"}).json()
        assert [a["app"] for a in data["apps"]] == ["Instagram", "Twitter"]

    def test_limit(self, client):
        data = client.get("/api/top-apps", params={"limit": 1}).json()
        assert len(data["apps"]) == 1


class TestApiCustomChart:
    def test_series(self, client):
        response = client.get(
            "/api/custom-chart", params={"first": "steps", "second": "sleep", "days": 7},
        )
        assert response.status_code == 200
        series = response.json()["series"]
        assert len(series) == 7
        assert series[-1] == {"date": "2024-01-14", "steps": 10000, "sleep": 480}

    def test_every_listed_pair_is_accepted(self, client):
        relationships = client.get("/api/data").json()["metric_relationships"]
        for first, seconds in relationships.items():
            for second in seconds:
                response = client.get(
                    "/api/custom-chart", params={"first": first, "second": second, "days": 7},
                )
                assert response.status_code == 200, (first, second)

    def test_unsupported_pair_returns_400(self, client):
        response = client.get(
            "/api/custom-chart", params={"first": "workout", "second": "screen_time"},
        )
        assert response.status_code == 400

    def test_days_must_be_positive(self, client):
        response = client.get(
            "/api/custom-chart", params={"first": "steps", "second": "sleep", "days": 0},
        )
        assert response.status_code == 422


# ── Questions ─────────────────────────────────


class TestApiAsk:
    def test_returns_answer(self, client, fake_chat_client):
        response = client.post("/api/ask", json={"question": "Which app do I use the most?"})
        assert response.status_code == 200
        assert response.json() == {"answer": "You walk a lot."}
        assert fake_chat_client.calls[0]["max_tokens"] == 300
        assert "MOST USED APP (EXACT ANSWER)" in fake_chat_client.calls[0]["user"]

    def test_blank_question_returns_400(self, client, fake_chat_client):
        response = client.post("/api/ask", json={"question": "   "})
        assert response.status_code == 400
        assert fake_chat_client.calls == []

    def test_missing_question_returns_422(self, client):
        response = client.post("/api/ask", json={})
        assert response.status_code == 422

    def test_no_api_key_returns_503_with_hint(self, client):
        import app as app_module

        app_module.app.dependency_overrides[app_module.get_chat_client] = lambda: None
        response = client.post("/api/ask", json={"question": "How am I doing?"})
        assert response.status_code == 503
        detail = response.json()["detail"]
        assert "OPENAI_API_KEY" in detail["error"]
        assert detail["hint"] == SETUP_HINT

    def test_upstream_failure_returns_502(self, client, fake_chat_client):
        fake_chat_client.error = AskError(FAILURE_MESSAGE)
        response = client.post("/api/ask", json={"question": "How am I doing?"})
        assert response.status_code == 502
        assert response.json()["detail"] == {"error": FAILURE_MESSAGE}

    def test_no_data_returns_503(self, client, fake_chat_client):
        import app as app_module

        app_module._cache["data"] = None
        with patch("app.load_datasets", return_value=([], [])):
            response = client.post("/api/ask", json={"question": "How am I doing?"})
        assert response.status_code == 503
        assert response.json()["detail"] == "No data available"
        assert fake_chat_client.calls == []


class TestApiAskChart:
    def test_returns_answer(self, client, fake_chat_client):
        response = client.post("/api/ask-chart", json={
            "question": "Any pattern?",
            "chart_title": "Steps Over Time",
            "chart_context": "steps",
        })
        assert response.status_code == 200
        call = fake_chat_client.calls[0]
        assert call["max_tokens"] == 250
        assert "CHART-SPECIFIC DATA (Steps Over Time" in call["user"]

    def test_blank_question_returns_400(self, client):
        response = client.post("/api/ask-chart", json={
            "question": "",
            "chart_title": "Steps Over Time",
            "chart_context": "steps",
        })
        assert response.status_code == 400


# ── Startup ───────────────────────────────────


class TestLifespan:
    def test_no_key_leaves_client_unset(self, client):
        assert client.app.state.chat_client is None

    def test_key_builds_client(self, monkeypatch):
        import app as app_module

        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        with TestClient(app_module.app) as tc:
            assert isinstance(tc.app.state.chat_client, OpenAIChatClient)


# ── Health check ──────────────────────────────


class TestHealthCheck:
    def test_healthz_returns_200(self, client):
        response = client.get("/healthz")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_health_alias(self, client):
        assert client.get("/health").status_code == 200


# ── Caching behaviour ────────────────────────


class TestCaching:
    def test_second_request_uses_cache(self, client, sample_health, sample_screen_time):
        """Two requests inside the TTL load the datasets only once."""
        import app as app_module

        with patch("app.load_datasets") as mock_load:
            mock_load.return_value = (sample_health, sample_screen_time)
            app_module._cache["data"] = None
            app_module._cache["built_at"] = 0.0

            client.get("/api/data")
            client.get("/api/data")
            assert mock_load.call_count == 1

    def test_refresh_forces_reload(self, client, sample_health, sample_screen_time):
        """The /api/refresh endpoint reloads even when the cache is fresh."""
        import app as app_module

        with patch("app.load_datasets") as mock_load:
            mock_load.return_value = (sample_health, sample_screen_time)
            app_module._cache["data"] = None
            app_module._cache["built_at"] = 0.0

            client.get("/api/data")
            assert mock_load.call_count == 1

            client.get("/api/refresh")
            assert mock_load.call_count == 2

    def test_stale_cache_reloads(self, client, sample_health, sample_screen_time):
        import app as app_module

        with patch("app.load_datasets") as mock_load:
            mock_load.return_value = (sample_health, sample_screen_time)
            client.get("/api/data")
            app_module._cache["built_at"] -= app_module.CACHE_TTL_SECONDS + 1
            client.get("/api/data")
            assert mock_load.call_count == 2


# ── 404 for unknown routes ───────────────────


class TestNotFound:
    def test_unknown_route_returns_404(self, client):
        response = client.get("/nonexistent")
        assert response.status_code == 404

    def test_unknown_api_route_returns_404(self, client):
        response = client.get("/api/nonexistent")
        assert response.status_code == 404
