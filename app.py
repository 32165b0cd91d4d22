"""FastAPI service for the Wellness Dashboard.

Serves a Chart.js dashboard over the health and screen-time exports,
with cached metrics (1-hour TTL since data only changes on a new export)
and an LLM-backed question endpoint.

Deployment: uvicorn app:app --host 127.0.0.1 --port 8204
"""

from __future__ import annotations

import json
import logging
import os
import threading
import time
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.responses import HTMLResponse
from pydantic import BaseModel

from analytics import (
    build_dashboard_payload,
    compute_custom_chart,
    compute_top_apps,
    load_datasets,
)
from llm import (
    SETUP_HINT,
    AskError,
    ChatClient,
    MissingApiKeyError,
    ask_chart_question,
    ask_question,
    create_chat_client,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------
DATA_DIR = Path(os.environ.get("WELLNESS_DATA_DIR", Path(__file__).parent / "data"))
HEALTH_DATA_PATH = DATA_DIR / "health_daily.json"
SCREEN_TIME_PATH = DATA_DIR / "screentime.json"
TEMPLATE_PATH = Path(__file__).parent / "dashboard_template.html"
CACHE_TTL_SECONDS = 3600  # 1 hour


# ---------------------------------------------------------------------------
# App
# ---------------------------------------------------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        app.state.chat_client = create_chat_client(os.environ.get("OPENAI_API_KEY"))
    except MissingApiKeyError:
        logger.warning("OPENAI_API_KEY is not set; questions will be rejected")
        app.state.chat_client = None
    yield


app = FastAPI(
    title="Wellness Dashboard",
    root_path=os.environ.get("WELLNESS_ROOT_PATH", ""),
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Thread-safe cache
# ---------------------------------------------------------------------------
_cache_lock = threading.Lock()
_cache: dict[str, Any] = {
    "data": None,
    "built_at": 0.0,
}


def _get_cached_data(force_refresh: bool = False) -> dict[str, Any]:
    """Return cached records and dashboard payload, rebuilding if stale or forced.

    Returns:
        Dict with keys health, screen_time (record lists) and payload
        (from ``build_dashboard_payload``).
    """
    now = time.monotonic()
    with _cache_lock:
        if (
            not force_refresh
            and _cache["data"] is not None
            and (now - _cache["built_at"]) < CACHE_TTL_SECONDS
        ):
            return _cache["data"]

    health, screen_time = load_datasets(str(HEALTH_DATA_PATH), str(SCREEN_TIME_PATH))
    data = {
        "health": health,
        "screen_time": screen_time,
        "payload": build_dashboard_payload(health, screen_time),
    }

    with _cache_lock:
        _cache["data"] = data
        _cache["built_at"] = time.monotonic()

    return data


def get_chat_client(request: Request) -> ChatClient | None:
    """Dependency: the chat client built at startup (None without an API key)."""
    return getattr(request.app.state, "chat_client", None)


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------
class QuestionRequest(BaseModel):
    question: str


class ChartQuestionRequest(BaseModel):
    question: str
    chart_title: str
    chart_context: str


def _require_question(question: str) -> str:
    question = question.strip()
    if not question:
        raise HTTPException(status_code=400, detail="Question must not be empty")
    return question


def _require_data(data: dict[str, Any]) -> None:
    if not data["health"]:
        raise HTTPException(status_code=503, detail="No data available")


def _answer_or_http_error(fn, *args) -> dict[str, str]:
    """Run an ask function, mapping failures onto HTTP errors."""
    try:
        return {"answer": fn(*args)}
    except MissingApiKeyError as e:
        raise HTTPException(status_code=503, detail={"error": str(e), "hint": SETUP_HINT})
    except AskError as e:
        raise HTTPException(status_code=502, detail={"error": str(e)})


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------
@app.get("/health")
@app.get("/healthz")
def healthz():
    return {"status": "ok"}


@app.get("/", response_class=HTMLResponse)
def dashboard_html():
    """Serve the dashboard HTML with injected data."""
    if not TEMPLATE_PATH.exists():
        raise HTTPException(status_code=500, detail="Template not found")

    data = _get_cached_data()
    template = TEMPLATE_PATH.read_text(encoding="utf-8")
    data_json = json.dumps(data["payload"], ensure_ascii=False)
    data_json = data_json.replace("</", r"<\/")
    html = template.replace(
        "const DASHBOARD_DATA = {};",
        f"const DASHBOARD_DATA = {data_json};",
    )
    return HTMLResponse(content=html)


@app.get("/api/data")
def api_data():
    """Return the full dashboard JSON payload."""
    return _get_cached_data()["payload"]


@app.get("/api/refresh")
def api_refresh():
    """Force a reload of both datasets and return the new timestamp."""
    data = _get_cached_data(force_refresh=True)
    return {
        "status": "refreshed",
        "generated_at": data["payload"]["generated_at"],
    }


@app.get("/api/top-apps")
def api_top_apps(category: str = "All", limit: int = Query(8, ge=1, le=100)):
    """Top apps by total minutes, optionally filtered to one category."""
    data = _get_cached_data()
    return {
        "category": category,
        "apps": compute_top_apps(data["screen_time"], category, limit),
    }


@app.get("/api/custom-chart")
def api_custom_chart(first: str, second: str, days: int = Query(30, ge=1, le=365)):
    """Day-by-day series comparing two related metrics."""
    data = _get_cached_data()
    try:
        series = compute_custom_chart(data["health"], data["screen_time"], first, second, days)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"first": first, "second": second, "days": days, "series": series}


@app.post("/api/ask")
def api_ask(body: QuestionRequest, client: ChatClient | None = Depends(get_chat_client)):
    """Answer a free-text question about the data."""
    question = _require_question(body.question)
    data = _get_cached_data()
    _require_data(data)
    return _answer_or_http_error(
        ask_question,
        client,
        question,
        data["payload"]["metrics"],
        data["health"],
        data["screen_time"],
    )


@app.post("/api/ask-chart")
def api_ask_chart(body: ChartQuestionRequest, client: ChatClient | None = Depends(get_chat_client)):
    """Answer a question about one dashboard chart."""
    question = _require_question(body.question)
    data = _get_cached_data()
    _require_data(data)
    return _answer_or_http_error(
        ask_chart_question,
        client,
        question,
        body.chart_title,
        body.chart_context,
        data["payload"]["metrics"],
        data["health"],
        data["screen_time"],
    )
