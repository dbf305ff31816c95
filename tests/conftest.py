"""Shared test fixtures for project-spark-mcp."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import pytest


def unwrap_tool(tool: Any) -> Any:
    """Extract the raw coroutine from a FastMCP FunctionTool, if wrapped.

    FastMCP 2.x wraps @server.tool functions in FunctionTool (not callable).
    FastMCP 3.x preserves the original function. This helper works with both.
    """
    return getattr(tool, "fn", tool)


class FakeClock:
    """Deterministic UTC clock; ``advance`` moves it forward."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture(autouse=True)
def _set_dummy_api_key(monkeypatch):
    """Ensure tests never hit real Gemini API."""
    monkeypatch.setenv("GEMINI_API_KEY", "test-key-not-real")


@pytest.fixture(autouse=True)
def _disable_tracing(monkeypatch):
    """Disable MLflow tracing in all tests to avoid real tracking-server calls."""
    monkeypatch.setenv("SPARK_TRACING_ENABLED", "false")


@pytest.fixture(autouse=True)
def _isolate_dotenv(tmp_path, monkeypatch):
    """Prevent tests from loading the user's real ~/.config/project-spark-mcp/.env."""
    monkeypatch.setattr(
        "project_spark_mcp.dotenv.DEFAULT_ENV_PATH",
        tmp_path / "nonexistent.env",
    )
    monkeypatch.delenv("SPARK_ENV_FILE", raising=False)


@pytest.fixture(autouse=True)
def _fast_retries(monkeypatch):
    """No real backoff sleeps and an in-memory store unless a test opts in."""
    monkeypatch.setenv("SPARK_RETRY_BASE_DELAY", "0.001")
    monkeypatch.setenv("SPARK_RETRY_MAX_DELAY", "0.001")
    monkeypatch.setenv("SPARK_AI_MIN_INTERVAL", "0")
    monkeypatch.setenv("SPARK_DB_PATH", "")


@pytest.fixture(autouse=True)
def clean_config():
    """Reset the config and services singletons between tests."""
    import project_spark_mcp.config as cfg_mod
    import project_spark_mcp.services as services_mod

    cfg_mod._config = None
    services_mod._services = None
    yield
    cfg_mod._config = None
    services_mod._services = None


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def store():
    from project_spark_mcp.store import MemoryDocumentStore

    return MemoryDocumentStore()


@pytest.fixture()
def services(store):
    """Install an isolated service bundle backed by an in-memory store."""
    from project_spark_mcp.services import build_services, set_services

    bundle = build_services(store=store)
    set_services(bundle)
    yield bundle
    set_services(None)


@pytest.fixture()
def mock_gemini_client():
    """Patch GeminiClient.get(), .generate() and .generate_json() for unit tests."""
    with (
        patch("project_spark_mcp.client.GeminiClient.get") as mock_get,
        patch(
            "project_spark_mcp.client.GeminiClient.generate", new_callable=AsyncMock
        ) as mock_gen,
        patch(
            "project_spark_mcp.client.GeminiClient.generate_json", new_callable=AsyncMock
        ) as mock_json,
    ):
        client = MagicMock()
        mock_get.return_value = client
        yield {
            "get": mock_get,
            "generate": mock_gen,
            "generate_json": mock_json,
            "client": client,
        }


def make_steps(count: int) -> list[dict]:
    return [
        {"title": f"Step {i + 1}", "description": f"Do part {i + 1}"}
        for i in range(count)
    ]


@pytest.fixture()
def project_record():
    """Factory for stored project records with *n* steps."""

    def _make(n: int = 3, **overrides: Any) -> dict:
        record = {
            "user_id": "user-1",
            "name": "Build a weather station",
            "description": "Learn sensors by building one",
            "type": "manual",
            "status": "active",
            "steps": make_steps(n),
            "progress": {"current_step": 0, "completed_steps": [], "total_steps": n,
                         "percent_complete": 0, "time_spent": 0},
            "schema_version": 2,
        }
        record.update(overrides)
        return record

    return _make
