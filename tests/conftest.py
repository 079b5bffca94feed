"""Shared test fixtures for the sessionlens test suite.

Provides common fixtures used across unit tests: screenshots, in-memory
storage, mock inference providers, and canned model responses.
"""

from __future__ import annotations

import io
import json
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from PIL import Image

from sessionlens.analysis.fallback import FallbackAnalyzer
from sessionlens.domain.models import CaptureTrigger, Screenshot, WorkSession
from sessionlens.pipeline.service import BatchPipeline
from sessionlens.storage.memory import InMemoryImageStore, InMemoryReportStore, InMemoryScreenshotSource

SESSION_ID = "session-1"
USER_ID = "user-1"
SESSION_START = datetime(2025, 3, 1, 9, 0, 0, tzinfo=timezone.utc)


def make_screenshots(
    count: int,
    session_id: str = SESSION_ID,
    user_id: str = USER_ID,
    start: datetime = SESSION_START,
    interval_seconds: int = 30,
    triggers: list[CaptureTrigger] | None = None,
    apps: list[str] | None = None,
) -> list[Screenshot]:
    """Build ``count`` screenshots captured every ``interval_seconds``.

    Triggers and apps cycle through the given lists.
    """
    triggers = triggers or [CaptureTrigger.INTERVAL]
    apps = apps or ["VS Code"]
    return [
        Screenshot(
            id=f"{session_id}-shot-{i:03d}",
            session_id=session_id,
            user_id=user_id,
            created_at=start + timedelta(seconds=i * interval_seconds),
            capture_trigger=triggers[i % len(triggers)],
            active_app=apps[i % len(apps)],
            image_ref=f"{session_id}/shot-{i:03d}.png",
        )
        for i in range(count)
    ]


def png_bytes(width: int = 64, height: int = 48) -> bytes:
    """A small solid-colour PNG."""
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), (30, 30, 30)).save(buffer, format="PNG")
    return buffer.getvalue()


# ---------------------------------------------------------------------------
# Domain Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def work_session() -> WorkSession:
    return WorkSession(
        id=SESSION_ID,
        user_id=USER_ID,
        session_name="Refactor billing",
        goal_description="Split the invoice module",
        started_at=SESSION_START,
        ended_at=SESSION_START + timedelta(hours=1, minutes=5),
        duration_seconds=3900,
    )


@pytest.fixture
def screenshots() -> list[Screenshot]:
    """Thirty screenshots: mostly timer captures across two apps."""
    return make_screenshots(
        30,
        triggers=[CaptureTrigger.INTERVAL] * 4 + [CaptureTrigger.CLICK],
        apps=["VS Code", "Terminal"],
    )


# ---------------------------------------------------------------------------
# Storage Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def screenshot_source(work_session: WorkSession, screenshots: list[Screenshot]) -> InMemoryScreenshotSource:
    source = InMemoryScreenshotSource()
    source.add_session(work_session)
    for shot in screenshots:
        source.add_screenshot(shot)
    return source


@pytest.fixture
def report_store() -> InMemoryReportStore:
    return InMemoryReportStore()


@pytest.fixture
def image_store(screenshots: list[Screenshot]) -> InMemoryImageStore:
    data = png_bytes()
    return InMemoryImageStore({shot.image_ref: data for shot in screenshots})


@pytest.fixture
def heuristic_pipeline(
    screenshot_source: InMemoryScreenshotSource,
    report_store: InMemoryReportStore,
) -> BatchPipeline:
    """A pipeline with no inference configured."""
    return BatchPipeline(
        screenshots=screenshot_source,
        sessions=screenshot_source,
        persister=report_store,
        analyzer=FallbackAnalyzer(),
    )


# ---------------------------------------------------------------------------
# Inference Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def structured_response() -> str:
    """A model answer with prose around a valid assessment object."""
    payload = {
        "summary": "Implemented the invoice splitter and fixed two tests.",
        "productivityMetrics": {"focusScore": 0.82, "distractionEvents": 1, "taskSwitching": 2},
        "insights": ["Long uninterrupted editing stretch"],
        "recommendations": ["Batch code review into one block"],
        "applications": ["VS Code", "Terminal", "Unknown"],
        "workCompleted": ["Invoice splitter"],
        "timeBreakdown": {"coding": 70, "testing": 30},
    }
    return f"Here is my assessment:\n```json\n{json.dumps(payload)}\n```\nLet me know if you need more."


@pytest.fixture
def mock_provider() -> MagicMock:
    """A mock InferenceProvider whose generate() is an AsyncMock."""
    provider = MagicMock()
    provider.model = "mock-model"
    provider.name = "MockProvider"
    provider.generate = AsyncMock(return_value="")
    provider.health_check = AsyncMock(return_value=True)
    return provider


@pytest.fixture
def screenshot_factory():
    """The make_screenshots builder, for tests that need custom batches."""
    return make_screenshots


@pytest.fixture
def png_factory():
    return png_bytes
