"""Tests for the SQLite storage implementations."""

from __future__ import annotations

import asyncio
import sqlite3

import pytest

from sessionlens.domain.models import (
    Batch,
    PriorAnalysis,
    ProductivityMetrics,
    SessionSummary,
    StructuredAnalysis,
    TextFallbackAnalysis,
)
from sessionlens.errors import PersistenceFailure
from sessionlens.storage.sqlite import SqliteReportStore, SqliteScreenshotSource


@pytest.fixture
def store(tmp_path) -> SqliteReportStore:
    return SqliteReportStore(tmp_path / "reports.db")


@pytest.fixture
def source(tmp_path, work_session, screenshots) -> SqliteScreenshotSource:
    src = SqliteScreenshotSource(tmp_path / "reports.db")
    src.add_session(work_session)
    src.add_screenshots(screenshots)
    return src


@pytest.fixture
def batch(screenshots) -> Batch:
    return Batch(session_id="session-1", user_id="user-1", batch_number=1, screenshots=screenshots[:10])


def _structured(focus: float = 0.7) -> StructuredAnalysis:
    return StructuredAnalysis(
        summary="Refactored the invoice module",
        productivity_metrics=ProductivityMetrics(focus_score=focus, task_switching=2),
        insights=["Deep work before lunch"],
        time_breakdown={"coding": 80.0},
    )


class TestSqliteReportStore:
    @pytest.mark.asyncio
    async def test_round_trips_the_analysis_variant(self, store, batch) -> None:
        report = await store.create_batch_report(batch, _structured())

        listed = await store.list_batch_reports("session-1", "user-1")
        assert listed == [report]
        assert isinstance(listed[0].analysis, StructuredAnalysis)
        assert listed[0].start_time == batch.start_time
        assert listed[0].screenshot_count == 10

    @pytest.mark.asyncio
    async def test_create_is_idempotent(self, store, batch) -> None:
        first = await store.create_batch_report(batch, _structured(0.7))
        text = TextFallbackAnalysis(
            productivity_metrics=ProductivityMetrics(focus_score=0.2), raw_response="meh"
        )
        second = await store.create_batch_report(batch, text)

        assert second.id == first.id
        assert second.analysis.source == "ai"

    @pytest.mark.asyncio
    async def test_concurrent_creates_resolve_to_one_row(self, store, batch) -> None:
        reports = await asyncio.gather(*(store.create_batch_report(batch, _structured()) for _ in range(4)))
        assert len({r.id for r in reports}) == 1
        assert len(await store.list_batch_reports("session-1", "user-1")) == 1

    @pytest.mark.asyncio
    async def test_coverage_and_latest_number(self, store, screenshots) -> None:
        for number, chunk in enumerate((screenshots[:10], screenshots[10:15]), start=1):
            await store.create_batch_report(
                Batch(session_id="session-1", user_id="user-1", batch_number=number, screenshots=chunk),
                _structured(),
            )
        assert await store.latest_batch_number("session-1") == 2
        assert await store.covered_screenshot_ids("session-1") == {s.id for s in screenshots[:15]}
        page = await store.list_batch_reports("session-1", "user-1", limit=1, offset=1)
        assert [r.batch_number for r in page] == [2]

    @pytest.mark.asyncio
    async def test_undecodable_analysis_becomes_none(self, store, batch) -> None:
        await store.create_batch_report(batch, _structured())
        with sqlite3.connect(store.db_path) as conn:
            conn.execute("UPDATE batch_reports SET analysis = ?", ('{"source": "mystery"}',))

        [report] = await store.list_batch_reports("session-1", "user-1")
        assert report.analysis is None

    @pytest.mark.asyncio
    async def test_session_report_upsert(self, store) -> None:
        summary = SessionSummary(
            session_id="session-1", total_batches=1, total_screenshots=10,
            average_productivity=0.7, focus_percentage=70,
        )
        first = await store.upsert_session_report("session-1", "user-1", summary)
        again = await store.upsert_session_report("session-1", "user-1", summary)
        changed = await store.upsert_session_report(
            "session-1", "user-1", summary.model_copy(update={"total_batches": 2})
        )

        assert again == first
        assert changed.id == first.id
        assert changed.summary.total_batches == 2
        assert await store.get_session_report("session-1", "user-2") is None

    @pytest.mark.asyncio
    async def test_unreachable_database_raises_persistence_failure(self, tmp_path, batch) -> None:
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("")
        store = SqliteReportStore(blocker / "reports.db")

        with pytest.raises(PersistenceFailure) as exc_info:
            await store.create_batch_report(batch, _structured())
        assert exc_info.value.operation == "create_batch_report"


class TestSqliteScreenshotSource:
    @pytest.mark.asyncio
    async def test_fetch_in_capture_order(self, source, screenshots) -> None:
        fetched = await source.fetch("session-1", "user-1", 5, exclude_ids={screenshots[0].id})
        assert fetched == screenshots[1:6]
        assert await source.count("session-1", "user-1") == 30

    @pytest.mark.asyncio
    async def test_session_lookup(self, source, work_session) -> None:
        assert await source.get_session("session-1", "user-1") == work_session
        assert await source.get_session("session-1", "user-2") is None

    @pytest.mark.asyncio
    async def test_prior_analyses(self, source, screenshots) -> None:
        source.add_prior_analysis(
            PriorAnalysis(screenshot_id=screenshots[0].id, description="Editing", productivity_score=80)
        )
        priors = await source.prior_analyses([s.id for s in screenshots[:3]])
        assert list(priors) == [screenshots[0].id]
        assert priors[screenshots[0].id].productivity_score == 80
