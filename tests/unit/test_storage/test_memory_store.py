"""Tests for the in-memory storage implementations."""

from __future__ import annotations

import asyncio

import pytest

from sessionlens.domain.models import Batch, HeuristicAnalysis, ProductivityMetrics, SessionSummary
from sessionlens.storage.base import ImageLoadError
from sessionlens.storage.memory import InMemoryImageStore, InMemoryReportStore


def _analysis(focus: float = 0.6) -> HeuristicAnalysis:
    return HeuristicAnalysis(summary="work", productivity_metrics=ProductivityMetrics(focus_score=focus))


def _summary(total: int = 1) -> SessionSummary:
    return SessionSummary(
        session_id="session-1",
        total_batches=total,
        total_screenshots=total * 10,
        average_productivity=0.6,
        focus_percentage=60,
    )


class TestInMemoryReportStore:
    @pytest.mark.asyncio
    async def test_create_is_idempotent(self, screenshots) -> None:
        store = InMemoryReportStore()
        batch = Batch(session_id="session-1", user_id="user-1", batch_number=1, screenshots=screenshots[:5])

        first = await store.create_batch_report(batch, _analysis(0.6))
        second = await store.create_batch_report(batch, _analysis(0.9))

        assert second == first
        assert second.analysis.productivity_metrics.focus_score == 0.6
        assert len(await store.list_batch_reports("session-1", "user-1")) == 1

    @pytest.mark.asyncio
    async def test_concurrent_creates_share_one_row(self, screenshots) -> None:
        store = InMemoryReportStore()
        batch = Batch(session_id="session-1", user_id="user-1", batch_number=1, screenshots=screenshots[:5])

        reports = await asyncio.gather(*(store.create_batch_report(batch, _analysis()) for _ in range(5)))
        assert len({r.id for r in reports}) == 1

    @pytest.mark.asyncio
    async def test_coverage_and_numbering(self, screenshots) -> None:
        store = InMemoryReportStore()
        for number, chunk in enumerate((screenshots[:10], screenshots[10:20]), start=1):
            batch = Batch(session_id="session-1", user_id="user-1", batch_number=number, screenshots=chunk)
            await store.create_batch_report(batch, _analysis())

        assert await store.latest_batch_number("session-1") == 2
        assert await store.latest_batch_number("other") == 0
        assert await store.covered_screenshot_ids("session-1") == {s.id for s in screenshots[:20]}

    @pytest.mark.asyncio
    async def test_listing_is_paginated_and_user_scoped(self, screenshots) -> None:
        store = InMemoryReportStore()
        for number in (3, 1, 2):
            batch = Batch(
                session_id="session-1", user_id="user-1", batch_number=number,
                screenshots=screenshots[number - 1:number],
            )
            await store.create_batch_report(batch, _analysis())

        page = await store.list_batch_reports("session-1", "user-1", limit=2, offset=1)
        assert [r.batch_number for r in page] == [2, 3]
        assert await store.list_batch_reports("session-1", "someone-else") == []

    @pytest.mark.asyncio
    async def test_session_report_upsert(self) -> None:
        store = InMemoryReportStore()
        first = await store.upsert_session_report("session-1", "user-1", _summary(1))
        unchanged = await store.upsert_session_report("session-1", "user-1", _summary(1))
        updated = await store.upsert_session_report("session-1", "user-1", _summary(2))

        assert unchanged == first
        assert updated.id == first.id
        assert updated.summary.total_batches == 2
        assert await store.get_session_report("session-1", "user-1") == updated


class TestInMemoryScreenshotSource:
    @pytest.mark.asyncio
    async def test_fetch_excludes_and_limits(self, screenshot_source, screenshots) -> None:
        excluded = {s.id for s in screenshots[:5]}
        fetched = await screenshot_source.fetch("session-1", "user-1", 3, exclude_ids=excluded)
        assert [s.id for s in fetched] == [s.id for s in screenshots[5:8]]

    @pytest.mark.asyncio
    async def test_sessions_are_user_scoped(self, screenshot_source) -> None:
        assert await screenshot_source.get_session("session-1", "user-1") is not None
        assert await screenshot_source.get_session("session-1", "intruder") is None
        assert await screenshot_source.count("session-1", "intruder") == 0


class TestInMemoryImageStore:
    @pytest.mark.asyncio
    async def test_missing_image(self, screenshots) -> None:
        with pytest.raises(ImageLoadError):
            await InMemoryImageStore().load(screenshots[0])
