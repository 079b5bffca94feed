"""In-memory implementations of the storage interfaces.

Used as the default when no database is configured, and by tests. All
mutations happen without awaiting in between, so each one is atomic
with respect to other tasks on the same event loop.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Collection
from datetime import datetime, timezone

from sessionlens.domain.models import (
    AnalysisResult,
    AnalysisType,
    Batch,
    BatchReport,
    PriorAnalysis,
    ProcessingStatus,
    Screenshot,
    SessionReport,
    SessionSummary,
    WorkSession,
)
from sessionlens.storage.base import ImageLoadError, ImageStore, ReportPersister, ScreenshotSource, SessionSource

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryReportStore(ReportPersister):
    def __init__(self) -> None:
        self._batches: dict[tuple[str, int], BatchReport] = {}
        self._session_reports: dict[tuple[str, str], SessionReport] = {}

    async def create_batch_report(
        self,
        batch: Batch,
        analysis: AnalysisResult,
        analysis_type: AnalysisType = AnalysisType.STANDARD,
    ) -> BatchReport:
        key = (batch.session_id, batch.batch_number)
        existing = self._batches.get(key)
        if existing is not None:
            logger.info("Batch %d of session %s already stored", batch.batch_number, batch.session_id)
            return existing

        report = BatchReport(
            id=uuid.uuid4().hex,
            session_id=batch.session_id,
            user_id=batch.user_id,
            batch_number=batch.batch_number,
            screenshot_ids=batch.screenshot_ids,
            screenshot_count=len(batch.screenshots),
            start_time=batch.start_time,
            end_time=batch.end_time,
            analysis_type=analysis_type,
            analysis=analysis,
            processing_status=ProcessingStatus.COMPLETED,
            created_at=_now(),
        )
        return self._batches.setdefault(key, report)

    async def upsert_session_report(
        self,
        session_id: str,
        user_id: str,
        summary: SessionSummary,
    ) -> SessionReport:
        key = (session_id, user_id)
        existing = self._session_reports.get(key)
        if existing is not None and existing.summary == summary:
            return existing
        report = SessionReport(
            id=existing.id if existing else uuid.uuid4().hex,
            session_id=session_id,
            user_id=user_id,
            summary=summary,
            updated_at=_now(),
        )
        self._session_reports[key] = report
        return report

    async def get_session_report(self, session_id: str, user_id: str) -> SessionReport | None:
        return self._session_reports.get((session_id, user_id))

    async def list_batch_reports(
        self,
        session_id: str,
        user_id: str,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[BatchReport]:
        reports = sorted(
            (r for (sid, _), r in self._batches.items() if sid == session_id and r.user_id == user_id),
            key=lambda r: r.batch_number,
        )
        end = None if limit is None else offset + limit
        return reports[offset:end]

    async def covered_screenshot_ids(self, session_id: str) -> set[str]:
        covered: set[str] = set()
        for (sid, _), report in self._batches.items():
            if sid == session_id:
                covered.update(report.screenshot_ids)
        return covered

    async def latest_batch_number(self, session_id: str) -> int:
        return max((n for sid, n in self._batches if sid == session_id), default=0)


class InMemoryScreenshotSource(ScreenshotSource, SessionSource):
    """Screenshots, sessions, and prior analyses held in dictionaries."""

    def __init__(self) -> None:
        self._screenshots: dict[str, Screenshot] = {}
        self._sessions: dict[str, WorkSession] = {}
        self._priors: dict[str, PriorAnalysis] = {}

    def add_session(self, session: WorkSession) -> None:
        self._sessions[session.id] = session

    def add_screenshot(self, screenshot: Screenshot) -> None:
        self._screenshots[screenshot.id] = screenshot

    def add_prior_analysis(self, prior: PriorAnalysis) -> None:
        self._priors[prior.screenshot_id] = prior

    def _session_screenshots(self, session_id: str, user_id: str) -> list[Screenshot]:
        return sorted(
            (s for s in self._screenshots.values() if s.session_id == session_id and s.user_id == user_id),
            key=lambda s: (s.created_at, s.id),
        )

    async def fetch(
        self,
        session_id: str,
        user_id: str,
        limit: int,
        exclude_ids: Collection[str] = (),
    ) -> list[Screenshot]:
        excluded = set(exclude_ids)
        remaining = [s for s in self._session_screenshots(session_id, user_id) if s.id not in excluded]
        return remaining[:limit]

    async def count(self, session_id: str, user_id: str) -> int:
        return len(self._session_screenshots(session_id, user_id))

    async def prior_analyses(self, screenshot_ids: Collection[str]) -> dict[str, PriorAnalysis]:
        return {sid: self._priors[sid] for sid in screenshot_ids if sid in self._priors}

    async def get_session(self, session_id: str, user_id: str) -> WorkSession | None:
        session = self._sessions.get(session_id)
        if session is None or session.user_id != user_id:
            return None
        return session


class InMemoryImageStore(ImageStore):
    """Image bytes keyed by image reference."""

    def __init__(self, images: dict[str, bytes] | None = None) -> None:
        self._images = dict(images or {})

    def put(self, image_ref: str, data: bytes) -> None:
        self._images[image_ref] = data

    async def load(self, screenshot: Screenshot) -> bytes:
        try:
            return self._images[screenshot.image_ref]
        except KeyError:
            raise ImageLoadError(f"No image stored for {screenshot.image_ref!r}") from None
