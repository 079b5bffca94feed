"""The batch pipeline: the public operations of sessionlens.

One ``trigger_batch_processing`` call runs
BatchSelector -> AnalysisStrategy -> ReportPersister and always returns a
result unless there is nothing to process. ``generate_session_summary``
folds every stored batch report of a session into a SessionSummary.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import datetime, timezone

from sessionlens.analysis.fallback import FallbackAnalyzer
from sessionlens.analysis.heuristic import heuristic_analysis
from sessionlens.domain.models import (
    AnalysisResult,
    AnalysisType,
    Batch,
    BatchAnalysisOverview,
    BatchProcessingOptions,
    BatchProcessingResult,
    BatchReport,
    BatchStatus,
    ProcessingStatus,
    SessionDuration,
    SessionSummaryView,
    TimeRange,
    WorkSession,
)
from sessionlens.errors import NoScreenshotsAvailable, PersistenceFailure, SessionNotFound
from sessionlens.pipeline.aggregator import aggregate_batch_reports, format_duration
from sessionlens.pipeline.selector import BatchSelector
from sessionlens.pipeline.state import PipelineRun, PipelineStage
from sessionlens.storage.base import ImageStore, ReportPersister, ScreenshotSource, SessionSource

logger = logging.getLogger(__name__)

SUMMARY_FALLBACK_SCREENSHOTS = 100


class BatchPipeline:
    """Orchestrates batch processing and session summaries.

    Args:
        screenshots: Read access to captured screenshots.
        sessions: Read access to work sessions.
        persister: Durable report storage.
        analyzer: Strategy selection with heuristic fallback.
        images: Image store to release on close, if the pipeline owns one.
        default_batch_size: Batch size when the caller does not give one.
        max_batch_size: Upper bound on any batch.
    """

    def __init__(
        self,
        screenshots: ScreenshotSource,
        sessions: SessionSource,
        persister: ReportPersister,
        analyzer: FallbackAnalyzer,
        images: ImageStore | None = None,
        default_batch_size: int = 30,
        max_batch_size: int = 100,
    ) -> None:
        self._screenshots = screenshots
        self._sessions = sessions
        self._persister = persister
        self._analyzer = analyzer
        self._images = images
        self._default_batch_size = default_batch_size
        self._selector = BatchSelector(screenshots, persister, max_batch_size=max_batch_size)

    @property
    def inference_configured(self) -> bool:
        return self._analyzer.inference_configured

    async def close(self) -> None:
        if self._images is not None:
            await self._images.close()

    # -- Batch processing ------------------------------------------------

    async def trigger_batch_processing(
        self,
        user_id: str,
        session_id: str,
        options: BatchProcessingOptions | None = None,
    ) -> BatchProcessingResult:
        """Select, analyse, and persist the next batch of the session.

        Raises:
            NoScreenshotsAvailable: If no unbatched screenshots remain.
        """
        options = options or BatchProcessingOptions()
        batch_size = options.batch_size or self._default_batch_size
        run = PipelineRun(session_id=session_id)

        run.advance(PipelineStage.SELECTING)
        batch = await self._selector.select(session_id, user_id, batch_size)

        run.advance(PipelineStage.ANALYZING)
        outcome = await self._analyzer.analyze(batch, options.analysis_type)
        if outcome.fell_back:
            run.advance(PipelineStage.FALLBACK_ANALYZING, outcome.reason)
        run.advance(PipelineStage.PARSING)

        run.advance(PipelineStage.PERSISTING)
        try:
            # The write completes even if the caller goes away mid-flight
            report = await asyncio.shield(
                self._persister.create_batch_report(batch, outcome.result, options.analysis_type)
            )
        except PersistenceFailure as e:
            logger.warning("Could not persist batch %d for session %s, returning degraded result: %s",
                           batch.batch_number, session_id, e)
            run.advance(PipelineStage.DEGRADED_PERSISTING, str(e))
            report = _degraded_report(batch, outcome.result, options.analysis_type)
            run.advance(PipelineStage.DONE_WITH_WARNING)
        else:
            run.advance(PipelineStage.DONE)

        logger.info(
            "Session %s batch %d: %d screenshots, source=%s, status=%s",
            session_id, report.batch_number, report.screenshot_count,
            report.analysis.source if report.analysis else "unknown",
            report.processing_status.value,
        )
        return _to_result(report, outcome.result.source)

    # -- Session summary -------------------------------------------------

    async def generate_session_summary(self, user_id: str, session_id: str) -> SessionSummaryView:
        """Aggregate every batch report of the session into one summary.

        Raises:
            SessionNotFound: If the session does not exist for the user.
            NoScreenshotsAvailable: If reports are unreadable and the
                session has no screenshots to fall back on.
        """
        session = await self._load_session(session_id, user_id)

        try:
            reports = await self._persister.list_batch_reports(session_id, user_id)
            from_storage = True
        except PersistenceFailure as e:
            logger.warning("Batch reports unavailable for session %s, summarising screenshots: %s",
                           session_id, e)
            reports = await self._screenshot_fallback(session_id, user_id)
            from_storage = False

        summary = aggregate_batch_reports(session_id, reports)

        if from_storage:
            try:
                await asyncio.shield(self._persister.upsert_session_report(session_id, user_id, summary))
            except PersistenceFailure as e:
                logger.warning("Could not store session report for %s: %s", session_id, e)

        logger.info("Generated summary for session %s over %d batches", session_id, summary.total_batches)
        return SessionSummaryView(
            session_id=session_id,
            session_name=session.session_name,
            goal_description=session.goal_description,
            duration=SessionDuration(
                seconds=session.duration_seconds,
                formatted=format_duration(session.duration_seconds),
            ),
            time_range=TimeRange(started_at=session.started_at, ended_at=session.ended_at),
            overview=summary.overview,
            batch_analysis=BatchAnalysisOverview(
                total_batches=summary.total_batches,
                total_screenshots=summary.total_screenshots,
                average_productivity=summary.average_productivity,
                focus_percentage=summary.focus_percentage,
            ),
            insights=summary.insights,
            recommendations=summary.recommendations,
            generated_at=max((r.created_at for r in reports), default=None),
        )

    async def _load_session(self, session_id: str, user_id: str) -> WorkSession:
        try:
            session = await self._sessions.get_session(session_id, user_id)
        except PersistenceFailure as e:
            logger.warning("Session lookup failed for %s, summarising without metadata: %s",
                           session_id, e)
            return WorkSession(id=session_id, user_id=user_id)
        if session is None:
            raise SessionNotFound(f"Session {session_id} not found", session_id=session_id)
        return session

    async def _screenshot_fallback(self, session_id: str, user_id: str) -> list[BatchReport]:
        screenshots = await self._screenshots.fetch(session_id, user_id, SUMMARY_FALLBACK_SCREENSHOTS)
        if not screenshots:
            raise NoScreenshotsAvailable(
                "No batch reports or screenshots found for session", session_id=session_id
            )
        batch = Batch(session_id=session_id, user_id=user_id, batch_number=1, screenshots=screenshots)
        report = _degraded_report(batch, heuristic_analysis(screenshots), AnalysisType.HEURISTIC)
        # Stable id and timestamp so repeated summaries match
        return [report.model_copy(update={"id": f"screenshots-{session_id}", "created_at": batch.end_time})]

    # -- Status and listing ----------------------------------------------

    async def get_batch_status(self, user_id: str, session_id: str) -> BatchStatus:
        """Progress of batch processing for the session."""
        reports = await self._persister.list_batch_reports(session_id, user_id)
        total = await self._screenshots.count(session_id, user_id)
        processed = len({sid for r in reports for sid in r.screenshot_ids})
        latest = reports[-1] if reports else None
        return BatchStatus(
            session_id=session_id,
            total_batches=len(reports),
            processed_screenshots=processed,
            pending_screenshots=max(0, total - processed),
            latest_batch_number=latest.batch_number if latest else 0,
            last_processed_at=latest.created_at if latest else None,
        )

    async def get_batch_reports(
        self,
        user_id: str,
        session_id: str,
        limit: int = 10,
        offset: int = 0,
    ) -> list[BatchReport]:
        return await self._persister.list_batch_reports(session_id, user_id, limit=limit, offset=offset)


def _degraded_report(batch: Batch, analysis: AnalysisResult, analysis_type: AnalysisType) -> BatchReport:
    return BatchReport(
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
        processing_status=ProcessingStatus.DEGRADED,
        created_at=datetime.now(timezone.utc),
    )


def _to_result(report: BatchReport, fresh_source: str) -> BatchProcessingResult:
    # A stored row from a concurrent writer carries its own analysis
    analysis = report.analysis
    return BatchProcessingResult(
        batch_report_id=report.id,
        batch_number=report.batch_number,
        screenshot_count=report.screenshot_count,
        analysis_type=report.analysis_type,
        analysis_source=analysis.source if analysis else fresh_source,
        processing_status=report.processing_status,
        summary=analysis.summary if analysis else "",
        created_at=report.created_at,
    )
