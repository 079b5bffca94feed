"""SQLite-backed storage for batch reports, session reports, and screenshots.

Database Schema:
    batch_reports table:
        - id (TEXT, PK)
        - session_id, user_id (TEXT)
        - batch_number (INTEGER): UNIQUE together with session_id
        - screenshot_ids (TEXT): JSON array
        - analysis (TEXT): JSON of the tagged AnalysisResult
        - focus_score (REAL), analysis_source (TEXT): denormalised for queries

    session_reports table:
        - (session_id, user_id) primary key
        - summary (TEXT): JSON of the SessionSummary

    work_sessions / screenshots / screenshot_analyses tables:
        Read-side copies of the capture subsystem's data.

Each call opens a short-lived connection in a worker thread so the event
loop never blocks on disk I/O. sqlite3 errors surface as PersistenceFailure.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sqlite3
import uuid
from collections.abc import Callable, Collection
from contextlib import closing
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, TypeVar

from pydantic import TypeAdapter, ValidationError

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
from sessionlens.errors import PersistenceFailure
from sessionlens.storage.base import ReportPersister, ScreenshotSource, SessionSource

logger = logging.getLogger(__name__)

T = TypeVar("T")

_ANALYSIS = TypeAdapter(AnalysisResult)

REPORT_SCHEMA = """
CREATE TABLE IF NOT EXISTS batch_reports (
    id TEXT PRIMARY KEY,
    session_id TEXT NOT NULL,
    user_id TEXT NOT NULL,
    batch_number INTEGER NOT NULL,
    screenshot_ids TEXT NOT NULL,
    screenshot_count INTEGER NOT NULL,
    start_time TEXT,
    end_time TEXT,
    analysis_type TEXT NOT NULL,
    analysis_source TEXT,
    analysis TEXT,
    focus_score REAL,
    processing_status TEXT NOT NULL,
    created_at TEXT NOT NULL,
    UNIQUE (session_id, batch_number)
);
CREATE TABLE IF NOT EXISTS session_reports (
    id TEXT NOT NULL,
    session_id TEXT NOT NULL,
    user_id TEXT NOT NULL,
    summary TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    PRIMARY KEY (session_id, user_id)
);
"""

CAPTURE_SCHEMA = """
CREATE TABLE IF NOT EXISTS work_sessions (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    session_name TEXT,
    goal_description TEXT,
    started_at TEXT,
    ended_at TEXT,
    duration_seconds INTEGER NOT NULL DEFAULT 0
);
CREATE TABLE IF NOT EXISTS screenshots (
    id TEXT PRIMARY KEY,
    session_id TEXT NOT NULL,
    user_id TEXT NOT NULL,
    created_at TEXT NOT NULL,
    capture_trigger TEXT,
    active_app TEXT,
    image_ref TEXT NOT NULL DEFAULT ''
);
CREATE INDEX IF NOT EXISTS idx_screenshots_session ON screenshots (session_id, created_at);
CREATE TABLE IF NOT EXISTS screenshot_analyses (
    screenshot_id TEXT PRIMARY KEY,
    description TEXT NOT NULL,
    activity TEXT,
    productivity_score REAL
);
"""


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _parse_dt(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


class _SqliteBase:
    """Connection handling shared by the store and the screenshot source."""

    schema = ""

    def __init__(self, db_path: Path | str, timeout: float = 5.0) -> None:
        self.db_path = Path(db_path)
        self._timeout = timeout
        self._initialized = False

    def _connect(self) -> sqlite3.Connection:
        if not self._initialized:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self.db_path, timeout=self._timeout)
        conn.row_factory = sqlite3.Row
        if not self._initialized:
            conn.executescript(self.schema)
            self._initialized = True
        return conn

    async def _run(self, operation: str, fn: Callable[..., T], *args: Any) -> T:
        try:
            return await asyncio.to_thread(fn, *args)
        except (sqlite3.Error, OSError) as e:
            raise PersistenceFailure(f"SQLite {operation} failed: {e}", operation=operation) from e


class SqliteReportStore(_SqliteBase, ReportPersister):
    """ReportPersister on SQLite with conditional upserts for idempotency."""

    schema = REPORT_SCHEMA

    async def create_batch_report(
        self,
        batch: Batch,
        analysis: AnalysisResult,
        analysis_type: AnalysisType = AnalysisType.STANDARD,
    ) -> BatchReport:
        return await self._run("create_batch_report", self._create_batch_report, batch, analysis, analysis_type)

    def _create_batch_report(
        self, batch: Batch, analysis: AnalysisResult, analysis_type: AnalysisType
    ) -> BatchReport:
        with closing(self._connect()) as conn, conn:
            cursor = conn.execute(
                """
                INSERT INTO batch_reports (
                    id, session_id, user_id, batch_number, screenshot_ids, screenshot_count,
                    start_time, end_time, analysis_type, analysis_source, analysis,
                    focus_score, processing_status, created_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT (session_id, batch_number) DO NOTHING
                """,
                (
                    uuid.uuid4().hex,
                    batch.session_id,
                    batch.user_id,
                    batch.batch_number,
                    json.dumps(batch.screenshot_ids),
                    len(batch.screenshots),
                    _iso(batch.start_time),
                    _iso(batch.end_time),
                    analysis_type.value,
                    analysis.source,
                    analysis.model_dump_json(),
                    analysis.productivity_metrics.focus_score,
                    ProcessingStatus.COMPLETED.value,
                    datetime.now(timezone.utc).isoformat(),
                ),
            )
            if cursor.rowcount == 0:
                logger.info("Batch %d of session %s already stored", batch.batch_number, batch.session_id)
            row = conn.execute(
                "SELECT * FROM batch_reports WHERE session_id = ? AND batch_number = ?",
                (batch.session_id, batch.batch_number),
            ).fetchone()
        return self._row_to_report(row)

    @staticmethod
    def _row_to_report(row: sqlite3.Row) -> BatchReport:
        analysis = None
        if row["analysis"]:
            try:
                analysis = _ANALYSIS.validate_json(row["analysis"])
            except ValidationError as e:
                logger.warning("Undecodable analysis payload on batch report %s: %s", row["id"], e)
        return BatchReport(
            id=row["id"],
            session_id=row["session_id"],
            user_id=row["user_id"],
            batch_number=row["batch_number"],
            screenshot_ids=json.loads(row["screenshot_ids"]),
            screenshot_count=row["screenshot_count"],
            start_time=_parse_dt(row["start_time"]),
            end_time=_parse_dt(row["end_time"]),
            analysis_type=AnalysisType(row["analysis_type"]),
            analysis=analysis,
            processing_status=ProcessingStatus(row["processing_status"]),
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    async def upsert_session_report(
        self,
        session_id: str,
        user_id: str,
        summary: SessionSummary,
    ) -> SessionReport:
        return await self._run("upsert_session_report", self._upsert_session_report, session_id, user_id, summary)

    def _upsert_session_report(self, session_id: str, user_id: str, summary: SessionSummary) -> SessionReport:
        with closing(self._connect()) as conn, conn:
            conn.execute(
                """
                INSERT INTO session_reports (id, session_id, user_id, summary, updated_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT (session_id, user_id) DO UPDATE SET
                    summary = excluded.summary,
                    updated_at = excluded.updated_at
                WHERE session_reports.summary <> excluded.summary
                """,
                (
                    uuid.uuid4().hex,
                    session_id,
                    user_id,
                    summary.model_dump_json(),
                    datetime.now(timezone.utc).isoformat(),
                ),
            )
            row = self._select_session_report(conn, session_id, user_id)
        return self._row_to_session_report(row)

    async def get_session_report(self, session_id: str, user_id: str) -> SessionReport | None:
        return await self._run("get_session_report", self._get_session_report, session_id, user_id)

    def _get_session_report(self, session_id: str, user_id: str) -> SessionReport | None:
        with closing(self._connect()) as conn:
            row = self._select_session_report(conn, session_id, user_id)
        return self._row_to_session_report(row) if row else None

    @staticmethod
    def _select_session_report(conn: sqlite3.Connection, session_id: str, user_id: str) -> sqlite3.Row | None:
        return conn.execute(
            "SELECT * FROM session_reports WHERE session_id = ? AND user_id = ?",
            (session_id, user_id),
        ).fetchone()

    @staticmethod
    def _row_to_session_report(row: sqlite3.Row) -> SessionReport:
        return SessionReport(
            id=row["id"],
            session_id=row["session_id"],
            user_id=row["user_id"],
            summary=SessionSummary.model_validate_json(row["summary"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )

    async def list_batch_reports(
        self,
        session_id: str,
        user_id: str,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[BatchReport]:
        return await self._run("list_batch_reports", self._list_batch_reports, session_id, user_id, limit, offset)

    def _list_batch_reports(
        self, session_id: str, user_id: str, limit: int | None, offset: int
    ) -> list[BatchReport]:
        with closing(self._connect()) as conn:
            rows = conn.execute(
                """
                SELECT * FROM batch_reports
                WHERE session_id = ? AND user_id = ?
                ORDER BY batch_number ASC
                LIMIT ? OFFSET ?
                """,
                (session_id, user_id, -1 if limit is None else limit, offset),
            ).fetchall()
        return [self._row_to_report(row) for row in rows]

    async def covered_screenshot_ids(self, session_id: str) -> set[str]:
        return await self._run("covered_screenshot_ids", self._covered_screenshot_ids, session_id)

    def _covered_screenshot_ids(self, session_id: str) -> set[str]:
        with closing(self._connect()) as conn:
            rows = conn.execute(
                "SELECT screenshot_ids FROM batch_reports WHERE session_id = ?",
                (session_id,),
            ).fetchall()
        covered: set[str] = set()
        for row in rows:
            covered.update(json.loads(row["screenshot_ids"]))
        return covered

    async def latest_batch_number(self, session_id: str) -> int:
        return await self._run("latest_batch_number", self._latest_batch_number, session_id)

    def _latest_batch_number(self, session_id: str) -> int:
        with closing(self._connect()) as conn:
            row = conn.execute(
                "SELECT MAX(batch_number) FROM batch_reports WHERE session_id = ?",
                (session_id,),
            ).fetchone()
        return int(row[0] or 0)


class SqliteScreenshotSource(_SqliteBase, ScreenshotSource, SessionSource):
    """Screenshot and session reads from the capture tables."""

    schema = CAPTURE_SCHEMA

    async def fetch(
        self,
        session_id: str,
        user_id: str,
        limit: int,
        exclude_ids: Collection[str] = (),
    ) -> list[Screenshot]:
        return await self._run("fetch_screenshots", self._fetch, session_id, user_id, limit, set(exclude_ids))

    def _fetch(self, session_id: str, user_id: str, limit: int, excluded: set[str]) -> list[Screenshot]:
        records: list[Screenshot] = []
        with closing(self._connect()) as conn:
            cursor = conn.execute(
                """
                SELECT id, session_id, user_id, created_at, capture_trigger, active_app, image_ref
                FROM screenshots
                WHERE session_id = ? AND user_id = ?
                ORDER BY created_at ASC, id ASC
                """,
                (session_id, user_id),
            )
            for row in cursor:
                if row["id"] in excluded:
                    continue
                records.append(
                    Screenshot(
                        id=row["id"],
                        session_id=row["session_id"],
                        user_id=row["user_id"],
                        created_at=datetime.fromisoformat(row["created_at"]),
                        capture_trigger=row["capture_trigger"],
                        active_app=row["active_app"] or None,
                        image_ref=row["image_ref"] or "",
                    )
                )
                if len(records) >= limit:
                    break
        return records

    async def count(self, session_id: str, user_id: str) -> int:
        return await self._run("count_screenshots", self._count, session_id, user_id)

    def _count(self, session_id: str, user_id: str) -> int:
        with closing(self._connect()) as conn:
            row = conn.execute(
                "SELECT COUNT(*) FROM screenshots WHERE session_id = ? AND user_id = ?",
                (session_id, user_id),
            ).fetchone()
        return int(row[0])

    async def prior_analyses(self, screenshot_ids: Collection[str]) -> dict[str, PriorAnalysis]:
        return await self._run("prior_analyses", self._prior_analyses, list(screenshot_ids))

    def _prior_analyses(self, screenshot_ids: list[str]) -> dict[str, PriorAnalysis]:
        if not screenshot_ids:
            return {}
        placeholders = ",".join("?" for _ in screenshot_ids)
        with closing(self._connect()) as conn:
            rows = conn.execute(
                f"""
                SELECT screenshot_id, description, activity, productivity_score
                FROM screenshot_analyses
                WHERE screenshot_id IN ({placeholders})
                """,
                screenshot_ids,
            ).fetchall()
        return {
            row["screenshot_id"]: PriorAnalysis(
                screenshot_id=row["screenshot_id"],
                description=row["description"],
                activity=row["activity"],
                productivity_score=row["productivity_score"],
            )
            for row in rows
        }

    async def get_session(self, session_id: str, user_id: str) -> WorkSession | None:
        return await self._run("get_session", self._get_session, session_id, user_id)

    def _get_session(self, session_id: str, user_id: str) -> WorkSession | None:
        with closing(self._connect()) as conn:
            row = conn.execute(
                "SELECT * FROM work_sessions WHERE id = ? AND user_id = ?",
                (session_id, user_id),
            ).fetchone()
        if row is None:
            return None
        return WorkSession(
            id=row["id"],
            user_id=row["user_id"],
            session_name=row["session_name"],
            goal_description=row["goal_description"],
            started_at=_parse_dt(row["started_at"]),
            ended_at=_parse_dt(row["ended_at"]),
            duration_seconds=row["duration_seconds"] or 0,
        )

    # -- write helpers for seeding and imports --------------------------------

    def add_session(self, session: WorkSession) -> None:
        with closing(self._connect()) as conn, conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO work_sessions
                    (id, user_id, session_name, goal_description, started_at, ended_at, duration_seconds)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    session.id,
                    session.user_id,
                    session.session_name,
                    session.goal_description,
                    _iso(session.started_at),
                    _iso(session.ended_at),
                    session.duration_seconds,
                ),
            )

    def add_screenshots(self, screenshots: list[Screenshot]) -> None:
        with closing(self._connect()) as conn, conn:
            conn.executemany(
                """
                INSERT OR REPLACE INTO screenshots
                    (id, session_id, user_id, created_at, capture_trigger, active_app, image_ref)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        s.id,
                        s.session_id,
                        s.user_id,
                        s.created_at.isoformat(),
                        s.capture_trigger.value,
                        s.active_app,
                        s.image_ref,
                    )
                    for s in screenshots
                ],
            )

    def add_prior_analysis(self, prior: PriorAnalysis) -> None:
        with closing(self._connect()) as conn, conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO screenshot_analyses
                    (screenshot_id, description, activity, productivity_score)
                VALUES (?, ?, ?, ?)
                """,
                (prior.screenshot_id, prior.description, prior.activity, prior.productivity_score),
            )
