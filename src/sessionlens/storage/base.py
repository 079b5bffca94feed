"""Abstract interfaces for the pipeline's external collaborators.

The screenshot source, session lookup, image store, and report persister
are owned by other subsystems; the pipeline only depends on these
contracts, so storage backends can be swapped without touching it.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Collection

from sessionlens.domain.models import (
    AnalysisResult,
    AnalysisType,
    Batch,
    BatchReport,
    PriorAnalysis,
    Screenshot,
    SessionReport,
    SessionSummary,
    WorkSession,
)

logger = logging.getLogger(__name__)


class ImageLoadError(OSError):
    """Raised when a screenshot's image bytes cannot be retrieved."""


class ScreenshotSource(ABC):
    """Read access to captured screenshots and their prior analyses."""

    @abstractmethod
    async def fetch(
        self,
        session_id: str,
        user_id: str,
        limit: int,
        exclude_ids: Collection[str] = (),
    ) -> list[Screenshot]:
        """Return up to ``limit`` screenshots in ascending capture order.

        Screenshots whose id is in ``exclude_ids`` are skipped before the
        limit is applied.
        """
        ...

    @abstractmethod
    async def count(self, session_id: str, user_id: str) -> int:
        """Total number of screenshots captured for the session."""
        ...

    @abstractmethod
    async def prior_analyses(self, screenshot_ids: Collection[str]) -> dict[str, PriorAnalysis]:
        """Per-screenshot analyses that already exist, keyed by screenshot id."""
        ...


class SessionSource(ABC):
    """Read access to work sessions."""

    @abstractmethod
    async def get_session(self, session_id: str, user_id: str) -> WorkSession | None:
        ...


class ImageStore(ABC):
    """Resolves a screenshot's opaque image reference to bytes."""

    @abstractmethod
    async def load(self, screenshot: Screenshot) -> bytes:
        """Return the raw image bytes.

        Raises:
            ImageLoadError: If the image cannot be retrieved.
        """
        ...

    async def close(self) -> None:
        """Release any held resources."""


class ReportPersister(ABC):
    """Durable storage of batch reports and session reports.

    Implementations raise PersistenceFailure when storage is unreachable.
    """

    @abstractmethod
    async def create_batch_report(
        self,
        batch: Batch,
        analysis: AnalysisResult,
        analysis_type: AnalysisType = AnalysisType.STANDARD,
    ) -> BatchReport:
        """Store a report for the batch, idempotent on (session_id, batch_number).

        A repeat call with the same key returns the stored row unchanged.
        """
        ...

    @abstractmethod
    async def upsert_session_report(
        self,
        session_id: str,
        user_id: str,
        summary: SessionSummary,
    ) -> SessionReport:
        """Insert or replace the session report, keyed by (session_id, user_id)."""
        ...

    @abstractmethod
    async def get_session_report(self, session_id: str, user_id: str) -> SessionReport | None:
        ...

    @abstractmethod
    async def list_batch_reports(
        self,
        session_id: str,
        user_id: str,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[BatchReport]:
        """Batch reports for the session, ordered by batch number."""
        ...

    @abstractmethod
    async def covered_screenshot_ids(self, session_id: str) -> set[str]:
        """Ids of screenshots already included in some batch of the session."""
        ...

    @abstractmethod
    async def latest_batch_number(self, session_id: str) -> int:
        """Highest stored batch number for the session, 0 when none."""
        ...
