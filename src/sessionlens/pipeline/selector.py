"""Selection of the next batch of screenshots for a session."""

from __future__ import annotations

import logging

from sessionlens.domain.models import Batch
from sessionlens.errors import NoScreenshotsAvailable, PersistenceFailure
from sessionlens.storage.base import ReportPersister, ScreenshotSource

logger = logging.getLogger(__name__)


class BatchSelector:
    """Picks up to N not-yet-batched screenshots, oldest first.

    The batch number is one past the highest stored batch number. Two
    concurrent selections for the same session can therefore produce
    the same batch number; the persister's idempotent create resolves
    that race.
    """

    def __init__(
        self,
        source: ScreenshotSource,
        persister: ReportPersister,
        max_batch_size: int = 100,
    ) -> None:
        self._source = source
        self._persister = persister
        self._max_batch_size = max_batch_size

    async def select(self, session_id: str, user_id: str, batch_size: int) -> Batch:
        """Return the next batch for the session.

        Raises:
            NoScreenshotsAvailable: If every screenshot is already batched,
                or the session has none.
        """
        limit = max(1, min(batch_size, self._max_batch_size))
        try:
            covered = await self._persister.covered_screenshot_ids(session_id)
            latest = await self._persister.latest_batch_number(session_id)
        except PersistenceFailure as e:
            logger.warning("Batch history unavailable for session %s, selecting from the start: %s",
                           session_id, e)
            covered, latest = set(), 0

        screenshots = await self._source.fetch(session_id, user_id, limit, exclude_ids=covered)
        if not screenshots:
            raise NoScreenshotsAvailable(
                "No screenshots found for batch processing",
                session_id=session_id,
            )

        ordered = sorted(screenshots, key=lambda s: (s.created_at, s.id))
        logger.info("Selected %d screenshots for session %s batch %d",
                    len(ordered), session_id, latest + 1)
        return Batch(
            session_id=session_id,
            user_id=user_id,
            batch_number=latest + 1,
            screenshots=ordered,
        )
