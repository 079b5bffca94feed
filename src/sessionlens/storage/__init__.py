"""Storage adapters for sessionlens.

Public API:
    ReportPersister -- Batch and session report storage contract
    ScreenshotSource / SessionSource / ImageStore -- Read-side contracts
    InMemoryReportStore, InMemoryScreenshotSource, InMemoryImageStore
    SqliteReportStore, SqliteScreenshotSource
    ImageLoader -- Local-file and HTTP image retrieval
"""

from sessionlens.storage.base import (
    ImageLoadError,
    ImageStore,
    ReportPersister,
    ScreenshotSource,
    SessionSource,
)
from sessionlens.storage.images import ImageLoader
from sessionlens.storage.memory import InMemoryImageStore, InMemoryReportStore, InMemoryScreenshotSource
from sessionlens.storage.sqlite import SqliteReportStore, SqliteScreenshotSource

__all__ = [
    "ImageLoadError",
    "ImageLoader",
    "ImageStore",
    "InMemoryImageStore",
    "InMemoryReportStore",
    "InMemoryScreenshotSource",
    "ReportPersister",
    "ScreenshotSource",
    "SessionSource",
    "SqliteReportStore",
    "SqliteScreenshotSource",
]
