"""Image retrieval for screenshot references.

References beginning with ``http://`` or ``https://`` are downloaded;
anything else is a path relative to the configured screenshot root.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import httpx

from sessionlens.domain.models import Screenshot
from sessionlens.storage.base import ImageLoadError, ImageStore

logger = logging.getLogger(__name__)


class ImageLoader(ImageStore):
    """Loads screenshot bytes from local disk or over HTTP."""

    def __init__(self, root: Path | str = "data/screenshots", timeout: float = 10.0) -> None:
        self._root = Path(root).resolve()
        self._timeout = timeout
        self._client: httpx.AsyncClient | None = None

    async def load(self, screenshot: Screenshot) -> bytes:
        ref = screenshot.image_ref
        if not ref:
            raise ImageLoadError(f"Screenshot {screenshot.id} has no image reference")
        if ref.startswith(("http://", "https://")):
            return await self._download(ref)
        return await asyncio.to_thread(self._read_file, ref)

    def _read_file(self, ref: str) -> bytes:
        path = (self._root / ref).resolve()
        if not path.is_relative_to(self._root):
            raise ImageLoadError(f"Image reference escapes the screenshot root: {ref}")
        return path.read_bytes()

    async def _download(self, url: str) -> bytes:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout, follow_redirects=True)
        try:
            resp = await self._client.get(url)
            resp.raise_for_status()
        except httpx.HTTPError as e:
            raise ImageLoadError(f"Download of {url} failed: {e}") from e
        logger.debug("Downloaded %d bytes from %s", len(resp.content), url)
        return resp.content

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
