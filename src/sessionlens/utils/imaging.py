"""Image preparation utilities for sessionlens.

Normalises stored screenshot bytes before they are sent to a vision
model: bounded resolution, PNG encoding, base64 transport form.
"""

from __future__ import annotations

import base64
import io
import logging

from PIL import Image

logger = logging.getLogger(__name__)


def resize_for_model(image: Image.Image, max_dimension: int = 1568) -> Image.Image:
    """Downscale an image so its longest side is at most ``max_dimension``.

    Preserves aspect ratio. Images already within bounds are returned as is.
    """
    width, height = image.size
    largest = max(width, height)
    if largest <= max_dimension:
        return image
    scale = max_dimension / largest
    new_size = (max(1, int(width * scale)), max(1, int(height * scale)))
    return image.resize(new_size, Image.LANCZOS)


def prepare_image(data: bytes, max_dimension: int = 1568) -> str:
    """Decode raw image bytes, bound their size, and return base64 PNG.

    Raises:
        ValueError: If the bytes are not a decodable image.
    """
    try:
        with Image.open(io.BytesIO(data)) as image:
            image.load()
            converted = image.convert("RGB") if image.mode not in ("RGB", "RGBA", "L") else image
            resized = resize_for_model(converted, max_dimension)
            buffer = io.BytesIO()
            resized.save(buffer, format="PNG")
    except OSError as e:
        raise ValueError(f"Failed to decode screenshot image: {e}") from e
    logger.debug("Prepared image %dx%d -> %d bytes PNG", *resized.size, buffer.tell())
    return base64.b64encode(buffer.getvalue()).decode("utf-8")
