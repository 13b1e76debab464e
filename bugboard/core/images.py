"""
Issue Image Helpers
===================

Pillow helpers used by the dashboard to preview issue attachments.
"""

import io
import logging
from pathlib import Path
from typing import Tuple, Union

from PIL import Image

from .config import PREVIEW_SIZE, SUPPORTED_IMAGE_EXTENSIONS

logger = logging.getLogger(__name__)


def load_preview(data: bytes, size: Tuple[int, int] = PREVIEW_SIZE) -> Image.Image:
    """
    Decode image bytes into an RGB thumbnail that fits within ``size``.

    Raises:
        ValueError: If ``data`` is empty or is not a decodable image.
    """
    if not data:
        raise ValueError("Image data is empty")

    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            preview = img.convert("RGB")
    except (OSError, Image.DecompressionBombError) as e:
        raise ValueError(f"Cannot decode image: {e}") from e

    preview.thumbnail(size)
    logger.debug(f"Decoded preview {preview.size} from {len(data)} bytes")
    return preview


def is_supported_image(path: Union[str, Path]) -> bool:
    suffix = Path(path).suffix.lower()
    return any(suffix == pattern.lstrip("*") for pattern in SUPPORTED_IMAGE_EXTENSIONS)
