"""
Image size-bounding for vision backends.

Re-encodes uploaded card photos as JPEG so the payload stays within what
the vision models accept.
"""

import io
import logging
from typing import Tuple

from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)

JPEG_MIME_TYPE = "image/jpeg"


class ImagePreprocessor:
    """Bounds the size of business card images before they are sent out."""

    def __init__(
        self,
        quality: int = 90,
        max_bytes: int = 10 * 1024 * 1024,
        resize_width: int = 2000,
        resized_quality: int = 80
    ):
        self.quality = quality
        self.max_bytes = max_bytes
        self.resize_width = resize_width
        self.resized_quality = resized_quality

    @staticmethod
    def _encode(img: Image.Image, quality: int) -> bytes:
        buffer = io.BytesIO()
        img.save(buffer, format="JPEG", quality=quality)
        return buffer.getvalue()

    def compress(self, image_bytes: bytes) -> Tuple[bytes, str]:
        """
        Re-encode an image as JPEG, downscaling it if it is still too big.

        Args:
            image_bytes: Uploaded image bytes

        Returns:
            Tuple of (jpeg bytes, media type)

        Raises:
            ValueError: If the bytes are not a readable image
        """
        try:
            img = Image.open(io.BytesIO(image_bytes))
            img.load()
        except (UnidentifiedImageError, OSError) as e:
            raise ValueError(f"Could not read image: {e}") from e

        if img.mode != "RGB":
            img = img.convert("RGB")

        data = self._encode(img, self.quality)

        if len(data) > self.max_bytes:
            width, height = img.size
            new_height = max(1, round(height * self.resize_width / width))
            img = img.resize((self.resize_width, new_height), Image.LANCZOS)
            data = self._encode(img, self.resized_quality)
            logger.debug(f"Resized from {width}x{height} to {self.resize_width}x{new_height}")

        logger.debug(f"Compressed image to {len(data)} bytes")
        return data, JPEG_MIME_TYPE
