"""Image re-encoding and thumbnail generation for the upload queue."""

import asyncio
import io
import logging
from dataclasses import dataclass
from typing import Optional

from PIL import Image, ImageOps, UnidentifiedImageError

logger = logging.getLogger(__name__)

_RESAMPLING = getattr(Image, "Resampling", Image)


@dataclass(frozen=True)
class ProcessedImage:
    """Encoded full image and thumbnail with final pixel dimensions."""

    full_image_data: bytes
    thumbnail_data: bytes
    width: int
    height: int


class ImageProcessor:
    """Turns picked photos into upload-ready JPEG payloads.

    Stateless and CPU bound. ``process_image`` runs the work in a worker
    thread so the event loop stays responsive.
    """

    def __init__(
        self,
        thumbnail_max_dimension: int = 400,
        full_image_max_dimension: Optional[int] = None,
    ):
        self.thumbnail_max_dimension = thumbnail_max_dimension
        self.full_image_max_dimension = full_image_max_dimension

    async def process_image(self, raw_image: bytes) -> Optional[ProcessedImage]:
        """Process an image off the event loop.

        Returns:
            ProcessedImage, or None when the bytes cannot be decoded or encoded
        """
        return await asyncio.to_thread(self.process_image_sync, raw_image)

    def process_image_sync(self, raw_image: bytes) -> Optional[ProcessedImage]:
        try:
            with Image.open(io.BytesIO(raw_image)) as opened:
                image = ImageOps.exif_transpose(opened)
                image = image.convert("RGB")

            if self.full_image_max_dimension:
                image = self.resize_image(image, self.full_image_max_dimension)

            full_image_data = self.compress_image(image)
            thumbnail_data = self.compress_image(self.create_thumbnail(image))
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
            logger.warning(
                "Failed to process image",
                extra={"error": str(e), "error_type": type(e).__name__, "size_bytes": len(raw_image)},
            )
            return None

        width, height = image.size
        logger.debug(
            "Image processed",
            extra={
                "width": width,
                "height": height,
                "full_bytes": len(full_image_data),
                "thumbnail_bytes": len(thumbnail_data),
            },
        )
        return ProcessedImage(
            full_image_data=full_image_data,
            thumbnail_data=thumbnail_data,
            width=width,
            height=height,
        )

    def compress_image(self, image: Image.Image, max_dimension: Optional[int] = None) -> bytes:
        """JPEG-encode an image, optionally downscaling it first."""
        if max_dimension:
            image = self.resize_image(image, max_dimension)

        buffer = io.BytesIO()
        image.save(buffer, format="JPEG", quality=self.determine_compression_quality(image.size), optimize=True)
        return buffer.getvalue()

    def create_thumbnail(self, image: Image.Image) -> Image.Image:
        """Thumbnail fitting a square box, aspect ratio preserved, never upscaled."""
        thumbnail = image.copy()
        thumbnail.thumbnail(
            (self.thumbnail_max_dimension, self.thumbnail_max_dimension),
            _RESAMPLING.LANCZOS,
        )
        return thumbnail

    @staticmethod
    def resize_image(image: Image.Image, max_dimension: int) -> Image.Image:
        width, height = image.size
        longest = max(width, height)
        if longest <= max_dimension:
            return image

        scale = max_dimension / longest
        new_size = (max(1, round(width * scale)), max(1, round(height * scale)))
        return image.resize(new_size, _RESAMPLING.LANCZOS)

    @staticmethod
    def determine_compression_quality(size: tuple[int, int]) -> int:
        """Larger images get more compression."""
        megapixels = (size[0] * size[1]) / 1_000_000
        if megapixels > 12:
            return 65
        if megapixels > 6:
            return 75
        return 85
