"""
compression.py - Size-constrained page compression.

Pages are resized into [MIN_DIMENSION, MAX_DIMENSION] and JPEG encoded,
stepping quality down from INITIAL_QUALITY until the encoded data URL
fits the byte budget or MIN_QUALITY is reached.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Tuple, Union

import cv2

from .codec import CompressedImage, ImageCodec, RasterSurface
from .errors import SurfaceError

logger = logging.getLogger(__name__)

# Target size per page
MAX_IMAGE_BYTES = 500 * 1024  # 500 KB

# Pixel bounds applied before encoding
MAX_DIMENSION = 1024
MIN_DIMENSION = 100

# Quality search
INITIAL_QUALITY = 0.95
MIN_QUALITY = 0.5
QUALITY_STEP = 0.05


@dataclass(frozen=True)
class CompressionLimits:
    """Budget and dimension bounds for one compressed page."""
    max_bytes: int = MAX_IMAGE_BYTES
    max_dimension: int = MAX_DIMENSION
    min_dimension: int = MIN_DIMENSION
    initial_quality: float = INITIAL_QUALITY
    min_quality: float = MIN_QUALITY
    quality_step: float = QUALITY_STEP

    def __post_init__(self):
        if self.max_bytes <= 0:
            raise ValueError(f"max_bytes must be positive, got {self.max_bytes}")
        if not 0 < self.min_dimension < self.max_dimension:
            raise ValueError(
                f"Need 0 < min_dimension < max_dimension, "
                f"got {self.min_dimension} / {self.max_dimension}"
            )
        if not 0.0 <= self.min_quality <= self.initial_quality <= 1.0:
            raise ValueError(
                f"Need 0 <= min_quality <= initial_quality <= 1, "
                f"got {self.min_quality} / {self.initial_quality}"
            )
        if self.quality_step <= 0:
            raise ValueError(f"quality_step must be positive, got {self.quality_step}")


def normalize_dimensions(
    width: int,
    height: int,
    max_dimension: int = MAX_DIMENSION,
    min_dimension: int = MIN_DIMENSION
) -> Tuple[int, int]:
    """
    Fit dimensions into the pixel bounds, preserving aspect ratio.

    Oversized: larger side becomes max_dimension.
    Otherwise undersized: smaller side becomes min_dimension.
    The other side is floored, never below 1.
    """
    if width <= 0 or height <= 0:
        raise SurfaceError(f"Surface has zero area: {width}x{height}")

    if width > max_dimension or height > max_dimension:
        if width >= height:
            return max_dimension, max(1, height * max_dimension // width)
        return max(1, width * max_dimension // height), max_dimension

    if width < min_dimension or height < min_dimension:
        if width <= height:
            return min_dimension, max(1, height * min_dimension // width)
        return max(1, width * min_dimension // height), min_dimension

    return width, height


class SizeConstrainedCompressor:
    """Compress surfaces under a byte budget via quality search."""

    def __init__(
        self,
        limits: Optional[CompressionLimits] = None,
        codec: Optional[ImageCodec] = None
    ):
        self.limits = limits or CompressionLimits()
        self.codec = codec or ImageCodec()

    def resize(self, surface: RasterSurface) -> RasterSurface:
        """Return a surface within the pixel bounds (the input if already inside)."""
        if surface.area == 0:
            raise SurfaceError(
                f"Surface has zero area: {surface.width}x{surface.height}"
            )

        width, height = normalize_dimensions(
            surface.width,
            surface.height,
            self.limits.max_dimension,
            self.limits.min_dimension
        )
        if (width, height) == (surface.width, surface.height):
            return surface

        # INTER_AREA for shrinking, cubic for enlarging
        if width < surface.width:
            interpolation = cv2.INTER_AREA
        else:
            interpolation = cv2.INTER_CUBIC

        target = RasterSurface.blank(width, height)
        try:
            target.pixels[:, :, :] = cv2.resize(
                surface.pixels, (width, height), interpolation=interpolation
            )
        except (cv2.error, MemoryError) as e:
            raise SurfaceError(f"Resize to {width}x{height} failed: {e}") from e

        logger.debug(
            f"Resized {surface.width}x{surface.height} -> {width}x{height}"
        )
        return target

    def compress(
        self,
        surface: RasterSurface,
        max_bytes: Optional[int] = None
    ) -> CompressedImage:
        """
        Compress a surface with adaptive quality to hit the byte budget.

        Args:
            surface: Rendered page or decoded image
            max_bytes: Budget override (default: limits.max_bytes)

        Returns:
            CompressedImage. If the budget cannot be met at min_quality,
            the last (over-budget) encoding is returned.
        """
        budget = self.limits.max_bytes if max_bytes is None else max_bytes
        working = self.resize(surface)

        quality = self.limits.initial_quality
        result = self.codec.encode(working, quality)
        logger.debug(f"q={quality:.2f}: {result.size:,} bytes")

        while result.size > budget and quality > self.limits.min_quality:
            quality = round(
                max(quality - self.limits.quality_step, self.limits.min_quality), 4
            )
            result = self.codec.encode(working, quality)
            logger.debug(f"q={quality:.2f}: {result.size:,} bytes")

        if result.size > budget:
            logger.warning(
                f"Budget not met at q={quality:.2f}: "
                f"{result.size:,} > {budget:,} bytes"
            )

        return result

    def compress_bytes(
        self,
        data: Union[bytes, str],
        max_bytes: Optional[int] = None
    ) -> CompressedImage:
        """Decode an image (bytes or data URL) and compress it."""
        return self.compress(self.codec.decode(data), max_bytes=max_bytes)
