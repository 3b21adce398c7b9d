"""
codec.py - Raster surfaces and JPEG encode / image decode.

A surface is an RGB uint8 numpy array (height x width x 3).
Decoded images with transparency are flattened onto white.
"""

import base64
import binascii
import io
import logging
from dataclasses import dataclass
from typing import Union

import numpy as np
from PIL import Image, UnidentifiedImageError

from .errors import DecodeError, SurfaceError

logger = logging.getLogger(__name__)

JPEG_MIME = "image/jpeg"
WHITE = 255


@dataclass
class RasterSurface:
    """In-memory RGB pixel buffer."""
    pixels: np.ndarray

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def area(self) -> int:
        return self.width * self.height

    @classmethod
    def blank(cls, width: int, height: int) -> "RasterSurface":
        """Allocate a surface pre-filled with white."""
        if width <= 0 or height <= 0:
            raise SurfaceError(f"Invalid surface size {width}x{height}")
        try:
            pixels = np.full((height, width, 3), WHITE, dtype=np.uint8)
        except MemoryError as e:
            raise SurfaceError(f"Cannot allocate {width}x{height} surface") from e
        return cls(pixels)

    @classmethod
    def from_image(cls, img: Image.Image) -> "RasterSurface":
        """Draw a PIL image onto a fresh white surface."""
        surface = cls.blank(img.width, img.height)
        has_alpha = img.mode in ("RGBA", "LA", "PA") or "transparency" in img.info
        if has_alpha:
            rgba = img.convert("RGBA")
            canvas = Image.new("RGB", rgba.size, (WHITE, WHITE, WHITE))
            canvas.paste(rgba, mask=rgba.getchannel("A"))
            surface.pixels[:, :, :] = np.asarray(canvas)
        else:
            surface.pixels[:, :, :] = np.asarray(img.convert("RGB"))
        return surface

    def to_image(self) -> Image.Image:
        return Image.fromarray(np.ascontiguousarray(self.pixels, dtype=np.uint8))


@dataclass(frozen=True)
class CompressedImage:
    """Encoded image bytes ready to ship to OCR."""
    data: bytes
    width: int
    height: int
    quality: float
    mime_type: str = JPEG_MIME

    @property
    def byte_size(self) -> int:
        return len(self.data)

    @property
    def size(self) -> int:
        """Length of the data URL, i.e. what is actually transmitted."""
        prefix = len(f"data:{self.mime_type};base64,")
        return prefix + 4 * ((len(self.data) + 2) // 3)

    @property
    def data_url(self) -> str:
        payload = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.mime_type};base64,{payload}"


def decode_data_url(data_url: str) -> bytes:
    """Strip a `data:<mime>;base64,` prefix and decode the payload."""
    header, sep, payload = data_url.partition(",")
    if not sep or not header.startswith("data:") or not header.endswith(";base64"):
        raise DecodeError("Not a base64 data URL")
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecodeError(f"Invalid base64 payload: {e}") from e


def jpeg_quality(quality: float) -> int:
    """Map a 0-1 quality to Pillow's 1-100 JPEG scale."""
    if not 0.0 <= quality <= 1.0:
        raise ValueError(f"Quality must be within [0, 1], got {quality}")
    return max(1, min(100, int(round(quality * 100))))


class ImageCodec:
    """
    JPEG encoder / generic image decoder.

    Encoding is deterministic for a given surface and quality. Chroma
    subsampling is fixed so that output size only moves with quality.
    """

    def __init__(self, optimize: bool = True, subsampling: int = 2):
        self.optimize = optimize
        self.subsampling = subsampling  # 4:2:0

    def decode(self, data: Union[bytes, str]) -> RasterSurface:
        """
        Load an image into a raster surface.

        Args:
            data: Encoded image bytes, or a base64 data URL

        Returns:
            RasterSurface with any transparency flattened onto white
        """
        if isinstance(data, str):
            data = decode_data_url(data)
        if not data:
            raise DecodeError("Empty image data")

        try:
            with Image.open(io.BytesIO(data)) as img:
                img.load()
                surface = RasterSurface.from_image(img)
        except (UnidentifiedImageError, OSError, SyntaxError, ValueError) as e:
            raise DecodeError(f"Not a loadable image: {e}") from e

        logger.debug(f"Decoded image: {surface.width}x{surface.height}")
        return surface

    def encode(self, surface: RasterSurface, quality: float) -> CompressedImage:
        """
        Encode a surface as JPEG.

        Args:
            surface: Surface to encode
            quality: 0-1, higher = larger and sharper

        Returns:
            CompressedImage holding the JPEG bytes
        """
        q = jpeg_quality(quality)
        if surface.area == 0:
            raise SurfaceError("Cannot encode a zero-area surface")

        buffer = io.BytesIO()
        try:
            surface.to_image().save(
                buffer,
                format="JPEG",
                quality=q,
                optimize=self.optimize,
                subsampling=self.subsampling,
            )
        except (OSError, ValueError) as e:
            raise SurfaceError(f"JPEG encoding failed: {e}") from e

        return CompressedImage(
            data=buffer.getvalue(),
            width=surface.width,
            height=surface.height,
            quality=quality,
        )
