"""
rasterize.py - PDF page rendering using PyMuPDF.

Pages are rendered one at a time at RENDER_SCALE, compressed, and
collected in page order. A page that fails is logged and skipped.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Iterator, List, Optional

import numpy as np
try:
    import fitz  # pip install pymupdf
except ImportError:
    import pymupdf as fitz  # apt install python3-pymupdf

from .codec import CompressedImage, RasterSurface
from .compression import SizeConstrainedCompressor
from .errors import (
    DecodeError,
    DocumentOpenError,
    EmptyResultError,
    FlashcardPipelineError,
    PageRenderError,
    SurfaceError,
)

logger = logging.getLogger(__name__)

# Oversample for OCR legibility
RENDER_SCALE = 2.0

ProgressCallback = Callable[[int, int], None]


class Document:
    """
    An open PDF. Close it exactly once, preferably with `with`.
    """

    def __init__(self, doc: "fitz.Document"):
        self._doc = doc
        self.closed = False

    @property
    def page_count(self) -> int:
        return self._doc.page_count

    def load_page(self, page_num: int) -> "fitz.Page":
        """Load a page by 1-based number."""
        if self.closed:
            raise PageRenderError("Document is closed", page_num=page_num)
        return self._doc.load_page(page_num - 1)

    def close(self):
        if not self.closed:
            self._doc.close()
            self.closed = True

    def __enter__(self) -> "Document":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


@dataclass(frozen=True)
class PageImage:
    """Compressed page tagged with its original 1-based page number."""
    page_num: int
    image: CompressedImage

    @property
    def data_url(self) -> str:
        return self.image.data_url


@dataclass
class PageResult:
    """Outcome of processing one page."""
    page_num: int
    image: Optional[CompressedImage] = None
    error: Optional[FlashcardPipelineError] = None
    process_time: float = 0.0

    @property
    def ok(self) -> bool:
        return self.image is not None


def page_numbers(
    page_count: int,
    first_page: Optional[int] = None,
    last_page: Optional[int] = None
) -> List[int]:
    """1-based page numbers to render, clipped to the document."""
    first = 1 if first_page is None else first_page
    last = page_count if last_page is None else min(last_page, page_count)
    if first < 1:
        raise ValueError(f"first_page must be >= 1, got {first}")
    return list(range(first, last + 1))


class PageRasterizer:
    """Turns an open Document into a sequence of compressed page images."""

    def __init__(
        self,
        compressor: Optional[SizeConstrainedCompressor] = None,
        scale: float = RENDER_SCALE
    ):
        if scale <= 0:
            raise ValueError(f"scale must be positive, got {scale}")
        self.compressor = compressor or SizeConstrainedCompressor()
        self.scale = scale

    def open(self, data: bytes) -> Document:
        """Open PDF bytes. Raises DocumentOpenError if unreadable."""
        try:
            doc = fitz.open(stream=data, filetype="pdf")
        except Exception as e:
            raise DocumentOpenError(f"Cannot open PDF: {e}") from e

        if not doc.is_pdf:
            doc.close()
            raise DocumentOpenError("Source is not a PDF")
        if doc.needs_pass:
            doc.close()
            raise DocumentOpenError("PDF is password protected")

        logger.debug(f"Opened PDF: {doc.page_count} pages, {len(data):,} bytes")
        return Document(doc)

    def render_page(
        self,
        doc: Document,
        page_num: int,
        scale: Optional[float] = None
    ) -> RasterSurface:
        """
        Render a single page onto a white surface.

        Args:
            doc: Open document
            page_num: 1-based page number
            scale: Linear zoom (default: RENDER_SCALE)

        Returns:
            RasterSurface of the rendered page
        """
        if doc.closed:
            raise PageRenderError("Document is closed", page_num=page_num)
        if not 1 <= page_num <= doc.page_count:
            raise PageRenderError(
                f"Page {page_num} out of range 1-{doc.page_count}", page_num=page_num
            )
        zoom = self.scale if scale is None else scale

        try:
            page = doc.load_page(page_num)
            matrix = fitz.Matrix(zoom, zoom)
            # alpha=False: MuPDF clears the pixmap to white before drawing
            pixmap = page.get_pixmap(matrix=matrix, alpha=False, colorspace=fitz.csRGB)
        except PageRenderError:
            raise
        except Exception as e:
            raise PageRenderError(f"Page {page_num}: {e}", page_num=page_num) from e

        if pixmap.width <= 0 or pixmap.height <= 0:
            raise PageRenderError(
                f"Page {page_num} rendered empty: {pixmap.width}x{pixmap.height}",
                page_num=page_num
            )

        try:
            surface = RasterSurface.blank(pixmap.width, pixmap.height)
        except SurfaceError as e:
            raise PageRenderError(f"Page {page_num}: {e}", page_num=page_num) from e

        samples = np.frombuffer(pixmap.samples, dtype=np.uint8).reshape(
            pixmap.height, pixmap.width, pixmap.n
        )
        surface.pixels[:, :, :] = samples[:, :, :3]

        logger.debug(
            f"Rendered page {page_num}: {pixmap.width}x{pixmap.height} @ {zoom}x"
        )
        return surface

    def process_page(
        self,
        doc: Document,
        page_num: int,
        max_bytes: Optional[int] = None
    ) -> PageResult:
        """
        Process a single page: render -> compress.

        Failures are captured in the result, never raised.
        """
        result = PageResult(page_num=page_num)
        start = time.time()

        try:
            surface = self.render_page(doc, page_num)
            image = self.compressor.compress(surface, max_bytes=max_bytes)
        except (PageRenderError, SurfaceError, DecodeError) as e:
            logger.error(f"Page {page_num} failed: {e}")
            result.error = e
            return result

        result.image = image
        result.process_time = time.time() - start

        logger.info(
            f"Page {page_num}: {image.size:,} bytes | "
            f"{image.width}x{image.height} | q={image.quality:.2f}"
        )
        return result

    def iter_pages(
        self,
        doc: Document,
        max_bytes: Optional[int] = None,
        first_page: Optional[int] = None,
        last_page: Optional[int] = None,
        progress_callback: Optional[ProgressCallback] = None
    ) -> Iterator[PageResult]:
        """Yield one PageResult per page, in page order."""
        pages = page_numbers(doc.page_count, first_page, last_page)
        for i, page_num in enumerate(pages):
            yield self.process_page(doc, page_num, max_bytes=max_bytes)
            if progress_callback:
                progress_callback(i + 1, len(pages))

    def rasterize_all(
        self,
        doc: Document,
        max_bytes: Optional[int] = None,
        first_page: Optional[int] = None,
        last_page: Optional[int] = None,
        progress_callback: Optional[ProgressCallback] = None
    ) -> List[PageImage]:
        """
        Rasterize and compress every page, skipping pages that fail.

        The document is closed when this returns or raises.

        Args:
            doc: Open document (ownership passes to this call)
            max_bytes: Per-page byte budget (default: compressor limits)
            first_page: First 1-based page to include
            last_page: Last 1-based page to include
            progress_callback: Optional callback(current, total)

        Returns:
            PageImage list in ascending page order, never empty
        """
        with doc:
            results = list(self.iter_pages(
                doc,
                max_bytes=max_bytes,
                first_page=first_page,
                last_page=last_page,
                progress_callback=progress_callback
            ))

        images = [PageImage(r.page_num, r.image) for r in results if r.ok]
        skipped = [r.page_num for r in results if not r.ok]

        if skipped:
            logger.warning(f"Skipped pages: {', '.join(map(str, skipped))}")
        if not images:
            raise EmptyResultError(
                "No images were successfully extracted from the PDF"
            )

        logger.info(
            f"Rasterized {len(images)}/{len(results)} pages, "
            f"{sum(p.image.size for p in images):,} bytes total"
        )
        return images
