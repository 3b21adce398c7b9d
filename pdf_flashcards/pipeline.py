"""
pipeline.py - PDF to OCR-ready page images.

Pipeline:
1. Validate input bytes
2. Open PDF
3. Render each page at 2x, compress to <= 500 KB JPEG
4. Skip failed pages, fail only if none survive

The resulting data URLs feed the OCR collaborator, whose text feeds
flashcard generation.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import List, Optional

import cv2
try:
    import fitz  # pip install pymupdf
except ImportError:
    import pymupdf as fitz  # apt install python3-pymupdf

from .errors import FlashcardPipelineError, InvalidInputError, NoTextError
from .flashcards import Flashcard, FlashcardGenerator, TextExtractor
from .rasterize import PageImage, PageRasterizer, ProgressCallback

logger = logging.getLogger(__name__)

# Upload limit
MAX_INPUT_BYTES = 10 * 1024 * 1024  # 10 MB


def setup(num_threads: int = 1, show_mupdf_errors: bool = False):
    """
    Process-wide engine setup. Call once before the first run.

    Args:
        num_threads: OpenCV worker threads used by resizing
        show_mupdf_errors: Let MuPDF print parse errors to stderr
    """
    cv2.setNumThreads(num_threads)
    fitz.TOOLS.mupdf_display_errors(show_mupdf_errors)
    logger.debug(
        f"Engine setup: cv2 threads={num_threads}, mupdf errors={show_mupdf_errors}"
    )


@dataclass
class RunResult:
    """Result of a fail-soft run, for reporting."""
    success: bool
    error: Optional[str] = None
    input_size: int = 0
    pages_requested: int = 0
    pages: List[PageImage] = field(default_factory=list)
    total_time: float = 0.0

    @property
    def pages_ok(self) -> int:
        return len(self.pages)

    @property
    def output_size(self) -> int:
        return sum(p.image.size for p in self.pages)

    @property
    def avg_page_size(self) -> float:
        if not self.pages:
            return 0
        return self.output_size / len(self.pages)

    def summary(self) -> str:
        return (
            f"Input:  {self.input_size:,} bytes\n"
            f"Output: {self.output_size:,} bytes\n"
            f"Pages: {self.pages_ok}/{self.pages_requested}\n"
            f"Avg page size: {self.avg_page_size:,.0f} bytes\n"
            f"Time: {self.total_time:.1f}s"
        )


class PipelineOrchestrator:
    """Entry point: PDF bytes in, page images out."""

    def __init__(
        self,
        rasterizer: Optional[PageRasterizer] = None,
        max_input_bytes: int = MAX_INPUT_BYTES
    ):
        self.rasterizer = rasterizer or PageRasterizer()
        self.max_input_bytes = max_input_bytes

    def validate(self, file_bytes: bytes):
        if not file_bytes:
            raise InvalidInputError("No file data provided")
        if len(file_bytes) > self.max_input_bytes:
            raise InvalidInputError(
                f"File is {len(file_bytes):,} bytes, "
                f"limit is {self.max_input_bytes:,}"
            )

    def process(
        self,
        file_bytes: bytes,
        max_bytes: Optional[int] = None,
        first_page: Optional[int] = None,
        last_page: Optional[int] = None,
        progress_callback: Optional[ProgressCallback] = None
    ) -> List[PageImage]:
        """
        Convert PDF bytes to compressed page images.

        Raises:
            InvalidInputError: empty or oversized input (nothing opened)
            DocumentOpenError: not a readable PDF
            EmptyResultError: every page failed
        """
        self.validate(file_bytes)
        doc = self.rasterizer.open(bytes(file_bytes))
        return self.rasterizer.rasterize_all(
            doc,
            max_bytes=max_bytes,
            first_page=first_page,
            last_page=last_page,
            progress_callback=progress_callback
        )

    def run(self, file_bytes: bytes, **kwargs) -> RunResult:
        """Like process(), but errors are reported in the result."""
        result = RunResult(success=False, input_size=len(file_bytes or b""))
        start = time.time()

        callback = kwargs.pop("progress_callback", None)

        def track(current: int, total: int):
            result.pages_requested = total
            if callback:
                callback(current, total)

        try:
            result.pages = self.process(file_bytes, progress_callback=track, **kwargs)
            result.success = True
        except (FlashcardPipelineError, ValueError) as e:
            logger.error(f"Pipeline failed: {e}")
            result.error = str(e)

        result.total_time = time.time() - start
        return result

    def create_flashcards(
        self,
        file_bytes: bytes,
        extract_text: TextExtractor,
        generate: FlashcardGenerator,
        **kwargs
    ) -> List[Flashcard]:
        """
        Full flow: PDF -> page images -> OCR text -> flashcards.

        Text from the OCR collaborator is passed to the generator as is.
        """
        pages = self.process(file_bytes, **kwargs)
        text = extract_text([p.data_url for p in pages])
        if not text:
            raise NoTextError("No text could be extracted from the PDF pages")

        logger.info(f"OCR returned {len(text):,} chars from {len(pages)} pages")
        cards = list(generate(text))
        logger.info(f"Generated {len(cards)} flashcards")
        return cards


def process(file_bytes: bytes, **kwargs) -> List[PageImage]:
    """Convert PDF bytes to page images with default settings."""
    return PipelineOrchestrator().process(file_bytes, **kwargs)
