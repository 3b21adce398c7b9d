"""
errors.py - Exception types raised by the page pipeline.

Fatal:     InvalidInputError, DocumentOpenError, EmptyResultError
Per page:  PageRenderError, SurfaceError, DecodeError (page is skipped)
"""

from typing import Optional


class FlashcardPipelineError(Exception):
    """Base class for all pipeline errors."""


class InvalidInputError(FlashcardPipelineError):
    """Input was rejected before any attempt to open it."""


class DocumentOpenError(FlashcardPipelineError):
    """Source bytes are not a readable PDF."""


class PageRenderError(FlashcardPipelineError):
    """A single page could not be rendered."""

    def __init__(self, message: str, page_num: Optional[int] = None):
        super().__init__(message)
        self.page_num = page_num


class SurfaceError(FlashcardPipelineError):
    """A raster surface is unusable or could not be created."""


class DecodeError(FlashcardPipelineError):
    """Bytes are not a loadable image."""


class EmptyResultError(FlashcardPipelineError):
    """No page survived rasterization."""


class NoTextError(FlashcardPipelineError):
    """OCR recovered no text from any page image."""


class FlashcardFormatError(FlashcardPipelineError):
    """Generated flashcard payload could not be parsed."""
