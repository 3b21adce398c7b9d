"""Shared fixtures: in-memory PDFs and images."""
from __future__ import annotations

import io

import numpy as np
import pytest
from PIL import Image

try:
    import fitz
except ImportError:
    import pymupdf as fitz

from pdf_flashcards.codec import RasterSurface


def make_pdf(pages: int = 3, width: float = 612, height: float = 792) -> bytes:
    """Build a PDF with one labelled page per page number."""
    doc = fitz.open()
    for i in range(pages):
        page = doc.new_page(width=width, height=height)
        page.insert_text((72, 72), f"Page {i + 1}", fontsize=24)
        page.insert_text((72, 120), "The mitochondria is the powerhouse of the cell.", fontsize=12)
    data = doc.tobytes()
    doc.close()
    return data


def make_png(width: int, height: int, color=(200, 30, 30, 255), mode: str = "RGBA") -> bytes:
    img = Image.new(mode, (width, height), color)
    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    return buffer.getvalue()


def noise_surface(width: int, height: int, seed: int = 0) -> RasterSurface:
    rng = np.random.default_rng(seed)
    return RasterSurface(rng.integers(0, 256, size=(height, width, 3), dtype=np.uint8))


def gradient_surface(width: int, height: int, seed: int = 0) -> RasterSurface:
    """Smooth gradient with mild noise, compresses like a scanned page."""
    rng = np.random.default_rng(seed)
    x = np.linspace(0, 255, width, dtype=np.float32)
    y = np.linspace(0, 255, height, dtype=np.float32)
    base = (x[None, :] + y[:, None]) / 2
    pixels = np.stack([base, base[::-1, :], np.full_like(base, 128)], axis=2)
    pixels += rng.normal(0, 12, size=pixels.shape)
    return RasterSurface(np.clip(pixels, 0, 255).astype(np.uint8))


@pytest.fixture
def pdf_3_pages() -> bytes:
    return make_pdf(3)


@pytest.fixture
def pdf_1_page() -> bytes:
    return make_pdf(1)


@pytest.fixture
def pdf_file(tmp_path):
    path = tmp_path / "lecture.pdf"
    path.write_bytes(make_pdf(2))
    return path
