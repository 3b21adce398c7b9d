"""Tests for raster surfaces and the JPEG codec."""
from __future__ import annotations

import base64

import numpy as np
import pytest

from conftest import gradient_surface, make_png
from pdf_flashcards.codec import (
    CompressedImage,
    ImageCodec,
    RasterSurface,
    decode_data_url,
    jpeg_quality,
)
from pdf_flashcards.errors import DecodeError, SurfaceError


@pytest.fixture
def codec() -> ImageCodec:
    return ImageCodec()


# ═══════════════════════════════════════════════════════════════════════════════
# RasterSurface
# ═══════════════════════════════════════════════════════════════════════════════

def test_blank_surface_is_white():
    surface = RasterSurface.blank(30, 20)
    assert (surface.width, surface.height) == (30, 20)
    assert surface.pixels.dtype == np.uint8
    assert np.all(surface.pixels == 255)


@pytest.mark.parametrize("width,height", [(0, 10), (10, 0), (-1, 5)])
def test_blank_surface_rejects_non_positive_size(width, height):
    with pytest.raises(SurfaceError):
        RasterSurface.blank(width, height)


# ═══════════════════════════════════════════════════════════════════════════════
# Encode
# ═══════════════════════════════════════════════════════════════════════════════

def test_encode_produces_jpeg(codec):
    image = codec.encode(gradient_surface(120, 80), 0.9)

    assert image.mime_type == "image/jpeg"
    assert image.data[:2] == b"\xff\xd8"
    assert (image.width, image.height) == (120, 80)
    assert image.quality == 0.9


def test_encode_is_deterministic(codec):
    surface = gradient_surface(200, 150)
    assert codec.encode(surface, 0.8).data == codec.encode(surface, 0.8).data


def test_size_matches_data_url_length(codec):
    image = codec.encode(gradient_surface(64, 64), 0.75)

    assert image.data_url.startswith("data:image/jpeg;base64,")
    assert image.size == len(image.data_url)
    assert image.byte_size == len(image.data)


def test_higher_quality_never_smaller(codec):
    surface = gradient_surface(400, 300)
    qualities = [0.5, 0.55, 0.6, 0.65, 0.7, 0.75, 0.8, 0.85, 0.9, 0.95, 1.0]
    sizes = [codec.encode(surface, q).byte_size for q in qualities]

    assert sizes == sorted(sizes)


@pytest.mark.parametrize("quality", [-0.1, 1.01])
def test_encode_rejects_quality_out_of_range(codec, quality):
    with pytest.raises(ValueError):
        codec.encode(gradient_surface(10, 10), quality)


def test_encode_rejects_zero_area(codec):
    with pytest.raises(SurfaceError):
        codec.encode(RasterSurface(np.zeros((0, 10, 3), dtype=np.uint8)), 0.9)


@pytest.mark.parametrize(
    "quality,expected",
    [(0.0, 1), (0.5, 50), (0.95, 95), (1.0, 100)],
)
def test_jpeg_quality_mapping(quality, expected):
    assert jpeg_quality(quality) == expected


def test_compressed_image_is_immutable(codec):
    image = codec.encode(gradient_surface(16, 16), 0.9)
    with pytest.raises(AttributeError):
        image.data = b""


# ═══════════════════════════════════════════════════════════════════════════════
# Decode
# ═══════════════════════════════════════════════════════════════════════════════

def test_decode_encode_keeps_dimensions(codec):
    surface = gradient_surface(321, 123)
    decoded = codec.decode(codec.encode(surface, 1.0).data)

    assert (decoded.width, decoded.height) == (321, 123)


def test_decode_accepts_data_url(codec):
    image = codec.encode(gradient_surface(50, 40), 0.9)
    decoded = codec.decode(image.data_url)

    assert (decoded.width, decoded.height) == (50, 40)


def test_decode_flattens_transparency_onto_white(codec):
    decoded = codec.decode(make_png(20, 10, color=(0, 0, 0, 0)))

    assert decoded.pixels.shape == (10, 20, 3)
    assert np.all(decoded.pixels == 255)


def test_decode_opaque_png_keeps_colour(codec):
    decoded = codec.decode(make_png(8, 8, color=(200, 30, 30, 255)))
    assert tuple(decoded.pixels[4, 4]) == (200, 30, 30)


@pytest.mark.parametrize("data", [b"", b"definitely not an image", b"\xff\xd8\xff\x00garbage"])
def test_decode_rejects_garbage(codec, data):
    with pytest.raises(DecodeError):
        codec.decode(data)


def test_decode_data_url_roundtrip():
    payload = b"\x00\x01binary"
    url = "data:image/png;base64," + base64.b64encode(payload).decode("ascii")
    assert decode_data_url(url) == payload


@pytest.mark.parametrize(
    "url",
    ["image/png;base64,AAAA", "data:image/png,AAAA", "data:image/png;base64,@@@"],
)
def test_decode_data_url_rejects_malformed(url):
    with pytest.raises(DecodeError):
        decode_data_url(url)


def test_compressed_image_size_without_padding():
    image = CompressedImage(data=b"abc", width=1, height=1, quality=0.5)
    assert image.size == len("data:image/jpeg;base64,") + 4
