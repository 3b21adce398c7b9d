#!/usr/bin/env python3
"""
flashcard_pages.py - Render a PDF into OCR-ready page images.

TARGET: <= 500 KB per page, 100-1024 px per side
PURPOSE: Page images for OCR, whose text is turned into flashcards.

Usage:
    python flashcard_pages.py lecture.pdf -o pages/
    python flashcard_pages.py lecture.pdf --json pages.json
    python flashcard_pages.py lecture.pdf --first-page 3 --last-page 8 -o pages/
"""

import argparse
import json
import logging
import sys
from pathlib import Path

# Add parent to path when running as script
if __name__ == "__main__":
    sys.path.insert(0, str(Path(__file__).parent))

from pdf_flashcards.compression import (
    MAX_DIMENSION,
    MAX_IMAGE_BYTES,
    MIN_DIMENSION,
    CompressionLimits,
    SizeConstrainedCompressor,
)
from pdf_flashcards.pipeline import MAX_INPUT_BYTES, PipelineOrchestrator, setup
from pdf_flashcards.rasterize import RENDER_SCALE, PageRasterizer

PAGE_IMAGE_PATTERN = "page_{:04d}.jpg"


def setup_logging(verbose: bool = False):
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S"
    )


def parse_args(argv=None):
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Render PDF pages to compressed JPEGs for OCR.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python flashcard_pages.py lecture.pdf -o pages/
  python flashcard_pages.py lecture.pdf --json pages.json
  python flashcard_pages.py lecture.pdf --max-kb 200 --max-dimension 800 -o pages/

Each page is:
  - Rendered at 2x scale on a white background
  - Resized into the min/max dimension bounds
  - JPEG encoded, lowering quality 0.95 -> 0.5 until it fits the budget
Pages that fail are skipped; the run fails only if no page survives.
"""
    )

    parser.add_argument(
        "input",
        type=Path,
        help="Input PDF file"
    )

    parser.add_argument(
        "-o", "--output-dir",
        type=Path,
        help="Write page_NNNN.jpg files to this directory"
    )

    parser.add_argument(
        "--json",
        type=Path,
        help="Write a JSON manifest with data URLs to this file"
    )

    parser.add_argument(
        "--max-kb",
        type=int,
        default=MAX_IMAGE_BYTES // 1024,
        help=f"Per-page budget in KB (default: {MAX_IMAGE_BYTES // 1024})"
    )

    parser.add_argument(
        "--max-dimension",
        type=int,
        default=MAX_DIMENSION,
        help=f"Max width/height in pixels (default: {MAX_DIMENSION})"
    )

    parser.add_argument(
        "--min-dimension",
        type=int,
        default=MIN_DIMENSION,
        help=f"Min width/height in pixels (default: {MIN_DIMENSION})"
    )

    parser.add_argument(
        "-s", "--scale",
        type=float,
        default=RENDER_SCALE,
        help=f"Render scale (default: {RENDER_SCALE})"
    )

    parser.add_argument(
        "--first-page",
        type=int,
        default=None,
        help="First page to render (1-based)"
    )

    parser.add_argument(
        "--last-page",
        type=int,
        default=None,
        help="Last page to render (1-based)"
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Verbose output"
    )

    return parser.parse_args(argv)


def print_progress(current: int, total: int):
    """Print progress bar."""
    width = 40
    filled = int(width * current / total)
    bar = "=" * filled + "-" * (width - filled)
    pct = current / total * 100
    print(f"\r[{bar}] {current}/{total} ({pct:.0f}%)", end="", file=sys.stderr)
    if current == total:
        print(file=sys.stderr)


def write_pages(pages, output_dir: Path):
    output_dir.mkdir(parents=True, exist_ok=True)
    for page in pages:
        path = output_dir / PAGE_IMAGE_PATTERN.format(page.page_num)
        path.write_bytes(page.image.data)


def write_manifest(pages, path: Path):
    manifest = [
        {
            "page": page.page_num,
            "width": page.image.width,
            "height": page.image.height,
            "quality": page.image.quality,
            "size": page.image.size,
            "data_url": page.data_url,
        }
        for page in pages
    ]
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(manifest, f, indent=2)


def main(argv=None):
    args = parse_args(argv)
    setup_logging(args.verbose)

    # Validate input
    if not args.input.exists():
        print(f"Error: File not found: {args.input}", file=sys.stderr)
        return 1
    if args.input.suffix.lower() != ".pdf":
        print(f"Error: Not a PDF: {args.input}", file=sys.stderr)
        return 1
    if not args.output_dir and not args.json:
        args.output_dir = args.input.with_name(args.input.stem + "_pages")

    try:
        limits = CompressionLimits(
            max_bytes=args.max_kb * 1024,
            max_dimension=args.max_dimension,
            min_dimension=args.min_dimension
        )
        rasterizer = PageRasterizer(SizeConstrainedCompressor(limits), scale=args.scale)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    setup()
    orchestrator = PipelineOrchestrator(rasterizer, max_input_bytes=MAX_INPUT_BYTES)

    result = orchestrator.run(
        args.input.read_bytes(),
        first_page=args.first_page,
        last_page=args.last_page,
        progress_callback=print_progress
    )

    if not result.success:
        print(f"Error: {result.error}", file=sys.stderr)
        return 1

    if args.output_dir:
        write_pages(result.pages, args.output_dir)
    if args.json:
        write_manifest(result.pages, args.json)

    print(f"\n{result.summary()}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
