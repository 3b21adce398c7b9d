"""
PDF Flashcards - page rasterization for OCR-driven flashcard generation.

This package renders PDF pages to images, compresses each one under a
per-page size budget, and hands the results to OCR and flashcard
generation collaborators.
"""

__version__ = "1.0.0"
__author__ = "PDF Flashcards"
