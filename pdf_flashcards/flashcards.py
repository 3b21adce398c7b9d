"""
flashcards.py - Flashcard records and the OCR / generation boundary.

The OCR and text-generation services live outside this package. They are
passed in as plain callables:

    TextExtractor:      list of image data URLs -> extracted text
    FlashcardGenerator: text -> list of Flashcard
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Union

from .errors import FlashcardFormatError, NoTextError

logger = logging.getLogger(__name__)

TextExtractor = Callable[[List[str]], str]
FlashcardGenerator = Callable[[str], List["Flashcard"]]


@dataclass
class Flashcard:
    """Multiple-choice question with the index of the correct option."""
    question: str
    options: List[str] = field(default_factory=list)
    correct_answer: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Flashcard":
        try:
            question = data["question"]
            options = data["options"]
            correct = data.get("correctAnswer", data.get("correct_answer"))
        except (KeyError, TypeError, AttributeError) as e:
            raise FlashcardFormatError(f"Malformed flashcard: {data!r}") from e

        if not isinstance(question, str) or not isinstance(options, list):
            raise FlashcardFormatError(f"Malformed flashcard: {data!r}")
        if correct is None:
            raise FlashcardFormatError(f"Flashcard missing correctAnswer: {data!r}")

        try:
            correct = int(correct)
        except (TypeError, ValueError) as e:
            raise FlashcardFormatError(f"Bad correctAnswer: {correct!r}") from e

        return cls(
            question=question,
            options=[str(o) for o in options],
            correct_answer=correct,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "question": self.question,
            "options": list(self.options),
            "correctAnswer": self.correct_answer,
        }


def parse_flashcards(payload: Union[str, List[Dict[str, Any]]]) -> List[Flashcard]:
    """
    Parse generator output into flashcards.

    Accepts the raw JSON text returned by the model, or an already
    decoded list of objects.
    """
    if isinstance(payload, str):
        try:
            payload = json.loads(payload or "[]")
        except json.JSONDecodeError as e:
            raise FlashcardFormatError(f"Flashcard payload is not JSON: {e}") from e

    if not isinstance(payload, list):
        raise FlashcardFormatError(
            f"Expected a list of flashcards, got {type(payload).__name__}"
        )
    return [Flashcard.from_dict(item) for item in payload]


def combine_page_texts(texts: Iterable[str]) -> str:
    """Join per-page OCR text with newlines, dropping empty pages."""
    combined = "\n".join(t for t in texts if t)
    if not combined:
        raise NoTextError("No text could be extracted from any of the provided images")
    logger.debug(f"Combined OCR text: {len(combined):,} chars")
    return combined
