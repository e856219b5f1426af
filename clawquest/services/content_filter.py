"""Spam / abuse screening for questions and answers."""

from __future__ import annotations

import re
from typing import Final

from clawquest.errors import ValidationFailedError

REPEATED_CHAR: Final = re.compile(r"(.)\1{4,}")
CONSONANT_RUN: Final = re.compile(r"[bcdfghjklmnpqrstvwxyz]{6,}", re.IGNORECASE)
PUNCTUATION: Final = re.compile(r"[!?.]")
UPPERCASE: Final = re.compile(r"[A-Z]")
LETTER: Final = re.compile(r"[A-Za-z]")

MAX_PUNCTUATION_RATIO = 0.3
MAX_UPPERCASE_RATIO = 0.8
SHOUTING_MIN_LETTERS = 10


def is_spam(text: str) -> bool:
    """Flag repetitive, gibberish, punctuation-heavy or shouting text."""
    if REPEATED_CHAR.search(text):
        return True

    if CONSONANT_RUN.search(text):
        return True

    if len(PUNCTUATION.findall(text)) > len(text) * MAX_PUNCTUATION_RATIO:
        return True

    letters = len(LETTER.findall(text))
    if letters > SHOUTING_MIN_LETTERS:
        if len(UPPERCASE.findall(text)) / letters > MAX_UPPERCASE_RATIO:
            return True

    return False


def check_text(field: str, text: str, min_length: int, max_length: int) -> str:
    """Enforce length bounds and the spam filter, returning the text unchanged.

    Raises ValidationFailedError naming the offending field.
    """
    label = field.capitalize()
    if not text:
        raise ValidationFailedError(f"{label} cannot be empty")
    if len(text) < min_length:
        raise ValidationFailedError(f"{label} must be at least {min_length} characters")
    if len(text) > max_length:
        raise ValidationFailedError(f"{label} too long (max {max_length} characters)")
    if is_spam(text):
        raise ValidationFailedError(f"{label} contains spam/repetitive content")
    return text
