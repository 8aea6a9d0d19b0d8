"""
Candidate scanner for IMEI-like digit runs.

Finds maximal runs of digits joined by OCR-typical separators (space,
hyphen, slash) and keeps the runs that clean to exactly 15 digits. No
scoring happens here; every candidate starts at the base confidence.
"""

import re
from typing import Union

from .checksum import clean_imei, validate_imei
from .config import (
    BASE_CONFIDENCE,
    CONTEXT_WINDOW_CHARS,
    IMEI_LENGTH,
    MAX_RUN_DIGITS,
    MIN_RUN_DIGITS,
    logger,
)
from .normalizer import ensure_normalized
from .schemas import IMEICandidate, NormalizedText


# A digit, optionally followed by digits/separators, ending on a digit
DIGIT_RUN_PATTERN = re.compile(r"\d(?:[\d \-/]*\d)?")


def context_window(text: str, start: int, end: int, size: int = CONTEXT_WINDOW_CHARS) -> str:
    """Return the text within `size` characters either side of [start, end)."""
    return text[max(0, start - size):min(len(text), end + size)]


def scan(text: Union[str, NormalizedText]) -> list[IMEICandidate]:
    """
    Scan normalized text for 15-digit IMEI candidates.

    Args:
        text: Normalized OCR text (plain strings are normalized first)

    Returns:
        Candidates in order of appearance, not yet confidence-filtered
    """
    body = ensure_normalized(text).text
    candidates: list[IMEICandidate] = []

    for match in DIGIT_RUN_PATTERN.finditer(body):
        raw = match.group(0)
        digits = clean_imei(raw)

        if not MIN_RUN_DIGITS <= len(digits) <= MAX_RUN_DIGITS:
            continue

        if len(digits) != IMEI_LENGTH:
            logger.debug(f"Dropping {len(digits)}-digit run at {match.start()}: {raw!r}")
            continue

        candidates.append(IMEICandidate(
            raw_match=raw,
            clean_digits=digits,
            start=match.start(),
            end=match.end(),
            context_window=context_window(body, match.start(), match.end()),
            confidence=BASE_CONFIDENCE,
            validation=validate_imei(digits),
        ))

    logger.debug(f"Scanner found {len(candidates)} IMEI candidate(s)")
    return candidates
