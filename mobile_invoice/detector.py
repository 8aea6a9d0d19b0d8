"""
IMEI detection engine.

This module orchestrates the scanner, checksum validator and context
rules into a ranked, deduplicated list of IMEI candidates, and derives
how many IMEI fields a form should ask for.
"""

from typing import Optional, Union

from .checksum import are_likely_dual_imeis
from .config import (
    BASE_CONFIDENCE,
    IMEI_CONFIDENCE_THRESHOLD,
    MIN_CONFIDENCE_FLOOR,
    logger,
)
from .normalizer import ensure_normalized
from .rules import ContextRule, score
from .scanner import scan
from .schemas import IMEICandidate, IMEIFieldSuggestion, NormalizedText


def _clamp(value: float) -> float:
    return round(min(1.0, max(0.0, value)), 4)


def detect_imeis(
    text: Union[str, NormalizedText, None],
    rules: Optional[list[ContextRule]] = None,
) -> list[IMEICandidate]:
    """
    Detect IMEI numbers in OCR text.

    Args:
        text: Raw or normalized OCR text
        rules: Optional list of context rules (defaults to all rules)

    Returns:
        Candidates at or above the confidence floor, one per unique
        15-digit value, sorted by descending confidence then position
    """
    normalized = ensure_normalized(text)

    best: dict[str, IMEICandidate] = {}

    for candidate in scan(normalized):
        result = score(candidate, candidate.context_window, rules)

        if result.hard_reject:
            logger.debug(f"Rejected {candidate.clean_digits}: {result.reject_reason}")
            continue

        confidence = _clamp(BASE_CONFIDENCE + result.delta)
        if confidence < MIN_CONFIDENCE_FLOOR:
            logger.debug(f"Dropped {candidate.clean_digits} below floor ({confidence})")
            continue

        scored = candidate.model_copy(update={
            "confidence": confidence,
            "signals": result.signals,
        })

        current = best.get(scored.clean_digits)
        if current is None or scored.confidence > current.confidence:
            best[scored.clean_digits] = scored

    return sorted(best.values(), key=lambda c: (-c.confidence, c.start))


def high_confidence_imeis(
    text: Union[str, NormalizedText, None],
    threshold: float = IMEI_CONFIDENCE_THRESHOLD,
) -> list[IMEICandidate]:
    """Detected candidates at or above the confidence threshold."""
    return [c for c in detect_imeis(text) if c.confidence >= threshold]


def suggest_field_count(text: Union[str, NormalizedText, None]) -> IMEIFieldSuggestion:
    """Suggest how many IMEI fields to show for this text."""
    return suggestion_for_count(len(high_confidence_imeis(text)))


def suggestion_for_count(count: int) -> IMEIFieldSuggestion:
    """0 -> NONE, 1 -> SINGLE, 2 -> DUAL, 3 or more -> MULTIPLE."""
    if count == 0:
        return IMEIFieldSuggestion.NONE
    if count == 1:
        return IMEIFieldSuggestion.SINGLE
    if count == 2:
        return IMEIFieldSuggestion.DUAL
    return IMEIFieldSuggestion.MULTIPLE


def detect_imei_fields(text: Union[str, NormalizedText, None]) -> dict[str, IMEICandidate]:
    """
    Map the best high-confidence candidates onto "imei1" / "imei2" form fields.

    When more than two candidates qualify, a dual-SIM pair sharing a TAC
    is preferred for the two slots.
    """
    candidates = high_confidence_imeis(text)
    fields: dict[str, IMEICandidate] = {}

    if not candidates:
        return fields

    pair = find_dual_imei_pair(candidates)
    if pair is not None:
        first, second = sorted(pair, key=lambda c: c.start)
        fields["imei1"] = first
        fields["imei2"] = second
        return fields

    fields["imei1"] = candidates[0]
    if len(candidates) > 1:
        fields["imei2"] = candidates[1]
    return fields


def find_dual_imei_pair(
    candidates: list[IMEICandidate],
) -> Optional[tuple[IMEICandidate, IMEICandidate]]:
    """Return the first pair of candidates that look like one handset's two slots."""
    for i, first in enumerate(candidates):
        for second in candidates[i + 1:]:
            if are_likely_dual_imeis(first.clean_digits, second.clean_digits):
                return first, second
    return None
