"""
Context rules for scoring IMEI candidates.

This module defines an ordered set of named rules, evaluated per candidate:
- Hard-reject rules: patterns that are never genuine IMEIs (alphanumeric
  IDs, placeholder digit strings). The first one that fires short-circuits
  scoring and forces confidence to zero.
- Adjustment rules: checksum validity and nearby keywords move the
  confidence up or down from the base value.

Each rule is a function returning a RuleOutcome (HardReject or
Adjustment), or None if it has nothing to say about the candidate.
"""

import re
from dataclasses import dataclass
from typing import Callable, Optional, Union

from .config import (
    CHECKSUM_INVALID_PENALTY,
    CHECKSUM_VALID_BONUS,
    CONTEXT_WINDOW_CHARS,
    NEGATIVE_KEYWORD_PENALTY,
    NEGATIVE_KEYWORDS,
    POSITIVE_KEYWORD_BONUS,
    POSITIVE_KEYWORD_CAP,
    POSITIVE_KEYWORDS,
    RuleKind,
    logger,
)
from .schemas import ContextScore, IMEICandidate


@dataclass(frozen=True)
class HardReject:
    """Outcome that excludes the candidate unconditionally."""
    reason: str


@dataclass(frozen=True)
class Adjustment:
    """Outcome that shifts the candidate's confidence by `delta`."""
    delta: float
    signal: str


RuleOutcome = Union[HardReject, Adjustment]

# The function takes a candidate and its context window, returns an outcome or None
RuleEvaluateFn = Callable[[IMEICandidate, str], Optional[RuleOutcome]]


@dataclass(frozen=True)
class ContextRule:
    """
    Represents a single scoring rule.

    Attributes:
        code: Machine-readable rule code (e.g., "reject:identical_digits")
        description: Human-readable description of the rule
        kind: Whether the rule rejects outright or adjusts confidence
        evaluate: Function that inspects the candidate
    """
    code: str
    description: str
    kind: RuleKind
    evaluate: RuleEvaluateFn


_LETTER = re.compile(r"[A-Za-z]")


def _find_keywords(window: str, keywords: tuple[str, ...]) -> list[str]:
    # Plain substring match; OCR often glues labels together ("TaxInvoice")
    lowered = window.lower()
    return [kw for kw in keywords if kw in lowered]


# ============================================================================
# Hard-Reject Rules
# ============================================================================

def check_alpha_adjacent(candidate: IMEICandidate, window: str) -> Optional[RuleOutcome]:
    """
    A letter touching the digit run means it is part of an alphanumeric ID
    (invoice hashes, IRNs, GSTINs), not a standalone IMEI.
    """
    raw = candidate.raw_match

    # The scanner's window starts CONTEXT_WINDOW_CHARS before the match,
    # or at the start of the text; other windows are searched
    offset = min(candidate.start, CONTEXT_WINDOW_CHARS)
    if window[offset:offset + len(raw)] != raw:
        offset = window.find(raw)
        if offset < 0:
            return None

    before = window[offset - 1:offset] if offset > 0 else ""
    after = window[offset + len(raw):offset + len(raw) + 1]
    if _LETTER.match(before) or _LETTER.match(after):
        return HardReject("alphabetic character adjacent to digits")
    return None


def check_identical_digits(candidate: IMEICandidate, window: str) -> Optional[RuleOutcome]:
    """Fifteen copies of one digit are placeholders or OCR artifacts."""
    if len(set(candidate.clean_digits)) == 1:
        return HardReject("all digits identical")
    return None


def check_sequential_digits(candidate: IMEICandidate, window: str) -> Optional[RuleOutcome]:
    """
    Strictly ascending or descending runs (wrapping 9 -> 0), such as
    123456789012345, are test values rather than device identifiers.
    """
    digits = [int(d) for d in candidate.clean_digits]
    steps = {(b - a) % 10 for a, b in zip(digits, digits[1:])}
    if steps == {1} or steps == {9}:
        return HardReject("sequential digits")
    return None


def check_repeating_block(candidate: IMEICandidate, window: str) -> Optional[RuleOutcome]:
    """A 5-digit block repeated three times (123451234512345) is a fake pattern."""
    digits = candidate.clean_digits
    if digits[:5] == digits[5:10] == digits[10:15]:
        return HardReject("repeating 5-digit block")
    return None


# ============================================================================
# Adjustment Rules
# ============================================================================

def check_checksum(candidate: IMEICandidate, window: str) -> Optional[RuleOutcome]:
    """Luhn validity is a strong but not absolute signal."""
    if candidate.validation.is_valid:
        return Adjustment(CHECKSUM_VALID_BONUS, "checksum:valid")
    return Adjustment(CHECKSUM_INVALID_PENALTY, "checksum:invalid")


def check_positive_keywords(candidate: IMEICandidate, window: str) -> Optional[RuleOutcome]:
    """IMEI labels near the number raise confidence, up to a cap."""
    found = _find_keywords(window, POSITIVE_KEYWORDS)
    if not found:
        return None
    delta = min(POSITIVE_KEYWORD_BONUS * len(found), POSITIVE_KEYWORD_CAP)
    return Adjustment(delta, "keyword:" + ",".join(found))


def check_negative_keywords(candidate: IMEICandidate, window: str) -> Optional[RuleOutcome]:
    """
    Invoice numbers, GST and IRN references, phone numbers and dates are
    the usual long digit strings on a bill that are not IMEIs.
    """
    found = _find_keywords(window, NEGATIVE_KEYWORDS)
    if not found:
        return None
    return Adjustment(NEGATIVE_KEYWORD_PENALTY * len(found), "anti_keyword:" + ",".join(found))


# ============================================================================
# Rule Registry
# ============================================================================

# All context rules in execution order; hard rejects first
CONTEXT_RULES: list[ContextRule] = [
    ContextRule(
        code="reject:alpha_adjacent",
        description="Digits touching a letter belong to an alphanumeric identifier",
        kind=RuleKind.HARD_REJECT,
        evaluate=check_alpha_adjacent,
    ),
    ContextRule(
        code="reject:identical_digits",
        description="All-identical digit strings are never genuine IMEIs",
        kind=RuleKind.HARD_REJECT,
        evaluate=check_identical_digits,
    ),
    ContextRule(
        code="reject:sequential_digits",
        description="Strictly sequential digit strings are never genuine IMEIs",
        kind=RuleKind.HARD_REJECT,
        evaluate=check_sequential_digits,
    ),
    ContextRule(
        code="reject:repeating_block",
        description="A repeated 5-digit block is a placeholder pattern",
        kind=RuleKind.HARD_REJECT,
        evaluate=check_repeating_block,
    ),
    ContextRule(
        code="adjust:checksum",
        description="Luhn-valid candidates gain confidence, invalid ones lose it",
        kind=RuleKind.ADJUSTMENT,
        evaluate=check_checksum,
    ),
    ContextRule(
        code="adjust:positive_keywords",
        description="IMEI/serial/device id labels nearby raise confidence",
        kind=RuleKind.ADJUSTMENT,
        evaluate=check_positive_keywords,
    ),
    ContextRule(
        code="adjust:negative_keywords",
        description="Invoice/GST/phone/date labels nearby lower confidence",
        kind=RuleKind.ADJUSTMENT,
        evaluate=check_negative_keywords,
    ),
]


def score(
    candidate: IMEICandidate,
    window: Optional[str] = None,
    rules: Optional[list[ContextRule]] = None,
) -> ContextScore:
    """
    Score a candidate against the context rules.

    Args:
        candidate: The candidate to score
        window: Surrounding text (defaults to the candidate's own window)
        rules: Optional list of rules to apply (defaults to CONTEXT_RULES)

    Returns:
        ContextScore with the summed delta and the signals that fired,
        or a hard reject carrying the reason
    """
    if rules is None:
        rules = CONTEXT_RULES
    if window is None:
        window = candidate.context_window

    delta = 0.0
    signals: list[str] = []

    for rule in rules:
        try:
            outcome = rule.evaluate(candidate, window)
        except Exception as e:
            logger.error(f"Error running rule {rule.code} on candidate {candidate.raw_match}: {e}")
            signals.append(f"rule_error:{rule.code}")
            continue

        if isinstance(outcome, HardReject):
            return ContextScore(
                delta=0.0,
                signals=tuple(signals + [rule.code]),
                hard_reject=True,
                reject_reason=outcome.reason,
            )
        if isinstance(outcome, Adjustment):
            delta += outcome.delta
            signals.append(outcome.signal)

    return ContextScore(delta=delta, signals=tuple(signals))


def get_rules_by_kind(kind: RuleKind) -> list[ContextRule]:
    """Get all rules of a specific kind."""
    return [rule for rule in CONTEXT_RULES if rule.kind == kind]


def get_rule_descriptions() -> dict[str, str]:
    """Get a mapping of rule codes to their descriptions."""
    return {rule.code: rule.description for rule in CONTEXT_RULES}
