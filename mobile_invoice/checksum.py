"""
IMEI checksum validation.

An IMEI is 15 digits: an 8-digit Type Allocation Code, a 6-digit serial
and a trailing Luhn check digit. Everything in this module is pure.
"""

import re
from typing import Optional

from .config import (
    IMEI_LENGTH,
    MAX_DUAL_IMEI_DIFFERENCES,
    TAC_LENGTH,
    ValidationErrorKind,
)
from .schemas import ValidationResult


# Separators OCR and humans put between IMEI digit groups
_SEPARATORS = re.compile(r"[\s\-/.]")
_NON_DIGITS = re.compile(r"[^0-9]")

ERROR_MESSAGES: dict[ValidationErrorKind, str] = {
    ValidationErrorKind.EMPTY_INPUT: "IMEI cannot be empty",
    ValidationErrorKind.WRONG_LENGTH: "IMEI must be exactly 15 digits",
    ValidationErrorKind.NON_NUMERIC: "IMEI must contain only numbers",
    ValidationErrorKind.CHECKSUM_MISMATCH: "Invalid IMEI checksum",
}


def clean_imei(imei: Optional[str]) -> str:
    """Strip every non-digit character (spaces, hyphens, slashes, labels)."""
    if not imei:
        return ""
    return _NON_DIGITS.sub("", imei)


def format_imei(imei: Optional[str]) -> Optional[str]:
    """
    Format an IMEI for display as 6-6-3 digit groups (490154-203237-518).

    Input that does not clean to 15 digits is returned unchanged.
    """
    if imei is None:
        return None

    digits = clean_imei(imei)
    if len(digits) != IMEI_LENGTH:
        return imei

    return f"{digits[:6]}-{digits[6:12]}-{digits[12:]}"


def luhn_check_digit(payload: str) -> int:
    """
    Compute the Luhn check digit for the first 14 digits of an IMEI.

    Starting from the rightmost payload digit, every second digit is
    doubled; doubled values above 9 have their digits summed.
    """
    total = 0
    for i, char in enumerate(reversed(payload)):
        digit = int(char)
        if i % 2 == 0:
            digit *= 2
            if digit > 9:
                digit -= 9
        total += digit
    return (10 - total % 10) % 10


def _luhn_valid(digits: str) -> bool:
    return luhn_check_digit(digits[:-1]) == int(digits[-1])


def _classify(imei: Optional[str]) -> tuple[Optional[ValidationErrorKind], str]:
    """Return the first failing check (or None) and the separator-stripped input."""
    stripped = _SEPARATORS.sub("", imei or "")

    if not stripped:
        return ValidationErrorKind.EMPTY_INPUT, stripped
    if len(stripped) != IMEI_LENGTH:
        return ValidationErrorKind.WRONG_LENGTH, stripped
    if not (stripped.isascii() and stripped.isdigit()):
        return ValidationErrorKind.NON_NUMERIC, stripped
    if not _luhn_valid(stripped):
        return ValidationErrorKind.CHECKSUM_MISMATCH, stripped
    return None, stripped


def get_validation_error(imei: Optional[str]) -> Optional[str]:
    """
    Get a human-readable validation error, or None for a valid IMEI.

    Checks run in order: empty, wrong length, non-numeric, checksum.
    """
    kind, _ = _classify(imei)
    return ERROR_MESSAGES[kind] if kind else None


def validate_imei(imei: Optional[str]) -> ValidationResult:
    """Validate an IMEI and return a detailed result."""
    kind, stripped = _classify(imei)

    if kind is not None:
        return ValidationResult(
            is_valid=False,
            error_message=ERROR_MESSAGES[kind],
            error_kind=kind,
        )

    return ValidationResult(is_valid=True, clean_imei=stripped)


def is_valid_imei(imei: Optional[str]) -> bool:
    return _classify(imei)[0] is None


# ============================================================================
# Dual IMEI Helpers
# ============================================================================

def imei_similarity(imei1: str, imei2: str) -> float:
    """Fraction of positions (0.0 to 1.0) where two IMEIs share a digit."""
    if len(imei1) != IMEI_LENGTH or len(imei2) != IMEI_LENGTH:
        return 0.0
    matching = sum(1 for a, b in zip(imei1, imei2) if a == b)
    return matching / IMEI_LENGTH


def are_likely_dual_imeis(imei1: str, imei2: str) -> bool:
    """
    Check whether two IMEIs plausibly belong to one dual-SIM handset.

    Both slots share the TAC (at most one differing digit) and differ in
    1 to 8 positions, mostly within the serial part.
    """
    if len(imei1) != IMEI_LENGTH or len(imei2) != IMEI_LENGTH:
        return False
    if imei1 == imei2:
        return False

    differing = [i for i, (a, b) in enumerate(zip(imei1, imei2)) if a != b]
    if not 1 <= len(differing) <= MAX_DUAL_IMEI_DIFFERENCES:
        return False

    tac_differences = sum(1 for i in differing if i < TAC_LENGTH)
    if tac_differences > 1:
        return False

    serial_differences = sum(1 for i in differing if TAC_LENGTH <= i < IMEI_LENGTH - 1)
    other_differences = len(differing) - serial_differences
    return serial_differences >= other_differences
