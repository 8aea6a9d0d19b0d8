"""
Text normalization shared by the IMEI detector and the field extractor.

OCR output from photographed bills is noisy: ragged spacing, blank lines
and letters read in place of digits ("49O1542O3237518"). Every component
works on the NormalizedText produced here, never on the raw string.
"""

import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Optional, Union

from dateutil import parser as date_parser

from .config import DATE_FORMATS, OCR_DIGIT_SUBSTITUTIONS
from .schemas import NormalizedText


_HORIZONTAL_SPACE = re.compile(r"[^\S\n]+")

# A digit run that may contain misread letters between its first and last digit
_DIGIT_RUN = re.compile(
    r"\d[\d" + re.escape("".join(OCR_DIGIT_SUBSTITUTIONS)) + r"]*\d"
)

_DIGIT_TRANSLATION = str.maketrans(OCR_DIGIT_SUBSTITUTIONS)


# ============================================================================
# Normalization
# ============================================================================

def normalize_text(raw: Optional[str]) -> NormalizedText:
    """
    Normalize raw OCR text.

    Horizontal whitespace is collapsed to a single space, lines are
    stripped and blank lines dropped. Inside digit runs, letters that OCR
    confuses with digits are replaced (O/o -> 0, l/I/| -> 1).

    Args:
        raw: Text as returned by the OCR engine (None is treated as empty)

    Returns:
        NormalizedText carrying both the raw and the normalized text
    """
    raw = raw or ""
    lines = []
    for line in raw.replace("\r\n", "\n").replace("\r", "\n").split("\n"):
        line = _HORIZONTAL_SPACE.sub(" ", line).strip()
        if line:
            lines.append(line)
    collapsed = "\n".join(lines)

    substitutions = 0

    def _fix_run(match: re.Match) -> str:
        nonlocal substitutions
        run = match.group(0)
        fixed = run.translate(_DIGIT_TRANSLATION)
        substitutions += sum(1 for a, b in zip(run, fixed) if a != b)
        return fixed

    text = _DIGIT_RUN.sub(_fix_run, collapsed)

    return NormalizedText(raw=raw, text=text, substitutions=substitutions)


def ensure_normalized(text: Union[str, NormalizedText, None]) -> NormalizedText:
    """Return text as NormalizedText, normalizing plain strings."""
    if isinstance(text, NormalizedText):
        return text
    return normalize_text(text)


# ============================================================================
# Value Parsing
# ============================================================================

def parse_amount(value) -> Optional[Decimal]:
    """
    Parse a monetary or quantity value into a Decimal.

    Handles:
    - Indian grouping: 1,17,759.00
    - US/UK grouping: 17,759.00
    - Decimal comma: 257,04
    - Currency prefixes: Rs. 500, INR 500, ₹500
    """
    if value is None:
        return None

    value_str = str(value).strip()
    if not value_str:
        return None

    # Remove currency markers and whitespace
    value_str = re.sub(r"(?i)^(?:rs\.?|inr)", "", value_str)
    value_str = re.sub(r"[₹$\s]", "", value_str)

    if "," in value_str:
        if "." in value_str and value_str.rfind(".") > value_str.rfind(","):
            # 17,759.00 / 1,17,759.00
            value_str = value_str.replace(",", "")
        elif "." not in value_str and re.fullmatch(r"\d{1,3}(?:,\d{2,3})*,\d{3}", value_str):
            # 17,759 without decimals
            value_str = value_str.replace(",", "")
        else:
            # 1.234,56 / 257,04
            value_str = value_str.replace(".", "").replace(",", ".")

    if not re.fullmatch(r"-?\d+(?:\.\d+)?", value_str):
        return None

    try:
        return Decimal(value_str)
    except InvalidOperation:
        return None


def parse_date(date_str: str) -> Optional[date]:
    """
    Parse a date string using the known invoice formats, falling back to
    dateutil with day-first ordering (Indian invoices print DD/MM/YYYY).
    """
    date_str = date_str.strip()
    if not date_str:
        return None

    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(date_str, fmt).date()
        except ValueError:
            continue

    try:
        return date_parser.parse(date_str, dayfirst=True).date()
    except (ValueError, OverflowError):
        return None
