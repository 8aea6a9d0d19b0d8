"""
Configuration constants and enums for the mobile invoice OCR engine.
"""

import logging
import os
from enum import Enum
from typing import Final, Optional

# ============================================================================
# Text Normalization
# ============================================================================

# Letters that OCR commonly produces in place of digits inside a digit run
OCR_DIGIT_SUBSTITUTIONS: Final[dict[str, str]] = {
    "O": "0",
    "o": "0",
    "l": "1",
    "I": "1",
    "|": "1",
}

# Inputs shorter than this (after normalization) are rejected outright
MIN_TEXT_LENGTH: Final[int] = int(os.getenv("MIN_TEXT_LENGTH", "20"))

# ============================================================================
# IMEI Scanning & Scoring
# ============================================================================

IMEI_LENGTH: Final[int] = 15

# Digit-count tolerance for a raw run (one dropped or inserted digit)
MIN_RUN_DIGITS: Final[int] = 14
MAX_RUN_DIGITS: Final[int] = 16

# Characters either side of a candidate that make up its context window
CONTEXT_WINDOW_CHARS: Final[int] = 40

BASE_CONFIDENCE: Final[float] = 0.5
CHECKSUM_VALID_BONUS: Final[float] = 0.3
CHECKSUM_INVALID_PENALTY: Final[float] = -0.3
POSITIVE_KEYWORD_BONUS: Final[float] = 0.35
POSITIVE_KEYWORD_CAP: Final[float] = 0.7
NEGATIVE_KEYWORD_PENALTY: Final[float] = -0.4

# Candidates below this are never returned
MIN_CONFIDENCE_FLOOR: Final[float] = 0.1

# Candidates at or above this count as genuine device identifiers
IMEI_CONFIDENCE_THRESHOLD: Final[float] = float(os.getenv("IMEI_CONFIDENCE_THRESHOLD", "0.7"))

POSITIVE_KEYWORDS: Final[tuple[str, ...]] = (
    "imei",
    "imei1",
    "imei2",
    "serial",
    "device id",
)

NEGATIVE_KEYWORDS: Final[tuple[str, ...]] = (
    "invoice",
    "gst",
    "irn",
    "ack",
    "bill no",
    "phone",
    "mobile no",
    "date",
)

# Dual-SIM IMEIs share the TAC and differ in a handful of serial digits
TAC_LENGTH: Final[int] = 8
MAX_DUAL_IMEI_DIFFERENCES: Final[int] = 8

# ============================================================================
# Header Field Extraction
# ============================================================================

INVOICE_NUMBER_LABELS: Final[list[str]] = [
    "invoice no",
    "invoice number",
    "invoice #",
    "inv no",
    "bill no",
    "bill number",
    "voucher no",
]

DATE_LABELS: Final[list[str]] = [
    "invoice date",
    "bill date",
    "dated",
    "date",
]

# Common date formats to try when parsing invoice dates
DATE_FORMATS: Final[list[str]] = [
    "%d-%b-%Y",      # 12-Oct-2024
    "%d-%b-%y",      # 12-Oct-24
    "%d/%b/%Y",      # 12/Oct/2024
    "%d/%m/%Y",      # 12/10/2024
    "%d-%m-%Y",      # 12-10-2024
    "%d.%m.%Y",      # 12.10.2024
    "%d/%m/%y",      # 12/10/24
    "%d-%m-%y",      # 12-10-24
    "%Y-%m-%d",      # 2024-10-12
]

TOTAL_LABELS: Final[list[str]] = [
    "grand total",
    "total amount",
    "net amount",
    "amount payable",
    "net payable",
    "total",
]

TAX_LABELS: Final[list[str]] = [
    "total tax",
    "tax amount",
    "gst amount",
]

# Section markers for the issuing shop
VENDOR_LABELS: Final[list[str]] = [
    "sold by",
    "billed by",
    "seller",
    "supplier",
    "vendor",
]

# Section markers for the purchasing party
CUSTOMER_LABELS: Final[list[str]] = [
    "bill to",
    "billed to",
    "buyer",
    "ship to",
    "sold to",
    "customer",
]

# Labeled lines used for the customer when no section markers are present
CUSTOMER_FALLBACK_PATTERNS: Final[list[str]] = [
    r"^customer\s*name\s*[:\-]\s*(.+)$",
    r"^name\s*[:\-]\s*(.+)$",
    r"^(?:m/s|mrs|mr|ms)\.?\s+(.+)$",
]

COMPANY_MARKERS: Final[tuple[str, ...]] = (
    "pvt",
    "ltd",
    "llp",
    "private limited",
)

GSTIN_PATTERN: Final[str] = r"\b\d{2}[A-Z]{5}\d{4}[A-Z][1-9A-Z]Z[0-9A-Z]\b"

# ============================================================================
# Product Line Extraction
# ============================================================================

# Rows containing any of these are totals, headers or identifiers, not items
NON_ITEM_KEYWORDS: Final[tuple[str, ...]] = (
    "total",
    "subtotal",
    "sub total",
    "tax",
    "gst",
    "cgst",
    "sgst",
    "igst",
    "round off",
    "discount",
    "balance",
    "paid",
    "invoice",
    "imei",
    "serial",
    "date",
    "phone",
    "amount in words",
)

UNIT_TOKENS: Final[frozenset[str]] = frozenset({
    "pcs", "pc", "nos", "no", "unit", "units", "qty", "ea", "set", "sets",
})

# Largest value accepted in the quantity column
MAX_QUANTITY: Final[int] = 999

BRAND_LEXICON_PATH: Final[Optional[str]] = os.getenv("BRAND_LEXICON_PATH")

# ============================================================================
# Error Kinds
# ============================================================================

class ValidationErrorKind(str, Enum):
    """Reasons an IMEI string fails validation."""
    EMPTY_INPUT = "empty_input"
    WRONG_LENGTH = "wrong_length"
    NON_NUMERIC = "non_numeric"
    CHECKSUM_MISMATCH = "checksum_mismatch"


class ProcessingErrorKind(str, Enum):
    """Reasons a whole invoice could not be processed."""
    INSUFFICIENT_TEXT = "insufficient_text"
    UNRECOGNIZED_FORMAT = "unrecognized_format"


class RuleKind(str, Enum):
    """How a context rule affects a candidate."""
    HARD_REJECT = "hard_reject"
    ADJUSTMENT = "adjustment"


# ============================================================================
# API Configuration
# ============================================================================

API_HOST: Final[str] = os.getenv("API_HOST", "0.0.0.0")
API_PORT: Final[int] = int(os.getenv("API_PORT", "8000"))
MAX_UPLOAD_SIZE_MB: Final[int] = int(os.getenv("MAX_UPLOAD_SIZE_MB", "10"))

# ============================================================================
# Logging Configuration
# ============================================================================

LOG_LEVEL: Final[str] = os.getenv("LOG_LEVEL", "INFO")

def setup_logging() -> logging.Logger:
    """Configure and return the application logger."""
    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    return logging.getLogger("mobile_invoice")


logger = setup_logging()
