"""
Pydantic models for OCR input, IMEI candidates and invoice extraction results.

This module defines the core data structures used throughout the engine:
- NormalizedText, the cleaned OCR body every component works on
- ValidationResult and IMEICandidate for device identifier detection
- ProductItem and InvoiceData for field extraction
- InvoiceProcessingResult, the Success/Error union returned to callers

Result models are frozen; components derive new instances instead of
mutating existing ones.
"""

import datetime as dt
from decimal import Decimal
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from .config import ProcessingErrorKind, ValidationErrorKind


class NormalizedText(BaseModel):
    """
    OCR text after whitespace collapsing and digit-run substitution.

    Attributes:
        raw: Text exactly as received from the OCR engine
        text: Normalized text used by every downstream component
        substitutions: Number of letters replaced by digits inside digit runs
    """
    model_config = ConfigDict(frozen=True)

    raw: str
    text: str
    substitutions: int = 0

    @property
    def lines(self) -> list[str]:
        return self.text.split("\n") if self.text else []


class OCRToken(BaseModel):
    """A recognized word with its bounding box, passed through untouched."""
    model_config = ConfigDict(frozen=True)

    text: str
    left: int = 0
    top: int = 0
    width: int = 0
    height: int = 0
    confidence: Optional[float] = Field(None, ge=0, le=1)


# ============================================================================
# IMEI Detection
# ============================================================================

class ValidationResult(BaseModel):
    """
    Outcome of checksum validation for a single IMEI string.

    clean_imei is only set for valid input, so it is always 15 digits
    that satisfy the Luhn check.
    """
    model_config = ConfigDict(frozen=True)

    is_valid: bool
    clean_imei: Optional[str] = Field(None, pattern=r"^[0-9]{15}$")
    error_message: Optional[str] = None
    error_kind: Optional[ValidationErrorKind] = None


class IMEICandidate(BaseModel):
    """
    A 15-digit run found in OCR text that may be a device IMEI.

    Created by the scanner with the base confidence; the detector
    replaces it with a scored copy.
    """
    model_config = ConfigDict(frozen=True)

    raw_match: str = Field(..., description="Digits and separators as they appear in the text")
    clean_digits: str = Field(..., pattern=r"^[0-9]{15}$")
    start: int = Field(..., ge=0)
    end: int = Field(..., ge=0)
    context_window: str = Field("", description="Text surrounding the match")
    confidence: float = Field(..., ge=0, le=1)
    validation: ValidationResult
    signals: tuple[str, ...] = ()

    @property
    def position(self) -> tuple[int, int]:
        return (self.start, self.end)


class IMEIFieldSuggestion(str, Enum):
    """How many IMEI inputs a form should offer."""
    NONE = "none"          # no IMEI detected, manual entry
    SINGLE = "single"      # show only IMEI1
    DUAL = "dual"          # show IMEI1 and IMEI2
    MULTIPLE = "multiple"  # more than two plausible IMEIs


class ContextScore(BaseModel):
    """Confidence adjustment produced by the context rules."""
    model_config = ConfigDict(frozen=True)

    delta: float = 0.0
    signals: tuple[str, ...] = ()
    hard_reject: bool = False
    reject_reason: Optional[str] = None


# ============================================================================
# Invoice Extraction
# ============================================================================

class ProductItem(BaseModel):
    """
    One line-item row of a mobile shop invoice.

    Attributes:
        brand: Canonical brand name from the lexicon (e.g. "Redmi")
        model: Model name following the brand (e.g. "Note 14")
        variant: Storage, colour and connectivity tokens (e.g. "5G 8GB 256GB")
        quantity: Units on the row
        rate: Price per unit
        amount: Row total
        raw_line: The source line
        description: Textual part of the row before the numeric columns
    """
    brand: Optional[str] = None
    model: Optional[str] = None
    variant: Optional[str] = None
    quantity: Optional[Decimal] = None
    rate: Optional[Decimal] = None
    amount: Optional[Decimal] = None
    raw_line: str
    description: str = ""

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "examples": [
                {
                    "brand": "Redmi",
                    "model": "Note 14",
                    "variant": "5G Crimson Art 8GB 256GB",
                    "quantity": "1.00",
                    "rate": "17759.00",
                    "amount": "15050.00",
                    "raw_line": "Redmi Note 14 5g Crimson Art 8gb 256gb 1.00 PCS 17,759.00 15,050.00",
                    "description": "Redmi Note 14 5g Crimson Art 8gb 256gb",
                }
            ]
        },
    )


class InvoiceData(BaseModel):
    """
    Header fields of an invoice. Unmatched fields stay None.

    confidence is the fraction of the five recognized header fields
    (number, date, vendor, customer, total) that were found.
    """
    model_config = ConfigDict(frozen=True)

    invoice_number: Optional[str] = None
    date: Optional[str] = Field(None, description="Date as printed on the invoice")
    vendor_name: Optional[str] = None
    customer_name: Optional[str] = None
    total_amount: Optional[Decimal] = None
    confidence: float = Field(0.0, ge=0, le=1)

    parsed_date: Optional[dt.date] = Field(None, description="The printed date, parsed when possible")
    vendor_gstin: Optional[str] = None
    customer_gstin: Optional[str] = None
    tax_amount: Optional[Decimal] = None

    def matched_fields(self) -> list[str]:
        """Names of the recognized header fields that were extracted."""
        return [
            name for name in RECOGNIZED_HEADER_FIELDS
            if getattr(self, name) is not None
        ]


RECOGNIZED_HEADER_FIELDS: tuple[str, ...] = (
    "invoice_number",
    "date",
    "vendor_name",
    "customer_name",
    "total_amount",
)


class InvoiceProcessingSuccess(BaseModel):
    """Extraction succeeded; fields may still be partially empty."""
    model_config = ConfigDict(frozen=True)

    status: Literal["success"] = "success"
    invoice_data: InvoiceData
    products: list[ProductItem] = Field(default_factory=list)
    imeis: list[str] = Field(
        default_factory=list,
        description="Unique checksum-valid IMEIs, highest confidence first",
    )
    imei_field_suggestion: IMEIFieldSuggestion = IMEIFieldSuggestion.NONE
    tokens: list[OCRToken] = Field(default_factory=list)


class InvoiceProcessingError(BaseModel):
    """Extraction could not produce a usable record."""
    model_config = ConfigDict(frozen=True)

    status: Literal["error"] = "error"
    message: str
    kind: ProcessingErrorKind


InvoiceProcessingResult = Annotated[
    Union[InvoiceProcessingSuccess, InvoiceProcessingError],
    Field(discriminator="status"),
]


# ============================================================================
# API Request/Response Models
# ============================================================================

class ProcessTextRequest(BaseModel):
    """Request body for the /process endpoint."""
    text: str = Field(..., description="Raw OCR text of the invoice")
    tokens: list[OCRToken] = Field(default_factory=list)


class DetectImeisRequest(BaseModel):
    """Request body for the /detect-imeis endpoint."""
    text: str


class DetectImeisResponse(BaseModel):
    """Response for the /detect-imeis endpoint."""
    candidates: list[IMEICandidate]
    suggestion: IMEIFieldSuggestion
