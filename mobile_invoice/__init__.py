"""
Mobile Invoice OCR

A Python engine that turns the OCR text of mobile shop invoices into a
structured record: header fields, product lines with brand, model and
variant, and Luhn-validated IMEI numbers.
"""

__version__ = "0.1.0"
__author__ = "Mobile Invoice OCR Team"

from .schemas import (
    IMEICandidate,
    IMEIFieldSuggestion,
    InvoiceData,
    InvoiceProcessingError,
    InvoiceProcessingSuccess,
    ProductItem,
    ValidationResult,
)
from .checksum import validate_imei, is_valid_imei
from .detector import detect_imeis, suggest_field_count
from .extractor import extract_invoice_fields, extract_product_lines
from .processor import process_invoice

__all__ = [
    "IMEICandidate",
    "IMEIFieldSuggestion",
    "InvoiceData",
    "InvoiceProcessingError",
    "InvoiceProcessingSuccess",
    "ProductItem",
    "ValidationResult",
    "validate_imei",
    "is_valid_imei",
    "detect_imeis",
    "suggest_field_count",
    "extract_invoice_fields",
    "extract_product_lines",
    "process_invoice",
]
