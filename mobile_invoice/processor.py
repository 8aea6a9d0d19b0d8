"""
Invoice processing pipeline.

Runs header extraction, product line extraction and IMEI detection over
one normalized copy of the OCR text and folds the results into a single
InvoiceProcessingResult: either a Success record or an Error naming why
the text could not be used.
"""

from typing import Optional

from .config import (
    IMEI_CONFIDENCE_THRESHOLD,
    MIN_TEXT_LENGTH,
    ProcessingErrorKind,
    logger,
)
from .detector import high_confidence_imeis, suggestion_for_count
from .extractor import extract_invoice_fields, extract_product_lines
from .lexicon import BrandLexicon
from .normalizer import normalize_text
from .schemas import (
    InvoiceProcessingError,
    InvoiceProcessingResult,
    InvoiceProcessingSuccess,
    OCRToken,
)


def process_invoice(
    ocr_text: Optional[str],
    tokens: Optional[list[OCRToken]] = None,
    lexicon: Optional[BrandLexicon] = None,
    min_length: int = MIN_TEXT_LENGTH,
) -> InvoiceProcessingResult:
    """
    Process the OCR text of one invoice.

    Args:
        ocr_text: Raw text from the OCR engine
        tokens: Optional per-word boxes, carried through to the result
        lexicon: Brand table for product parsing (defaults to the shared one)
        min_length: Shortest normalized text accepted

    Returns:
        InvoiceProcessingSuccess with header data, products and IMEIs, or
        InvoiceProcessingError when the text is too short or unrecognizable
    """
    normalized = normalize_text(ocr_text)

    if len(normalized.text) < min_length:
        logger.info(f"Rejected OCR text: {len(normalized.text)} characters after normalization")
        return InvoiceProcessingError(
            message=f"OCR text too short ({len(normalized.text)} < {min_length} characters)",
            kind=ProcessingErrorKind.INSUFFICIENT_TEXT,
        )

    invoice_data = extract_invoice_fields(normalized)
    products = extract_product_lines(normalized, lexicon)

    if not invoice_data.matched_fields() and not products:
        logger.info("No header fields or product lines recognized")
        return InvoiceProcessingError(
            message="No invoice header fields or product lines recognized",
            kind=ProcessingErrorKind.UNRECOGNIZED_FORMAT,
        )

    confident = high_confidence_imeis(normalized, IMEI_CONFIDENCE_THRESHOLD)
    imeis = [c.validation.clean_imei for c in confident if c.validation.is_valid]

    logger.info(
        f"Processed invoice {invoice_data.invoice_number or '<unknown>'}: "
        f"{len(products)} product(s), {len(imeis)} IMEI(s), "
        f"header confidence {invoice_data.confidence:.2f}"
    )

    return InvoiceProcessingSuccess(
        invoice_data=invoice_data,
        products=products,
        imeis=imeis,
        imei_field_suggestion=suggestion_for_count(len(imeis)),
        tokens=list(tokens or []),
    )
