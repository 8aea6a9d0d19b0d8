"""
FastAPI application for the mobile invoice OCR engine.

Provides REST API endpoints for:
- Health check
- Processing OCR text into a structured invoice record
- Processing uploaded OCR text files or text-layer PDFs
- IMEI detection and validation
"""

from typing import Union

from fastapi import FastAPI, File, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .checksum import validate_imei
from .config import API_HOST, API_PORT, MAX_UPLOAD_SIZE_MB, RuleKind, logger
from .detector import detect_imeis, suggest_field_count
from .ingest import read_invoice_bytes
from .processor import process_invoice
from .rules import CONTEXT_RULES, get_rules_by_kind
from .schemas import (
    DetectImeisRequest,
    DetectImeisResponse,
    InvoiceProcessingError,
    InvoiceProcessingSuccess,
    ProcessTextRequest,
    ValidationResult,
)


# ============================================================================
# FastAPI App Configuration
# ============================================================================

app = FastAPI(
    title="Mobile Invoice OCR API",
    description="""
    Structured extraction from OCR text of mobile shop invoices.

    ## Features

    - **Process**: Turn raw OCR text into invoice header fields, product
      lines (brand, model, variant, quantity, rate, amount) and IMEIs
    - **Detect IMEIs**: Inspect scored IMEI candidates and the suggested
      number of IMEI fields
    - **Validate IMEI**: Luhn checksum validation of a single IMEI
    """,
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# Configure CORS for local development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

ProcessResponse = Union[InvoiceProcessingSuccess, InvoiceProcessingError]


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str


# ============================================================================
# API Endpoints
# ============================================================================

@app.get("/health", response_model=HealthResponse, tags=["System"])
async def health_check() -> HealthResponse:
    """Health check endpoint for load balancers and monitoring."""
    from . import __version__
    return HealthResponse(status="ok", version=__version__)


@app.post(
    "/process",
    response_model=ProcessResponse,
    tags=["Extraction"],
    summary="Process OCR text",
)
async def process_text(request: ProcessTextRequest) -> ProcessResponse:
    """
    Process the OCR text of one invoice.

    Returns the Success record, or an Error record (with status 422)
    when the text is too short or no invoice structure was recognized.
    """
    logger.info(f"Received OCR text ({len(request.text)} characters, {len(request.tokens)} tokens)")
    result = process_invoice(request.text, tokens=request.tokens)

    if isinstance(result, InvoiceProcessingError):
        return JSONResponse(status_code=422, content=result.model_dump(mode="json"))
    return result


@app.post(
    "/process-file",
    response_model=ProcessResponse,
    tags=["Extraction"],
    summary="Process an uploaded OCR text file or PDF",
)
async def process_file(
    file: UploadFile = File(..., description="OCR text (.txt) or text-layer PDF")
) -> ProcessResponse:
    """
    Read an uploaded file and process its text.

    **Limitations:**
    - Maximum file size: MAX_UPLOAD_SIZE_MB (10MB by default)
    - Supported formats: .txt and PDF with a text layer
    """
    max_size = MAX_UPLOAD_SIZE_MB * 1024 * 1024
    content = await file.read()

    if len(content) > max_size:
        raise HTTPException(status_code=400, detail=f"File too large (max {MAX_UPLOAD_SIZE_MB}MB)")

    try:
        text = read_invoice_bytes(content, file.filename or "")
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    result = process_invoice(text)
    logger.info(f"Processed upload {file.filename}: {result.status}")

    if isinstance(result, InvoiceProcessingError):
        return JSONResponse(status_code=422, content=result.model_dump(mode="json"))
    return result


@app.post(
    "/detect-imeis",
    response_model=DetectImeisResponse,
    tags=["IMEI"],
    summary="Detect IMEI candidates",
)
async def detect(request: DetectImeisRequest) -> DetectImeisResponse:
    """Return scored IMEI candidates and the suggested number of IMEI fields."""
    return DetectImeisResponse(
        candidates=detect_imeis(request.text),
        suggestion=suggest_field_count(request.text),
    )


@app.get(
    "/validate-imei/{imei}",
    response_model=ValidationResult,
    tags=["IMEI"],
    summary="Validate a single IMEI",
)
async def validate(imei: str) -> ValidationResult:
    """Validate an IMEI with the Luhn checksum."""
    return validate_imei(imei)


@app.get("/rules", tags=["System"])
async def list_rules():
    """
    List the context rules used to score IMEI candidates, in
    evaluation order, grouped by kind.
    """
    rules_by_kind = {}
    for kind in RuleKind:
        kind_rules = get_rules_by_kind(kind)
        if kind_rules:
            rules_by_kind[kind.value] = [
                {"code": rule.code, "description": rule.description}
                for rule in kind_rules
            ]

    return {
        "total_rules": len(CONTEXT_RULES),
        "rules_by_kind": rules_by_kind,
    }


# ============================================================================
# Error Handlers
# ============================================================================

@app.exception_handler(Exception)
async def generic_exception_handler(request, exc):
    """Handle unexpected exceptions."""
    logger.exception(f"Unexpected error: {exc}")
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )


# ============================================================================
# Main Entry Point
# ============================================================================

def run_server():
    """Run the API server using uvicorn."""
    import uvicorn
    logger.info(f"Mobile Invoice OCR API starting on {API_HOST}:{API_PORT}")
    uvicorn.run(app, host=API_HOST, port=API_PORT)


if __name__ == "__main__":
    run_server()
