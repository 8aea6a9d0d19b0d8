"""
Reading invoice text from disk or uploads.

The engine works on OCR text. Photographed bills arrive as `.txt` files
written by the OCR step; e-invoices that already carry a text layer can
be read straight from PDF with pdfplumber.
"""

import tempfile
from pathlib import Path

import pdfplumber

from .config import logger


TEXT_SUFFIXES = {".txt", ".text", ".ocr"}


def extract_text_from_pdf(pdf_path: Path) -> str:
    """
    Extract the text layer of a PDF file.

    Args:
        pdf_path: Path to the PDF file

    Returns:
        Concatenated text from all pages ("" if the PDF cannot be read)
    """
    text_parts = []

    try:
        with pdfplumber.open(pdf_path) as pdf:
            for page in pdf.pages:
                page_text = page.extract_text()
                if page_text:
                    text_parts.append(page_text)
    except Exception as e:
        logger.error(f"Error extracting text from {pdf_path}: {e}")
        return ""

    return "\n".join(text_parts)


def read_invoice_text(path: Path) -> str:
    """
    Read invoice text from an OCR text file or a text-layer PDF.

    Raises:
        FileNotFoundError: If the path does not exist
        ValueError: If the file type is not supported
    """
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    suffix = path.suffix.lower()
    if suffix == ".pdf":
        return extract_text_from_pdf(path)
    if suffix in TEXT_SUFFIXES:
        return path.read_text(encoding="utf-8", errors="replace")

    raise ValueError(f"Unsupported file type: {path.suffix or '<none>'}")


def read_invoice_bytes(content: bytes, filename: str) -> str:
    """
    Read invoice text from uploaded bytes (for API uploads).

    Args:
        content: Raw file content
        filename: Original filename, used to pick the reader

    Returns:
        The invoice text
    """
    suffix = Path(filename).suffix.lower()

    if suffix in TEXT_SUFFIXES:
        return content.decode("utf-8", errors="replace")
    if suffix != ".pdf":
        raise ValueError(f"Unsupported file type: {suffix or '<none>'}")

    with tempfile.NamedTemporaryFile(suffix=".pdf", delete=False) as tmp:
        tmp.write(content)
        tmp_path = Path(tmp.name)

    try:
        return extract_text_from_pdf(tmp_path)
    finally:
        tmp_path.unlink()
