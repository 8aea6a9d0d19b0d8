"""
Command-line interface for the mobile invoice OCR engine.

Provides four commands:
- process: Extract a structured invoice record from OCR text
- detect-imeis: List scored IMEI candidates for debugging
- check-imei: Validate and format a single IMEI
- version: Show version information
"""

import json
from pathlib import Path
from typing import Optional

import typer

from .checksum import format_imei, validate_imei
from .config import MIN_TEXT_LENGTH, logger
from .detector import detect_imeis, suggest_field_count
from .ingest import read_invoice_text
from .processor import process_invoice
from .schemas import InvoiceProcessingError


# Create Typer app
app = typer.Typer(
    name="mobile-invoice",
    help="Mobile shop invoice OCR extraction CLI",
    add_completion=False,
)


def _load_text(path: Path) -> str:
    try:
        return read_invoice_text(path)
    except (FileNotFoundError, ValueError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)


@app.command()
def process(
    input_file: Path = typer.Option(
        ...,
        "--input",
        "-i",
        help="OCR text file (.txt) or text-layer PDF",
        exists=True,
        file_okay=True,
        dir_okay=False,
        resolve_path=True,
    ),
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Write the result JSON to this file instead of stdout",
    ),
    min_length: int = typer.Option(
        MIN_TEXT_LENGTH,
        "--min-length",
        help="Shortest normalized text accepted",
    ),
) -> None:
    """
    Extract invoice header fields, product lines and IMEIs.

    Exits with status 1 when the text is too short or unrecognizable.
    """
    text = _load_text(input_file)
    result = process_invoice(text, min_length=min_length)
    payload = json.dumps(result.model_dump(mode="json"), indent=2)

    if output:
        output.write_text(payload, encoding="utf-8")
        typer.echo(f"[OK] Result saved to: {output}")
    else:
        typer.echo(payload)

    if isinstance(result, InvoiceProcessingError):
        typer.echo(f"Error ({result.kind.value}): {result.message}", err=True)
        raise typer.Exit(code=1)

    data = result.invoice_data
    typer.echo(
        f"\nInvoice {data.invoice_number or '-'} | {data.vendor_name or '-'} | "
        f"total {data.total_amount if data.total_amount is not None else '-'} | "
        f"confidence {data.confidence:.0%}",
        err=True,
    )
    for item in result.products[:10]:
        typer.echo(f"  - {item.brand or '?'} {item.model or ''} {item.variant or ''} x{item.quantity or '?'} = {item.amount}", err=True)
    if len(result.products) > 10:
        typer.echo(f"  ... and {len(result.products) - 10} more", err=True)
    for imei in result.imeis:
        typer.echo(f"  IMEI {format_imei(imei)}", err=True)


@app.command("detect-imeis")
def detect(
    input_file: Path = typer.Option(
        ...,
        "--input",
        "-i",
        help="OCR text file (.txt) or text-layer PDF",
        exists=True,
        file_okay=True,
        dir_okay=False,
        resolve_path=True,
    ),
) -> None:
    """List every IMEI candidate above the confidence floor, with its signals."""
    text = _load_text(input_file)
    candidates = detect_imeis(text)

    if not candidates:
        typer.echo("No IMEI candidates found.")
    for candidate in candidates:
        typer.echo(
            f"{format_imei(candidate.clean_digits)}  "
            f"confidence={candidate.confidence:.2f}  "
            f"at={candidate.start}-{candidate.end}  "
            f"signals={','.join(candidate.signals)}"
        )

    typer.echo(f"\nSuggested IMEI fields: {suggest_field_count(text).value}")


@app.command("check-imei")
def check_imei(
    imei: str = typer.Argument(..., help="IMEI to validate (separators allowed)"),
) -> None:
    """Validate a single IMEI with the Luhn checksum."""
    result = validate_imei(imei)

    if not result.is_valid:
        typer.echo(f"Invalid: {result.error_message}", err=True)
        raise typer.Exit(code=1)

    typer.echo(f"Valid IMEI: {format_imei(result.clean_imei)}")


@app.command()
def version() -> None:
    """Show version information."""
    from . import __version__
    typer.echo(f"Mobile Invoice OCR v{__version__}")


def main() -> None:
    """Entry point for the CLI."""
    logger.debug("Starting mobile-invoice CLI")
    app()


if __name__ == "__main__":
    main()
