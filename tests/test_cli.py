"""
Tests for the command-line interface.
"""

import json

import pytest
from typer.testing import CliRunner

from mobile_invoice import __version__
from mobile_invoice.cli import app


runner = CliRunner()

SHOP_INVOICE = (
    "A.P. COMMUNICATION PVT LTD\n"
    "Invoice No: APC/2024/118\n"
    "Date: 12-Oct-2024\n"
    "Bill To: Rahul Mobile Store\n"
    "Redmi Note 14 5g Crimson Art 8gb 256gb 1.00 PCS 17,759.00 15,050.00\n"
    "IMEI1: 490154203237518\n"
    "IMEI2: 490154203237526\n"
    "Grand Total: 15,050.00\n"
)


@pytest.fixture
def invoice_file(tmp_path):
    path = tmp_path / "invoice.txt"
    path.write_text(SHOP_INVOICE, encoding="utf-8")
    return path


class TestProcessCommand:
    """Tests for the process command."""

    def test_writes_result_file(self, invoice_file, tmp_path):
        output = tmp_path / "result.json"
        result = runner.invoke(app, ["process", "--input", str(invoice_file), "--output", str(output)])

        assert result.exit_code == 0
        payload = json.loads(output.read_text(encoding="utf-8"))
        assert payload["status"] == "success"
        assert payload["invoice_data"]["invoice_number"] == "APC/2024/118"
        assert payload["imei_field_suggestion"] == "dual"
        assert payload["products"][0]["brand"] == "Redmi"

    def test_short_text_exits_with_error(self, tmp_path):
        path = tmp_path / "blank.txt"
        path.write_text("Total 5", encoding="utf-8")
        output = tmp_path / "result.json"

        result = runner.invoke(app, ["process", "-i", str(path), "-o", str(output)])

        assert result.exit_code == 1
        payload = json.loads(output.read_text(encoding="utf-8"))
        assert payload == {
            "status": "error",
            "message": payload["message"],
            "kind": "insufficient_text",
        }

    def test_unsupported_file_type(self, tmp_path):
        path = tmp_path / "invoice.docx"
        path.write_text(SHOP_INVOICE, encoding="utf-8")
        result = runner.invoke(app, ["process", "--input", str(path)])
        assert result.exit_code == 1
        assert "Unsupported file type" in result.output

    def test_missing_file(self, tmp_path):
        result = runner.invoke(app, ["process", "--input", str(tmp_path / "missing.txt")])
        assert result.exit_code != 0


class TestImeiCommands:
    """Tests for detect-imeis and check-imei."""

    def test_detect_imeis(self, invoice_file):
        result = runner.invoke(app, ["detect-imeis", "--input", str(invoice_file)])
        assert result.exit_code == 0
        assert "490154-203237-518" in result.output
        assert "490154-203237-526" in result.output
        assert "Suggested IMEI fields: dual" in result.output

    def test_check_valid_imei(self):
        result = runner.invoke(app, ["check-imei", "490154 203237 518"])
        assert result.exit_code == 0
        assert "Valid IMEI: 490154-203237-518" in result.output

    def test_check_invalid_imei(self):
        result = runner.invoke(app, ["check-imei", "490154203237519"])
        assert result.exit_code == 1
        assert "Invalid IMEI checksum" in result.output


class TestVersionCommand:
    def test_version(self):
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert f"v{__version__}" in result.output
