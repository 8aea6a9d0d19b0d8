"""
Tests for the FastAPI application.
"""

import pytest
from fastapi.testclient import TestClient

from mobile_invoice.api import app


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
def client() -> TestClient:
    return TestClient(app)


class TestSystemEndpoints:
    """Tests for health and rule listing."""

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_rules(self, client):
        response = client.get("/rules")
        body = response.json()
        assert response.status_code == 200
        assert body["total_rules"] == 7
        assert set(body["rules_by_kind"]) == {"hard_reject", "adjustment"}


class TestProcessEndpoints:
    """Tests for invoice processing endpoints."""

    def test_process_text(self, client):
        response = client.post("/process", json={"text": SHOP_INVOICE})
        body = response.json()

        assert response.status_code == 200
        assert body["status"] == "success"
        assert body["invoice_data"]["total_amount"] == "15050.00"
        assert body["imeis"] == ["490154203237518", "490154203237526"]

    def test_process_with_tokens(self, client):
        tokens = [{"text": "Redmi", "left": 1, "top": 2, "width": 3, "height": 4}]
        response = client.post("/process", json={"text": SHOP_INVOICE, "tokens": tokens})
        assert response.json()["tokens"][0]["text"] == "Redmi"

    def test_process_empty_text(self, client):
        response = client.post("/process", json={"text": ""})
        assert response.status_code == 422
        assert response.json()["kind"] == "insufficient_text"

    def test_process_missing_body_field(self, client):
        response = client.post("/process", json={})
        assert response.status_code == 422

    def test_process_file(self, client):
        files = {"file": ("invoice.txt", SHOP_INVOICE.encode("utf-8"), "text/plain")}
        response = client.post("/process-file", files=files)
        assert response.status_code == 200
        assert response.json()["invoice_data"]["customer_name"] == "Rahul Mobile Store"

    def test_process_file_unsupported_type(self, client):
        files = {"file": ("invoice.docx", b"data", "application/octet-stream")}
        response = client.post("/process-file", files=files)
        assert response.status_code == 400


class TestImeiEndpoints:
    """Tests for IMEI endpoints."""

    def test_detect_imeis(self, client):
        response = client.post("/detect-imeis", json={"text": "IMEI1: 490154203237518 IMEI2: 490154203237526"})
        body = response.json()
        assert response.status_code == 200
        assert len(body["candidates"]) == 2
        assert body["suggestion"] == "dual"

    def test_validate_valid(self, client):
        response = client.get("/validate-imei/490154-203237-518")
        body = response.json()
        assert body["is_valid"] is True
        assert body["clean_imei"] == "490154203237518"

    def test_validate_invalid(self, client):
        response = client.get("/validate-imei/490154203237519")
        body = response.json()
        assert body["is_valid"] is False
        assert body["error_kind"] == "checksum_mismatch"
