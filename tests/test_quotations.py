"""
Tests for quotation numbering, totals, status changes, exports and PDF output.
"""

import io
import logging
import tempfile
from unittest.mock import patch

from fpdf import FPDF
from openpyxl import load_workbook
from PIL import Image

BASE = "/api/admin/quotations"


def quotation_payload(machine_id, **overrides):
    payload = {
        "customer_name": "Ravi Sharma",
        "customer_contact": "98765-43210",
        "company_name": "Sharma Builders",
        "items": [
            {"item_type": "machine", "machine_id": machine_id, "duration_type": "day", "quantity": 2},
            {"item_type": "additional_charge", "description": "Transport", "quantity": 2, "unit_price": 100,
             "gst_percentage": 18},
        ],
    }
    payload.update(overrides)
    return payload


def test_create_computes_totals_and_number(client, auth_headers, machine):
    assert client.get(f"{BASE}/next-number", headers=auth_headers).json()["data"]["quotation_number"] == "QUO-001"
    response = client.post(f"{BASE}/", json=quotation_payload(machine["id"]), headers=auth_headers)
    assert response.status_code == 201
    data = response.json()["data"]
    assert data["quotation_number"] == "QUO-001"
    assert data["customer_contact"] == "9876543210"
    assert data["subtotal"] == 400.00
    assert data["total_gst_amount"] == 72.00
    assert data["grand_total"] == 472.00
    machine_item = data["items"][0]
    assert machine_item["unit_price"] == 100
    assert machine_item["description"] == "Concrete Mixer 10/7"
    assert machine_item["total_amount"] == 236.00
    assert data["customer_id"] is not None
    assert client.get(f"{BASE}/next-number", headers=auth_headers).json()["data"]["quotation_number"] == "QUO-002"


def test_weekly_rate_is_used(client, auth_headers, machine):
    payload = quotation_payload(machine["id"], items=[
        {"item_type": "machine", "machine_id": machine["id"], "duration_type": "week", "quantity": 1},
    ])
    data = client.post(f"{BASE}/", json=payload, headers=auth_headers).json()["data"]
    assert data["items"][0]["unit_price"] == 600
    assert data["grand_total"] == 708.00


def test_validation_errors(client, auth_headers):
    response = client.post(
        f"{BASE}/",
        json={"customer_name": "R", "customer_contact": "123", "items": []},
        headers=auth_headers,
    )
    assert response.status_code == 400
    fields = {e["field"] for e in response.json()["errors"]}
    assert fields == {"customer_name", "customer_contact", "items"}


def test_unknown_machine(client, auth_headers):
    response = client.post(f"{BASE}/", json=quotation_payload(999), headers=auth_headers)
    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "items.0.machine_id"


def test_default_terms_are_applied(client, auth_headers, machine):
    client.post("/api/admin/terms/", json={"title": "Payment", "description": "50% advance", "is_default": True},
                headers=auth_headers)
    client.post("/api/admin/terms/", json={"title": "Fuel", "description": "Borne by customer", "is_default": True},
                headers=auth_headers)
    data = client.post(f"{BASE}/", json=quotation_payload(machine["id"]), headers=auth_headers).json()["data"]
    assert data["terms_text"] == "1. Payment: 50% advance\n2. Fuel: Borne by customer"


def test_update_items_recomputes_totals(client, auth_headers, machine):
    quotation_id = client.post(f"{BASE}/", json=quotation_payload(machine["id"]), headers=auth_headers).json()["data"]["id"]
    response = client.put(
        f"{BASE}/{quotation_id}",
        json={"items": [{"item_type": "additional_charge", "description": "Operator", "quantity": 1,
                         "unit_price": 500, "gst_percentage": 0}]},
        headers=auth_headers,
    )
    data = response.json()["data"]
    assert len(data["items"]) == 1
    assert data["grand_total"] == 500.00
    assert data["total_gst_amount"] == 0


def test_status_update(client, auth_headers, machine):
    quotation_id = client.post(f"{BASE}/", json=quotation_payload(machine["id"]), headers=auth_headers).json()["data"]["id"]
    bad = client.put(f"{BASE}/{quotation_id}/status", json={"quotation_status": "won"}, headers=auth_headers)
    assert bad.status_code == 400
    ok = client.put(
        f"{BASE}/{quotation_id}/status",
        json={"quotation_status": "accepted", "delivery_status": "delivered"},
        headers=auth_headers,
    )
    assert ok.json()["data"]["quotation_status"] == "accepted"
    stats = client.get(f"{BASE}/stats", headers=auth_headers).json()["data"]
    assert stats["accepted_quotations"] == 1
    assert stats["accepted_value"] == 472.00


def test_list_and_limit_cap(client, auth_headers, machine):
    client.post(f"{BASE}/", json=quotation_payload(machine["id"]), headers=auth_headers)
    body = client.get(f"{BASE}/", params={"limit": 500, "search": "QUO"}, headers=auth_headers).json()
    assert body["pagination"]["per_page"] == 100
    assert body["data"][0]["total_items"] == 2


def test_pdf(client, auth_headers, machine):
    client.put("/api/admin/company/", json={"company_name": "OCS Fiori Service", "gst_number": "27AAPFU0939F1ZV"},
               headers=auth_headers)
    quotation = client.post(f"{BASE}/", json=quotation_payload(machine["id"]), headers=auth_headers).json()["data"]
    response = client.get(f"{BASE}/{quotation['id']}/pdf", headers=auth_headers)
    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert 'filename="quotation_QUO-001.pdf"' in response.headers["content-disposition"]
    assert response.content.startswith(b"%PDF")


def test_delete(client, auth_headers, machine):
    quotation_id = client.post(f"{BASE}/", json=quotation_payload(machine["id"]), headers=auth_headers).json()["data"]["id"]
    assert client.delete(f"{BASE}/{quotation_id}", headers=auth_headers).status_code == 200
    assert client.get(f"{BASE}/{quotation_id}", headers=auth_headers).status_code == 404


def test_long_walk_in_name_still_creates_quotation(client, auth_headers, machine):
    name = "R" * 120
    payload = quotation_payload(machine["id"], customer_name=name, company_name=None)
    response = client.post(f"{BASE}/", json=payload, headers=auth_headers)
    assert response.status_code == 201
    data = response.json()["data"]
    assert data["customer_name"] == name
    assert data["customer_id"] is None


def test_rejected_quotation_creates_no_customer(client, auth_headers):
    response = client.post(f"{BASE}/", json=quotation_payload(999), headers=auth_headers)
    assert response.status_code == 400
    customers = client.get("/api/admin/customers/", headers=auth_headers).json()["data"]
    assert customers == []


def test_unknown_customer_id_is_rejected(client, auth_headers, machine):
    response = client.post(f"{BASE}/", json=quotation_payload(machine["id"], customer_id=9999), headers=auth_headers)
    assert response.status_code == 400
    assert response.json()["errors"] == [{"field": "customer_id", "message": "Customer with ID 9999 not found"}]
    assert client.get(f"{BASE}/next-number", headers=auth_headers).json()["data"]["quotation_number"] == "QUO-001"


def test_update_with_unknown_customer_id_is_rejected(client, auth_headers, machine):
    quotation_id = client.post(f"{BASE}/", json=quotation_payload(machine["id"]), headers=auth_headers).json()["data"]["id"]
    response = client.put(f"{BASE}/{quotation_id}", json={"customer_id": 9999}, headers=auth_headers)
    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "customer_id"


def test_excel_export(client, auth_headers, machine):
    quotation_id = client.post(f"{BASE}/", json=quotation_payload(machine["id"]), headers=auth_headers).json()["data"]["id"]
    client.put(f"{BASE}/{quotation_id}/status", json={"quotation_status": "accepted"}, headers=auth_headers)
    client.post(f"{BASE}/", json=quotation_payload(machine["id"]), headers=auth_headers)

    response = client.get(f"{BASE}/export", headers=auth_headers)
    assert response.status_code == 200
    assert "quotations_export_" in response.headers["content-disposition"]
    wb = load_workbook(io.BytesIO(response.content))
    assert wb.sheetnames == ["Quotations", "Summary"]
    rows = list(wb["Quotations"].iter_rows(values_only=True))
    assert rows[0][:3] == ("Sr. No.", "Quotation Number", "Customer Name")
    assert {r[1] for r in rows[1:]} == {"QUO-001", "QUO-002"}
    summary = dict(list(wb["Summary"].iter_rows(values_only=True))[1:])
    assert summary["Total Quotations"] == 2
    assert summary["Accepted Quotations"] == 1
    assert summary["Conversion Rate (%)"] == 50

    filtered = client.get(f"{BASE}/export", params={"quotation_status": "accepted"}, headers=auth_headers)
    rows = list(load_workbook(io.BytesIO(filtered.content))["Quotations"].iter_rows(values_only=True))
    assert [(r[1], r[9]) for r in rows[1:]] == [("QUO-001", "ACCEPTED")]


def test_pdf_embeds_company_logo_and_signature(client, auth_headers, machine, tmp_path):
    image_path = tmp_path / "logo.png"
    Image.new("RGB", (20, 10), "red").save(image_path)
    client.put("/api/admin/company/", json={"company_name": "OCS Fiori Service", "logo_url": str(image_path),
                                            "signature_url": str(image_path)}, headers=auth_headers)
    quotation = client.post(f"{BASE}/", json=quotation_payload(machine["id"]), headers=auth_headers).json()["data"]
    response = client.get(f"{BASE}/{quotation['id']}/pdf", headers=auth_headers)
    assert response.status_code == 200
    assert b"/Subtype /Image" in response.content


def test_pdf_without_logo_file_still_renders(client, auth_headers, machine, caplog):
    client.put("/api/admin/company/", json={"company_name": "OCS Fiori Service",
                                            "logo_url": "/uploads/company/missing.png"}, headers=auth_headers)
    quotation = client.post(f"{BASE}/", json=quotation_payload(machine["id"]), headers=auth_headers).json()["data"]
    with caplog.at_level(logging.WARNING):
        response = client.get(f"{BASE}/{quotation['id']}/pdf", headers=auth_headers)
    assert response.status_code == 200
    assert b"/Subtype /Image" not in response.content
    assert "Company image not found: /uploads/company/missing.png" in caplog.text


def test_pdf_failure_leaves_no_temp_file(client, auth_headers, machine, tmp_path, monkeypatch):
    monkeypatch.setattr(tempfile, "tempdir", str(tmp_path))

    def broken_output(self, name="", *args, **kwargs):
        with open(name, "wb") as fh:
            fh.write(b"%PDF-1.3 partial")
        raise RuntimeError("disk full")

    quotation = client.post(f"{BASE}/", json=quotation_payload(machine["id"]), headers=auth_headers).json()["data"]
    with patch.object(FPDF, "output", broken_output):
        response = client.get(f"{BASE}/{quotation['id']}/pdf", headers=auth_headers)
    assert response.status_code == 500
    assert response.json() == {"success": False, "message": "Failed to generate PDF"}
    assert list(tmp_path.glob("quotation_*.pdf")) == []
