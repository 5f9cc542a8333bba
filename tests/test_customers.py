"""
Tests for the customer endpoints and the Excel export.
"""

import io

from openpyxl import load_workbook

BASE = "/api/admin/customers"

CUSTOMER = {
    "company_name": "Sharma Builders",
    "contact_person": "Ravi Sharma",
    "email": "Ravi@SharmaBuilders.in",
    "phone": "98765 43210",
    "gst_number": "27aapfu0939f1zv",
}


def create(client, headers, **overrides):
    return client.post(f"{BASE}/", json={**CUSTOMER, **overrides}, headers=headers)


def test_create_normalises_fields(client, auth_headers):
    response = create(client, auth_headers)
    assert response.status_code == 201
    data = response.json()["data"]
    assert data["phone"] == "9876543210"
    assert data["email"] == "ravi@sharmabuilders.in"
    assert data["gst_number"] == "27AAPFU0939F1ZV"
    assert data["total_quotations"] == 0


def test_invalid_phone_and_email(client, auth_headers):
    response = create(client, auth_headers, phone="12345", email="not-an-email")
    assert response.status_code == 400
    fields = {e["field"] for e in response.json()["errors"]}
    assert fields == {"phone", "email"}


def test_duplicate_phone_conflicts(client, auth_headers):
    create(client, auth_headers)
    response = create(client, auth_headers, email="other@example.com")
    assert response.status_code == 409
    assert response.json()["message"] == "Customer with this phone or email already exists"


def test_update_and_search(client, auth_headers):
    customer_id = create(client, auth_headers).json()["data"]["id"]
    updated = client.put(f"{BASE}/{customer_id}", json={"site_location": "Hinjewadi"}, headers=auth_headers)
    assert updated.json()["data"]["site_location"] == "Hinjewadi"
    found = client.get(f"{BASE}/search", params={"q": "Sharma"}, headers=auth_headers).json()["data"]
    assert [c["id"] for c in found] == [customer_id]


def test_cannot_delete_customer_with_quotations(client, auth_headers, machine):
    customer_id = create(client, auth_headers).json()["data"]["id"]
    client.post(
        "/api/admin/quotations/",
        json={"customer_name": "Ravi Sharma", "customer_contact": "9876543210", "customer_id": customer_id,
              "items": [{"item_type": "machine", "machine_id": machine["id"]}]},
        headers=auth_headers,
    )
    response = client.delete(f"{BASE}/{customer_id}", headers=auth_headers)
    assert response.status_code == 400
    assert response.json()["message"] == "Cannot delete customer with existing quotations"

    history = client.get(f"{BASE}/{customer_id}/quotations", headers=auth_headers).json()["data"]
    assert len(history) == 1


def test_delete_customer(client, auth_headers):
    customer_id = create(client, auth_headers).json()["data"]["id"]
    assert client.delete(f"{BASE}/{customer_id}", headers=auth_headers).status_code == 200
    assert client.get(f"{BASE}/{customer_id}", headers=auth_headers).status_code == 404


def test_stats(client, auth_headers):
    create(client, auth_headers)
    create(client, auth_headers, phone="9123456789", email=None, gst_number=None)
    stats = client.get(f"{BASE}/stats", headers=auth_headers).json()["data"]
    assert stats["total_customers"] == 2
    assert stats["customers_with_gst"] == 1


def test_excel_export(client, auth_headers):
    create(client, auth_headers)
    response = client.get(f"{BASE}/export", params={"format": "excel"}, headers=auth_headers)
    assert response.status_code == 200
    assert "customers_export_" in response.headers["content-disposition"]
    sheet = load_workbook(io.BytesIO(response.content)).active
    header = [cell.value for cell in sheet[1]]
    assert header[0] == "Company Name"
    assert header[-1] == "Created Date"
    assert sheet.cell(row=2, column=1).value == "Sharma Builders"
