"""
Tests for the machine inventory endpoints.
"""

BASE = "/api/admin/machines"


def test_create_and_get_machine(client, auth_headers, machine):
    assert machine["machine_number"] == "CM-001"
    assert machine["is_active"] is True
    response = client.get(f"{BASE}/{machine['id']}", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["data"]["price_by_week"] == 600


def test_duplicate_machine_number_conflicts(client, auth_headers, machine):
    response = client.post(
        f"{BASE}/",
        json={"machine_number": "CM-001", "name": "Other", "price_by_day": 1, "price_by_week": 1, "price_by_month": 1},
        headers=auth_headers,
    )
    assert response.status_code == 409
    assert response.json()["message"] == "Machine number already exists"


def test_invalid_payload_returns_field_errors(client, auth_headers):
    response = client.post(
        f"{BASE}/",
        json={"machine_number": "CM 001!", "name": "Mixer", "price_by_day": -5, "price_by_week": 1, "price_by_month": 1},
        headers=auth_headers,
    )
    assert response.status_code == 400
    fields = {e["field"] for e in response.json()["errors"]}
    assert {"machine_number", "price_by_day"} <= fields


def test_missing_machine_is_404(client, auth_headers):
    response = client.get(f"{BASE}/999", headers=auth_headers)
    assert response.status_code == 404
    assert response.json() == {"success": False, "message": "Machine not found"}


def test_list_search_and_pagination(client, auth_headers, machine):
    client.post(
        f"{BASE}/",
        json={"machine_number": "CM-002", "name": "Mini Mixer", "price_by_day": 50, "price_by_week": 300,
              "price_by_month": 1000},
        headers=auth_headers,
    )
    response = client.get(f"{BASE}/", params={"limit": 1}, headers=auth_headers)
    body = response.json()
    assert len(body["data"]) == 1
    assert body["pagination"]["total"] == 2
    assert body["pagination"]["total_pages"] == 2
    assert body["pagination"]["has_next"] is True

    found = client.get(f"{BASE}/search", params={"q": "Mini"}, headers=auth_headers).json()["data"]
    assert [m["machine_number"] for m in found] == ["CM-002"]


def test_toggle_status_and_pricing(client, auth_headers, machine):
    pricing = client.get(f"{BASE}/{machine['id']}/pricing", headers=auth_headers)
    assert pricing.json()["data"]["price_by_month"] == 2000

    toggled = client.put(f"{BASE}/{machine['id']}/toggle-status", headers=auth_headers)
    assert toggled.json()["data"]["is_active"] is False

    pricing = client.get(f"{BASE}/{machine['id']}/pricing", headers=auth_headers)
    assert pricing.status_code == 400
    assert pricing.json()["message"] == "Machine is not available for quotation"


def test_bulk_update(client, auth_headers, machine):
    response = client.put(
        f"{BASE}/bulk/update",
        json={"machine_ids": [machine["id"]], "updates": {"gst_percentage": 12}},
        headers=auth_headers,
    )
    assert response.status_code == 200
    assert response.json()["message"] == "1 machines updated successfully"
    assert client.get(f"{BASE}/{machine['id']}", headers=auth_headers).json()["data"]["gst_percentage"] == 12


def test_stats(client, auth_headers, machine):
    stats = client.get(f"{BASE}/stats", headers=auth_headers).json()["data"]
    assert stats["total_machines"] == 1
    assert stats["active_machines"] == 1
    assert stats["avg_daily_price"] == 100


def test_delete_unused_machine(client, auth_headers, machine):
    response = client.delete(f"{BASE}/{machine['id']}", headers=auth_headers)
    assert response.json()["message"] == "Machine deleted successfully"
    assert client.get(f"{BASE}/{machine['id']}", headers=auth_headers).status_code == 404


def test_delete_quoted_machine_deactivates(client, auth_headers, machine):
    client.post(
        "/api/admin/quotations/",
        json={"customer_name": "Ravi Sharma", "customer_contact": "9876543210",
              "items": [{"item_type": "machine", "machine_id": machine["id"], "duration_type": "day"}]},
        headers=auth_headers,
    )
    response = client.delete(f"{BASE}/{machine['id']}", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["message"] == "Machine deactivated (has existing quotations)"
    assert client.get(f"{BASE}/{machine['id']}", headers=auth_headers).json()["data"]["is_active"] is False
