"""
Tests for terms & conditions, company details, dashboard and the 500 envelope.
"""

from unittest.mock import patch

from mixer_rental_api.app.core.config import settings
from mixer_rental_api.app.services.machine_service import MachineService

TERMS = "/api/admin/terms"


def test_terms_crud_and_defaults(client, auth_headers):
    first = client.post(f"{TERMS}/", json={"title": "Payment", "description": "50% advance"}, headers=auth_headers)
    second = client.post(f"{TERMS}/", json={"title": "Fuel", "description": "Borne by customer"}, headers=auth_headers)
    assert first.status_code == 201
    assert second.json()["data"]["display_order"] == first.json()["data"]["display_order"] + 1

    ids = [first.json()["data"]["id"], second.json()["data"]["id"]]
    updated = client.post(f"{TERMS}/set-default", json={"ids": ids}, headers=auth_headers)
    assert updated.json()["data"]["updated"] == 2
    assert len(client.get(f"{TERMS}/default", headers=auth_headers).json()["data"]) == 2

    text = client.get(f"{TERMS}/for-quotation", headers=auth_headers).json()["data"]["terms_text"]
    assert text.splitlines()[0] == "1. Payment: 50% advance"

    client.put(f"{TERMS}/{ids[0]}", json={"is_default": False}, headers=auth_headers)
    assert client.get(f"{TERMS}/for-quotation", headers=auth_headers).json()["data"]["terms_text"] == (
        "1. Fuel: Borne by customer"
    )

    assert client.delete(f"{TERMS}/{ids[1]}", headers=auth_headers).status_code == 200
    assert client.get(f"{TERMS}/{ids[1]}", headers=auth_headers).status_code == 404


def _create_terms(client, auth_headers, *titles):
    return [
        client.post(f"{TERMS}/", json={"title": t, "description": f"{t} clause"}, headers=auth_headers).json()["data"]["id"]
        for t in titles
    ]


def test_terms_reorder(client, auth_headers):
    payment, fuel = _create_terms(client, auth_headers, "Payment", "Fuel")
    response = client.put(
        f"{TERMS}/reorder",
        json={"items": [{"id": payment, "display_order": 2}, {"id": fuel, "display_order": 1}]},
        headers=auth_headers,
    )
    assert response.status_code == 200
    assert response.json()["data"] == {"updated": 2}
    assert [t["title"] for t in client.get(f"{TERMS}/", headers=auth_headers).json()["data"]] == ["Fuel", "Payment"]


def test_terms_duplicate(client, auth_headers):
    term_id = client.post(f"{TERMS}/", json={"title": "Payment", "description": "50% advance", "is_default": True},
                          headers=auth_headers).json()["data"]["id"]
    response = client.post(f"{TERMS}/{term_id}/duplicate", headers=auth_headers)
    assert response.status_code == 201
    copy = response.json()["data"]
    assert copy["title"] == "Payment (Copy)"
    assert copy["description"] == "50% advance"
    assert copy["is_default"] is False
    assert client.post(f"{TERMS}/9999/duplicate", headers=auth_headers).status_code == 404


def test_terms_bulk_delete_renumbers(client, auth_headers):
    ids = _create_terms(client, auth_headers, "Payment", "Fuel", "Transport")
    response = client.request("DELETE", f"{TERMS}/bulk", json={"ids": ids[:2]}, headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["data"] == {"deleted": 2}
    remaining = client.get(f"{TERMS}/", headers=auth_headers).json()["data"]
    assert [(t["title"], t["display_order"]) for t in remaining] == [("Transport", 1)]

    empty = client.request("DELETE", f"{TERMS}/bulk", json={"ids": []}, headers=auth_headers)
    assert empty.status_code == 400


def test_terms_stats(client, auth_headers):
    client.post(f"{TERMS}/", json={"title": "Payment", "description": "50% advance", "is_default": True},
                headers=auth_headers)
    _create_terms(client, auth_headers, "Fuel")
    stats = client.get(f"{TERMS}/stats", headers=auth_headers).json()["data"]
    assert stats["totalTerms"] == 2
    assert stats["defaultTerms"] == 1
    assert stats["lastUpdated"] is not None


def test_dashboard_stats(client, auth_headers, machine):
    response = client.get("/api/admin/dashboard/stats", params={"period": "7d"}, headers=auth_headers)
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["overview"]["totalMachines"] == 1
    assert data["cards"]["machines"] == {"total": 1, "active": 1}
    assert data["performance"]["queryResolutionRate"] == 0
    assert data["recentActivity"] == []


def test_dashboard_requires_token(client):
    assert client.get("/api/admin/dashboard/stats").status_code == 401


def _quotation(client, auth_headers, machine_id):
    payload = {
        "customer_name": "Ravi Sharma",
        "customer_contact": "9876543210",
        "items": [{"item_type": "machine", "machine_id": machine_id, "duration_type": "day", "quantity": 1}],
    }
    return client.post("/api/admin/quotations/", json=payload, headers=auth_headers).json()["data"]


def test_dashboard_charts(client, auth_headers, machine):
    quotation = _quotation(client, auth_headers, machine["id"])
    data = client.get("/api/admin/dashboard/charts", params={"period": "7d"}, headers=auth_headers).json()["data"]
    assert set(data) == {"queriesTrend", "quotationsTrend", "quotationStatus", "machineUtilization"}
    assert data["quotationsTrend"][0]["count"] == 1
    assert data["quotationsTrend"][0]["value"] == quotation["grand_total"]
    assert data["quotationStatus"] == [{"status": "draft", "count": 1}]
    assert data["machineUtilization"] == [{"machine_number": "CM-001", "name": machine["name"], "quotations": 1}]

    only_status = client.get("/api/admin/dashboard/charts", params={"chart_type": "status"},
                             headers=auth_headers).json()["data"]
    assert list(only_status) == ["quotationStatus"]


def test_dashboard_charts_rejects_unknown_type(client, auth_headers):
    response = client.get("/api/admin/dashboard/charts", params={"chart_type": "pie"}, headers=auth_headers)
    assert response.status_code == 400
    assert response.json()["success"] is False


def test_dashboard_performance(client, auth_headers, machine):
    first = _quotation(client, auth_headers, machine["id"])
    _quotation(client, auth_headers, machine["id"])
    client.put(f"/api/admin/quotations/{first['id']}/status", json={"quotation_status": "accepted"},
               headers=auth_headers)
    data = client.get("/api/admin/dashboard/performance", params={"period": "30d"}, headers=auth_headers).json()["data"]
    assert data["days"] == 30
    assert data["queries"]["total"] == 0
    assert data["quotations"]["total"] == 2
    assert data["quotations"]["accepted"] == 1
    assert data["quotations"]["conversionRate"] == 50
    assert data["quotations"]["acceptedValue"] == first["grand_total"]


def test_company_details_upsert(client, auth_headers):
    first = client.put("/api/admin/company/", json={"company_name": "OCS", "gst_number": "27aapfu0939f1zv"},
                       headers=auth_headers)
    assert first.json()["data"]["gst_number"] == "27AAPFU0939F1ZV"
    client.put("/api/admin/company/", json={"company_name": "OCS Fiori Service"}, headers=auth_headers)
    assert client.get("/api/admin/company/", headers=auth_headers).json()["data"]["company_name"] == "OCS Fiori Service"

    bad = client.put("/api/admin/company/", json={"company_name": "OCS", "gst_number": "123"}, headers=auth_headers)
    assert bad.status_code == 400


def test_unhandled_error_hides_message(client, auth_headers):
    with patch.object(MachineService, "get_stats", side_effect=RuntimeError("db exploded")):
        response = client.get("/api/admin/machines/stats", headers=auth_headers)
    assert response.status_code == 500
    assert response.json() == {"success": False, "message": "Internal server error"}


def test_unhandled_error_message_in_debug(client, auth_headers, monkeypatch):
    monkeypatch.setattr(settings, "debug", True)
    with patch.object(MachineService, "get_stats", side_effect=RuntimeError("db exploded")):
        response = client.get("/api/admin/machines/stats", headers=auth_headers)
    assert response.status_code == 500
    assert response.json()["error"] == "db exploded"
