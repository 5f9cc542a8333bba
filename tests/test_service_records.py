"""
Tests for the service catalogue and service record endpoints.
"""

import csv
import io
import tempfile
from unittest.mock import patch

from fpdf import FPDF

BASE = "/api/admin/services"


def record_payload(machine_id, catalog, **overrides):
    payload = {
        "machine_id": machine_id,
        "service_date": "2025-03-14",
        "engine_hours": 1250.5,
        "site_location": "Hinjewadi Phase 3",
        "operator": "Suresh",
        "general_notes": "Routine check",
        "services": [
            {"category_id": catalog["engine"], "was_performed": True, "service_notes": "Engine check",
             "sub_services": [{"id": catalog["oil"], "was_performed": True, "sub_service_notes": "15W-40"}]},
            {"category_id": catalog["washing"], "was_performed": True},
        ],
    }
    payload.update(overrides)
    return payload


def test_categories_include_sub_services(client, auth_headers, catalog):
    categories = client.get(f"{BASE}/categories", headers=auth_headers).json()["data"]
    by_name = {c["name"]: c for c in categories}
    assert by_name["Engine"]["has_sub_services"] is True
    assert [s["name"] for s in by_name["Engine"]["sub_services"]] == ["Oil change", "Air filter"]
    assert by_name["Washing"]["has_sub_services"] is False


def test_create_and_read_record(client, auth_headers, machine, catalog):
    response = client.post(f"{BASE}/records", json=record_payload(machine["id"], catalog), headers=auth_headers)
    assert response.status_code == 201
    record = response.json()["data"]
    assert record["machine_number"] == "CM-001"
    engine = next(s for s in record["services"] if s["category_id"] == catalog["engine"])
    assert engine["service_notes"] == "Engine check"
    assert engine["sub_services"] == [
        {"id": catalog["oil"], "sub_service_name": "Oil change", "was_performed": True, "sub_service_notes": "15W-40"}
    ]


def test_sub_service_under_unselected_category_is_normalised(client, auth_headers, machine, catalog):
    payload = record_payload(machine["id"], catalog, services=[
        {"category_id": catalog["engine"], "was_performed": False,
         "sub_services": [{"id": catalog["filter"], "was_performed": True}]},
    ])
    record = client.post(f"{BASE}/records", json=payload, headers=auth_headers).json()["data"]
    assert record["services"][0]["was_performed"] is True


def test_invalid_record_reports_three_errors(client, auth_headers, catalog):
    payload = {"service_date": "2025-03-14", "operator": "", "services": []}
    response = client.post(f"{BASE}/records", json=payload, headers=auth_headers)
    assert response.status_code == 400
    fields = {e["field"] for e in response.json()["errors"]}
    assert fields == {"machine_id", "operator", "services"}


def test_category_selected_without_sub_service(client, auth_headers, machine, catalog):
    payload = record_payload(machine["id"], catalog, services=[
        {"category_id": catalog["engine"], "was_performed": True, "sub_services": []},
    ])
    response = client.post(f"{BASE}/records", json=payload, headers=auth_headers)
    assert response.status_code == 400
    assert response.json()["errors"] == [
        {"field": f"category_{catalog['engine']}", "message": "At least one sub-service must be selected for Engine"}
    ]


def test_update_replaces_services(client, auth_headers, machine, catalog):
    record_id = client.post(
        f"{BASE}/records", json=record_payload(machine["id"], catalog), headers=auth_headers
    ).json()["data"]["id"]
    payload = record_payload(machine["id"], catalog, services=[{"category_id": catalog["washing"], "was_performed": True}])
    record = client.put(f"{BASE}/records/{record_id}", json=payload, headers=auth_headers).json()["data"]
    assert [s["category_id"] for s in record["services"]] == [catalog["washing"]]


def test_record_using_deactivated_category_can_be_resaved(client, auth_headers, machine, catalog):
    record = client.post(
        f"{BASE}/records", json=record_payload(machine["id"], catalog), headers=auth_headers
    ).json()["data"]
    client.put(f"{BASE}/categories/{catalog['washing']}", json={"is_active": False}, headers=auth_headers)
    client.put(f"{BASE}/sub-items/{catalog['oil']}", json={"is_active": False}, headers=auth_headers)

    response = client.put(
        f"{BASE}/records/{record['id']}",
        json=record_payload(machine["id"], catalog, general_notes="Edited"),
        headers=auth_headers,
    )
    assert response.status_code == 200
    saved = response.json()["data"]
    assert saved["general_notes"] == "Edited"
    assert {s["category_id"] for s in saved["services"]} == {catalog["engine"], catalog["washing"]}


def test_new_record_cannot_use_deactivated_category(client, auth_headers, machine, catalog):
    client.put(f"{BASE}/categories/{catalog['washing']}", json={"is_active": False}, headers=auth_headers)
    payload = record_payload(machine["id"], catalog, services=[{"category_id": catalog["washing"], "was_performed": True}])
    response = client.post(f"{BASE}/records", json=payload, headers=auth_headers)
    assert response.status_code == 400
    assert {"field": "services", "message": f"Unknown service category {catalog['washing']}"} in response.json()["errors"]


def test_list_filters_and_pagination(client, auth_headers, machine, catalog):
    client.post(f"{BASE}/records", json=record_payload(machine["id"], catalog), headers=auth_headers)
    client.post(f"{BASE}/records", json=record_payload(machine["id"], catalog, service_date="2025-04-01",
                                                       operator="Mahesh"), headers=auth_headers)
    body = client.get(f"{BASE}/records", params={"limit": 1}, headers=auth_headers).json()
    assert body["data"][0]["service_date"] == "2025-04-01"
    assert body["pagination"] == {"limit": 1, "offset": 0, "hasMore": True}

    filtered = client.get(f"{BASE}/records", params={"operator": "Sur"}, headers=auth_headers).json()["data"]
    assert [r["operator"] for r in filtered] == ["Suresh"]


def test_machine_summary(client, auth_headers, machine, catalog):
    client.post(f"{BASE}/records", json=record_payload(machine["id"], catalog), headers=auth_headers)
    summary = client.get(f"{BASE}/machine/{machine['id']}", headers=auth_headers).json()["data"]
    assert summary["total_services"] == 1
    assert summary["max_engine_hours"] == 1250.5
    assert {s["service_name"] for s in summary["common_services"]} == {"Engine", "Washing"}


def test_category_in_use_cannot_be_deleted(client, auth_headers, machine, catalog):
    client.post(f"{BASE}/records", json=record_payload(machine["id"], catalog), headers=auth_headers)
    response = client.delete(f"{BASE}/categories/{catalog['engine']}", headers=auth_headers)
    assert response.status_code == 400


def test_csv_export(client, auth_headers, machine, catalog):
    client.post(f"{BASE}/records", json=record_payload(machine["id"], catalog), headers=auth_headers)
    response = client.get(f"{BASE}/records/export", headers=auth_headers)
    assert response.status_code == 200
    assert "service-records-export-" in response.headers["content-disposition"]
    rows = list(csv.reader(io.StringIO(response.text)))
    assert rows[0][0] == "Machine Number"
    assert rows[1][0] == "CM-001"
    assert rows[1][8] == "admin"


def test_record_pdf(client, auth_headers, machine, catalog):
    record_id = client.post(
        f"{BASE}/records", json=record_payload(machine["id"], catalog), headers=auth_headers
    ).json()["data"]["id"]
    response = client.get(f"{BASE}/records/{record_id}/pdf", headers=auth_headers)
    assert response.status_code == 200
    assert f'filename="service_record_{record_id}.pdf"' in response.headers["content-disposition"]
    assert response.content.startswith(b"%PDF")


def test_record_pdf_failure_leaves_no_temp_file(client, auth_headers, machine, catalog, tmp_path, monkeypatch):
    monkeypatch.setattr(tempfile, "tempdir", str(tmp_path))
    record_id = client.post(
        f"{BASE}/records", json=record_payload(machine["id"], catalog), headers=auth_headers
    ).json()["data"]["id"]
    with patch.object(FPDF, "output", side_effect=RuntimeError("disk full")):
        response = client.get(f"{BASE}/records/{record_id}/pdf", headers=auth_headers)
    assert response.status_code == 500
    assert response.json() == {"success": False, "message": "Failed to generate PDF"}
    assert list(tmp_path.glob("service_record_*.pdf")) == []


def test_delete_record(client, auth_headers, machine, catalog):
    record_id = client.post(
        f"{BASE}/records", json=record_payload(machine["id"], catalog), headers=auth_headers
    ).json()["data"]["id"]
    assert client.delete(f"{BASE}/records/{record_id}", headers=auth_headers).status_code == 200
    assert client.get(f"{BASE}/records/{record_id}", headers=auth_headers).status_code == 404
