"""
Tests for the public inquiry form, its rate limit and the admin query
endpoints.  SMTP is never contacted.
"""

import smtplib
from unittest.mock import MagicMock, patch

import pytest

from mixer_rental_api.app.core.config import settings
from mixer_rental_api.app.core.errors import RateLimitExceeded
from mixer_rental_api.app.core.rate_limit import RateLimiter
from mixer_rental_api.app.services.email_service import CUSTOMER_SUBJECT, EmailService

QUERY = {
    "company_name": "Sharma Builders",
    "email": "ravi@sharmabuilders.in",
    "site_location": "Hinjewadi Phase 3, Pune",
    "contact_number": "98765 43210",
    "duration": "2 weeks",
    "work_description": "Foundation pour for a G+3 residential building",
}


def test_submit_query(client):
    with patch.object(EmailService, "send_new_query_emails") as send:
        response = client.post("/api/customer/query", json=QUERY)
    assert response.status_code == 201
    body = response.json()
    assert body["message"] == (
        "Your inquiry has been submitted successfully. We will contact you within 24 hours."
    )
    assert body["data"]["reference"] == f"QRY-{body['data']['id']:04d}"
    send.assert_called_once()
    assert send.call_args.args[0]["contact_number"] == "9876543210"


def test_invalid_query(client):
    response = client.post("/api/customer/query", json={**QUERY, "contact_number": "12345", "work_description": "short"})
    assert response.status_code == 400
    fields = {e["field"] for e in response.json()["errors"]}
    assert fields == {"contact_number", "work_description"}


def test_sixth_query_is_rate_limited(client):
    with patch.object(EmailService, "send_new_query_emails"):
        for _ in range(5):
            assert client.post("/api/customer/query", json=QUERY).status_code == 201
        response = client.post("/api/customer/query", json=QUERY)
    assert response.status_code == 429
    body = response.json()
    assert body["error"] == "RATE_LIMIT_EXCEEDED"
    assert body["message"] == "Too many queries submitted. Please try again after 15 minutes."
    assert "retry-after" in response.headers


def test_email_failure_does_not_fail_submission(client, monkeypatch):
    monkeypatch.setattr(settings, "email_enabled", True)
    with patch("mixer_rental_api.app.services.email_service.smtplib.SMTP", side_effect=OSError("down")):
        response = client.post("/api/customer/query", json=QUERY)
    assert response.status_code == 201


def test_emails_are_sent_to_customer_and_admins(monkeypatch):
    monkeypatch.setattr(settings, "email_enabled", True)
    monkeypatch.setattr(settings, "smtp_secure", False)
    server = MagicMock()
    server.__enter__.return_value = server
    server.has_extn.return_value = False
    with patch("mixer_rental_api.app.services.email_service.smtplib.SMTP", return_value=server) as smtp:
        assert EmailService.send_new_query_emails({"id": 7, **QUERY}) is True
    smtp.assert_called_once()
    recipients = [c.args[1] for c in server.sendmail.call_args_list]
    assert recipients == [["ravi@sharmabuilders.in"], ["ops@example.com"]]
    assert f"Subject: {CUSTOMER_SUBJECT}" in server.sendmail.call_args_list[0].args[2]


def test_refused_customer_address_still_notifies_admins(monkeypatch):
    monkeypatch.setattr(settings, "email_enabled", True)
    monkeypatch.setattr(settings, "smtp_secure", False)
    server = MagicMock()
    server.__enter__.return_value = server
    server.has_extn.return_value = False
    server.sendmail.side_effect = [
        smtplib.SMTPRecipientsRefused({"ravi@sharmabuilders.in": (550, b"No such user")}),
        {},
    ]
    with patch("mixer_rental_api.app.services.email_service.smtplib.SMTP", return_value=server) as smtp:
        assert EmailService.send_new_query_emails({"id": 7, **QUERY}) is True
    smtp.assert_called_once()
    assert server.sendmail.call_count == 2


def test_query_limiter_forgets_idle_clients():
    now = [0.0]
    limiter = RateLimiter(2, 60, "slow down", clock=lambda: now[0])
    limiter.hit("10.0.0.1")
    now[0] = 61.0
    limiter.hit("10.0.0.2")
    assert set(limiter._hits) == {"10.0.0.2"}
    limiter.hit("10.0.0.2")
    with pytest.raises(RateLimitExceeded):
        limiter.hit("10.0.0.2")


def test_email_disabled_reports_failure():
    assert EmailService.send(["x@example.com"], "Hello", "Body") is False


@pytest.fixture
def query_id(client):
    with patch.object(EmailService, "send_new_query_emails"):
        return client.post("/api/customer/query", json=QUERY).json()["data"]["id"]


def test_admin_list_and_status(client, auth_headers, query_id):
    listing = client.get("/api/admin/queries/", params={"status": "new"}, headers=auth_headers).json()
    assert [q["id"] for q in listing["data"]] == [query_id]
    assert listing["pagination"]["total"] == 1

    bad = client.put(f"/api/admin/queries/{query_id}/status", json={"status": "closed"}, headers=auth_headers)
    assert bad.status_code == 400

    done = client.put(f"/api/admin/queries/{query_id}/status", json={"status": "completed"}, headers=auth_headers)
    assert done.json()["data"]["status"] == "completed"

    stats = client.get("/api/admin/queries/stats", headers=auth_headers).json()["data"]
    assert stats["completed_queries"] == 1

    dashboard = client.get("/api/admin/dashboard/stats", headers=auth_headers).json()["data"]
    assert dashboard["overview"]["totalQueries"] == 1
    assert dashboard["performance"]["queryResolutionRate"] == 100
    assert dashboard["recentActivity"][0]["id"] == query_id


def test_missing_query_is_404(client, auth_headers):
    response = client.get("/api/admin/queries/999", headers=auth_headers)
    assert response.status_code == 404
    assert response.json()["message"] == "Query not found"


def test_company_info_is_public(client, auth_headers):
    assert client.get("/api/customer/company-info").json()["data"] is None
    client.put("/api/admin/company/", json={"company_name": "OCS Fiori Service", "gst_number": "27AAPFU0939F1ZV",
                                            "phone": "9876543210"}, headers=auth_headers)
    info = client.get("/api/customer/company-info").json()["data"]
    assert info["company_name"] == "OCS Fiori Service"
    assert "gst_number" not in info
