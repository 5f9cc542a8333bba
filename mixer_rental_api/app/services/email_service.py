"""
Outgoing e‑mail over SMTP.

Messages are built as multipart (plain text + HTML) ``Outgoing``
pairs and delivered with ``smtplib``; ``EmailService.send_many`` puts
several of them through a single SMTP session.  Delivery problems are
logged and reported through boolean return values; they are never
raised, so a failed notification cannot fail the request that
triggered it.  Inquiry e‑mails are scheduled as FastAPI background
tasks and run after the response has been sent.
"""

import html
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Any, Dict, List, Optional, Tuple

from mixer_rental_api.app.core.config import settings


logger = logging.getLogger(__name__)

CUSTOMER_SUBJECT = "Thank you for your inquiry - OCS Fiori Service"

# (recipients, message)
Outgoing = Tuple[List[str], MIMEMultipart]


def query_reference(query_id: int) -> str:
    return f"QRY-{query_id:04d}"


def _details_rows(query: Dict[str, Any]) -> List[tuple]:
    return [
        ("Company", query.get("company_name")),
        ("Email", query.get("email")),
        ("Contact Number", query.get("contact_number")),
        ("Site Location", query.get("site_location")),
        ("Duration", query.get("duration")),
        ("Work Description", query.get("work_description")),
    ]


def _html_table(rows: List[tuple]) -> str:
    cells = "".join(
        f"<tr><td style='padding:4px 12px 4px 0'><strong>{html.escape(label)}</strong></td>"
        f"<td style='padding:4px 0'>{html.escape(str(value or ''))}</td></tr>"
        for label, value in rows
    )
    return f"<table>{cells}</table>"


def build_message(to: List[Optional[str]], subject: str, text_body: str,
                  html_body: Optional[str] = None) -> Optional[Outgoing]:
    """Return ``(recipients, message)``, or ``None`` when ``to`` has no address."""
    recipients = [r for r in to if r]
    if not recipients:
        logger.warning("Email '%s' has no recipients; skipped", subject)
        return None
    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = settings.company_email
    msg["To"] = ", ".join(recipients)
    msg.attach(MIMEText(text_body, "plain", "utf-8"))
    if html_body:
        msg.attach(MIMEText(html_body, "html", "utf-8"))
    return recipients, msg


class EmailService:
    """Сервис отправки писем через SMTP."""

    @classmethod
    def _connect(cls) -> smtplib.SMTP:
        if settings.smtp_secure:
            server = smtplib.SMTP_SSL(settings.smtp_host, settings.smtp_port, timeout=30)
        else:
            server = smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=30)
            server.ehlo()
            if server.has_extn("starttls"):
                server.starttls()
                server.ehlo()
        if settings.smtp_user:
            server.login(settings.smtp_user, settings.smtp_pass)
        return server

    @classmethod
    def send_many(cls, messages: List[Outgoing]) -> List[bool]:
        """Deliver ``messages`` over one SMTP connection.

        Returns one flag per message.  A message rejected by the server
        does not stop the others; a broken connection fails the rest.
        """
        results = [False] * len(messages)
        if not messages:
            return results
        if not settings.email_enabled:
            for recipients, msg in messages:
                logger.info("Email disabled; not sending '%s' to %s", msg["Subject"], ", ".join(recipients))
            return results
        try:
            with cls._connect() as server:
                for index, (recipients, msg) in enumerate(messages):
                    try:
                        server.sendmail(settings.company_email, recipients, msg.as_string())
                    except (smtplib.SMTPRecipientsRefused, smtplib.SMTPDataError, smtplib.SMTPSenderRefused):
                        logger.exception("Failed to send email '%s' to %s", msg["Subject"], ", ".join(recipients))
                        continue
                    results[index] = True
                    logger.info("Email '%s' sent to %s", msg["Subject"], ", ".join(recipients))
        except (smtplib.SMTPException, OSError):
            failed = [msg["Subject"] for (_, msg), sent in zip(messages, results) if not sent]
            logger.exception("SMTP delivery failed; not sent: %s", ", ".join(failed))
        return results

    @classmethod
    def send(cls, to: List[str], subject: str, text_body: str, html_body: Optional[str] = None) -> bool:
        """Send one message to ``to``; returns ``True`` on success."""
        message = build_message(to, subject, text_body, html_body)
        if message is None:
            return False
        return cls.send_many([message])[0]

    @classmethod
    def customer_confirmation(cls, query: Dict[str, Any]) -> Optional[Outgoing]:
        reference = query_reference(query["id"])
        rows = _details_rows(query)
        text = (
            f"Dear {query.get('company_name')},\n\n"
            "Thank you for contacting us. We have received your inquiry and our team "
            "will get back to you within 24 hours.\n\n"
            f"Reference: {reference}\n\n"
            + "\n".join(f"{label}: {value or ''}" for label, value in rows)
            + "\n\nRegards,\nOCS Fiori Service"
        )
        body = (
            f"<p>Dear {html.escape(query.get('company_name') or '')},</p>"
            "<p>Thank you for contacting us. We have received your inquiry and our team "
            "will get back to you within 24 hours.</p>"
            f"<p><strong>Reference:</strong> {reference}</p>"
            f"{_html_table(rows)}<p>Regards,<br>OCS Fiori Service</p>"
        )
        return build_message([query.get("email")], CUSTOMER_SUBJECT, text, body)

    @classmethod
    def admin_notification(cls, query: Dict[str, Any]) -> Optional[Outgoing]:
        recipients = settings.admin_email_list
        if not recipients:
            logger.warning("ADMIN_EMAILS is empty; admin notification for %s skipped", query_reference(query["id"]))
            return None
        rows = [("Reference", query_reference(query["id"]))] + _details_rows(query)
        text = "A new customer inquiry was submitted.\n\n" + "\n".join(
            f"{label}: {value or ''}" for label, value in rows
        )
        body = f"<p>A new customer inquiry was submitted.</p>{_html_table(rows)}"
        return build_message(recipients, f"New Customer Inquiry - {query.get('company_name')}", text, body)

    @classmethod
    def send_new_query_emails(cls, query: Dict[str, Any]) -> bool:
        """Send both inquiry e‑mails in one session; succeeds when either was delivered."""
        messages = [m for m in (cls.customer_confirmation(query), cls.admin_notification(query)) if m]
        delivered = any(cls.send_many(messages))
        if not delivered:
            logger.warning("No email could be delivered for %s", query_reference(query["id"]))
        return delivered

    @classmethod
    def send_test_email(cls, to: Optional[str] = None) -> bool:
        recipients = [to] if to else settings.admin_email_list
        return cls.send(
            recipients,
            "Test Email - OCS Fiori Service",
            "This is a test email. Your SMTP configuration is working.",
            "<p>This is a test email. Your SMTP configuration is working.</p>",
        )
