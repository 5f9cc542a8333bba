"""
PDF documents for quotations and service reports.

Documents are laid out with fpdf2 core fonts.  Every document merges the
record with the stored company details; monetary values are printed
exactly as stored on the quotation and are never recomputed here.  The
company logo and signature are drawn when their files can be found
locally and silently left out otherwise.  The
file is written to the OS temp directory, read back into memory and the
temp file removed whether rendering succeeded or not.
"""

import logging
import os
import tempfile
import uuid
from datetime import date, datetime, timedelta
from typing import Any, Dict, Optional, Tuple
from urllib.parse import urlparse

from fpdf import FPDF

from mixer_rental_api.app.core.config import settings
from mixer_rental_api.app.schemas.quotation import QuotationRead
from mixer_rental_api.app.services.company_service import CompanyService
from mixer_rental_api.app.utils.number_words import number_to_words
from mixer_rental_api.app.utils.validators import format_currency


logger = logging.getLogger(__name__)

QUOTATION_VALIDITY_DAYS = 30
LOGO_WIDTH = 30
SIGNATURE_WIDTH = 40


class PDFGenerationError(Exception):
    """Raised when a document could not be rendered."""


def _text(value: Any) -> str:
    # Core fonts only cover latin-1.
    text = "" if value is None else str(value)
    return text.replace("₹", "Rs.").encode("latin-1", "replace").decode("latin-1")


def _money(value: Any) -> str:
    return _text(f"Rs. {format_currency(value or 0)}")


def resolve_image(url: Optional[str]) -> Optional[str]:
    """Map a stored ``logo_url``/``signature_url`` to an existing local file.

    Full URLs are reduced to their path.  The path is tried as given,
    under the current directory and under ``settings.upload_dir`` (also
    its ``company`` subfolder).  Returns ``None`` when nothing matches.
    """
    if not url:
        return None
    path = urlparse(url).path if url.startswith(("http://", "https://")) else url
    if os.path.isabs(path) and os.path.isfile(path):
        return path
    relative = path.lstrip("/")
    candidates = [relative, os.path.join(os.getcwd(), relative)]
    for base in (settings.upload_dir, os.path.join(settings.upload_dir, "company")):
        candidates.append(os.path.join(base, relative))
        if relative.startswith("uploads/"):
            candidates.append(os.path.join(base, relative[len("uploads/"):]))
    for candidate in candidates:
        if os.path.isfile(candidate):
            return candidate
    logger.warning("Company image not found: %s", url)
    return None


def _image(pdf: FPDF, url: Optional[str], width: float, x: Optional[float] = None) -> bool:
    """Draw the image at the cursor; returns False when it was skipped."""
    path = resolve_image(url)
    if path is None:
        return False
    try:
        pdf.image(path, x=x, w=width)
    except (OSError, ValueError) as exc:
        logger.warning("Company image %s could not be embedded: %s", path, exc)
        return False
    return True


def _section(pdf: FPDF, title: str) -> None:
    pdf.set_fill_color(240, 240, 240)
    pdf.set_font("Helvetica", "B", 11)
    pdf.cell(0, 7, f"  {title}", new_x="LMARGIN", new_y="NEXT", fill=True)
    pdf.set_font("Helvetica", "", 10)


def _header(pdf: FPDF, company: Optional[Dict[str, Any]], title: str) -> None:
    company = company or {}
    if _image(pdf, company.get("logo_url"), LOGO_WIDTH, x=(pdf.w - LOGO_WIDTH) / 2):
        pdf.ln(2)
    pdf.set_font("Helvetica", "B", 20)
    pdf.cell(0, 10, _text(company.get("company_name") or "Company"), new_x="LMARGIN", new_y="NEXT", align="C")
    pdf.set_font("Helvetica", "", 10)
    if company.get("address"):
        pdf.multi_cell(0, 5, _text(company["address"]), align="C")
    contact = "  |  ".join(
        _text(v) for v in (company.get("phone"), company.get("phone2"), company.get("email")) if v
    )
    if contact:
        pdf.cell(0, 5, contact, new_x="LMARGIN", new_y="NEXT", align="C")
    if company.get("gst_number"):
        pdf.cell(0, 5, _text(f"GSTIN: {company['gst_number']}"), new_x="LMARGIN", new_y="NEXT", align="C")
    pdf.ln(4)
    pdf.set_font("Helvetica", "B", 16)
    pdf.cell(0, 10, title, new_x="LMARGIN", new_y="NEXT", align="C")
    pdf.ln(2)


def _signature(pdf: FPDF, company: Optional[Dict[str, Any]]) -> None:
    pdf.ln(12)
    pdf.set_font("Helvetica", "", 10)
    company = company or {}
    name = company.get("company_name") or ""
    pdf.cell(0, 5, _text(f"For {name}" if name else ""), new_x="LMARGIN", new_y="NEXT", align="R")
    if not _image(pdf, company.get("signature_url"), SIGNATURE_WIDTH, x=pdf.w - pdf.r_margin - SIGNATURE_WIDTH):
        pdf.ln(12)
    pdf.set_font("Helvetica", "B", 10)
    pdf.cell(0, 5, "Authorized Signatory", new_x="LMARGIN", new_y="NEXT", align="R")


def _render(pdf: FPDF, prefix: str) -> bytes:
    """Write ``pdf`` to a temp file and return its bytes; the file is always removed."""
    path = os.path.join(tempfile.gettempdir(), f"{prefix}_{uuid.uuid4().hex}.pdf")
    try:
        pdf.output(path)
        with open(path, "rb") as fh:
            return fh.read()
    except Exception as exc:
        logger.exception("PDF generation failed for %s", prefix)
        raise PDFGenerationError(str(exc)) from exc
    finally:
        if os.path.exists(path):
            os.unlink(path)


class PDFService:
    """Сервис формирования PDF документов."""

    @classmethod
    async def quotation_pdf(cls, quotation: QuotationRead) -> Tuple[bytes, str]:
        """Render a quotation.

        Parameters
        ----------
        quotation : QuotationRead
            Stored quotation with its items.

        Returns
        -------
        tuple
            ``(pdf_bytes, filename)`` where filename is ``quotation_{number}.pdf``.
        """
        company = await CompanyService.get_details()
        created = (quotation.created_at or "")[:10] or date.today().isoformat()
        valid_until = (date.today() + timedelta(days=QUOTATION_VALIDITY_DAYS)).isoformat()

        pdf = FPDF()
        pdf.add_page()
        pdf.set_auto_page_break(auto=True, margin=15)
        _header(pdf, company, "QUOTATION")

        _section(pdf, "Quotation Details")
        pdf.cell(95, 6, _text(f"  Quotation #: {quotation.quotation_number}"), new_x="RIGHT")
        pdf.cell(95, 6, _text(f"Date: {created}"), new_x="LMARGIN", new_y="NEXT")
        pdf.cell(95, 6, _text(f"  Status: {quotation.quotation_status.upper()}"), new_x="RIGHT")
        pdf.cell(95, 6, f"Valid Until: {valid_until}", new_x="LMARGIN", new_y="NEXT")
        pdf.ln(4)

        _section(pdf, "Customer")
        pdf.cell(0, 6, _text(f"  {quotation.customer_name}"), new_x="LMARGIN", new_y="NEXT")
        if quotation.company_name:
            pdf.cell(0, 6, _text(f"  {quotation.company_name}"), new_x="LMARGIN", new_y="NEXT")
        pdf.cell(0, 6, _text(f"  Contact: {quotation.customer_contact}"), new_x="LMARGIN", new_y="NEXT")
        pdf.ln(4)

        _section(pdf, "Items")
        pdf.set_font("Helvetica", "B", 9)
        pdf.cell(10, 6, "#", border="B", align="C")
        pdf.cell(62, 6, "Description", border="B")
        pdf.cell(20, 6, "Duration", border="B", align="C")
        pdf.cell(14, 6, "Qty", border="B", align="C")
        pdf.cell(28, 6, "Rate", border="B", align="R")
        pdf.cell(24, 6, "GST", border="B", align="R")
        pdf.cell(32, 6, "Amount", border="B", align="R", new_x="LMARGIN", new_y="NEXT")
        pdf.set_font("Helvetica", "", 9)
        for index, item in enumerate(quotation.items, start=1):
            pdf.cell(10, 6, str(index), align="C")
            pdf.cell(62, 6, _text(item.description)[:40])
            pdf.cell(20, 6, _text(item.duration_type or "-"), align="C")
            pdf.cell(14, 6, f"{item.quantity:g}", align="C")
            pdf.cell(28, 6, _money(item.unit_price), align="R")
            pdf.cell(24, 6, f"{item.gst_percentage:g}%", align="R")
            pdf.cell(32, 6, _money(item.total_amount), align="R", new_x="LMARGIN", new_y="NEXT")
        pdf.ln(4)

        _section(pdf, "Summary")
        pdf.cell(120, 6, "  Subtotal:", new_x="RIGHT")
        pdf.cell(70, 6, _money(quotation.subtotal), align="R", new_x="LMARGIN", new_y="NEXT")
        pdf.cell(120, 6, "  GST:", new_x="RIGHT")
        pdf.cell(70, 6, _money(quotation.total_gst_amount), align="R", new_x="LMARGIN", new_y="NEXT")
        pdf.set_font("Helvetica", "B", 12)
        pdf.cell(120, 8, "  Grand Total:", new_x="RIGHT")
        pdf.cell(70, 8, _money(quotation.grand_total), align="R", new_x="LMARGIN", new_y="NEXT")
        pdf.set_font("Helvetica", "I", 10)
        pdf.multi_cell(0, 5, _text(f"  Amount in words: {number_to_words(quotation.grand_total)} Only"))
        if not quotation.total_gst_amount:
            pdf.set_font("Helvetica", "", 9)
            pdf.cell(0, 5, "  Note: No GST collected by us.", new_x="LMARGIN", new_y="NEXT")
        pdf.ln(4)

        if quotation.terms_text:
            _section(pdf, "Terms & Conditions")
            pdf.multi_cell(0, 5, _text(quotation.terms_text))
            pdf.ln(2)
        if quotation.additional_notes:
            _section(pdf, "Notes")
            pdf.multi_cell(0, 5, _text(quotation.additional_notes))

        _signature(pdf, company)
        content = _render(pdf, "quotation")
        logger.info("Quotation PDF generated for %s (%d bytes)", quotation.quotation_number, len(content))
        return content, f"quotation_{quotation.quotation_number}.pdf"

    @classmethod
    async def service_record_pdf(cls, record: Dict[str, Any]) -> Tuple[bytes, str]:
        """Render a service report; returns ``(pdf_bytes, "service_record_{id}.pdf")``."""
        company = await CompanyService.get_details()

        pdf = FPDF()
        pdf.add_page()
        pdf.set_auto_page_break(auto=True, margin=15)
        _header(pdf, company, "SERVICE REPORT")

        _section(pdf, "Service Details")
        machine = f"{record.get('machine_number') or ''} - {record.get('machine_name') or ''}".strip(" -")
        pdf.cell(95, 6, _text(f"  Record #: {record['id']}"), new_x="RIGHT")
        pdf.cell(95, 6, _text(f"Service Date: {record.get('service_date')}"), new_x="LMARGIN", new_y="NEXT")
        pdf.cell(95, 6, _text(f"  Machine: {machine}"), new_x="RIGHT")
        engine_hours = record.get("engine_hours")
        pdf.cell(95, 6, _text(f"Engine Hours: {engine_hours if engine_hours is not None else '-'}"),
                 new_x="LMARGIN", new_y="NEXT")
        pdf.cell(95, 6, _text(f"  Operator: {record.get('operator') or ''}"), new_x="RIGHT")
        pdf.cell(95, 6, _text(f"Site: {record.get('site_location') or '-'}"), new_x="LMARGIN", new_y="NEXT")
        pdf.ln(4)

        _section(pdf, "Services Performed")
        for service in record.get("services", []):
            mark = "[x]" if service.get("was_performed") else "[ ]"
            pdf.set_font("Helvetica", "B", 10)
            pdf.cell(0, 6, _text(f"  {mark} {service.get('service_name')}"), new_x="LMARGIN", new_y="NEXT")
            pdf.set_font("Helvetica", "", 9)
            if service.get("service_notes"):
                pdf.multi_cell(0, 5, _text(f"        {service['service_notes']}"))
            for sub in service.get("sub_services", []):
                pdf.cell(0, 5, _text(f"        - {sub.get('sub_service_name')}"), new_x="LMARGIN", new_y="NEXT")
                if sub.get("sub_service_notes"):
                    pdf.multi_cell(0, 5, _text(f"            {sub['sub_service_notes']}"))
        pdf.ln(4)

        if record.get("general_notes"):
            _section(pdf, "General Notes")
            pdf.multi_cell(0, 5, _text(record["general_notes"]))

        pdf.ln(6)
        pdf.set_font("Helvetica", "I", 9)
        generated = datetime.now().strftime("%Y-%m-%d %H:%M")
        pdf.cell(0, 5, f"Report generated: {generated}", new_x="LMARGIN", new_y="NEXT", align="C")
        _signature(pdf, company)

        content = _render(pdf, "service_record")
        logger.info("Service report PDF generated for record %s", record["id"])
        return content, f"service_record_{record['id']}.pdf"
