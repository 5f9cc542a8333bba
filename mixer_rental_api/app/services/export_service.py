"""
Spreadsheet exports: customers and quotations to Excel, service records
to CSV.

All exports are built in memory and returned together with the
download filename.
"""

import csv
import io
import logging
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.worksheet.worksheet import Worksheet

from mixer_rental_api.app.services.customer_service import CustomerService
from mixer_rental_api.app.services.quotation_service import QuotationService
from mixer_rental_api.app.services.service_record_service import ServiceRecordService


logger = logging.getLogger(__name__)

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

CUSTOMER_COLUMNS = [
    ("Company Name", "company_name"),
    ("Contact Person", "contact_person"),
    ("Email", "email"),
    ("Phone", "phone"),
    ("Address", "address"),
    ("Site Location", "site_location"),
    ("GST Number", "gst_number"),
    ("Total Quotations", "total_quotations"),
    ("Accepted Quotations", "accepted_quotations"),
    ("Average Quotation Amount", "avg_quotation_amount"),
    ("Last Quotation Date", "last_quotation_date"),
    ("Created Date", "created_at"),
]

QUOTATION_COLUMNS = [
    ("Sr. No.", "sr_no"),
    ("Quotation Number", "quotation_number"),
    ("Customer Name", "customer_name"),
    ("Customer Contact", "customer_contact"),
    ("Company Name", "company_name"),
    ("Items", "total_items"),
    ("Subtotal", "subtotal"),
    ("GST Amount", "total_gst_amount"),
    ("Grand Total", "grand_total"),
    ("Quotation Status", "quotation_status"),
    ("Delivery Status", "delivery_status"),
    ("Created Date", "created_at"),
    ("Created By", "created_by_name"),
]

SERVICE_RECORD_COLUMNS = [
    ("Machine Number", "machine_number"),
    ("Machine Name", "machine_name"),
    ("Service Date", "service_date"),
    ("Engine Hours", "engine_hours"),
    ("Site Location", "site_location"),
    ("Operator", "operator"),
    ("Services Performed", "services_performed"),
    ("General Notes", "general_notes"),
    ("Created By", "created_by_name"),
    ("Created At", "created_at"),
]


def _fill_sheet(ws: Worksheet, columns: List[Tuple[str, str]], rows: List[Dict[str, Any]]) -> None:
    ws.append([title for title, _ in columns])
    for cell in ws[1]:
        cell.font = Font(bold=True)
    for row in rows:
        ws.append(["" if row.get(key) is None else row.get(key) for _, key in columns])
    for index, (title, _) in enumerate(columns, start=1):
        ws.column_dimensions[ws.cell(row=1, column=index).column_letter].width = max(14, len(title) + 2)


def _to_bytes(wb: Workbook) -> bytes:
    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def quotation_summary(rows: List[Dict[str, Any]]) -> List[Tuple[str, Any]]:
    """Metric/value pairs for the summary sheet of the quotation export."""
    total = len(rows)

    def count(status: str) -> int:
        return sum(1 for r in rows if r["quotation_status"] == status)

    total_value = round(sum(r["grand_total"] or 0 for r in rows), 2)
    accepted = count("accepted")
    accepted_value = round(sum(r["grand_total"] or 0 for r in rows if r["quotation_status"] == "accepted"), 2)
    return [
        ("Total Quotations", total),
        ("Draft Quotations", count("draft")),
        ("Sent Quotations", count("sent")),
        ("Accepted Quotations", accepted),
        ("Rejected Quotations", count("rejected")),
        ("Total Quotation Value (Rs.)", total_value),
        ("Accepted Quotation Value (Rs.)", accepted_value),
        ("Conversion Rate (%)", round(accepted / total * 100) if total else 0),
        ("Average Quotation Value (Rs.)", round(total_value / total) if total else 0),
    ]


class ExportService:
    @classmethod
    async def customers_excel(cls) -> Tuple[bytes, str]:
        rows = await CustomerService.export_rows()
        for row in rows:
            row["avg_quotation_amount"] = round(row["avg_quotation_amount"] or 0, 2)
        wb = Workbook()
        ws = wb.active
        ws.title = "Customers"
        _fill_sheet(ws, CUSTOMER_COLUMNS, rows)
        logger.info("Exported %d customers to Excel", len(rows))
        return _to_bytes(wb), f"customers_export_{date.today().isoformat()}.xlsx"

    @classmethod
    async def quotations_excel(
        cls,
        search: Optional[str] = None,
        quotation_status: Optional[str] = None,
        delivery_status: Optional[str] = None,
        customer_id: Optional[int] = None,
    ) -> Tuple[bytes, str]:
        """Quotations sheet plus a "Summary" sheet with totals and conversion rate."""
        rows = await QuotationService.export_rows(
            search=search,
            quotation_status=quotation_status,
            delivery_status=delivery_status,
            customer_id=customer_id,
        )
        metrics = quotation_summary(rows)
        for index, row in enumerate(rows, start=1):
            row["sr_no"] = index
            row["quotation_status"] = (row["quotation_status"] or "").upper()
            row["delivery_status"] = (row["delivery_status"] or "").upper()
        wb = Workbook()
        ws = wb.active
        ws.title = "Quotations"
        _fill_sheet(ws, QUOTATION_COLUMNS, rows)
        summary = wb.create_sheet("Summary")
        _fill_sheet(summary, [("Metric", "metric"), ("Value", "value")],
                    [{"metric": m, "value": v} for m, v in metrics])
        logger.info("Exported %d quotations to Excel", len(rows))
        return _to_bytes(wb), f"quotations_export_{date.today().isoformat()}.xlsx"

    @classmethod
    async def service_records_csv(cls, machine_id=None, start_date=None, end_date=None) -> Tuple[str, str]:
        rows = await ServiceRecordService.export_rows(machine_id, start_date, end_date)
        buffer = io.StringIO()
        writer = csv.writer(buffer)
        writer.writerow([title for title, _ in SERVICE_RECORD_COLUMNS])
        for row in rows:
            writer.writerow(["" if row.get(key) is None else row.get(key) for _, key in SERVICE_RECORD_COLUMNS])
        logger.info("Exported %d service records to CSV", len(rows))
        return buffer.getvalue(), f"service-records-export-{date.today().isoformat()}.csv"
