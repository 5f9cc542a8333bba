"""
Business logic for quotations.

A quotation is a numbered offer (``QUO-001``, ``QUO-002``…) made of
line items.  Line item amounts, GST and document totals are always
recomputed here from quantity, unit price and GST percentage and the
result is stored; the stored totals are what documents print.
"""

import logging
import sqlite3
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError as PydanticValidationError

from mixer_rental_api.app.core.db import get_connection
from mixer_rental_api.app.core.errors import ValidationError
from mixer_rental_api.app.schemas.quotation import (
    QuotationCreate,
    QuotationItemIn,
    QuotationItemRead,
    QuotationRead,
)
from mixer_rental_api.app.services.audit_service import AuditService
from mixer_rental_api.app.services.customer_service import CustomerService
from mixer_rental_api.app.services.quotation_totals import calculate_item, calculate_totals, price_for_duration
from mixer_rental_api.app.services.terms_service import TermsService
from mixer_rental_api.app.utils.validators import digits_only


logger = logging.getLogger(__name__)

QUOTATION_STATUSES = ("draft", "sent", "accepted", "rejected", "expired")
DELIVERY_STATUSES = ("pending", "delivered", "completed", "cancelled")

QUOTATION_COLUMNS = (
    "id, quotation_number, customer_id, customer_name, customer_contact, company_name, "
    "subtotal, total_gst_amount, grand_total, terms_text, additional_notes, "
    "quotation_status, delivery_status, created_by, created_at, updated_at"
)

UPDATABLE_FIELDS = {
    "customer_name",
    "customer_contact",
    "company_name",
    "customer_id",
    "additional_notes",
    "terms_text",
    "quotation_status",
    "delivery_status",
}


def format_quotation_number(counter: int) -> str:
    return f"QUO-{counter:03d}"


def validate_quotation(data: Dict[str, Any], partial: bool = False) -> List[Dict[str, str]]:
    """Header and line item checks; returns field errors."""
    errors: List[Dict[str, str]] = []
    if not partial or "customer_name" in data:
        if len((data.get("customer_name") or "").strip()) < 2:
            errors.append({"field": "customer_name", "message": "Customer name must be at least 2 characters"})
    if not partial or "customer_contact" in data:
        if len(digits_only(data.get("customer_contact"))) != 10:
            errors.append({"field": "customer_contact", "message": "Contact number must be exactly 10 digits"})
    items = data.get("items")
    if not partial or items is not None:
        if not items:
            errors.append({"field": "items", "message": "At least one item is required"})
        for index, item in enumerate(items or []):
            prefix = f"items.{index}"
            if item.get("item_type") != "machine" and not (item.get("description") or "").strip():
                errors.append({"field": f"{prefix}.description", "message": "Description is required"})
            if item.get("item_type") == "machine" and not item.get("machine_id"):
                errors.append({"field": f"{prefix}.machine_id", "message": "Machine is required"})
            if (item.get("quantity") or 0) <= 0:
                errors.append({"field": f"{prefix}.quantity", "message": "Quantity must be greater than 0"})
            if item.get("unit_price") is not None and item["unit_price"] < 0:
                errors.append({"field": f"{prefix}.unit_price", "message": "Unit price cannot be negative"})
            gst = item.get("gst_percentage")
            if gst is not None and not 0 <= gst <= 100:
                errors.append({"field": f"{prefix}.gst_percentage", "message": "GST must be between 0 and 100"})
    return errors


class QuotationService:
    """Сервис коммерческих предложений (квотаций).

    Нумерация ведётся через таблицу ``quotation_counter``; итоговые
    суммы всегда пересчитываются на сервере.
    """

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    @classmethod
    def _prepare_items(cls, conn: sqlite3.Connection, items: List[QuotationItemIn]) -> List[Dict[str, Any]]:
        """Resolve machine data and compute amounts for each line item."""
        prepared: List[Dict[str, Any]] = []
        errors: List[Dict[str, str]] = []
        for index, item in enumerate(items):
            row = item.model_dump()
            if item.item_type == "machine":
                machine = conn.execute(
                    "SELECT id, name, price_by_day, price_by_week, price_by_month, gst_percentage "
                    "FROM machines WHERE id = ?",
                    (item.machine_id,),
                ).fetchone()
                if not machine:
                    errors.append({"field": f"items.{index}.machine_id",
                                   "message": f"Machine with ID {item.machine_id} not found"})
                    continue
                row["duration_type"] = item.duration_type or "day"
                if row["unit_price"] is None:
                    row["unit_price"] = price_for_duration(dict(machine), row["duration_type"])
                if row["gst_percentage"] is None:
                    row["gst_percentage"] = machine["gst_percentage"]
                if not (row["description"] or "").strip():
                    row["description"] = machine["name"]
            else:
                row["machine_id"] = None
                row["duration_type"] = None
                row["unit_price"] = row["unit_price"] or 0
                row["gst_percentage"] = row["gst_percentage"] or 0
            totals = calculate_item(row["quantity"], row["unit_price"], row["gst_percentage"])
            row["gst_amount"] = totals.gst_amount
            row["total_amount"] = totals.total_amount
            row["sort_order"] = index
            prepared.append(row)
        if errors:
            raise ValidationError(errors)
        return prepared

    @classmethod
    def _check_customer(cls, conn: sqlite3.Connection, customer_id: int) -> None:
        if not conn.execute("SELECT id FROM customers WHERE id = ?", (customer_id,)).fetchone():
            raise ValidationError([{"field": "customer_id", "message": f"Customer with ID {customer_id} not found"}])

    @classmethod
    def _insert_items(cls, conn: sqlite3.Connection, quotation_id: int, items: List[Dict[str, Any]]) -> None:
        conn.executemany(
            """
            INSERT INTO quotation_items (quotation_id, item_type, machine_id, description, duration_type,
                                         quantity, unit_price, gst_percentage, gst_amount, total_amount, sort_order)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            [
                (
                    quotation_id,
                    i["item_type"],
                    i["machine_id"],
                    i["description"].strip(),
                    i["duration_type"],
                    i["quantity"],
                    i["unit_price"],
                    i["gst_percentage"],
                    i["gst_amount"],
                    i["total_amount"],
                    i["sort_order"],
                )
                for i in items
            ],
        )

    @classmethod
    def _load_items(cls, conn: sqlite3.Connection, quotation_id: int) -> List[QuotationItemRead]:
        rows = conn.execute(
            """
            SELECT qi.id, qi.item_type, qi.machine_id, m.name AS machine_name, m.machine_number,
                   qi.description, qi.duration_type, qi.quantity, qi.unit_price, qi.gst_percentage,
                   qi.gst_amount, qi.total_amount, qi.sort_order
            FROM quotation_items qi
            LEFT JOIN machines m ON m.id = qi.machine_id
            WHERE qi.quotation_id = ?
            ORDER BY qi.sort_order, qi.id
            """,
            (quotation_id,),
        ).fetchall()
        return [QuotationItemRead(**dict(r)) for r in rows]

    # ------------------------------------------------------------------
    # numbering
    # ------------------------------------------------------------------

    @classmethod
    async def peek_next_number(cls) -> str:
        """Number the next quotation will get, without reserving it."""
        conn = get_connection()
        try:
            row = conn.execute("SELECT last_number FROM quotation_counter WHERE id = 1").fetchone()
            return format_quotation_number((row["last_number"] if row else 0) + 1)
        finally:
            conn.close()

    @classmethod
    def _reserve_number(cls, conn: sqlite3.Connection) -> str:
        conn.execute("UPDATE quotation_counter SET last_number = last_number + 1 WHERE id = 1")
        row = conn.execute("SELECT last_number FROM quotation_counter WHERE id = 1").fetchone()
        return format_quotation_number(row["last_number"])

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    @classmethod
    async def create_quotation(cls, data: QuotationCreate, current_user: Optional[dict] = None) -> QuotationRead:
        errors = validate_quotation(data.model_dump())
        if errors:
            raise ValidationError(errors)

        # Everything that can reject the request is checked before a
        # customer row may be created below.
        conn = get_connection()
        try:
            if data.customer_id is not None:
                cls._check_customer(conn, data.customer_id)
            items = cls._prepare_items(conn, data.items)
        finally:
            conn.close()
        totals = calculate_totals(items)

        customer_id = data.customer_id
        if customer_id is None:
            try:
                customer, created = await CustomerService.get_or_create(
                    company_name=data.company_name or data.customer_name,
                    contact_person=data.customer_name,
                    phone=data.customer_contact,
                    current_user=current_user,
                )
                customer_id = customer.id
                if created:
                    logger.info("Created customer %s from quotation", customer_id)
            except (ValidationError, PydanticValidationError) as exc:
                # The quotation itself is still valid without a customer row.
                logger.warning("Quotation customer not linked: %s", exc)

        terms_text = data.terms_text
        if not terms_text:
            terms_text = await TermsService.default_terms_text()

        conn = get_connection()
        try:
            number = cls._reserve_number(conn)
            cursor = conn.execute(
                """
                INSERT INTO quotations (quotation_number, customer_id, customer_name, customer_contact,
                                        company_name, subtotal, total_gst_amount, grand_total, terms_text,
                                        additional_notes, quotation_status, delivery_status, created_by)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    number,
                    customer_id,
                    data.customer_name.strip(),
                    digits_only(data.customer_contact),
                    data.company_name,
                    totals.subtotal,
                    totals.total_gst_amount,
                    totals.grand_total,
                    terms_text,
                    data.additional_notes,
                    data.quotation_status,
                    data.delivery_status,
                    current_user.get("user_id") if current_user else None,
                ),
            )
            quotation_id = cursor.lastrowid
            cls._insert_items(conn, quotation_id, items)
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()
        logger.info("Created quotation %s (grand total %.2f)", number, totals.grand_total)
        await AuditService.record(current_user, "create", "quotation", quotation_id,
                                  {"quotation_number": number, "grand_total": totals.grand_total})
        return await cls.get_quotation(quotation_id)

    @classmethod
    async def get_quotation(cls, quotation_id: int) -> QuotationRead:
        conn = get_connection()
        try:
            row = conn.execute(f"SELECT {QUOTATION_COLUMNS} FROM quotations WHERE id = ?", (quotation_id,)).fetchone()
            if not row:
                raise ValueError("Quotation not found")
            return QuotationRead(**dict(row), items=cls._load_items(conn, quotation_id))
        finally:
            conn.close()

    @classmethod
    def _filters(cls, search: Optional[str], quotation_status: Optional[str], delivery_status: Optional[str],
                 customer_id: Optional[int]) -> Tuple[str, List[Any]]:
        where, params = [], []
        if search:
            where.append("(quotation_number LIKE ? OR customer_name LIKE ? OR company_name LIKE ? OR customer_contact LIKE ?)")
            term = f"%{search}%"
            params.extend([term, term, term, term])
        if quotation_status:
            where.append("quotation_status = ?")
            params.append(quotation_status)
        if delivery_status:
            where.append("delivery_status = ?")
            params.append(delivery_status)
        if customer_id is not None:
            where.append("customer_id = ?")
            params.append(customer_id)
        return (" WHERE " + " AND ".join(where) if where else ""), params

    @classmethod
    async def export_rows(
        cls,
        search: Optional[str] = None,
        quotation_status: Optional[str] = None,
        delivery_status: Optional[str] = None,
        customer_id: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """All matching quotations, newest first, for the Excel export."""
        where_sql, params = cls._filters(search, quotation_status, delivery_status, customer_id)
        conn = get_connection()
        try:
            rows = conn.execute(
                f"""
                SELECT q.quotation_number, q.customer_name, q.customer_contact, q.company_name,
                       q.subtotal, q.total_gst_amount, q.grand_total, q.quotation_status, q.delivery_status,
                       q.created_at, u.username AS created_by_name,
                       (SELECT COUNT(*) FROM quotation_items qi WHERE qi.quotation_id = q.id) AS total_items
                FROM (SELECT * FROM quotations{where_sql}) q
                LEFT JOIN admin_users u ON q.created_by = u.id
                ORDER BY q.created_at DESC, q.id DESC
                """,
                params,
            ).fetchall()
            return [dict(r) for r in rows]
        finally:
            conn.close()

    @classmethod
    async def list_quotations(
        cls,
        page: int = 1,
        limit: int = 10,
        search: Optional[str] = None,
        quotation_status: Optional[str] = None,
        delivery_status: Optional[str] = None,
        customer_id: Optional[int] = None,
    ) -> Tuple[List[Dict[str, Any]], int]:
        limit = min(limit, 100)
        where_sql, params = cls._filters(search, quotation_status, delivery_status, customer_id)
        conn = get_connection()
        try:
            total = conn.execute(f"SELECT COUNT(*) AS count FROM quotations{where_sql}", params).fetchone()["count"]
            rows = conn.execute(
                f"""
                SELECT {QUOTATION_COLUMNS},
                       (SELECT COUNT(*) FROM quotation_items qi WHERE qi.quotation_id = quotations.id) AS total_items
                FROM quotations{where_sql}
                ORDER BY created_at DESC, id DESC LIMIT ? OFFSET ?
                """,
                params + [limit, (page - 1) * limit],
            ).fetchall()
            return [dict(r) for r in rows], total
        finally:
            conn.close()

    @classmethod
    async def update_quotation(cls, quotation_id: int, updates: Dict[str, Any],
                               current_user: Optional[dict] = None) -> QuotationRead:
        """Partial update; ``items`` replaces all line items and recomputes totals."""
        fields = {k: v for k, v in updates.items() if k in UPDATABLE_FIELDS}
        items_in = updates.get("items")
        check = dict(fields)
        if items_in is not None:
            check["items"] = [i if isinstance(i, dict) else i.model_dump() for i in items_in]
        errors = validate_quotation(check, partial=True)
        if errors:
            raise ValidationError(errors)
        if "customer_contact" in fields:
            fields["customer_contact"] = digits_only(fields["customer_contact"])

        conn = get_connection()
        try:
            if not conn.execute("SELECT id FROM quotations WHERE id = ?", (quotation_id,)).fetchone():
                raise ValueError("Quotation not found")
            if fields.get("customer_id") is not None:
                cls._check_customer(conn, fields["customer_id"])
            if items_in is not None:
                items = cls._prepare_items(
                    conn, [i if isinstance(i, QuotationItemIn) else QuotationItemIn(**i) for i in items_in]
                )
                totals = calculate_totals(items)
                conn.execute("DELETE FROM quotation_items WHERE quotation_id = ?", (quotation_id,))
                cls._insert_items(conn, quotation_id, items)
                fields.update(
                    subtotal=totals.subtotal,
                    total_gst_amount=totals.total_gst_amount,
                    grand_total=totals.grand_total,
                )
            if fields:
                set_sql = ", ".join(f"{col} = ?" for col in fields)
                conn.execute(
                    f"UPDATE quotations SET {set_sql}, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                    list(fields.values()) + [quotation_id],
                )
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()
        await AuditService.record(current_user, "update", "quotation", quotation_id, {"fields": sorted(fields)})
        return await cls.get_quotation(quotation_id)

    @classmethod
    async def update_status(cls, quotation_id: int, quotation_status: Optional[str],
                            delivery_status: Optional[str], current_user: Optional[dict] = None) -> QuotationRead:
        errors = []
        if quotation_status is None and delivery_status is None:
            errors.append({"field": "quotation_status", "message": "Provide quotation_status or delivery_status"})
        if quotation_status is not None and quotation_status not in QUOTATION_STATUSES:
            errors.append({"field": "quotation_status",
                           "message": f"Invalid quotation status. Must be one of: {', '.join(QUOTATION_STATUSES)}"})
        if delivery_status is not None and delivery_status not in DELIVERY_STATUSES:
            errors.append({"field": "delivery_status",
                           "message": f"Invalid delivery status. Must be one of: {', '.join(DELIVERY_STATUSES)}"})
        if errors:
            raise ValidationError(errors)
        updates = {}
        if quotation_status is not None:
            updates["quotation_status"] = quotation_status
        if delivery_status is not None:
            updates["delivery_status"] = delivery_status
        return await cls.update_quotation(quotation_id, updates, current_user)

    @classmethod
    async def delete_quotation(cls, quotation_id: int, current_user: Optional[dict] = None) -> None:
        conn = get_connection()
        try:
            if not conn.execute("SELECT id FROM quotations WHERE id = ?", (quotation_id,)).fetchone():
                raise ValueError("Quotation not found")
            conn.execute("DELETE FROM quotation_items WHERE quotation_id = ?", (quotation_id,))
            conn.execute("DELETE FROM quotations WHERE id = ?", (quotation_id,))
            conn.commit()
        finally:
            conn.close()
        await AuditService.record(current_user, "delete", "quotation", quotation_id)

    # ------------------------------------------------------------------
    # reporting
    # ------------------------------------------------------------------

    @classmethod
    async def get_stats(cls) -> Dict[str, Any]:
        conn = get_connection()
        try:
            row = conn.execute(
                """
                SELECT COUNT(*) AS total_quotations,
                       COALESCE(SUM(CASE WHEN quotation_status = 'draft' THEN 1 ELSE 0 END), 0) AS draft_quotations,
                       COALESCE(SUM(CASE WHEN quotation_status = 'sent' THEN 1 ELSE 0 END), 0) AS sent_quotations,
                       COALESCE(SUM(CASE WHEN quotation_status = 'accepted' THEN 1 ELSE 0 END), 0) AS accepted_quotations,
                       COALESCE(SUM(CASE WHEN quotation_status = 'rejected' THEN 1 ELSE 0 END), 0) AS rejected_quotations,
                       COALESCE(SUM(CASE WHEN quotation_status = 'expired' THEN 1 ELSE 0 END), 0) AS expired_quotations,
                       COALESCE(SUM(grand_total), 0) AS total_value,
                       COALESCE(SUM(CASE WHEN quotation_status = 'accepted' THEN grand_total ELSE 0 END), 0) AS accepted_value,
                       COALESCE(AVG(grand_total), 0) AS average_value
                FROM quotations
                """
            ).fetchone()
            stats = dict(row)
            stats["average_value"] = round(stats["average_value"], 2)
            return stats
        finally:
            conn.close()

    @classmethod
    async def pricing_history(cls, machine_id: int, limit: int = 10) -> List[Dict[str, Any]]:
        """Recent prices quoted for a machine, newest first."""
        conn = get_connection()
        try:
            rows = conn.execute(
                """
                SELECT q.quotation_number, q.customer_name, q.company_name, q.created_at,
                       qi.duration_type, qi.quantity, qi.unit_price, qi.gst_percentage, qi.total_amount
                FROM quotation_items qi
                JOIN quotations q ON q.id = qi.quotation_id
                WHERE qi.machine_id = ?
                ORDER BY q.created_at DESC, q.id DESC
                LIMIT ?
                """,
                (machine_id, limit),
            ).fetchall()
            return [dict(r) for r in rows]
        finally:
            conn.close()
