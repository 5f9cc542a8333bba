"""
Business logic for customers.

Customers are matched by phone number or e‑mail; both must be unique
across the table.  Quotation creation uses ``get_or_create`` so that
every quotation is linked to a customer row.
"""

import logging
import sqlite3
from typing import Any, Dict, List, Optional, Tuple

from mixer_rental_api.app.core.db import get_connection
from mixer_rental_api.app.core.errors import ConflictError, ValidationError
from mixer_rental_api.app.schemas.customer import CustomerCreate, CustomerRead
from mixer_rental_api.app.services.audit_service import AuditService
from mixer_rental_api.app.utils.validators import (
    digits_only,
    is_valid_email,
    is_valid_gst_number,
    is_valid_mobile,
)


logger = logging.getLogger(__name__)

CUSTOMER_COLUMNS = (
    "c.id, c.company_name, c.contact_person, c.email, c.phone, c.address, "
    "c.site_location, c.gst_number, c.created_at, c.updated_at"
)

UPDATABLE_FIELDS = {
    "company_name",
    "contact_person",
    "email",
    "phone",
    "address",
    "site_location",
    "gst_number",
}


def _clean(data: Dict[str, Any]) -> Dict[str, Any]:
    """Normalise phone digits, GST case and blank strings."""
    cleaned = {}
    for key, value in data.items():
        if isinstance(value, str):
            value = value.strip() or None
        cleaned[key] = value
    if cleaned.get("phone"):
        cleaned["phone"] = digits_only(cleaned["phone"])
    if cleaned.get("gst_number"):
        cleaned["gst_number"] = cleaned["gst_number"].upper()
    if cleaned.get("email"):
        cleaned["email"] = cleaned["email"].lower()
    return cleaned


def validate_customer(data: Dict[str, Any], partial: bool = False) -> List[Dict[str, str]]:
    """Return a list of field errors for customer data.

    With ``partial`` only the keys present in ``data`` are checked.
    """
    errors: List[Dict[str, str]] = []
    if not partial or "company_name" in data:
        name = data.get("company_name") or ""
        if not name:
            errors.append({"field": "company_name", "message": "Company name is required"})
        elif len(name) > 100:
            errors.append({"field": "company_name", "message": "Company name must be at most 100 characters"})
    if not partial or "phone" in data:
        if not data.get("phone"):
            errors.append({"field": "phone", "message": "Phone number is required"})
        elif not is_valid_mobile(data["phone"]):
            errors.append({"field": "phone", "message": "Please enter a valid 10-digit mobile number"})
    if data.get("email") and not is_valid_email(data["email"]):
        errors.append({"field": "email", "message": "Please enter a valid email address"})
    if data.get("gst_number") and not is_valid_gst_number(data["gst_number"]):
        errors.append({"field": "gst_number", "message": "Please enter a valid GST number"})
    return errors


def _row_to_customer(row: sqlite3.Row) -> CustomerRead:
    data = dict(row)
    data["total_quotations"] = data.get("total_quotations") or 0
    return CustomerRead(**data)


class CustomerService:
    """Сервис для работы с клиентами компании."""

    @classmethod
    def _find_duplicate(cls, conn: sqlite3.Connection, phone: Optional[str], email: Optional[str],
                        exclude_id: Optional[int] = None) -> Optional[sqlite3.Row]:
        clauses, params = [], []
        if phone:
            clauses.append("phone = ?")
            params.append(phone)
        if email:
            clauses.append("LOWER(email) = ?")
            params.append(email.lower())
        if not clauses:
            return None
        query = f"SELECT * FROM customers WHERE ({' OR '.join(clauses)})"
        if exclude_id is not None:
            query += " AND id != ?"
            params.append(exclude_id)
        return conn.execute(query + " LIMIT 1", params).fetchone()

    @classmethod
    async def list_customers(cls, page: int = 1, limit: int = 10,
                             search: Optional[str] = None) -> Tuple[List[CustomerRead], int]:
        where_sql, params = "", []
        if search:
            where_sql = (" WHERE c.company_name LIKE ? OR c.contact_person LIKE ? "
                         "OR c.phone LIKE ? OR c.email LIKE ?")
            term = f"%{search}%"
            params = [term, term, term, term]
        conn = get_connection()
        try:
            total = conn.execute(f"SELECT COUNT(*) AS count FROM customers c{where_sql}", params).fetchone()["count"]
            rows = conn.execute(
                f"""
                SELECT {CUSTOMER_COLUMNS},
                       (SELECT COUNT(*) FROM quotations q WHERE q.customer_id = c.id) AS total_quotations
                FROM customers c{where_sql}
                ORDER BY c.created_at DESC, c.id DESC LIMIT ? OFFSET ?
                """,
                params + [limit, (page - 1) * limit],
            ).fetchall()
            return [_row_to_customer(r) for r in rows], total
        finally:
            conn.close()

    @classmethod
    async def get_customer(cls, customer_id: int) -> CustomerRead:
        conn = get_connection()
        try:
            row = conn.execute(
                f"""
                SELECT {CUSTOMER_COLUMNS},
                       (SELECT COUNT(*) FROM quotations q WHERE q.customer_id = c.id) AS total_quotations
                FROM customers c WHERE c.id = ?
                """,
                (customer_id,),
            ).fetchone()
            if not row:
                raise ValueError("Customer not found")
            return _row_to_customer(row)
        finally:
            conn.close()

    @classmethod
    async def create_customer(cls, data: CustomerCreate, current_user: Optional[dict] = None) -> CustomerRead:
        fields = _clean(data.model_dump())
        errors = validate_customer(fields)
        if errors:
            raise ValidationError(errors)
        conn = get_connection()
        try:
            if cls._find_duplicate(conn, fields["phone"], fields.get("email")):
                raise ConflictError("Customer with this phone or email already exists")
            cursor = conn.execute(
                """
                INSERT INTO customers (company_name, contact_person, email, phone, address, site_location, gst_number)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    fields["company_name"],
                    fields.get("contact_person"),
                    fields.get("email"),
                    fields["phone"],
                    fields.get("address"),
                    fields.get("site_location"),
                    fields.get("gst_number"),
                ),
            )
            customer_id = cursor.lastrowid
            conn.commit()
        finally:
            conn.close()
        logger.info("Created customer %s (%s)", customer_id, fields["company_name"])
        await AuditService.record(current_user, "create", "customer", customer_id, {"company_name": fields["company_name"]})
        return await cls.get_customer(customer_id)

    @classmethod
    async def update_customer(cls, customer_id: int, updates: Dict[str, Any],
                              current_user: Optional[dict] = None) -> CustomerRead:
        fields = _clean({k: v for k, v in updates.items() if k in UPDATABLE_FIELDS})
        errors = validate_customer(fields, partial=True)
        if errors:
            raise ValidationError(errors)
        conn = get_connection()
        try:
            if not conn.execute("SELECT id FROM customers WHERE id = ?", (customer_id,)).fetchone():
                raise ValueError("Customer not found")
            if fields.get("phone") or fields.get("email"):
                if cls._find_duplicate(conn, fields.get("phone"), fields.get("email"), exclude_id=customer_id):
                    raise ConflictError("Customer with this phone or email already exists")
            if fields:
                set_sql = ", ".join(f"{col} = ?" for col in fields)
                conn.execute(
                    f"UPDATE customers SET {set_sql}, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                    list(fields.values()) + [customer_id],
                )
                conn.commit()
        finally:
            conn.close()
        await AuditService.record(current_user, "update", "customer", customer_id, {"fields": sorted(fields)})
        return await cls.get_customer(customer_id)

    @classmethod
    async def delete_customer(cls, customer_id: int, current_user: Optional[dict] = None) -> None:
        """Delete a customer that has no quotations."""
        conn = get_connection()
        try:
            if not conn.execute("SELECT id FROM customers WHERE id = ?", (customer_id,)).fetchone():
                raise ValueError("Customer not found")
            count = conn.execute(
                "SELECT COUNT(*) AS count FROM quotations WHERE customer_id = ?", (customer_id,)
            ).fetchone()["count"]
            if count:
                raise ConflictError("Cannot delete customer with existing quotations", status_code=400)
            conn.execute("DELETE FROM customers WHERE id = ?", (customer_id,))
            conn.commit()
        finally:
            conn.close()
        await AuditService.record(current_user, "delete", "customer", customer_id)

    @classmethod
    async def search(cls, term: str, limit: int = 10) -> List[Dict[str, Any]]:
        """Lightweight lookup used by the quotation form."""
        like = f"%{term}%"
        conn = get_connection()
        try:
            rows = conn.execute(
                """
                SELECT id, company_name, contact_person, email, phone, site_location, gst_number
                FROM customers
                WHERE company_name LIKE ? OR contact_person LIKE ? OR phone LIKE ?
                ORDER BY company_name LIMIT ?
                """,
                (like, like, like, limit),
            ).fetchall()
            return [dict(r) for r in rows]
        finally:
            conn.close()

    @classmethod
    async def get_stats(cls) -> Dict[str, int]:
        conn = get_connection()
        try:
            row = conn.execute(
                """
                SELECT COUNT(*) AS total_customers,
                       COUNT(CASE WHEN gst_number IS NOT NULL AND gst_number != '' THEN 1 END) AS customers_with_gst,
                       COUNT(CASE WHEN DATE(created_at) = DATE('now') THEN 1 END) AS new_today,
                       COUNT(CASE WHEN DATE(created_at) >= DATE('now', '-7 day') THEN 1 END) AS new_this_week,
                       COUNT(CASE WHEN DATE(created_at) >= DATE('now', '-30 day') THEN 1 END) AS new_this_month
                FROM customers
                """
            ).fetchone()
            return dict(row)
        finally:
            conn.close()

    @classmethod
    async def get_quotation_history(cls, customer_id: int) -> List[Dict[str, Any]]:
        await cls.get_customer(customer_id)
        conn = get_connection()
        try:
            rows = conn.execute(
                """
                SELECT q.id, q.quotation_number, q.created_at, q.subtotal, q.total_gst_amount,
                       q.grand_total, q.quotation_status, q.delivery_status, q.additional_notes,
                       COUNT(qi.id) AS total_items,
                       GROUP_CONCAT(DISTINCT CASE WHEN qi.item_type = 'machine'
                                    THEN m.name || ' (' || COALESCE(qi.duration_type, '') || ')' END) AS machines,
                       GROUP_CONCAT(DISTINCT CASE WHEN qi.item_type = 'additional_charge'
                                    THEN qi.description END) AS additional_charges
                FROM quotations q
                LEFT JOIN quotation_items qi ON q.id = qi.quotation_id
                LEFT JOIN machines m ON qi.machine_id = m.id
                WHERE q.customer_id = ?
                GROUP BY q.id
                ORDER BY q.created_at DESC, q.id DESC
                """,
                (customer_id,),
            ).fetchall()
            return [dict(r) for r in rows]
        finally:
            conn.close()

    @classmethod
    async def get_or_create(cls, company_name: str, contact_person: Optional[str], phone: str,
                            email: Optional[str] = None, current_user: Optional[dict] = None) -> Tuple[CustomerRead, bool]:
        """Find a customer by phone/e‑mail or create one.

        Returns ``(customer, created)``.
        """
        phone_digits = digits_only(phone)
        conn = get_connection()
        try:
            row = cls._find_duplicate(conn, phone_digits, email)
        finally:
            conn.close()
        if row:
            return await cls.get_customer(row["id"]), False
        customer = await cls.create_customer(
            CustomerCreate(company_name=company_name, contact_person=contact_person, phone=phone_digits, email=email),
            current_user,
        )
        return customer, True

    @classmethod
    async def export_rows(cls) -> List[Dict[str, Any]]:
        """Customers with quotation aggregates, for the Excel export."""
        conn = get_connection()
        try:
            rows = conn.execute(
                """
                SELECT c.company_name, c.contact_person, c.email, c.phone, c.address,
                       c.site_location, c.gst_number, c.created_at,
                       COUNT(q.id) AS total_quotations,
                       COALESCE(SUM(CASE WHEN q.quotation_status = 'accepted' THEN 1 ELSE 0 END), 0) AS accepted_quotations,
                       COALESCE(AVG(q.grand_total), 0) AS avg_quotation_amount,
                       MAX(q.created_at) AS last_quotation_date
                FROM customers c
                LEFT JOIN quotations q ON q.customer_id = c.id
                GROUP BY c.id
                ORDER BY c.company_name
                """
            ).fetchall()
            return [dict(r) for r in rows]
        finally:
            conn.close()
