"""
Customer inquiries submitted from the public website.

Submissions are validated, stored with status ``new`` and handed to
``EmailService`` for the confirmation and admin notification.  Admins
move inquiries through ``new`` -> ``in_progress`` -> ``completed``.
"""

import logging
import re
from typing import Any, Dict, List, Optional, Tuple

from mixer_rental_api.app.core.db import get_connection
from mixer_rental_api.app.core.errors import ValidationError
from mixer_rental_api.app.schemas.query import CustomerQueryCreate
from mixer_rental_api.app.services.audit_service import AuditService
from mixer_rental_api.app.utils.validators import MOBILE_RE, is_valid_email


logger = logging.getLogger(__name__)

QUERY_STATUSES = ("new", "in_progress", "completed")

QUERY_COLUMNS = (
    "id, company_name, email, site_location, contact_number, duration, work_description, "
    "status, created_at, updated_at"
)


def validate_query(data: Dict[str, Any]) -> List[Dict[str, str]]:
    errors: List[Dict[str, str]] = []
    if len(data.get("company_name", "").strip()) < 2:
        errors.append({"field": "company_name", "message": "Company name must be at least 2 characters"})
    if not is_valid_email(data.get("email", "").strip()):
        errors.append({"field": "email", "message": "Please provide a valid email address"})
    if not MOBILE_RE.match(re.sub(r"\s", "", data.get("contact_number", ""))):
        errors.append({"field": "contact_number", "message": "Please provide a valid 10-digit mobile number"})
    if len(data.get("site_location", "").strip()) < 5:
        errors.append({"field": "site_location", "message": "Site location must be at least 5 characters"})
    if not data.get("duration", "").strip():
        errors.append({"field": "duration", "message": "Duration is required"})
    if len(data.get("work_description", "").strip()) < 10:
        errors.append({"field": "work_description", "message": "Work description must be at least 10 characters"})
    return errors


class QueryService:
    @classmethod
    async def submit(cls, data: CustomerQueryCreate) -> Dict[str, Any]:
        """Store a new inquiry and return the saved row."""
        fields = data.model_dump()
        errors = validate_query(fields)
        if errors:
            raise ValidationError(errors)
        conn = get_connection()
        try:
            cursor = conn.execute(
                """
                INSERT INTO customer_queries (company_name, email, site_location, contact_number,
                                              duration, work_description, status)
                VALUES (?, ?, ?, ?, ?, ?, 'new')
                """,
                (
                    fields["company_name"].strip(),
                    fields["email"].strip().lower(),
                    fields["site_location"].strip(),
                    re.sub(r"\s", "", fields["contact_number"]),
                    fields["duration"].strip(),
                    fields["work_description"].strip(),
                ),
            )
            query_id = cursor.lastrowid
            conn.commit()
        finally:
            conn.close()
        logger.info("Customer query %s submitted by %s", query_id, fields["company_name"])
        await AuditService.record(None, "create", "customer_query", query_id)
        return await cls.get_query(query_id)

    @classmethod
    async def get_query(cls, query_id: int) -> Dict[str, Any]:
        conn = get_connection()
        try:
            row = conn.execute(f"SELECT {QUERY_COLUMNS} FROM customer_queries WHERE id = ?", (query_id,)).fetchone()
            if not row:
                raise ValueError("Query not found")
            return dict(row)
        finally:
            conn.close()

    @classmethod
    async def list_queries(
        cls,
        status: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 50,
    ) -> Tuple[List[Dict[str, Any]], int]:
        where, params = [], []
        if status:
            where.append("status = ?")
            params.append(status)
        if start_date:
            where.append("DATE(created_at) >= ?")
            params.append(start_date)
        if end_date:
            where.append("DATE(created_at) <= ?")
            params.append(end_date)
        if search:
            where.append("(company_name LIKE ? OR email LIKE ? OR contact_number LIKE ? OR site_location LIKE ?)")
            term = f"%{search}%"
            params.extend([term, term, term, term])
        where_sql = " WHERE " + " AND ".join(where) if where else ""
        conn = get_connection()
        try:
            total = conn.execute(f"SELECT COUNT(*) AS count FROM customer_queries{where_sql}", params).fetchone()["count"]
            rows = conn.execute(
                f"SELECT {QUERY_COLUMNS} FROM customer_queries{where_sql} "
                "ORDER BY created_at DESC, id DESC LIMIT ? OFFSET ?",
                params + [limit, (page - 1) * limit],
            ).fetchall()
            return [dict(r) for r in rows], total
        finally:
            conn.close()

    @classmethod
    async def update_status(cls, query_id: int, status: str, current_user: Optional[dict] = None) -> Dict[str, Any]:
        if status not in QUERY_STATUSES:
            raise ValidationError(
                [{"field": "status", "message": f"Invalid status. Must be one of: {', '.join(QUERY_STATUSES)}"}],
                message="Invalid status",
            )
        await cls.get_query(query_id)
        conn = get_connection()
        try:
            conn.execute(
                "UPDATE customer_queries SET status = ?, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                (status, query_id),
            )
            conn.commit()
        finally:
            conn.close()
        await AuditService.record(current_user, "status", "customer_query", query_id, {"status": status})
        return await cls.get_query(query_id)

    @classmethod
    async def get_stats(cls) -> Dict[str, int]:
        conn = get_connection()
        try:
            row = conn.execute(
                """
                SELECT COUNT(*) AS total_queries,
                       COUNT(CASE WHEN status = 'new' THEN 1 END) AS new_queries,
                       COUNT(CASE WHEN status = 'in_progress' THEN 1 END) AS in_progress_queries,
                       COUNT(CASE WHEN status = 'completed' THEN 1 END) AS completed_queries,
                       COUNT(CASE WHEN DATE(created_at) = DATE('now') THEN 1 END) AS today_queries,
                       COUNT(CASE WHEN DATE(created_at) >= DATE('now', '-7 day') THEN 1 END) AS week_queries
                FROM customer_queries
                """
            ).fetchone()
            return dict(row)
        finally:
            conn.close()
