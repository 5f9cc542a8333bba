"""
Audit service for recording admin actions.

Services call ``AuditService.record`` after significant changes
(create, update, delete, status changes).  Writing the audit trail must
never break the operation that triggered it, so ``record`` logs and
drops database errors.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from typing import Optional

from mixer_rental_api.app.core.db import get_connection


logger = logging.getLogger(__name__)


class AuditService:
    """Service class for writing audit logs."""

    @classmethod
    async def log(
        cls,
        user_id: Optional[int],
        action: str,
        object_type: str,
        object_id: Optional[int] = None,
        details: Optional[dict] = None,
    ) -> None:
        """Insert a new audit record.

        Parameters
        ----------
        user_id : Optional[int]
            ID of the admin performing the action.  ``None`` for
            public or system‑initiated actions.
        action : str
            Short description of the action (e.g. "create", "update", "delete").
        object_type : str
            Type of object affected (e.g. "machine", "quotation").
        object_id : Optional[int]
            Primary key of the affected object, if applicable.
        details : Optional[dict]
            Additional structured data about the action, stored as JSON.
        """
        conn = get_connection()
        try:
            conn.execute(
                """
                INSERT INTO audit_logs (user_id, action, object_type, object_id, details)
                VALUES (?, ?, ?, ?, ?)
                """,
                (user_id, action, object_type, object_id, json.dumps(details) if details else None),
            )
            conn.commit()
        finally:
            conn.close()

    @classmethod
    async def record(cls, current_user: Optional[dict], action: str, object_type: str,
                     object_id: Optional[int] = None, details: Optional[dict] = None) -> None:
        """Like ``log`` but never raises."""
        user_id = current_user.get("user_id") if current_user else None
        try:
            await cls.log(user_id, action, object_type, object_id, details)
        except sqlite3.Error as exc:
            logger.warning("Could not write audit log for %s %s: %s", action, object_type, exc)
