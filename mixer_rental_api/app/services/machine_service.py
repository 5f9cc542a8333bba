"""
Business logic for the machine inventory.

Machines are identified by a unique ``machine_number``.  A machine that
already appears on a quotation is never physically deleted; deleting it
only deactivates it so historical quotations keep their references.
"""

import logging
import sqlite3
from typing import Any, Dict, List, Optional, Tuple

from mixer_rental_api.app.core.db import get_connection
from mixer_rental_api.app.core.errors import ConflictError, ValidationError
from mixer_rental_api.app.schemas.machine import MachineBulkUpdate, MachineCreate, MachineRead
from mixer_rental_api.app.services.audit_service import AuditService


logger = logging.getLogger(__name__)

MACHINE_COLUMNS = (
    "id, machine_number, name, description, price_by_day, price_by_week, "
    "price_by_month, gst_percentage, is_active, created_at, updated_at"
)

# Columns an update may touch.  ``updated_at`` is maintained separately.
UPDATABLE_FIELDS = {
    "machine_number",
    "name",
    "description",
    "price_by_day",
    "price_by_week",
    "price_by_month",
    "gst_percentage",
    "is_active",
}

BULK_UPDATABLE_FIELDS = {"is_active", "gst_percentage"}


def _row_to_machine(row: sqlite3.Row) -> MachineRead:
    data = dict(row)
    data["is_active"] = bool(data["is_active"])
    return MachineRead(**data)


class MachineService:
    """Сервис для управления парком бетономешалок.

    Все методы работают с SQLite напрямую; ошибки «не найдено»
    сигнализируются через ``ValueError``.
    """

    @classmethod
    async def list_machines(
        cls,
        page: int = 1,
        limit: int = 10,
        search: Optional[str] = None,
        is_active: Optional[bool] = None,
    ) -> Tuple[List[MachineRead], int]:
        """Return one page of machines and the total number of matches."""
        where: List[str] = []
        params: List[Any] = []
        if search:
            where.append("(machine_number LIKE ? OR name LIKE ? OR description LIKE ?)")
            term = f"%{search}%"
            params.extend([term, term, term])
        if is_active is not None:
            where.append("is_active = ?")
            params.append(1 if is_active else 0)
        where_sql = " WHERE " + " AND ".join(where) if where else ""
        conn = get_connection()
        try:
            total = conn.execute(f"SELECT COUNT(*) AS count FROM machines{where_sql}", params).fetchone()["count"]
            rows = conn.execute(
                f"SELECT {MACHINE_COLUMNS} FROM machines{where_sql} ORDER BY created_at DESC, id DESC LIMIT ? OFFSET ?",
                params + [limit, (page - 1) * limit],
            ).fetchall()
            return [_row_to_machine(r) for r in rows], total
        finally:
            conn.close()

    @classmethod
    async def get_machine(cls, machine_id: int) -> MachineRead:
        conn = get_connection()
        try:
            row = conn.execute(f"SELECT {MACHINE_COLUMNS} FROM machines WHERE id = ?", (machine_id,)).fetchone()
            if not row:
                raise ValueError("Machine not found")
            return _row_to_machine(row)
        finally:
            conn.close()

    @classmethod
    async def create_machine(cls, data: MachineCreate, current_user: Optional[dict] = None) -> MachineRead:
        logger.info("Creating machine %s", data.machine_number)
        conn = get_connection()
        try:
            exists = conn.execute(
                "SELECT id FROM machines WHERE machine_number = ?", (data.machine_number,)
            ).fetchone()
            if exists:
                raise ConflictError("Machine number already exists")
            cursor = conn.execute(
                """
                INSERT INTO machines (machine_number, name, description, price_by_day,
                                      price_by_week, price_by_month, gst_percentage, is_active)
                VALUES (?, ?, ?, ?, ?, ?, ?, 1)
                """,
                (
                    data.machine_number,
                    data.name,
                    data.description,
                    data.price_by_day,
                    data.price_by_week,
                    data.price_by_month,
                    data.gst_percentage,
                ),
            )
            machine_id = cursor.lastrowid
            conn.commit()
        finally:
            conn.close()
        await AuditService.record(current_user, "create", "machine", machine_id, {"machine_number": data.machine_number})
        return await cls.get_machine(machine_id)

    @classmethod
    async def update_machine(cls, machine_id: int, updates: Dict[str, Any], current_user: Optional[dict] = None) -> MachineRead:
        """Apply a partial update.

        Unknown keys are ignored.  Changing ``machine_number`` to one used
        by another machine raises ``ConflictError``.
        """
        fields = {k: v for k, v in updates.items() if k in UPDATABLE_FIELDS}
        conn = get_connection()
        try:
            if not conn.execute("SELECT id FROM machines WHERE id = ?", (machine_id,)).fetchone():
                raise ValueError("Machine not found")
            if "machine_number" in fields:
                clash = conn.execute(
                    "SELECT id FROM machines WHERE machine_number = ? AND id != ?",
                    (fields["machine_number"], machine_id),
                ).fetchone()
                if clash:
                    raise ConflictError("Machine number already exists")
            if "is_active" in fields:
                fields["is_active"] = 1 if fields["is_active"] else 0
            if fields:
                set_sql = ", ".join(f"{col} = ?" for col in fields)
                conn.execute(
                    f"UPDATE machines SET {set_sql}, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                    list(fields.values()) + [machine_id],
                )
                conn.commit()
        finally:
            conn.close()
        await AuditService.record(current_user, "update", "machine", machine_id, {"fields": sorted(fields)})
        return await cls.get_machine(machine_id)

    @classmethod
    async def delete_machine(cls, machine_id: int, current_user: Optional[dict] = None) -> str:
        """Delete a machine, or deactivate it when quotations reference it.

        Returns the message describing what happened.
        """
        conn = get_connection()
        try:
            if not conn.execute("SELECT id FROM machines WHERE id = ?", (machine_id,)).fetchone():
                raise ValueError("Machine not found")
            used = conn.execute(
                "SELECT COUNT(*) AS count FROM quotation_items WHERE machine_id = ?", (machine_id,)
            ).fetchone()["count"]
            serviced = conn.execute(
                "SELECT COUNT(*) AS count FROM service_records WHERE machine_id = ?", (machine_id,)
            ).fetchone()["count"]
            if used or serviced:
                conn.execute(
                    "UPDATE machines SET is_active = 0, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                    (machine_id,),
                )
                message = "Machine deactivated (has existing quotations)" if used else \
                    "Machine deactivated (has service records)"
                action = "deactivate"
            else:
                conn.execute("DELETE FROM machines WHERE id = ?", (machine_id,))
                message = "Machine deleted successfully"
                action = "delete"
            conn.commit()
        finally:
            conn.close()
        await AuditService.record(current_user, action, "machine", machine_id)
        return message

    @classmethod
    async def toggle_status(cls, machine_id: int, current_user: Optional[dict] = None) -> MachineRead:
        machine = await cls.get_machine(machine_id)
        return await cls.update_machine(machine_id, {"is_active": not machine.is_active}, current_user)

    @classmethod
    async def bulk_update(cls, payload: MachineBulkUpdate, current_user: Optional[dict] = None) -> int:
        """Apply ``is_active``/``gst_percentage`` to many machines at once.

        Returns the number of rows updated.
        """
        changes = {
            k: v for k, v in payload.updates.model_dump().items()
            if k in BULK_UPDATABLE_FIELDS and v is not None
        }
        if not changes:
            raise ValidationError(
                [{"field": "updates", "message": "No valid fields to update"}],
                message="No valid fields to update",
            )
        if "is_active" in changes:
            changes["is_active"] = 1 if changes["is_active"] else 0
        set_sql = ", ".join(f"{col} = ?" for col in changes)
        placeholders = ", ".join("?" for _ in payload.machine_ids)
        conn = get_connection()
        try:
            cursor = conn.execute(
                f"UPDATE machines SET {set_sql}, updated_at = CURRENT_TIMESTAMP WHERE id IN ({placeholders})",
                list(changes.values()) + list(payload.machine_ids),
            )
            conn.commit()
            updated = cursor.rowcount
        finally:
            conn.close()
        await AuditService.record(current_user, "bulk_update", "machine", None,
                                  {"machine_ids": payload.machine_ids, "changes": changes})
        return updated

    @classmethod
    async def get_stats(cls) -> Dict[str, Any]:
        conn = get_connection()
        try:
            row = conn.execute(
                """
                SELECT COUNT(*) AS total_machines,
                       COALESCE(SUM(CASE WHEN is_active = 1 THEN 1 ELSE 0 END), 0) AS active_machines,
                       COALESCE(SUM(CASE WHEN is_active = 0 THEN 1 ELSE 0 END), 0) AS inactive_machines,
                       COALESCE(AVG(price_by_day), 0) AS avg_daily_price,
                       COALESCE(MIN(price_by_day), 0) AS min_daily_price,
                       COALESCE(MAX(price_by_day), 0) AS max_daily_price
                FROM machines
                """
            ).fetchone()
            stats = dict(row)
            stats["avg_daily_price"] = round(stats["avg_daily_price"], 2)
            return stats
        finally:
            conn.close()

    @classmethod
    async def search(cls, term: str, limit: int = 10) -> List[MachineRead]:
        """Active machines whose number or name contains ``term``."""
        like = f"%{term}%"
        conn = get_connection()
        try:
            rows = conn.execute(
                f"""
                SELECT {MACHINE_COLUMNS} FROM machines
                WHERE is_active = 1 AND (machine_number LIKE ? OR name LIKE ?)
                ORDER BY machine_number LIMIT ?
                """,
                (like, like, limit),
            ).fetchall()
            return [_row_to_machine(r) for r in rows]
        finally:
            conn.close()

    @classmethod
    async def list_active(cls) -> List[MachineRead]:
        conn = get_connection()
        try:
            rows = conn.execute(
                f"SELECT {MACHINE_COLUMNS} FROM machines WHERE is_active = 1 ORDER BY machine_number"
            ).fetchall()
            return [_row_to_machine(r) for r in rows]
        finally:
            conn.close()

    @classmethod
    async def get_pricing(cls, machine_id: int) -> Dict[str, Any]:
        """Rates used to price a quotation line for this machine."""
        machine = await cls.get_machine(machine_id)
        if not machine.is_active:
            raise ValidationError(
                [{"field": "machine_id", "message": "Machine is not available for quotation"}],
                message="Machine is not available for quotation",
            )
        return {
            "id": machine.id,
            "machine_number": machine.machine_number,
            "name": machine.name,
            "price_by_day": machine.price_by_day,
            "price_by_week": machine.price_by_week,
            "price_by_month": machine.price_by_month,
            "gst_percentage": machine.gst_percentage,
        }
