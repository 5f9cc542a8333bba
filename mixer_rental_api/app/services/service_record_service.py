"""
Business logic for machine service (maintenance) records.

Incoming ``services[]`` payloads are rebuilt into a selection state,
normalised and validated with the same rules as the form
(``service_selection``) before anything is written.  Only the
flattened result of ``to_payload`` is persisted, so unselected
categories never reach the database.  Updates replace the record's
services wholesale.
"""

import logging
import sqlite3
from typing import Any, Dict, List, Optional, Tuple

from mixer_rental_api.app.core.db import get_connection
from mixer_rental_api.app.core.errors import ValidationError
from mixer_rental_api.app.schemas.service_record import ServiceRecordCreate
from mixer_rental_api.app.services.audit_service import AuditService
from mixer_rental_api.app.services.service_catalog_service import ServiceCatalogService
from mixer_rental_api.app.services.service_selection import (
    Catalog,
    from_payload,
    normalize,
    to_payload,
    validate_selection,
)


logger = logging.getLogger(__name__)

RECORD_SELECT = """
    SELECT sr.id, sr.machine_id, sr.service_date, sr.engine_hours, sr.site_location, sr.operator,
           sr.general_notes, sr.created_by, sr.created_at, sr.updated_at,
           m.machine_number, m.name AS machine_name, u.username AS created_by_name
    FROM service_records sr
    LEFT JOIN machines m ON sr.machine_id = m.id
    LEFT JOIN admin_users u ON sr.created_by = u.id
"""


def _unknown_references(services: List[Dict[str, Any]], catalog: Catalog) -> List[Dict[str, str]]:
    errors = []
    for entry in services:
        definition = catalog.get(entry["category_id"])
        if definition is None:
            errors.append({"field": "services", "message": f"Unknown service category {entry['category_id']}"})
            continue
        for sub in entry["sub_services"]:
            if definition.sub_service(sub["id"]) is None:
                errors.append({
                    "field": f"category_{definition.id}",
                    "message": f"Sub-service {sub['id']} does not belong to {definition.name}",
                })
    return errors


class ServiceRecordService:
    """Сервис журнала технического обслуживания техники."""

    @classmethod
    async def _prepare(cls, data: ServiceRecordCreate,
                       existing: Optional[List[Dict[str, Any]]] = None) -> List[Dict[str, Any]]:
        """Validate a record payload and return the services to persist.

        New records may only use active categories and sub‑services.
        ``existing`` holds the stored services of a record being updated;
        anything it already references is accepted even when inactive.
        """
        existing = existing or []
        catalog = await ServiceCatalogService.get_catalog(
            keep_category_ids=[s["category_id"] for s in existing],
            keep_sub_ids=[sub["id"] for s in existing for sub in s["sub_services"]],
        )
        state = normalize(from_payload(s.model_dump() for s in data.services))
        field_errors = validate_selection(state, catalog, data.machine_id, data.service_date, data.operator)
        errors = [{"field": f, "message": m} for f, m in field_errors.items()]
        services = to_payload(state, catalog)
        errors.extend(_unknown_references(services, catalog))
        if data.machine_id and "machine_id" not in field_errors:
            conn = get_connection()
            try:
                if not conn.execute("SELECT id FROM machines WHERE id = ?", (data.machine_id,)).fetchone():
                    errors.append({"field": "machine_id", "message": "Machine not found"})
            finally:
                conn.close()
        if errors:
            raise ValidationError(errors)
        return services

    @classmethod
    def _insert_services(cls, conn: sqlite3.Connection, record_id: int, services: List[Dict[str, Any]]) -> None:
        for entry in services:
            cursor = conn.execute(
                """
                INSERT INTO service_record_services (service_record_id, service_category_id, was_performed, service_notes)
                VALUES (?, ?, ?, ?)
                """,
                (record_id, entry["category_id"], 1 if entry["was_performed"] else 0, entry["service_notes"] or None),
            )
            record_service_id = cursor.lastrowid
            for sub in entry["sub_services"]:
                conn.execute(
                    """
                    INSERT INTO service_record_sub_services
                        (service_record_service_id, sub_service_id, was_performed, sub_service_notes)
                    VALUES (?, ?, 1, ?)
                    """,
                    (record_service_id, sub["id"], sub["sub_service_notes"] or None),
                )

    @classmethod
    def _load_services(cls, conn: sqlite3.Connection, record_id: int) -> List[Dict[str, Any]]:
        rows = conn.execute(
            """
            SELECT srs.id AS record_service_id, srs.service_category_id AS category_id,
                   sc.name AS service_name, sc.description AS service_description,
                   srs.was_performed, srs.service_notes
            FROM service_record_services srs
            JOIN service_categories sc ON sc.id = srs.service_category_id
            WHERE srs.service_record_id = ?
            ORDER BY sc.display_order, sc.name
            """,
            (record_id,),
        ).fetchall()
        services = []
        for row in rows:
            entry = dict(row)
            entry["was_performed"] = bool(entry["was_performed"])
            entry["service_notes"] = entry["service_notes"] or ""
            subs = conn.execute(
                """
                SELECT srss.sub_service_id AS id, ssi.name AS sub_service_name,
                       srss.was_performed, srss.sub_service_notes
                FROM service_record_sub_services srss
                JOIN service_sub_items ssi ON ssi.id = srss.sub_service_id
                WHERE srss.service_record_service_id = ?
                ORDER BY ssi.display_order, ssi.name
                """,
                (entry["record_service_id"],),
            ).fetchall()
            entry["sub_services"] = [
                {
                    "id": s["id"],
                    "sub_service_name": s["sub_service_name"],
                    "was_performed": bool(s["was_performed"]),
                    "sub_service_notes": s["sub_service_notes"] or "",
                }
                for s in subs
            ]
            services.append(entry)
        return services

    @classmethod
    async def create_record(cls, data: ServiceRecordCreate, current_user: Optional[dict] = None) -> Dict[str, Any]:
        services = await cls._prepare(data)
        conn = get_connection()
        try:
            cursor = conn.execute(
                """
                INSERT INTO service_records (machine_id, service_date, engine_hours, site_location,
                                             operator, general_notes, created_by)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    data.machine_id,
                    data.service_date,
                    data.engine_hours,
                    data.site_location,
                    data.operator.strip(),
                    data.general_notes,
                    current_user.get("user_id") if current_user else None,
                ),
            )
            record_id = cursor.lastrowid
            cls._insert_services(conn, record_id, services)
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()
        logger.info("Service record %s created for machine %s", record_id, data.machine_id)
        await AuditService.record(current_user, "create", "service_record", record_id,
                                  {"machine_id": data.machine_id, "categories": len(services)})
        return await cls.get_record(record_id)

    @classmethod
    async def get_record(cls, record_id: int) -> Dict[str, Any]:
        conn = get_connection()
        try:
            row = conn.execute(RECORD_SELECT + " WHERE sr.id = ?", (record_id,)).fetchone()
            if not row:
                raise ValueError("Service record not found")
            record = dict(row)
            record["services"] = cls._load_services(conn, record_id)
            return record
        finally:
            conn.close()

    @classmethod
    async def update_record(cls, record_id: int, data: ServiceRecordCreate,
                            current_user: Optional[dict] = None) -> Dict[str, Any]:
        current = await cls.get_record(record_id)
        services = await cls._prepare(data, current["services"])
        conn = get_connection()
        try:
            conn.execute(
                """
                UPDATE service_records
                SET machine_id = ?, service_date = ?, engine_hours = ?, site_location = ?,
                    operator = ?, general_notes = ?, updated_at = CURRENT_TIMESTAMP
                WHERE id = ?
                """,
                (
                    data.machine_id,
                    data.service_date,
                    data.engine_hours,
                    data.site_location,
                    data.operator.strip(),
                    data.general_notes,
                    record_id,
                ),
            )
            conn.execute("DELETE FROM service_record_services WHERE service_record_id = ?", (record_id,))
            cls._insert_services(conn, record_id, services)
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()
        await AuditService.record(current_user, "update", "service_record", record_id)
        return await cls.get_record(record_id)

    @classmethod
    async def delete_record(cls, record_id: int, current_user: Optional[dict] = None) -> None:
        await cls.get_record(record_id)
        conn = get_connection()
        try:
            # sub‑service rows go with their parent through ON DELETE CASCADE
            conn.execute("DELETE FROM service_record_services WHERE service_record_id = ?", (record_id,))
            conn.execute("DELETE FROM service_records WHERE id = ?", (record_id,))
            conn.commit()
        finally:
            conn.close()
        await AuditService.record(current_user, "delete", "service_record", record_id)

    @classmethod
    def _filters(cls, machine_id: Optional[int], start_date: Optional[str], end_date: Optional[str],
                 operator: Optional[str], site_location: Optional[str]) -> Tuple[str, List[Any]]:
        where, params = [], []
        if machine_id is not None:
            where.append("sr.machine_id = ?")
            params.append(machine_id)
        if start_date:
            where.append("sr.service_date >= ?")
            params.append(start_date)
        if end_date:
            where.append("sr.service_date <= ?")
            params.append(end_date)
        if operator:
            where.append("sr.operator LIKE ?")
            params.append(f"%{operator}%")
        if site_location:
            where.append("sr.site_location LIKE ?")
            params.append(f"%{site_location}%")
        return (" WHERE " + " AND ".join(where) if where else ""), params

    @classmethod
    async def list_records(
        cls,
        machine_id: Optional[int] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        operator: Optional[str] = None,
        site_location: Optional[str] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> Tuple[List[Dict[str, Any]], Dict[str, Any]]:
        """Records newest first with an offset pagination block."""
        where_sql, params = cls._filters(machine_id, start_date, end_date, operator, site_location)
        conn = get_connection()
        try:
            rows = conn.execute(
                f"""
                SELECT sr.id, sr.machine_id, sr.service_date, sr.engine_hours, sr.site_location,
                       sr.operator, sr.general_notes, sr.created_at,
                       m.machine_number, m.name AS machine_name,
                       (SELECT GROUP_CONCAT(sc.name, ', ')
                        FROM service_record_services srs
                        JOIN service_categories sc ON sc.id = srs.service_category_id
                        WHERE srs.service_record_id = sr.id) AS services_performed
                FROM service_records sr
                LEFT JOIN machines m ON sr.machine_id = m.id
                {where_sql}
                ORDER BY sr.service_date DESC, sr.created_at DESC, sr.id DESC
                LIMIT ? OFFSET ?
                """,
                params + [limit, offset],
            ).fetchall()
        finally:
            conn.close()
        records = [dict(r) for r in rows]
        return records, {"limit": limit, "offset": offset, "hasMore": len(records) == limit}

    @classmethod
    async def machine_summary(cls, machine_id: int) -> Dict[str, Any]:
        conn = get_connection()
        try:
            if not conn.execute("SELECT id FROM machines WHERE id = ?", (machine_id,)).fetchone():
                raise ValueError("Machine not found")
            summary = dict(conn.execute(
                """
                SELECT COUNT(*) AS total_services,
                       MAX(service_date) AS last_service_date,
                       MIN(service_date) AS first_service_date,
                       AVG(engine_hours) AS avg_engine_hours,
                       MAX(engine_hours) AS max_engine_hours,
                       COUNT(CASE WHEN DATE(service_date) >= DATE('now', '-30 day') THEN 1 END) AS recent_services
                FROM service_records WHERE machine_id = ?
                """,
                (machine_id,),
            ).fetchone())
            common = conn.execute(
                """
                SELECT sc.name AS service_name, COUNT(*) AS frequency
                FROM service_record_services srs
                JOIN service_categories sc ON srs.service_category_id = sc.id
                JOIN service_records sr ON srs.service_record_id = sr.id
                WHERE sr.machine_id = ? AND srs.was_performed = 1
                GROUP BY sc.id
                ORDER BY frequency DESC, sc.name
                LIMIT 5
                """,
                (machine_id,),
            ).fetchall()
        finally:
            conn.close()
        if summary["avg_engine_hours"] is not None:
            summary["avg_engine_hours"] = round(summary["avg_engine_hours"], 2)
        summary["common_services"] = [dict(r) for r in common]
        return summary

    @classmethod
    async def get_stats(cls) -> Dict[str, Any]:
        conn = get_connection()
        try:
            stats = dict(conn.execute(
                """
                SELECT COUNT(*) AS total_records,
                       COUNT(DISTINCT machine_id) AS machines_serviced,
                       COUNT(CASE WHEN DATE(service_date) >= DATE('now', '-30 day') THEN 1 END) AS records_last_30_days,
                       COUNT(CASE WHEN DATE(service_date) >= DATE('now', '-7 day') THEN 1 END) AS records_last_7_days
                FROM service_records
                """
            ).fetchone())
            top = conn.execute(
                """
                SELECT sc.name AS service_name, COUNT(*) AS frequency
                FROM service_record_services srs
                JOIN service_categories sc ON srs.service_category_id = sc.id
                WHERE srs.was_performed = 1
                GROUP BY sc.id
                ORDER BY frequency DESC, sc.name
                LIMIT 5
                """
            ).fetchall()
        finally:
            conn.close()
        stats["top_services"] = [dict(r) for r in top]
        return stats

    @classmethod
    async def export_rows(cls, machine_id: Optional[int] = None, start_date: Optional[str] = None,
                          end_date: Optional[str] = None) -> List[Dict[str, Any]]:
        """Flat rows for the CSV export, one per record."""
        where_sql, params = cls._filters(machine_id, start_date, end_date, None, None)
        conn = get_connection()
        try:
            rows = conn.execute(
                f"""
                SELECT m.machine_number, m.name AS machine_name, sr.service_date, sr.engine_hours,
                       sr.site_location, sr.operator, sr.general_notes, sr.created_at,
                       u.username AS created_by_name,
                       (SELECT GROUP_CONCAT(sc.name, '; ')
                        FROM service_record_services srs
                        JOIN service_categories sc ON sc.id = srs.service_category_id
                        WHERE srs.service_record_id = sr.id) AS services_performed
                FROM service_records sr
                LEFT JOIN machines m ON sr.machine_id = m.id
                LEFT JOIN admin_users u ON sr.created_by = u.id
                {where_sql}
                ORDER BY sr.service_date DESC, sr.created_at DESC
                """,
                params,
            ).fetchall()
            return [dict(r) for r in rows]
        finally:
            conn.close()
