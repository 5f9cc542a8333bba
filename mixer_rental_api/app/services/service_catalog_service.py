"""
Maintenance catalogue: service categories and their sub‑service items.

Categories are listed in ``display_order`` then name, each with its
sub‑services nested under ``sub_services``.  ``has_sub_services`` is
derived from the active sub‑items rather than stored.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from mixer_rental_api.app.core.db import get_connection
from mixer_rental_api.app.core.errors import ValidationError
from mixer_rental_api.app.schemas.service_record import ServiceCategoryCreate, SubServiceItemCreate
from mixer_rental_api.app.services.audit_service import AuditService
from mixer_rental_api.app.services.service_selection import Catalog, build_catalog


logger = logging.getLogger(__name__)

CATEGORY_FIELDS = {"name", "description", "display_order", "is_active"}
SUB_ITEM_FIELDS = {"name", "description", "display_order", "is_active"}


def _as_bool_row(row) -> Dict[str, Any]:
    data = dict(row)
    data["is_active"] = bool(data["is_active"])
    return data


class ServiceCatalogService:
    @classmethod
    async def list_categories(cls, active_only: bool = True) -> List[Dict[str, Any]]:
        conn = get_connection()
        try:
            where = " WHERE is_active = 1" if active_only else ""
            categories = [
                _as_bool_row(r)
                for r in conn.execute(
                    f"SELECT id, name, description, is_active, display_order FROM service_categories{where} "
                    "ORDER BY display_order, name"
                ).fetchall()
            ]
            sub_where = " WHERE is_active = 1" if active_only else ""
            subs = conn.execute(
                f"SELECT id, category_id, name, description, is_active, display_order FROM service_sub_items{sub_where} "
                "ORDER BY display_order, name"
            ).fetchall()
        finally:
            conn.close()
        by_category: Dict[int, List[Dict[str, Any]]] = {}
        for sub in subs:
            by_category.setdefault(sub["category_id"], []).append(_as_bool_row(sub))
        for category in categories:
            category["sub_services"] = by_category.get(category["id"], [])
            category["has_sub_services"] = any(s["is_active"] for s in category["sub_services"])
        return categories

    @classmethod
    async def get_catalog(cls, keep_category_ids: Iterable[int] = (), keep_sub_ids: Iterable[int] = ()) -> Catalog:
        """Active categories (plus the kept inactive ones) as selection‑model definitions.

        Inactive categories and sub‑services listed in ``keep_category_ids``
        and ``keep_sub_ids`` stay in the catalog, so a record that already
        uses them can be saved again.
        """
        keep_categories, keep_subs = set(keep_category_ids), set(keep_sub_ids)
        categories = []
        for category in await cls.list_categories(active_only=False):
            if not category["is_active"] and category["id"] not in keep_categories:
                continue
            subs = [s for s in category["sub_services"] if s["is_active"] or s["id"] in keep_subs]
            categories.append(dict(category, sub_services=subs))
        return build_catalog(categories)

    @classmethod
    async def get_category(cls, category_id: int) -> Dict[str, Any]:
        for category in await cls.list_categories(active_only=False):
            if category["id"] == category_id:
                return category
        raise ValueError("Service category not found")

    @classmethod
    async def create_category(cls, data: ServiceCategoryCreate, current_user: Optional[dict] = None) -> Dict[str, Any]:
        conn = get_connection()
        try:
            display_order = data.display_order
            if display_order is None:
                display_order = conn.execute(
                    "SELECT COALESCE(MAX(display_order), 0) + 1 AS next_order FROM service_categories"
                ).fetchone()["next_order"]
            cursor = conn.execute(
                "INSERT INTO service_categories (name, description, is_active, display_order) VALUES (?, ?, ?, ?)",
                (data.name.strip(), data.description, 1 if data.is_active else 0, display_order),
            )
            category_id = cursor.lastrowid
            conn.commit()
        finally:
            conn.close()
        await AuditService.record(current_user, "create", "service_category", category_id, {"name": data.name})
        return await cls.get_category(category_id)

    @classmethod
    async def update_category(cls, category_id: int, updates: Dict[str, Any],
                              current_user: Optional[dict] = None) -> Dict[str, Any]:
        await cls.get_category(category_id)
        fields = {k: v for k, v in updates.items() if k in CATEGORY_FIELDS}
        if "is_active" in fields:
            fields["is_active"] = 1 if fields["is_active"] else 0
        if fields:
            conn = get_connection()
            try:
                set_sql = ", ".join(f"{col} = ?" for col in fields)
                conn.execute(
                    f"UPDATE service_categories SET {set_sql}, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                    list(fields.values()) + [category_id],
                )
                conn.commit()
            finally:
                conn.close()
        await AuditService.record(current_user, "update", "service_category", category_id)
        return await cls.get_category(category_id)

    @classmethod
    async def delete_category(cls, category_id: int, current_user: Optional[dict] = None) -> None:
        """Delete a category and its sub‑items.

        Categories already used by service records cannot be deleted;
        deactivate them instead.
        """
        await cls.get_category(category_id)
        conn = get_connection()
        try:
            used = conn.execute(
                "SELECT COUNT(*) AS count FROM service_record_services WHERE service_category_id = ?",
                (category_id,),
            ).fetchone()["count"]
            if used:
                raise ValidationError(
                    [{"field": "id", "message": "Category is used by service records; deactivate it instead"}],
                    message="Cannot delete a category that is used by service records",
                )
            conn.execute("DELETE FROM service_sub_items WHERE category_id = ?", (category_id,))
            conn.execute("DELETE FROM service_categories WHERE id = ?", (category_id,))
            conn.commit()
        finally:
            conn.close()
        await AuditService.record(current_user, "delete", "service_category", category_id)

    @classmethod
    async def list_sub_items(cls, category_id: int) -> List[Dict[str, Any]]:
        category = await cls.get_category(category_id)
        return category["sub_services"]

    @classmethod
    async def get_sub_item(cls, item_id: int) -> Dict[str, Any]:
        conn = get_connection()
        try:
            row = conn.execute(
                "SELECT id, category_id, name, description, is_active, display_order FROM service_sub_items WHERE id = ?",
                (item_id,),
            ).fetchone()
            if not row:
                raise ValueError("Sub-service item not found")
            return _as_bool_row(row)
        finally:
            conn.close()

    @classmethod
    async def create_sub_item(cls, data: SubServiceItemCreate, current_user: Optional[dict] = None) -> Dict[str, Any]:
        await cls.get_category(data.category_id)
        conn = get_connection()
        try:
            display_order = data.display_order
            if display_order is None:
                display_order = conn.execute(
                    "SELECT COALESCE(MAX(display_order), 0) + 1 AS next_order FROM service_sub_items WHERE category_id = ?",
                    (data.category_id,),
                ).fetchone()["next_order"]
            cursor = conn.execute(
                "INSERT INTO service_sub_items (category_id, name, description, is_active, display_order) "
                "VALUES (?, ?, ?, ?, ?)",
                (data.category_id, data.name.strip(), data.description, 1 if data.is_active else 0, display_order),
            )
            item_id = cursor.lastrowid
            conn.commit()
        finally:
            conn.close()
        await AuditService.record(current_user, "create", "service_sub_item", item_id, {"name": data.name})
        return await cls.get_sub_item(item_id)

    @classmethod
    async def update_sub_item(cls, item_id: int, updates: Dict[str, Any],
                              current_user: Optional[dict] = None) -> Dict[str, Any]:
        await cls.get_sub_item(item_id)
        fields = {k: v for k, v in updates.items() if k in SUB_ITEM_FIELDS}
        if "is_active" in fields:
            fields["is_active"] = 1 if fields["is_active"] else 0
        if fields:
            conn = get_connection()
            try:
                set_sql = ", ".join(f"{col} = ?" for col in fields)
                conn.execute(
                    f"UPDATE service_sub_items SET {set_sql}, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                    list(fields.values()) + [item_id],
                )
                conn.commit()
            finally:
                conn.close()
        await AuditService.record(current_user, "update", "service_sub_item", item_id)
        return await cls.get_sub_item(item_id)

    @classmethod
    async def delete_sub_item(cls, item_id: int, current_user: Optional[dict] = None) -> None:
        await cls.get_sub_item(item_id)
        conn = get_connection()
        try:
            used = conn.execute(
                "SELECT COUNT(*) AS count FROM service_record_sub_services WHERE sub_service_id = ?", (item_id,)
            ).fetchone()["count"]
            if used:
                raise ValidationError(
                    [{"field": "id", "message": "Sub-service is used by service records; deactivate it instead"}],
                    message="Cannot delete a sub-service that is used by service records",
                )
            conn.execute("DELETE FROM service_sub_items WHERE id = ?", (item_id,))
            conn.commit()
        finally:
            conn.close()
        await AuditService.record(current_user, "delete", "service_sub_item", item_id)
