"""
Terms & conditions printed on quotations.

Terms flagged ``is_default`` are copied into every new quotation that
does not bring its own ``terms_text``, numbered in ``display_order``.
"""

from typing import Any, Dict, List, Optional

from mixer_rental_api.app.core.db import get_connection
from mixer_rental_api.app.schemas.company import TermCreate
from mixer_rental_api.app.services.audit_service import AuditService


TERM_COLUMNS = "id, title, description, is_default, display_order, created_at, updated_at"

UPDATABLE_FIELDS = {"title", "description", "is_default", "display_order"}


def _row(row) -> Dict[str, Any]:
    data = dict(row)
    data["is_default"] = bool(data["is_default"])
    return data


def format_terms(terms: List[Dict[str, Any]]) -> str:
    """Render terms as ``"1. Title: Description"`` lines."""
    return "\n".join(
        f"{index}. {term['title']}: {term['description']}" for index, term in enumerate(terms, start=1)
    )


class TermsService:
    @classmethod
    async def list_terms(cls, is_default: Optional[bool] = None, search: Optional[str] = None) -> List[Dict[str, Any]]:
        where, params = [], []
        if is_default is not None:
            where.append("is_default = ?")
            params.append(1 if is_default else 0)
        if search:
            where.append("(title LIKE ? OR description LIKE ?)")
            params.extend([f"%{search}%", f"%{search}%"])
        query = f"SELECT {TERM_COLUMNS} FROM terms_conditions"
        if where:
            query += " WHERE " + " AND ".join(where)
        query += " ORDER BY display_order ASC, title ASC"
        conn = get_connection()
        try:
            return [_row(r) for r in conn.execute(query, params).fetchall()]
        finally:
            conn.close()

    @classmethod
    async def get_term(cls, term_id: int) -> Dict[str, Any]:
        conn = get_connection()
        try:
            row = conn.execute(f"SELECT {TERM_COLUMNS} FROM terms_conditions WHERE id = ?", (term_id,)).fetchone()
            if not row:
                raise ValueError("Terms and conditions not found")
            return _row(row)
        finally:
            conn.close()

    @classmethod
    async def default_terms_text(cls) -> str:
        return format_terms(await cls.list_terms(is_default=True))

    @classmethod
    async def create_term(cls, data: TermCreate, current_user: Optional[dict] = None) -> Dict[str, Any]:
        conn = get_connection()
        try:
            display_order = data.display_order
            if not display_order:
                display_order = conn.execute(
                    "SELECT COALESCE(MAX(display_order), 0) + 1 AS next_order FROM terms_conditions"
                ).fetchone()["next_order"]
            cursor = conn.execute(
                "INSERT INTO terms_conditions (title, description, is_default, display_order) VALUES (?, ?, ?, ?)",
                (data.title.strip(), data.description.strip(), 1 if data.is_default else 0, display_order),
            )
            term_id = cursor.lastrowid
            conn.commit()
        finally:
            conn.close()
        await AuditService.record(current_user, "create", "terms", term_id)
        return await cls.get_term(term_id)

    @classmethod
    async def update_term(cls, term_id: int, updates: Dict[str, Any], current_user: Optional[dict] = None) -> Dict[str, Any]:
        await cls.get_term(term_id)
        fields = {k: v for k, v in updates.items() if k in UPDATABLE_FIELDS}
        if "is_default" in fields:
            fields["is_default"] = 1 if fields["is_default"] else 0
        if fields:
            conn = get_connection()
            try:
                set_sql = ", ".join(f"{col} = ?" for col in fields)
                conn.execute(
                    f"UPDATE terms_conditions SET {set_sql}, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                    list(fields.values()) + [term_id],
                )
                conn.commit()
            finally:
                conn.close()
        await AuditService.record(current_user, "update", "terms", term_id)
        return await cls.get_term(term_id)

    @classmethod
    async def delete_term(cls, term_id: int, current_user: Optional[dict] = None) -> None:
        await cls.get_term(term_id)
        conn = get_connection()
        try:
            conn.execute("DELETE FROM terms_conditions WHERE id = ?", (term_id,))
            conn.commit()
        finally:
            conn.close()
        await AuditService.record(current_user, "delete", "terms", term_id)

    @classmethod
    async def set_default(cls, ids: List[int], is_default: bool = True) -> int:
        if not ids:
            return 0
        placeholders = ", ".join("?" for _ in ids)
        conn = get_connection()
        try:
            cursor = conn.execute(
                f"UPDATE terms_conditions SET is_default = ?, updated_at = CURRENT_TIMESTAMP WHERE id IN ({placeholders})",
                [1 if is_default else 0] + list(ids),
            )
            conn.commit()
            return cursor.rowcount
        finally:
            conn.close()

    @classmethod
    async def reorder(cls, items: List[Dict[str, int]], current_user: Optional[dict] = None) -> int:
        """Apply ``[{id, display_order}, ...]``; returns the number of terms moved."""
        conn = get_connection()
        try:
            updated = 0
            for item in items:
                cursor = conn.execute(
                    "UPDATE terms_conditions SET display_order = ?, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                    (item["display_order"], item["id"]),
                )
                updated += cursor.rowcount
            conn.commit()
        finally:
            conn.close()
        await AuditService.record(current_user, "reorder", "terms", None, {"count": updated})
        return updated

    @classmethod
    async def duplicate(cls, term_id: int, current_user: Optional[dict] = None) -> Dict[str, Any]:
        """Copy a term as ``"<title> (Copy)"``; copies are never default."""
        original = await cls.get_term(term_id)
        return await cls.create_term(
            TermCreate(title=f"{original['title']} (Copy)", description=original["description"], is_default=False),
            current_user,
        )

    @classmethod
    async def bulk_delete(cls, ids: List[int], current_user: Optional[dict] = None) -> int:
        """Delete ``ids`` and renumber the remaining terms 1..n."""
        placeholders = ", ".join("?" for _ in ids)
        conn = get_connection()
        try:
            deleted = conn.execute(f"DELETE FROM terms_conditions WHERE id IN ({placeholders})", list(ids)).rowcount
            remaining = conn.execute("SELECT id FROM terms_conditions ORDER BY display_order, id").fetchall()
            conn.executemany(
                "UPDATE terms_conditions SET display_order = ? WHERE id = ?",
                [(position, row["id"]) for position, row in enumerate(remaining, start=1)],
            )
            conn.commit()
        finally:
            conn.close()
        await AuditService.record(current_user, "bulk_delete", "terms", None, {"ids": list(ids)})
        return deleted

    @classmethod
    async def get_stats(cls) -> Dict[str, Any]:
        conn = get_connection()
        try:
            row = conn.execute(
                "SELECT COUNT(*) AS total, COALESCE(SUM(is_default), 0) AS defaults, MAX(updated_at) AS last_updated "
                "FROM terms_conditions"
            ).fetchone()
        finally:
            conn.close()
        return {"totalTerms": row["total"], "defaultTerms": row["defaults"], "lastUpdated": row["last_updated"]}
