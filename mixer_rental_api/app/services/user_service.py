"""
Business logic for admin accounts.

Admins log in with username and password; a successful login records
``last_login`` and returns a signed access token.
"""

import logging
from typing import Any, Dict, Optional

from mixer_rental_api.app.core.db import get_connection
from mixer_rental_api.app.core.security import create_access_token, hash_password, verify_password
from mixer_rental_api.app.schemas.user import AdminUserRead
from mixer_rental_api.app.services.audit_service import AuditService


logger = logging.getLogger(__name__)


class UserService:
    """Сервис учётных записей администраторов."""

    @classmethod
    async def authenticate(cls, username: str, password: str) -> Optional[AdminUserRead]:
        """Return the admin when the credentials match, otherwise ``None``."""
        conn = get_connection()
        try:
            row = conn.execute(
                "SELECT id, username, email, password, is_active, created_at, last_login "
                "FROM admin_users WHERE username = ? OR email = ?",
                (username, username),
            ).fetchone()
            if not row or not row["is_active"] or not verify_password(password, row["password"]):
                logger.warning("Failed login attempt for %s", username)
                return None
            conn.execute("UPDATE admin_users SET last_login = CURRENT_TIMESTAMP WHERE id = ?", (row["id"],))
            conn.commit()
            return AdminUserRead(
                id=row["id"],
                username=row["username"],
                email=row["email"],
                created_at=row["created_at"],
                last_login=row["last_login"],
            )
        finally:
            conn.close()

    @classmethod
    async def login(cls, username: str, password: str) -> Optional[Dict[str, Any]]:
        user = await cls.authenticate(username, password)
        if user is None:
            return None
        token = create_access_token({"sub": user.username, "user_id": user.id})
        await AuditService.log(user.id, "login", "admin_user", user.id)
        return {
            "user": {"id": user.id, "username": user.username, "email": user.email},
            "token": token,
            "expiresIn": "8h",
        }

    @classmethod
    async def get_profile(cls, user_id: int) -> AdminUserRead:
        conn = get_connection()
        try:
            row = conn.execute(
                "SELECT id, username, email, created_at, last_login FROM admin_users WHERE id = ?",
                (user_id,),
            ).fetchone()
            if not row:
                raise ValueError("User not found")
            return AdminUserRead(**dict(row))
        finally:
            conn.close()

    @classmethod
    async def change_password(cls, user_id: int, current_password: str, new_password: str) -> bool:
        """Replace the password; returns ``False`` if ``current_password`` is wrong."""
        conn = get_connection()
        try:
            row = conn.execute("SELECT password FROM admin_users WHERE id = ?", (user_id,)).fetchone()
            if not row:
                raise ValueError("User not found")
            if not verify_password(current_password, row["password"]):
                return False
            conn.execute(
                "UPDATE admin_users SET password = ?, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                (hash_password(new_password), user_id),
            )
            conn.commit()
        finally:
            conn.close()
        await AuditService.log(user_id, "change_password", "admin_user", user_id)
        return True
