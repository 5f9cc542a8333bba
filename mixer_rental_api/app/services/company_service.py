"""
The rental company's own details (name, GST number, contact data,
logo and signature) shown on every generated document.

Only one row is kept; ``save_details`` updates it in place or creates
it on first use.
"""

import logging
from typing import Any, Dict, Optional

from mixer_rental_api.app.core.db import get_connection
from mixer_rental_api.app.core.errors import ValidationError
from mixer_rental_api.app.schemas.company import CompanyDetails
from mixer_rental_api.app.services.audit_service import AuditService
from mixer_rental_api.app.utils.validators import is_valid_email, is_valid_gst_number


logger = logging.getLogger(__name__)

COMPANY_COLUMNS = (
    "company_name, gst_number, email, phone, phone2, address, logo_url, signature_url, created_at, updated_at"
)

PUBLIC_FIELDS = ("company_name", "email", "phone", "address", "logo_url")


class CompanyService:
    @classmethod
    async def get_details(cls) -> Optional[Dict[str, Any]]:
        conn = get_connection()
        try:
            row = conn.execute(
                f"SELECT {COMPANY_COLUMNS} FROM our_company_details ORDER BY id DESC LIMIT 1"
            ).fetchone()
            return dict(row) if row else None
        finally:
            conn.close()

    @classmethod
    async def get_public_info(cls) -> Optional[Dict[str, Any]]:
        details = await cls.get_details()
        if details is None:
            return None
        return {key: details.get(key) for key in PUBLIC_FIELDS}

    @classmethod
    async def save_details(cls, data: CompanyDetails, current_user: Optional[dict] = None) -> Dict[str, Any]:
        errors = []
        if data.gst_number and not is_valid_gst_number(data.gst_number):
            errors.append({"field": "gst_number", "message": "Please enter a valid GST number"})
        if data.email and not is_valid_email(data.email):
            errors.append({"field": "email", "message": "Please enter a valid email address"})
        if errors:
            raise ValidationError(errors)
        values = (
            data.company_name,
            data.gst_number.upper() if data.gst_number else None,
            data.email,
            data.phone,
            data.phone2,
            data.address,
            data.logo_url,
            data.signature_url,
        )
        conn = get_connection()
        try:
            existing = conn.execute("SELECT id FROM our_company_details ORDER BY id DESC LIMIT 1").fetchone()
            if existing:
                conn.execute(
                    """
                    UPDATE our_company_details
                    SET company_name = ?, gst_number = ?, email = ?, phone = ?, phone2 = ?,
                        address = ?, logo_url = ?, signature_url = ?, updated_at = CURRENT_TIMESTAMP
                    WHERE id = ?
                    """,
                    values + (existing["id"],),
                )
            else:
                conn.execute(
                    """
                    INSERT INTO our_company_details
                        (company_name, gst_number, email, phone, phone2, address, logo_url, signature_url)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    values,
                )
            conn.commit()
        finally:
            conn.close()
        logger.info("Company details saved")
        await AuditService.record(current_user, "update", "company")
        return await cls.get_details()
