"""
Helpers that build the standard JSON envelope.

Every successful response has the shape
``{"success": true, "data": ..., "message": ..., "pagination": ...}``;
``pagination`` is only present for list endpoints.
"""

import math
from typing import Any, Dict, Optional

from pydantic import BaseModel


def _dump(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump()
    if isinstance(value, list):
        return [_dump(v) for v in value]
    return value


def ok(data: Any = None, message: str = "", pagination: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": True, "data": _dump(data), "message": message}
    if pagination is not None:
        body["pagination"] = pagination
    return body


def page_pagination(page: int, limit: int, total: int) -> Dict[str, Any]:
    """Page‑number pagination block used by the admin list screens."""
    total_pages = math.ceil(total / limit) if limit else 0
    return {
        "current_page": page,
        "per_page": limit,
        "total": total,
        "total_pages": total_pages,
        "has_next": page < total_pages,
        "has_prev": page > 1,
    }
