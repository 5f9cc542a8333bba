"""Admin endpoints for customer inquiries."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from mixer_rental_api.app.core.responses import ok, page_pagination
from mixer_rental_api.app.core.security import get_current_user
from mixer_rental_api.app.schemas.query import QueryStatusUpdate, TestEmailRequest
from mixer_rental_api.app.services.email_service import EmailService
from mixer_rental_api.app.services.query_service import QueryService


router = APIRouter()


@router.get("/")
async def list_queries(
    status_filter: Optional[str] = Query(None, alias="status"),
    start_date: Optional[str] = Query(None),
    end_date: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
) -> dict:
    queries, total = await QueryService.list_queries(
        status=status_filter,
        start_date=start_date,
        end_date=end_date,
        search=search,
        page=page,
        limit=limit,
    )
    return ok(queries, pagination=page_pagination(page, limit, total))


@router.get("/stats")
async def query_stats() -> dict:
    return ok(await QueryService.get_stats())


@router.post("/test-email")
async def test_email(payload: TestEmailRequest) -> dict:
    """Send a test message to check the SMTP settings."""
    if not EmailService.send_test_email(payload.email):
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to send test email")
    return ok(None, "Test email sent successfully")


@router.get("/{query_id}")
async def get_query(query_id: int) -> dict:
    try:
        return ok(await QueryService.get_query(query_id))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e


@router.put("/{query_id}/status")
async def update_query_status(
    query_id: int,
    payload: QueryStatusUpdate,
    current_user: dict = Depends(get_current_user),
) -> dict:
    try:
        query = await QueryService.update_status(query_id, payload.status, current_user)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    return ok(query, "Query status updated successfully")
