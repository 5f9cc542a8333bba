"""
Public endpoints used by the company website.

Inquiry submission is rate limited per client IP.  The confirmation and
admin notification e‑mails are sent as background tasks after the
response, so a delivery failure never fails the submission.
"""

from fastapi import APIRouter, BackgroundTasks, Depends, status

from mixer_rental_api.app.core.config import settings
from mixer_rental_api.app.core.rate_limit import RateLimiter
from mixer_rental_api.app.core.responses import ok
from mixer_rental_api.app.schemas.query import CustomerQueryCreate
from mixer_rental_api.app.services.company_service import CompanyService
from mixer_rental_api.app.services.email_service import EmailService, query_reference
from mixer_rental_api.app.services.query_service import QueryService


router = APIRouter()

query_limiter = RateLimiter(
    max_requests=settings.query_rate_limit,
    window_seconds=settings.query_rate_window_seconds,
    message="Too many queries submitted. Please try again after 15 minutes.",
)


@router.post("/query", status_code=status.HTTP_201_CREATED, dependencies=[Depends(query_limiter)])
async def submit_query(payload: CustomerQueryCreate, background_tasks: BackgroundTasks) -> dict:
    query = await QueryService.submit(payload)
    background_tasks.add_task(EmailService.send_new_query_emails, query)
    return ok(
        {"id": query["id"], "reference": query_reference(query["id"])},
        "Your inquiry has been submitted successfully. We will contact you within 24 hours.",
    )


@router.get("/company-info")
async def company_info() -> dict:
    return ok(await CompanyService.get_public_info())


@router.get("/health")
async def health() -> dict:
    return ok({"status": "ok"}, "Customer API is running")
