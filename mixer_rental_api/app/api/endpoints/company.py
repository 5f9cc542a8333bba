"""Endpoints for the rental company's own details."""

from fastapi import APIRouter, Depends

from mixer_rental_api.app.core.responses import ok
from mixer_rental_api.app.core.security import get_current_user
from mixer_rental_api.app.schemas.company import CompanyDetails
from mixer_rental_api.app.services.company_service import CompanyService


router = APIRouter()


@router.get("/")
async def get_company() -> dict:
    details = await CompanyService.get_details()
    return ok(details, "" if details else "Company details not configured")


@router.put("/")
async def save_company(details: CompanyDetails, current_user: dict = Depends(get_current_user)) -> dict:
    """Создать или обновить реквизиты компании."""
    saved = await CompanyService.save_details(details, current_user)
    return ok(saved, "Company details saved successfully")
