"""
Terms & conditions endpoints.

Default terms are preselected on new quotations; ``/for-quotation``
returns them already formatted as the quotation text.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from mixer_rental_api.app.core.responses import ok
from mixer_rental_api.app.core.security import get_current_user
from mixer_rental_api.app.schemas.company import ReorderTerms, SetDefaultTerms, TermCreate, TermIds, TermUpdate
from mixer_rental_api.app.services.terms_service import TermsService


router = APIRouter()


@router.get("/")
async def list_terms(
    is_default: Optional[bool] = Query(None),
    search: Optional[str] = Query(None),
) -> dict:
    return ok(await TermsService.list_terms(is_default=is_default, search=search))


@router.get("/default")
async def default_terms() -> dict:
    return ok(await TermsService.list_terms(is_default=True))


@router.get("/for-quotation")
async def terms_for_quotation() -> dict:
    return ok({"terms_text": await TermsService.default_terms_text()})


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_term(term: TermCreate, current_user: dict = Depends(get_current_user)) -> dict:
    created = await TermsService.create_term(term, current_user)
    return ok(created, "Terms and conditions created successfully")


@router.post("/set-default")
async def set_default(payload: SetDefaultTerms, current_user: dict = Depends(get_current_user)) -> dict:
    updated = await TermsService.set_default(payload.ids, payload.is_default)
    return ok({"updated": updated}, f"{updated} terms updated successfully")


@router.get("/stats")
async def terms_stats() -> dict:
    return ok(await TermsService.get_stats())


@router.put("/reorder")
async def reorder_terms(payload: ReorderTerms, current_user: dict = Depends(get_current_user)) -> dict:
    updated = await TermsService.reorder([item.model_dump() for item in payload.items], current_user)
    return ok({"updated": updated}, "Terms and conditions reordered successfully")


@router.delete("/bulk")
async def bulk_delete_terms(payload: TermIds, current_user: dict = Depends(get_current_user)) -> dict:
    deleted = await TermsService.bulk_delete(payload.ids, current_user)
    return ok({"deleted": deleted}, f"{deleted} terms and conditions deleted successfully")


@router.get("/{term_id}")
async def get_term(term_id: int) -> dict:
    try:
        return ok(await TermsService.get_term(term_id))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e


@router.put("/{term_id}")
async def update_term(term_id: int, updates: TermUpdate, current_user: dict = Depends(get_current_user)) -> dict:
    update_dict = {k: v for k, v in updates.model_dump().items() if v is not None}
    try:
        term = await TermsService.update_term(term_id, update_dict, current_user)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    return ok(term, "Terms and conditions updated successfully")


@router.delete("/{term_id}")
async def delete_term(term_id: int, current_user: dict = Depends(get_current_user)) -> dict:
    try:
        await TermsService.delete_term(term_id, current_user)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    return ok(None, "Terms and conditions deleted successfully")


@router.post("/{term_id}/duplicate", status_code=status.HTTP_201_CREATED)
async def duplicate_term(term_id: int, current_user: dict = Depends(get_current_user)) -> dict:
    try:
        term = await TermsService.duplicate(term_id, current_user)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    return ok(term, "Terms and conditions duplicated successfully")
