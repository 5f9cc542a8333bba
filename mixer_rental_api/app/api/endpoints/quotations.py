"""
Quotation endpoints.

Totals in responses and PDFs are the stored values computed when the
quotation was created or last updated.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from mixer_rental_api.app.core.responses import ok, page_pagination
from mixer_rental_api.app.core.security import get_current_user
from mixer_rental_api.app.schemas.quotation import QuotationCreate, QuotationStatusUpdate, QuotationUpdate
from mixer_rental_api.app.services.export_service import XLSX_MEDIA_TYPE, ExportService
from mixer_rental_api.app.services.pdf_service import PDFGenerationError, PDFService
from mixer_rental_api.app.services.quotation_service import QuotationService


router = APIRouter()


@router.get("/")
async def list_quotations(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    search: Optional[str] = Query(None),
    quotation_status: Optional[str] = Query(None),
    delivery_status: Optional[str] = Query(None),
    customer_id: Optional[int] = Query(None),
) -> dict:
    """Список коммерческих предложений; ``limit`` ограничен 100."""
    limit = min(limit, 100)
    quotations, total = await QuotationService.list_quotations(
        page=page,
        limit=limit,
        search=search,
        quotation_status=quotation_status,
        delivery_status=delivery_status,
        customer_id=customer_id,
    )
    return ok(quotations, pagination=page_pagination(page, limit, total))


@router.get("/stats")
async def quotation_stats() -> dict:
    return ok(await QuotationService.get_stats())


@router.get("/export")
async def export_quotations(
    search: Optional[str] = Query(None),
    quotation_status: Optional[str] = Query(None),
    delivery_status: Optional[str] = Query(None),
    customer_id: Optional[int] = Query(None),
) -> Response:
    """Excel export of the filtered list with a summary sheet."""
    content, filename = await ExportService.quotations_excel(
        search=search,
        quotation_status=quotation_status,
        delivery_status=delivery_status,
        customer_id=customer_id,
    )
    return Response(
        content=content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/next-number")
async def next_number() -> dict:
    return ok({"quotation_number": await QuotationService.peek_next_number()})


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_quotation(quotation: QuotationCreate, current_user: dict = Depends(get_current_user)) -> dict:
    created = await QuotationService.create_quotation(quotation, current_user)
    return ok(created, "Quotation created successfully")


@router.get("/{quotation_id}")
async def get_quotation(quotation_id: int) -> dict:
    try:
        return ok(await QuotationService.get_quotation(quotation_id))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e


@router.get("/{quotation_id}/pdf")
async def quotation_pdf(quotation_id: int) -> Response:
    try:
        quotation = await QuotationService.get_quotation(quotation_id)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    try:
        content, filename = await PDFService.quotation_pdf(quotation)
    except PDFGenerationError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to generate PDF") from e
    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.put("/{quotation_id}")
async def update_quotation(
    quotation_id: int,
    updates: QuotationUpdate,
    current_user: dict = Depends(get_current_user),
) -> dict:
    """Partial update; sending ``items`` replaces all line items."""
    update_dict = {k: v for k, v in updates.model_dump().items() if v is not None}
    try:
        quotation = await QuotationService.update_quotation(quotation_id, update_dict, current_user)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    return ok(quotation, "Quotation updated successfully")


@router.put("/{quotation_id}/status")
async def update_status(
    quotation_id: int,
    payload: QuotationStatusUpdate,
    current_user: dict = Depends(get_current_user),
) -> dict:
    try:
        quotation = await QuotationService.update_status(
            quotation_id, payload.quotation_status, payload.delivery_status, current_user
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    return ok(quotation, "Quotation status updated successfully")


@router.delete("/{quotation_id}")
async def delete_quotation(quotation_id: int, current_user: dict = Depends(get_current_user)) -> dict:
    try:
        await QuotationService.delete_quotation(quotation_id, current_user)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    return ok(None, "Quotation deleted successfully")
