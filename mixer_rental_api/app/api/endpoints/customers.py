"""Customer endpoints, including the Excel export."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from mixer_rental_api.app.core.responses import ok, page_pagination
from mixer_rental_api.app.core.security import get_current_user
from mixer_rental_api.app.schemas.customer import CustomerCreate, CustomerUpdate
from mixer_rental_api.app.services.customer_service import CustomerService
from mixer_rental_api.app.services.export_service import XLSX_MEDIA_TYPE, ExportService


router = APIRouter()


@router.get("/")
async def list_customers(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = Query(None),
) -> dict:
    customers, total = await CustomerService.list_customers(page=page, limit=limit, search=search)
    return ok(customers, pagination=page_pagination(page, limit, total))


@router.get("/stats")
async def customer_stats() -> dict:
    return ok(await CustomerService.get_stats())


@router.get("/search")
async def search_customers(q: str = Query("", max_length=100)) -> dict:
    """Поиск клиентов для автодополнения (до 10 записей)."""
    if not q.strip():
        return ok([])
    return ok(await CustomerService.search(q.strip()))


@router.get("/export")
async def export_customers(format: str = Query("excel")) -> Response:
    if format != "excel":
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Unsupported export format")
    content, filename = await ExportService.customers_excel()
    return Response(
        content=content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_customer(customer: CustomerCreate, current_user: dict = Depends(get_current_user)) -> dict:
    created = await CustomerService.create_customer(customer, current_user)
    return ok(created, "Customer created successfully")


@router.get("/{customer_id}")
async def get_customer(customer_id: int) -> dict:
    try:
        return ok(await CustomerService.get_customer(customer_id))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e


@router.get("/{customer_id}/quotations")
async def quotation_history(customer_id: int) -> dict:
    try:
        return ok(await CustomerService.get_quotation_history(customer_id))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e


@router.put("/{customer_id}")
async def update_customer(
    customer_id: int,
    updates: CustomerUpdate,
    current_user: dict = Depends(get_current_user),
) -> dict:
    update_dict = {k: v for k, v in updates.model_dump().items() if v is not None}
    try:
        customer = await CustomerService.update_customer(customer_id, update_dict, current_user)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    return ok(customer, "Customer updated successfully")


@router.delete("/{customer_id}")
async def delete_customer(customer_id: int, current_user: dict = Depends(get_current_user)) -> dict:
    try:
        await CustomerService.delete_customer(customer_id, current_user)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    return ok(None, "Customer deleted successfully")
