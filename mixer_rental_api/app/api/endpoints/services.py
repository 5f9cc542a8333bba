"""
Service catalogue and maintenance record endpoints.

``/categories`` and ``/sub-items`` manage the catalogue the service form
is built from; ``/records`` stores what was done on a machine.  Record
payloads are validated and normalised by the selection model before
they are saved.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from mixer_rental_api.app.core.responses import ok
from mixer_rental_api.app.core.security import get_current_user
from mixer_rental_api.app.schemas.service_record import (
    ServiceCategoryCreate,
    ServiceCategoryUpdate,
    ServiceRecordCreate,
    SubServiceItemCreate,
    SubServiceItemUpdate,
)
from mixer_rental_api.app.services.export_service import ExportService
from mixer_rental_api.app.services.pdf_service import PDFGenerationError, PDFService
from mixer_rental_api.app.services.service_catalog_service import ServiceCatalogService
from mixer_rental_api.app.services.service_record_service import ServiceRecordService


router = APIRouter()


# ---------------------------------------------------------------------------
# Catalogue
# ---------------------------------------------------------------------------

@router.get("/categories")
async def list_categories(active_only: bool = Query(True)) -> dict:
    return ok(await ServiceCatalogService.list_categories(active_only=active_only))


@router.post("/categories", status_code=status.HTTP_201_CREATED)
async def create_category(category: ServiceCategoryCreate, current_user: dict = Depends(get_current_user)) -> dict:
    created = await ServiceCatalogService.create_category(category, current_user)
    return ok(created, "Service category created successfully")


@router.get("/categories/{category_id}")
async def get_category(category_id: int) -> dict:
    try:
        return ok(await ServiceCatalogService.get_category(category_id))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e


@router.put("/categories/{category_id}")
async def update_category(
    category_id: int,
    updates: ServiceCategoryUpdate,
    current_user: dict = Depends(get_current_user),
) -> dict:
    update_dict = {k: v for k, v in updates.model_dump().items() if v is not None}
    try:
        category = await ServiceCatalogService.update_category(category_id, update_dict, current_user)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    return ok(category, "Service category updated successfully")


@router.delete("/categories/{category_id}")
async def delete_category(category_id: int, current_user: dict = Depends(get_current_user)) -> dict:
    try:
        await ServiceCatalogService.delete_category(category_id, current_user)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    return ok(None, "Service category deleted successfully")


@router.get("/categories/{category_id}/sub-items")
async def list_sub_items(category_id: int) -> dict:
    try:
        return ok(await ServiceCatalogService.list_sub_items(category_id))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e


@router.post("/sub-items", status_code=status.HTTP_201_CREATED)
async def create_sub_item(item: SubServiceItemCreate, current_user: dict = Depends(get_current_user)) -> dict:
    try:
        created = await ServiceCatalogService.create_sub_item(item, current_user)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    return ok(created, "Sub-service created successfully")


@router.put("/sub-items/{item_id}")
async def update_sub_item(
    item_id: int,
    updates: SubServiceItemUpdate,
    current_user: dict = Depends(get_current_user),
) -> dict:
    update_dict = {k: v for k, v in updates.model_dump().items() if v is not None}
    try:
        item = await ServiceCatalogService.update_sub_item(item_id, update_dict, current_user)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    return ok(item, "Sub-service updated successfully")


@router.delete("/sub-items/{item_id}")
async def delete_sub_item(item_id: int, current_user: dict = Depends(get_current_user)) -> dict:
    try:
        await ServiceCatalogService.delete_sub_item(item_id, current_user)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    return ok(None, "Sub-service deleted successfully")


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

@router.get("/records")
async def list_records(
    machine_id: Optional[int] = Query(None),
    start_date: Optional[str] = Query(None),
    end_date: Optional[str] = Query(None),
    operator: Optional[str] = Query(None),
    site_location: Optional[str] = Query(None),
    limit: int = Query(20, ge=1, le=200),
    offset: int = Query(0, ge=0),
) -> dict:
    """Записи обслуживания, новые сверху, с offset‑пагинацией."""
    records, pagination = await ServiceRecordService.list_records(
        machine_id=machine_id,
        start_date=start_date,
        end_date=end_date,
        operator=operator,
        site_location=site_location,
        limit=limit,
        offset=offset,
    )
    return ok(records, pagination=pagination)


@router.get("/records/export")
async def export_records(
    machine_id: Optional[int] = Query(None),
    start_date: Optional[str] = Query(None),
    end_date: Optional[str] = Query(None),
) -> Response:
    content, filename = await ExportService.service_records_csv(machine_id, start_date, end_date)
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/stats")
async def record_stats() -> dict:
    return ok(await ServiceRecordService.get_stats())


@router.get("/machine/{machine_id}")
async def machine_summary(machine_id: int) -> dict:
    try:
        return ok(await ServiceRecordService.machine_summary(machine_id))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e


@router.post("/records", status_code=status.HTTP_201_CREATED)
async def create_record(record: ServiceRecordCreate, current_user: dict = Depends(get_current_user)) -> dict:
    created = await ServiceRecordService.create_record(record, current_user)
    return ok(created, "Service record created successfully")


@router.get("/records/{record_id}")
async def get_record(record_id: int) -> dict:
    try:
        return ok(await ServiceRecordService.get_record(record_id))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e


@router.get("/records/{record_id}/pdf")
async def record_pdf(record_id: int) -> Response:
    try:
        record = await ServiceRecordService.get_record(record_id)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    try:
        content, filename = await PDFService.service_record_pdf(record)
    except PDFGenerationError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to generate PDF") from e
    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.put("/records/{record_id}")
async def update_record(
    record_id: int,
    record: ServiceRecordCreate,
    current_user: dict = Depends(get_current_user),
) -> dict:
    """Replace a record and all of its services."""
    try:
        updated = await ServiceRecordService.update_record(record_id, record, current_user)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    return ok(updated, "Service record updated successfully")


@router.delete("/records/{record_id}")
async def delete_record(record_id: int, current_user: dict = Depends(get_current_user)) -> dict:
    try:
        await ServiceRecordService.delete_record(record_id, current_user)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    return ok(None, "Service record deleted successfully")
