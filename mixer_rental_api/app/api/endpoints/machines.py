"""
Machine inventory endpoints.

Static paths (``/stats``, ``/search``, ``/active``) are declared before
``/{machine_id}`` so they are not captured by the id route.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from mixer_rental_api.app.core.responses import ok, page_pagination
from mixer_rental_api.app.core.security import get_current_user
from mixer_rental_api.app.schemas.machine import MachineBulkUpdate, MachineCreate, MachineUpdate
from mixer_rental_api.app.services.machine_service import MachineService
from mixer_rental_api.app.services.quotation_service import QuotationService


router = APIRouter()


@router.get("/")
async def list_machines(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = Query(None),
    is_active: Optional[bool] = Query(None),
) -> dict:
    """Список машин с поиском по номеру/названию и фильтром активности."""
    machines, total = await MachineService.list_machines(page=page, limit=limit, search=search, is_active=is_active)
    return ok(machines, pagination=page_pagination(page, limit, total))


@router.get("/stats")
async def machine_stats() -> dict:
    return ok(await MachineService.get_stats())


@router.get("/search")
async def search_machines(q: str = Query("", max_length=100)) -> dict:
    if not q.strip():
        return ok([])
    return ok(await MachineService.search(q.strip()))


@router.get("/active")
async def active_machines() -> dict:
    return ok(await MachineService.list_active())


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_machine(machine: MachineCreate, current_user: dict = Depends(get_current_user)) -> dict:
    created = await MachineService.create_machine(machine, current_user)
    return ok(created, "Machine created successfully")


@router.put("/bulk/update")
async def bulk_update(payload: MachineBulkUpdate, current_user: dict = Depends(get_current_user)) -> dict:
    updated = await MachineService.bulk_update(payload, current_user)
    return ok({"updated": updated}, f"{updated} machines updated successfully")


@router.get("/{machine_id}")
async def get_machine(machine_id: int) -> dict:
    try:
        return ok(await MachineService.get_machine(machine_id))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e


@router.get("/{machine_id}/pricing")
async def machine_pricing(machine_id: int) -> dict:
    """Rates used to price a quotation line; inactive machines are rejected."""
    try:
        return ok(await MachineService.get_pricing(machine_id))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e


@router.get("/{machine_id}/pricing-history")
async def pricing_history(machine_id: int, limit: int = Query(10, ge=1, le=50)) -> dict:
    try:
        await MachineService.get_machine(machine_id)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    return ok(await QuotationService.pricing_history(machine_id, limit))


@router.put("/{machine_id}")
async def update_machine(
    machine_id: int,
    updates: MachineUpdate,
    current_user: dict = Depends(get_current_user),
) -> dict:
    update_dict = {k: v for k, v in updates.model_dump().items() if v is not None}
    try:
        machine = await MachineService.update_machine(machine_id, update_dict, current_user)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    return ok(machine, "Machine updated successfully")


@router.put("/{machine_id}/toggle-status")
async def toggle_status(machine_id: int, current_user: dict = Depends(get_current_user)) -> dict:
    try:
        machine = await MachineService.toggle_status(machine_id, current_user)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    state = "activated" if machine.is_active else "deactivated"
    return ok(machine, f"Machine {state} successfully")


@router.delete("/{machine_id}")
async def delete_machine(machine_id: int, current_user: dict = Depends(get_current_user)) -> dict:
    """Delete a machine; machines already quoted or serviced are deactivated instead."""
    try:
        message = await MachineService.delete_machine(machine_id, current_user)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    return ok(None, message)
