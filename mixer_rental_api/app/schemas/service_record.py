"""
Pydantic models for the service catalogue and maintenance records.

A record's ``services`` array mirrors the form's submission payload:
``{category_id, was_performed, service_notes, sub_services: [{id,
was_performed, sub_service_notes}]}``.
"""

from typing import List, Optional

from pydantic import BaseModel, Field


class SubServiceEntryIn(BaseModel):
    id: int = Field(..., example=3)
    name: Optional[str] = None
    was_performed: bool = True
    sub_service_notes: Optional[str] = ""


class ServiceEntryIn(BaseModel):
    category_id: int = Field(..., example=1)
    category_name: Optional[str] = None
    was_performed: bool = False
    service_notes: Optional[str] = ""
    sub_services: List[SubServiceEntryIn] = Field(default_factory=list)


class ServiceRecordCreate(BaseModel):
    machine_id: Optional[int] = Field(None, example=1)
    service_date: Optional[str] = Field(None, example="2025-03-14")
    engine_hours: Optional[float] = Field(None, ge=0, example=1250.5)
    site_location: Optional[str] = Field(None, example="Hinjewadi Phase 3")
    operator: Optional[str] = Field(None, example="Suresh")
    general_notes: Optional[str] = None
    services: List[ServiceEntryIn] = Field(default_factory=list)


class ServiceCategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, example="Engine")
    description: Optional[str] = None
    display_order: Optional[int] = None
    is_active: bool = True


class ServiceCategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    display_order: Optional[int] = None
    is_active: Optional[bool] = None


class SubServiceItemCreate(BaseModel):
    category_id: int = Field(..., example=1)
    name: str = Field(..., min_length=1, max_length=100, example="Oil change")
    description: Optional[str] = None
    display_order: Optional[int] = None
    is_active: bool = True


class SubServiceItemUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    display_order: Optional[int] = None
    is_active: Optional[bool] = None
