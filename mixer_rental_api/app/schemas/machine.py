"""
Pydantic models for the machine inventory.

A machine is rented out by the day, week or month; each rate is stored
separately together with the GST percentage applied to it.
"""

from typing import List, Optional

from pydantic import BaseModel, Field


class MachineBase(BaseModel):
    machine_number: str = Field(..., min_length=1, max_length=50, pattern=r"^[A-Za-z0-9-]+$", example="CM-001")
    name: str = Field(..., min_length=1, max_length=100, example="Concrete Mixer 10/7")
    description: Optional[str] = Field(None, example="Diesel mixer with hydraulic hopper")
    price_by_day: float = Field(..., ge=0, example=2500)
    price_by_week: float = Field(..., ge=0, example=15000)
    price_by_month: float = Field(..., ge=0, example=50000)
    gst_percentage: float = Field(18, ge=0, le=100, example=18)


class MachineCreate(MachineBase):
    """Schema for creating a machine."""
    pass


class MachineUpdate(BaseModel):
    """Schema for updating a machine.

    All fields are optional; only provided fields will be updated.
    """
    machine_number: Optional[str] = Field(None, min_length=1, max_length=50, pattern=r"^[A-Za-z0-9-]+$")
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    price_by_day: Optional[float] = Field(None, ge=0)
    price_by_week: Optional[float] = Field(None, ge=0)
    price_by_month: Optional[float] = Field(None, ge=0)
    gst_percentage: Optional[float] = Field(None, ge=0, le=100)
    is_active: Optional[bool] = None


class MachineRead(MachineBase):
    id: int
    is_active: bool = True
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    model_config = {
        "from_attributes": True,
    }


class MachineBulkChanges(BaseModel):
    is_active: Optional[bool] = None
    gst_percentage: Optional[float] = Field(None, ge=0, le=100)


class MachineBulkUpdate(BaseModel):
    machine_ids: List[int] = Field(..., min_length=1, example=[1, 2, 3])
    updates: MachineBulkChanges
