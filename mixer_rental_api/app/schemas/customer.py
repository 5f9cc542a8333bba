"""Pydantic models for customers."""

from typing import Optional

from pydantic import BaseModel, Field


class CustomerBase(BaseModel):
    company_name: str = Field(..., min_length=1, max_length=100, example="Sharma Builders")
    contact_person: Optional[str] = Field(None, max_length=100, example="Ravi Sharma")
    email: Optional[str] = Field(None, example="ravi@sharmabuilders.in")
    phone: str = Field(..., example="9876543210")
    address: Optional[str] = Field(None, example="12 MG Road, Pune")
    site_location: Optional[str] = Field(None, example="Hinjewadi Phase 3")
    gst_number: Optional[str] = Field(None, example="27AAPFU0939F1ZV")


class CustomerCreate(CustomerBase):
    """Schema for creating a customer."""
    pass


class CustomerUpdate(BaseModel):
    """Schema for updating a customer.

    All fields are optional; only provided fields will be updated.
    """
    company_name: Optional[str] = Field(None, min_length=1, max_length=100)
    contact_person: Optional[str] = Field(None, max_length=100)
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    site_location: Optional[str] = None
    gst_number: Optional[str] = None


class CustomerRead(CustomerBase):
    id: int
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    total_quotations: int = 0

    model_config = {
        "from_attributes": True,
    }
