"""Pydantic models for inquiries submitted from the public website."""

from typing import Optional

from pydantic import BaseModel, Field


class CustomerQueryCreate(BaseModel):
    company_name: str = Field("", example="Sharma Builders")
    email: str = Field("", example="ravi@sharmabuilders.in")
    site_location: str = Field("", example="Hinjewadi Phase 3, Pune")
    contact_number: str = Field("", example="98765 43210")
    duration: str = Field("", example="2 weeks")
    work_description: str = Field("", example="Foundation pour for a G+3 residential building")


class CustomerQueryRead(BaseModel):
    id: int
    company_name: str
    email: str
    site_location: str
    contact_number: str
    duration: str
    work_description: str
    status: str
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class QueryStatusUpdate(BaseModel):
    status: str = Field(..., example="in_progress")


class TestEmailRequest(BaseModel):
    email: Optional[str] = Field(None, example="ops@example.com")
