"""Schemas for the rental company's own details and for terms & conditions."""

from typing import List, Optional

from pydantic import BaseModel, Field


class CompanyDetails(BaseModel):
    company_name: str = Field(..., min_length=1, example="OCS Fiori Service")
    gst_number: Optional[str] = Field(None, example="27AAPFU0939F1ZV")
    email: Optional[str] = Field(None, example="info@example.com")
    phone: Optional[str] = Field(None, example="9876543210")
    phone2: Optional[str] = None
    address: Optional[str] = None
    logo_url: Optional[str] = None
    signature_url: Optional[str] = None


class TermCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200, example="Payment")
    description: str = Field(..., min_length=1, example="50% advance, balance on delivery")
    is_default: bool = False
    display_order: Optional[int] = None


class TermUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, min_length=1)
    is_default: Optional[bool] = None
    display_order: Optional[int] = None


class SetDefaultTerms(BaseModel):
    ids: List[int] = Field(..., example=[1, 2])
    is_default: bool = True


class TermOrder(BaseModel):
    id: int
    display_order: int = Field(..., ge=1)


class ReorderTerms(BaseModel):
    items: List[TermOrder] = Field(..., min_length=1, example=[{"id": 2, "display_order": 1}])


class TermIds(BaseModel):
    ids: List[int] = Field(..., min_length=1, example=[3, 4])
