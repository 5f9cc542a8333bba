"""
Pydantic models for quotations and their line items.

Totals are never accepted from clients: ``QuotationService`` recomputes
them from the items and stores the result.
"""

from typing import List, Literal, Optional

from pydantic import BaseModel, Field


QuotationStatus = Literal["draft", "sent", "accepted", "rejected", "expired"]
DeliveryStatus = Literal["pending", "delivered", "completed", "cancelled"]


class QuotationItemIn(BaseModel):
    item_type: Literal["machine", "additional_charge"] = Field("machine", example="machine")
    machine_id: Optional[int] = Field(None, example=1)
    description: Optional[str] = Field(None, example="Concrete Mixer 10/7")
    duration_type: Optional[str] = Field(None, example="day")
    quantity: float = Field(1, example=2)
    unit_price: Optional[float] = Field(None, example=2500)
    gst_percentage: Optional[float] = Field(None, example=18)


class QuotationCreate(BaseModel):
    customer_name: str = Field(..., example="Ravi Sharma")
    customer_contact: str = Field(..., example="9876543210")
    company_name: Optional[str] = Field(None, example="Sharma Builders")
    customer_id: Optional[int] = None
    items: List[QuotationItemIn] = Field(default_factory=list)
    terms_text: Optional[str] = None
    additional_notes: Optional[str] = None
    quotation_status: QuotationStatus = "draft"
    delivery_status: DeliveryStatus = "pending"


class QuotationUpdate(BaseModel):
    """Schema for updating a quotation.

    ``items``, when present, replace the existing line items.
    """
    customer_name: Optional[str] = None
    customer_contact: Optional[str] = None
    company_name: Optional[str] = None
    customer_id: Optional[int] = None
    items: Optional[List[QuotationItemIn]] = None
    terms_text: Optional[str] = None
    additional_notes: Optional[str] = None
    quotation_status: Optional[QuotationStatus] = None
    delivery_status: Optional[DeliveryStatus] = None


class QuotationStatusUpdate(BaseModel):
    quotation_status: Optional[str] = None
    delivery_status: Optional[str] = None


class QuotationItemRead(BaseModel):
    id: int
    item_type: str
    machine_id: Optional[int] = None
    machine_name: Optional[str] = None
    machine_number: Optional[str] = None
    description: str
    duration_type: Optional[str] = None
    quantity: float
    unit_price: float
    gst_percentage: float
    gst_amount: float
    total_amount: float
    sort_order: int = 0


class QuotationRead(BaseModel):
    id: int
    quotation_number: str
    customer_id: Optional[int] = None
    customer_name: str
    customer_contact: str
    company_name: Optional[str] = None
    subtotal: float
    total_gst_amount: float
    grand_total: float
    terms_text: Optional[str] = None
    additional_notes: Optional[str] = None
    quotation_status: str
    delivery_status: str
    created_by: Optional[int] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    items: List[QuotationItemRead] = Field(default_factory=list)

    model_config = {
        "from_attributes": True,
    }
