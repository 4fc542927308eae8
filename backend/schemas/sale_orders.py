from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from models.sale_orders import SaleOrderStatus, SaleSource


class CartItem(BaseModel):
    medicine_id: int
    quantity: int = Field(..., gt=0)
    unit_price: int = Field(..., ge=0)  # Smallest currency unit


class SaleOrderCreate(BaseModel):
    patient_id: Optional[str] = None
    patient_name: str = Field("Walk-in customer", min_length=1)
    sale_source: SaleSource = SaleSource.WALK_IN
    notes: Optional[str] = None
    created_at: Optional[datetime] = None  # Defaults to the time of checkout
    items: List[CartItem] = Field(..., min_length=1)


class SaleOrderCancel(BaseModel):
    reason: Optional[str] = None


class SaleOrderItem(BaseModel):
    id: int
    medicine_id: int
    batch_id: int
    quantity: int
    unit_price: int
    subtotal: int

    class Config:
        from_attributes = True


class SaleOrder(BaseModel):
    id: int
    tenant_id: Optional[str] = None
    created_at: datetime
    created_by: Optional[str] = None
    patient_id: Optional[str] = None
    patient_name: str
    total_amount: int
    status: SaleOrderStatus
    sale_source: SaleSource
    notes: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    cancelled_by: Optional[str] = None
    items: List[SaleOrderItem] = []

    class Config:
        from_attributes = True
