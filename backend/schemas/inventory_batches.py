from pydantic import BaseModel, Field, model_validator
from typing import Optional
from datetime import date, datetime


class InventoryBatchBase(BaseModel):
    medicine_id: int
    batch_number: str = Field(..., min_length=1)
    expiry_date: date
    import_date: Optional[date] = None  # Defaults to today (clinic time) on receipt
    cost_price: int = Field(0, ge=0)
    original_quantity: int = Field(..., gt=0)
    supplier: Optional[str] = None


class InventoryBatchCreate(InventoryBatchBase):

    @model_validator(mode="after")
    def check_dates(self):
        if self.import_date is not None and self.expiry_date < self.import_date:
            raise ValueError("expiry_date cannot be earlier than import_date")
        return self


class InventoryBatchAdjust(BaseModel):
    # current_quantity and original_quantity are system-managed; corrections go through this schema
    new_quantity: int = Field(..., ge=0)
    reason: str = Field(..., min_length=1)


class InventoryBatch(InventoryBatchBase):
    id: int
    tenant_id: Optional[str] = None
    import_date: date
    current_quantity: int
    created_at: datetime
    created_by: Optional[str] = None

    class Config:
        from_attributes = True


class InventoryBatchAudit(BaseModel):
    id: int
    batch_id: int
    medicine_id: int
    sale_order_id: Optional[int] = None
    change_type: str
    change_amount: int
    old_quantity: int
    new_quantity: int
    changed_by: Optional[str] = None
    timestamp: datetime
    note: Optional[str] = None

    class Config:
        from_attributes = True


class MedicineStockSummary(BaseModel):
    medicine_id: int
    medicine_name: str
    sku: str
    unit: str
    total_quantity: int
    active_batch_count: int
    min_stock_level: int
    is_low_stock: bool
    nearest_expiry: Optional[date] = None
