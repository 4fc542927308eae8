from pydantic import BaseModel, Field, model_validator
from datetime import datetime
from typing import Optional


class MedicineBase(BaseModel):
    name: str = Field(..., min_length=1)
    sku: str = Field(..., min_length=1)
    unit: str = Field(..., min_length=1)  # e.g., "tablet", "box"
    usage: Optional[str] = None
    category: Optional[str] = None
    min_stock_level: Optional[int] = Field(None, ge=0)
    sell_price: int = Field(0, ge=0)
    cost_price: int = Field(0, ge=0)
    units_per_blister: Optional[int] = Field(None, gt=0)
    blisters_per_box: Optional[int] = Field(None, gt=0)
    description: Optional[str] = None
    manufacturer: Optional[str] = None


class MedicineCreate(MedicineBase):
    pass


NOT_NULL_FIELDS = ("name", "sku", "unit", "min_stock_level", "is_active", "sell_price", "cost_price")


class MedicineUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    sku: Optional[str] = Field(None, min_length=1)
    unit: Optional[str] = Field(None, min_length=1)
    usage: Optional[str] = None
    category: Optional[str] = None
    min_stock_level: Optional[int] = Field(None, ge=0)
    is_active: Optional[bool] = None
    sell_price: Optional[int] = Field(None, ge=0)
    cost_price: Optional[int] = Field(None, ge=0)
    units_per_blister: Optional[int] = Field(None, gt=0)
    blisters_per_box: Optional[int] = Field(None, gt=0)
    description: Optional[str] = None
    manufacturer: Optional[str] = None

    @model_validator(mode="after")
    def reject_null_required_fields(self):
        # Omitted fields stay untouched; an explicit null cannot clear a NOT NULL column
        for field in NOT_NULL_FIELDS:
            if field in self.model_fields_set and getattr(self, field) is None:
                raise ValueError(f"{field} cannot be null")
        return self


class Medicine(MedicineBase):
    id: int
    tenant_id: Optional[str] = None
    min_stock_level: int
    is_active: bool
    created_at: datetime
    updated_at: Optional[datetime] = None
    created_by: Optional[str] = None
    updated_by: Optional[str] = None

    class Config:
        from_attributes = True
