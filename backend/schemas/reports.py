from pydantic import BaseModel
from typing import List, Optional
from datetime import date


class MedicineRevenue(BaseModel):
    medicine_id: int
    medicine_name: str
    sku: Optional[str] = None
    quantity: int = 0
    amount: int = 0


class RevenueBySource(BaseModel):
    walk_in: int = 0
    clinic: int = 0
    online: int = 0


class SaleTransaction(BaseModel):
    id: int
    patient_name: str
    time: str
    amount: int
    source: str
    medicine_ids: List[int]


class DailyPharmacyReport(BaseModel):
    date: date
    total_revenue: int
    total_orders: int
    revenue_by_source: RevenueBySource
    revenue_by_medicine: List[MedicineRevenue]
    transactions: List[SaleTransaction]
