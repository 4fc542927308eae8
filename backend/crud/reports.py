from datetime import date
from typing import Dict

import pytz
from sqlalchemy.orm import Session, selectinload

from config import settings
from crud.sale_orders import day_bounds
from models.medicine import Medicine
from models.sale_orders import SaleOrder, SaleOrderStatus
from schemas.reports import DailyPharmacyReport, MedicineRevenue, RevenueBySource, SaleTransaction


def get_daily_pharmacy_report(db: Session, tenant_id: str, report_date: date) -> DailyPharmacyReport:
    """
    Medicine sales for one clinic day: totals, split by sale source and by
    medicine, plus the list of transactions (latest first). Medicines are
    keyed by id, so two catalog entries sharing a name stay separate.
    Cancelled orders are left out.
    """
    start, end = day_bounds(report_date)
    orders = db.query(SaleOrder).options(selectinload(SaleOrder.items)).filter(
        SaleOrder.tenant_id == tenant_id,
        SaleOrder.status == SaleOrderStatus.COMPLETED,
        SaleOrder.created_at >= start,
        SaleOrder.created_at < end,
    ).order_by(SaleOrder.created_at.desc(), SaleOrder.id.desc()).all()

    catalog = {
        medicine_id: (name, sku)
        for medicine_id, name, sku in db.query(Medicine.id, Medicine.name, Medicine.sku).filter(Medicine.tenant_id == tenant_id)
    }

    total_revenue = 0
    by_source = RevenueBySource()
    by_medicine: Dict[int, MedicineRevenue] = {}
    transactions = []
    tz = pytz.timezone(settings.CLINIC_TIMEZONE)

    for order in orders:
        total_revenue += order.total_amount
        source = order.sale_source.value
        setattr(by_source, source, getattr(by_source, source) + order.total_amount)

        for item in order.items:
            entry = by_medicine.get(item.medicine_id)
            if entry is None:
                name, sku = catalog.get(item.medicine_id, (f"Unknown ({item.medicine_id})", None))
                entry = by_medicine[item.medicine_id] = MedicineRevenue(medicine_id=item.medicine_id, medicine_name=name, sku=sku)
            entry.quantity += item.quantity
            entry.amount += item.subtotal

        created_at = order.created_at
        if created_at.tzinfo is not None:
            created_at = created_at.astimezone(tz)
        transactions.append(SaleTransaction(
            id=order.id,
            patient_name=order.patient_name,
            time=created_at.strftime("%H:%M:%S"),
            amount=order.total_amount,
            source=source,
            medicine_ids=sorted({item.medicine_id for item in order.items}),
        ))

    return DailyPharmacyReport(
        date=report_date,
        total_revenue=total_revenue,
        total_orders=len(orders),
        revenue_by_source=by_source,
        revenue_by_medicine=sorted(by_medicine.values(), key=lambda r: (-r.amount, r.medicine_name, r.medicine_id)),
        transactions=transactions,
    )
