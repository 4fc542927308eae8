import logging
from datetime import date
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from database import clinic_now
from models.inventory_batch_audit import InventoryBatchAudit
from models.inventory_batches import InventoryBatch
from models.medicine import Medicine
from schemas.inventory_batches import InventoryBatchCreate, MedicineStockSummary
from utils.context import ClinicContext
from utils.events import change_feed, INVENTORY_BATCHES
from utils.exceptions import InvalidBatchAdjustment, TransientStorageConflict, UnknownMedicine

logger = logging.getLogger("inventory_batches")


def get_batch(db: Session, batch_id: int, tenant_id: str):
    return db.query(InventoryBatch).filter(InventoryBatch.id == batch_id, InventoryBatch.tenant_id == tenant_id).first()


def get_batches(
    db: Session,
    tenant_id: str,
    medicine_id: Optional[int] = None,
    active_only: bool = False,
    skip: int = 0,
    limit: int = 100,
):
    query = db.query(InventoryBatch).filter(InventoryBatch.tenant_id == tenant_id)
    if medicine_id:
        query = query.filter(InventoryBatch.medicine_id == medicine_id)
    if active_only:
        query = query.filter(InventoryBatch.current_quantity > 0)
    return query.order_by(InventoryBatch.expiry_date, InventoryBatch.id).offset(skip).limit(limit).all()


def get_active_batches(db: Session, medicine_id: int, tenant_id: str) -> List[InventoryBatch]:
    """Batches of a medicine that still hold stock, soonest expiry first (ties by id)."""
    return db.query(InventoryBatch).filter(
        InventoryBatch.medicine_id == medicine_id,
        InventoryBatch.tenant_id == tenant_id,
        InventoryBatch.current_quantity > 0,
    ).order_by(InventoryBatch.expiry_date, InventoryBatch.id).all()


def get_total_stock(db: Session, medicine_id: int, tenant_id: str) -> int:
    total = db.query(func.coalesce(func.sum(InventoryBatch.current_quantity), 0)).filter(
        InventoryBatch.medicine_id == medicine_id,
        InventoryBatch.tenant_id == tenant_id,
    ).scalar()
    return int(total or 0)


def record_quantity_change(
    db: Session,
    batch: InventoryBatch,
    change_type: str,
    old_quantity: int,
    new_quantity: int,
    tenant_id: str,
    changed_by: Optional[str] = None,
    note: Optional[str] = None,
    sale_order=None,
):
    """Stage an audit row for a batch quantity change; the caller commits."""
    audit = InventoryBatchAudit(
        batch=batch,
        medicine_id=batch.medicine_id,
        sale_order=sale_order,
        change_type=change_type,
        change_amount=new_quantity - old_quantity,
        old_quantity=old_quantity,
        new_quantity=new_quantity,
        changed_by=changed_by,
        note=note,
        tenant_id=tenant_id,
        timestamp=clinic_now(),
    )
    db.add(audit)
    return audit


def receive_batch(db: Session, batch: InventoryBatchCreate, context: ClinicContext):
    """Goods receipt: a new batch starts with its full received quantity."""
    medicine = db.query(Medicine).filter(Medicine.id == batch.medicine_id, Medicine.tenant_id == context.tenant_id).first()
    if medicine is None:
        raise UnknownMedicine(batch.medicine_id)

    data = batch.model_dump()
    if data.get("import_date") is None:
        data["import_date"] = clinic_now().date()
        if batch.expiry_date < data["import_date"]:
            logger.warning(f"Batch {batch.batch_number} for medicine {medicine.id} received already expired ({batch.expiry_date})")

    db_batch = InventoryBatch(
        **data,
        current_quantity=batch.original_quantity,
        tenant_id=context.tenant_id,
        created_by=context.user_identifier,
    )
    db.add(db_batch)
    record_quantity_change(
        db, db_batch, "receipt", 0, batch.original_quantity, context.tenant_id,
        changed_by=context.user_identifier,
        note=f"Received batch {batch.batch_number}" + (f" from {batch.supplier}" if batch.supplier else ""),
    )
    db.commit()
    db.refresh(db_batch)
    logger.info(f"Batch {db_batch.id} ({db_batch.batch_number}) of medicine {medicine.name} received: {db_batch.original_quantity} {medicine.unit} by {context.user_identifier} for tenant {context.tenant_id}")
    change_feed.publish(INVENTORY_BATCHES, "received", context.tenant_id, db_batch.id, medicine_id=db_batch.medicine_id)
    return db_batch


def adjust_batch(db: Session, db_batch: InventoryBatch, new_quantity: int, reason: str, context: ClinicContext):
    """Corrective stock count. Goes through the batch version check like a sale does."""
    if new_quantity < 0 or new_quantity > db_batch.original_quantity:
        raise InvalidBatchAdjustment(db_batch.id, new_quantity, db_batch.original_quantity)

    old_quantity = db_batch.current_quantity
    if old_quantity == new_quantity:
        return db_batch

    db_batch.current_quantity = new_quantity
    db_batch.updated_by = context.user_identifier
    record_quantity_change(
        db, db_batch, "adjustment", old_quantity, new_quantity, context.tenant_id,
        changed_by=context.user_identifier, note=reason,
    )
    try:
        db.commit()
    except StaleDataError:
        db.rollback()
        logger.warning(f"Adjustment of batch {db_batch.id} lost a race with a concurrent writer")
        raise TransientStorageConflict(1)
    db.refresh(db_batch)
    logger.info(f"Batch {db_batch.id} adjusted from {old_quantity} to {new_quantity} by {context.user_identifier}: {reason}")
    change_feed.publish(INVENTORY_BATCHES, "adjusted", context.tenant_id, db_batch.id, medicine_id=db_batch.medicine_id)
    return db_batch


def get_batch_audits(
    db: Session,
    batch_id: int,
    tenant_id: str,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
):
    query = db.query(InventoryBatchAudit).filter(
        InventoryBatchAudit.batch_id == batch_id,
        InventoryBatchAudit.tenant_id == tenant_id,
    )
    if start_date:
        query = query.filter(func.date(InventoryBatchAudit.timestamp) >= start_date)
    if end_date:
        query = query.filter(func.date(InventoryBatchAudit.timestamp) <= end_date)
    return query.order_by(InventoryBatchAudit.id).all()


def get_stock_summary(db: Session, tenant_id: str, low_stock_only: bool = False) -> List[MedicineStockSummary]:
    """Total on-hand quantity per active medicine, flagged when at or below its alert threshold."""
    stock_rows = db.query(
        InventoryBatch.medicine_id,
        func.sum(InventoryBatch.current_quantity).label("total_quantity"),
        func.count(InventoryBatch.id).label("batch_count"),
        func.min(InventoryBatch.expiry_date).label("nearest_expiry"),
    ).filter(
        InventoryBatch.tenant_id == tenant_id,
        InventoryBatch.current_quantity > 0,
    ).group_by(InventoryBatch.medicine_id).all()
    stock_by_medicine = {row.medicine_id: row for row in stock_rows}

    medicines = db.query(Medicine).filter(
        Medicine.tenant_id == tenant_id,
        Medicine.is_active.is_(True),
    ).order_by(Medicine.name, Medicine.id).all()

    summary = []
    for medicine in medicines:
        row = stock_by_medicine.get(medicine.id)
        total = int(row.total_quantity) if row else 0
        is_low = total <= (medicine.min_stock_level or 0)
        if low_stock_only and not is_low:
            continue
        summary.append(MedicineStockSummary(
            medicine_id=medicine.id,
            medicine_name=medicine.name,
            sku=medicine.sku,
            unit=medicine.unit,
            total_quantity=total,
            active_batch_count=int(row.batch_count) if row else 0,
            min_stock_level=medicine.min_stock_level or 0,
            is_low_stock=is_low,
            nearest_expiry=row.nearest_expiry if row else None,
        ))
    return summary
