import logging
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from config import settings
from crud.audit_log import create_audit_log
from models.inventory_batches import InventoryBatch
from models.medicine import Medicine as MedicineModel
from models.sale_order_items import SaleOrderItem
from schemas.audit_log import AuditLogCreate
from schemas.medicine import MedicineCreate, MedicineUpdate
from utils import row_snapshot
from utils.context import ClinicContext
from utils.events import change_feed, MEDICINES
from utils.exceptions import MedicineInUse

logger = logging.getLogger("medicine")

EVENT_ACTIONS = {"UPDATE": "updated", "DEACTIVATE": "deactivated"}


def get_medicine(db: Session, medicine_id: int, tenant_id: str):
    return db.query(MedicineModel).filter(MedicineModel.id == medicine_id, MedicineModel.tenant_id == tenant_id).first()


def get_medicine_by_sku(db: Session, sku: str, tenant_id: str):
    return db.query(MedicineModel).filter(MedicineModel.sku == sku, MedicineModel.tenant_id == tenant_id).first()


def get_medicines(
    db: Session,
    tenant_id: str,
    search: Optional[str] = None,
    category: Optional[str] = None,
    active_only: bool = False,
    skip: int = 0,
    limit: int = 100,
):
    query = db.query(MedicineModel).filter(MedicineModel.tenant_id == tenant_id)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(or_(MedicineModel.name.ilike(pattern), MedicineModel.sku.ilike(pattern)))
    if category:
        query = query.filter(MedicineModel.category == category)
    if active_only:
        query = query.filter(MedicineModel.is_active.is_(True))
    return query.order_by(MedicineModel.name, MedicineModel.id).offset(skip).limit(limit).all()


def create_medicine(db: Session, medicine: MedicineCreate, context: ClinicContext):
    data = medicine.model_dump()
    if data.get("min_stock_level") is None:
        data["min_stock_level"] = settings.DEFAULT_MIN_STOCK_LEVEL
    db_medicine = MedicineModel(
        **data,
        is_active=True,
        tenant_id=context.tenant_id,
        created_by=context.user_identifier,
        updated_by=context.user_identifier,
    )
    db.add(db_medicine)
    db.flush()
    create_audit_log(db, AuditLogCreate(
        table_name='medicines',
        record_id=db_medicine.id,
        changed_by=context.user_identifier,
        action='CREATE',
        old_values={},
        new_values=row_snapshot(db_medicine),
        tenant_id=context.tenant_id,
    ), commit=False)
    db.commit()
    db.refresh(db_medicine)
    change_feed.publish(MEDICINES, "created", context.tenant_id, db_medicine.id)
    return db_medicine


def update_medicine(db: Session, db_medicine: MedicineModel, medicine: MedicineUpdate, context: ClinicContext, action: str = 'UPDATE'):
    old_values = row_snapshot(db_medicine)
    update_data = medicine.model_dump(exclude_unset=True)
    for key, value in update_data.items():
        setattr(db_medicine, key, value)
    db_medicine.updated_by = context.user_identifier
    db.flush()
    create_audit_log(db, AuditLogCreate(
        table_name='medicines',
        record_id=db_medicine.id,
        changed_by=context.user_identifier,
        action=action,
        old_values=old_values,
        new_values=row_snapshot(db_medicine),
        tenant_id=context.tenant_id,
    ), commit=False)
    db.commit()
    db.refresh(db_medicine)
    change_feed.publish(MEDICINES, EVENT_ACTIONS[action], context.tenant_id, db_medicine.id)
    return db_medicine


def deactivate_medicine(db: Session, db_medicine: MedicineModel, context: ClinicContext):
    return update_medicine(db, db_medicine, MedicineUpdate(is_active=False), context, action='DEACTIVATE')


def is_medicine_referenced(db: Session, medicine_id: int) -> bool:
    has_batches = db.query(InventoryBatch.id).filter(InventoryBatch.medicine_id == medicine_id).first() is not None
    has_sales = db.query(SaleOrderItem.id).filter(SaleOrderItem.medicine_id == medicine_id).first() is not None
    return has_batches or has_sales


def delete_medicine(db: Session, db_medicine: MedicineModel, context: ClinicContext):
    """Hard delete, only allowed while no batch or sale line points at the medicine."""
    if is_medicine_referenced(db, db_medicine.id):
        raise MedicineInUse(db_medicine.id)

    medicine_id = db_medicine.id
    old_values = row_snapshot(db_medicine)
    db.delete(db_medicine)
    create_audit_log(db, AuditLogCreate(
        table_name='medicines',
        record_id=medicine_id,
        changed_by=context.user_identifier,
        action='DELETE',
        old_values=old_values,
        new_values=None,
        tenant_id=context.tenant_id,
    ), commit=False)
    db.commit()
    logger.info(f"Medicine {medicine_id} deleted by {context.user_identifier} for tenant {context.tenant_id}")
    change_feed.publish(MEDICINES, "deleted", context.tenant_id, medicine_id)
