import logging
from datetime import date, datetime, time, timedelta
from typing import Optional

import pytz
from sqlalchemy.orm import Session, selectinload
from sqlalchemy.orm.exc import StaleDataError

from config import settings
from crud import inventory_batches as crud_inventory_batches
from database import clinic_now
from models.sale_order_items import SaleOrderItem
from models.sale_orders import SaleOrder, SaleOrderStatus, SaleSource
from utils.context import ClinicContext
from utils.events import change_feed, INVENTORY_BATCHES, SALE_ORDERS
from utils.exceptions import SaleOrderAlreadyCancelled, TransientStorageConflict

logger = logging.getLogger("sale_orders")


def day_bounds(day: date):
    """Start of the given day and of the next one, in clinic time."""
    tz = pytz.timezone(settings.CLINIC_TIMEZONE)
    start = tz.localize(datetime.combine(day, time.min))
    end = tz.localize(datetime.combine(day + timedelta(days=1), time.min))
    return start, end


def get_sale_order(db: Session, sale_order_id: int, tenant_id: str):
    return db.query(SaleOrder).options(
        selectinload(SaleOrder.items)
    ).filter(SaleOrder.id == sale_order_id, SaleOrder.tenant_id == tenant_id).first()


def get_sale_orders(
    db: Session,
    tenant_id: str,
    status: Optional[SaleOrderStatus] = None,
    sale_source: Optional[SaleSource] = None,
    patient_id: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    skip: int = 0,
    limit: int = 100,
):
    query = db.query(SaleOrder).filter(SaleOrder.tenant_id == tenant_id)

    if status:
        query = query.filter(SaleOrder.status == status)
    if sale_source:
        query = query.filter(SaleOrder.sale_source == sale_source)
    if patient_id:
        query = query.filter(SaleOrder.patient_id == patient_id)
    if start_date:
        query = query.filter(SaleOrder.created_at >= day_bounds(start_date)[0])
    if end_date:
        query = query.filter(SaleOrder.created_at < day_bounds(end_date)[1])

    return query.order_by(SaleOrder.created_at.desc(), SaleOrder.id.desc()).options(
        selectinload(SaleOrder.items)
    ).offset(skip).limit(limit).all()


def cancel_sale_order(db: Session, db_order: SaleOrder, context: ClinicContext, reason: Optional[str] = None):
    """
    Compensating operation for a completed sale: the order is marked cancelled
    and every line's quantity goes back to the batch it was drawn from.
    """
    if db_order.status == SaleOrderStatus.CANCELLED:
        raise SaleOrderAlreadyCancelled(db_order.id)

    note = f"Cancelled sale order #{db_order.id}" + (f": {reason}" if reason else "")
    for item in db_order.items:
        batch = item.batch
        old_quantity = batch.current_quantity
        # A corrective count may have topped the batch up since the sale
        restored = min(item.quantity, batch.original_quantity - old_quantity)
        if restored < item.quantity:
            logger.warning(f"Batch {batch.id} can only take back {restored} of {item.quantity} units from sale order {db_order.id}")
        if restored == 0:
            continue
        batch.current_quantity = old_quantity + restored
        batch.updated_by = context.user_identifier
        crud_inventory_batches.record_quantity_change(
            db, batch, "cancellation", old_quantity, batch.current_quantity, context.tenant_id,
            changed_by=context.user_identifier, note=note, sale_order=db_order,
        )

    db_order.status = SaleOrderStatus.CANCELLED
    db_order.cancelled_at = clinic_now()
    db_order.cancelled_by = context.user_identifier
    if reason:
        db_order.notes = f"{db_order.notes}\n{reason}" if db_order.notes else reason

    try:
        db.commit()
    except StaleDataError:
        db.rollback()
        logger.warning(f"Cancellation of sale order {db_order.id} lost a race with a concurrent batch update")
        raise TransientStorageConflict(1)

    db.refresh(db_order)
    logger.info(f"Sale order {db_order.id} cancelled by {context.user_identifier} for tenant {context.tenant_id}")
    change_feed.publish(SALE_ORDERS, "cancelled", context.tenant_id, db_order.id)
    for batch_id in sorted({item.batch_id for item in db_order.items}):
        change_feed.publish(INVENTORY_BATCHES, "restored", context.tenant_id, batch_id, sale_order_id=db_order.id)
    return db_order
