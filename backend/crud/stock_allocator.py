"""
Pharmacy checkout: turns a cart into a sale order by drawing stock from
inventory batches, soonest expiry first (FEFO).

The batch reads, the arithmetic and every write happen in one session
transaction. Batches carry a version column, so if another checkout touched
one of them between our read and our commit the flush fails with
StaleDataError; the whole attempt is rolled back and re-run from fresh reads,
up to settings.ALLOCATION_MAX_RETRIES times.
"""

import logging
from collections import OrderedDict
from typing import Dict, List, NamedTuple, Optional, Sequence

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from config import settings
from crud import inventory_batches as crud_inventory_batches
from database import clinic_now
from models.medicine import Medicine
from models.sale_order_items import SaleOrderItem
from models.sale_orders import SaleOrder, SaleOrderStatus
from schemas.sale_orders import CartItem, SaleOrderCreate
from utils.context import ClinicContext
from utils.events import change_feed, INVENTORY_BATCHES, SALE_ORDERS
from utils.exceptions import InsufficientStock, TransientStorageConflict, UnknownMedicine

logger = logging.getLogger("stock_allocator")


class BatchDraw(NamedTuple):
    cart_item: CartItem
    batch: object
    quantity: int


def group_cart_by_medicine(items: Sequence[CartItem]) -> "OrderedDict[int, List[CartItem]]":
    """Cart entries per medicine, keeping first-appearance order of medicines and entries."""
    grouped: "OrderedDict[int, List[CartItem]]" = OrderedDict()
    for item in items:
        grouped.setdefault(item.medicine_id, []).append(item)
    return grouped


def plan_fefo_draws(batches: Sequence, cart_items: Sequence[CartItem]) -> List[BatchDraw]:
    """
    Decide how much each cart entry takes from each batch.

    Batches are walked by (expiry_date, id); an earlier batch is emptied before
    a later one is touched. Several entries for the same medicine share the
    walk in cart order, so FEFO holds across all of them. Raises ValueError if
    the batches cannot cover the entries; callers check availability first.
    """
    ordered = sorted(batches, key=lambda b: (b.expiry_date, b.id))
    remaining = {batch.id: batch.current_quantity for batch in ordered}
    draws: List[BatchDraw] = []
    position = 0

    for cart_item in cart_items:
        needed = cart_item.quantity
        while needed > 0:
            if position >= len(ordered):
                raise ValueError(f"Batches cannot cover medicine {cart_item.medicine_id}")
            batch = ordered[position]
            deduct = min(remaining[batch.id], needed)
            if deduct > 0:
                draws.append(BatchDraw(cart_item, batch, deduct))
                remaining[batch.id] -= deduct
                needed -= deduct
            if remaining[batch.id] == 0:
                position += 1
    return draws


def _load_medicines(db: Session, medicine_ids: Sequence[int], tenant_id: str) -> Dict[int, Medicine]:
    medicines = db.query(Medicine).filter(Medicine.id.in_(list(medicine_ids)), Medicine.tenant_id == tenant_id).all()
    by_id = {medicine.id: medicine for medicine in medicines}
    for medicine_id in medicine_ids:
        medicine = by_id.get(medicine_id)
        if medicine is None:
            raise UnknownMedicine(medicine_id)
        if not medicine.is_active:
            raise UnknownMedicine(medicine_id, reason="is deactivated and cannot be sold")
    return by_id


def _stage_sale(db: Session, order: SaleOrderCreate, context: ClinicContext) -> SaleOrder:
    """One attempt: read, plan and stage every write. Nothing is flushed here."""
    cart = group_cart_by_medicine(order.items)
    medicines = _load_medicines(db, list(cart.keys()), context.tenant_id)

    db_order = SaleOrder(
        tenant_id=context.tenant_id,
        created_at=order.created_at or clinic_now(),
        created_by=context.user_identifier,
        patient_id=order.patient_id,
        patient_name=order.patient_name,
        sale_source=order.sale_source,
        status=SaleOrderStatus.COMPLETED,
        notes=order.notes,
        total_amount=0,
    )

    total_amount = 0
    for medicine_id, cart_items in cart.items():
        medicine = medicines[medicine_id]
        batches = crud_inventory_batches.get_active_batches(db, medicine_id, context.tenant_id)
        requested = sum(item.quantity for item in cart_items)
        available = sum(batch.current_quantity for batch in batches)
        if available < requested:
            raise InsufficientStock(medicine_id, medicine.name, requested, available)

        for draw in plan_fefo_draws(batches, cart_items):
            batch = draw.batch
            old_quantity = batch.current_quantity
            batch.current_quantity = old_quantity - draw.quantity
            batch.updated_by = context.user_identifier

            subtotal = draw.quantity * draw.cart_item.unit_price
            db_order.items.append(SaleOrderItem(
                medicine_id=medicine_id,
                batch=batch,
                quantity=draw.quantity,
                unit_price=draw.cart_item.unit_price,
                subtotal=subtotal,
                tenant_id=context.tenant_id,
            ))
            crud_inventory_batches.record_quantity_change(
                db, batch, "sale", old_quantity, batch.current_quantity, context.tenant_id,
                changed_by=context.user_identifier,
                note=f"Sold {draw.quantity} {medicine.unit} to {order.patient_name}",
                sale_order=db_order,
            )
            total_amount += subtotal

    db_order.total_amount = total_amount
    db.add(db_order)
    return db_order


def allocate_sale(db: Session, order: SaleOrderCreate, context: ClinicContext, max_attempts: Optional[int] = None) -> SaleOrder:
    """
    Create a completed sale order for the cart, deducting stock FEFO.

    All-or-nothing: on InsufficientStock or UnknownMedicine the session is
    rolled back and no batch or order is written. Version conflicts are retried;
    TransientStorageConflict is raised once the attempts run out.
    """
    attempts = settings.ALLOCATION_MAX_RETRIES if max_attempts is None else max_attempts
    for attempt in range(1, attempts + 1):
        try:
            db_order = _stage_sale(db, order, context)
            db.commit()
        except StaleDataError:
            db.rollback()
            logger.warning(f"Checkout for tenant {context.tenant_id} hit a concurrent batch update (attempt {attempt}/{attempts})")
            continue
        except (InsufficientStock, UnknownMedicine) as e:
            db.rollback()
            logger.info(f"Checkout rejected for tenant {context.tenant_id}: {e}")
            raise
        except Exception:
            db.rollback()
            logger.exception(f"Checkout failed for tenant {context.tenant_id}")
            raise

        db.refresh(db_order)
        logger.info(f"Sale order {db_order.id} created by {context.user_identifier} for tenant {context.tenant_id}: {len(db_order.items)} line(s), total {db_order.total_amount}")
        change_feed.publish(SALE_ORDERS, "created", context.tenant_id, db_order.id, total_amount=db_order.total_amount)
        for batch_id in sorted({item.batch_id for item in db_order.items}):
            change_feed.publish(INVENTORY_BATCHES, "allocated", context.tenant_id, batch_id, sale_order_id=db_order.id)
        return db_order

    raise TransientStorageConflict(attempts)
