from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import date
import logging

from database import get_db
from crud import sale_orders as crud_sale_orders
from crud.stock_allocator import allocate_sale
from models.sale_orders import SaleOrderStatus, SaleSource
from schemas.sale_orders import SaleOrder as SaleOrderSchema, SaleOrderCreate, SaleOrderCancel
from utils.context import ClinicContext, get_clinic_context, require_role, CHECKOUT_STAFF, PHARMACY_STAFF
from utils.exceptions import (
    InsufficientStock,
    SaleOrderAlreadyCancelled,
    TransientStorageConflict,
    UnknownMedicine,
)

router = APIRouter(prefix="/sale-orders", tags=["Sale Orders"])
logger = logging.getLogger("sale_orders")


@router.post("/", response_model=SaleOrderSchema, status_code=status.HTTP_201_CREATED)
def create_sale_order(
    order: SaleOrderCreate,
    db: Session = Depends(get_db),
    context: ClinicContext = Depends(require_role(CHECKOUT_STAFF)),
):
    """Checkout a cart: stock is drawn from the soonest-expiring batches and the sale recorded in one transaction."""
    try:
        return allocate_sale(db, order, context)
    except (InsufficientStock, UnknownMedicine) as e:
        raise HTTPException(status_code=400, detail=str(e))
    except TransientStorageConflict as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))


@router.get("/", response_model=List[SaleOrderSchema])
def read_sale_orders(
    skip: int = 0,
    limit: int = 100,
    status: Optional[SaleOrderStatus] = None,
    sale_source: Optional[SaleSource] = None,
    patient_id: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: Session = Depends(get_db),
    context: ClinicContext = Depends(get_clinic_context),
):
    """Retrieve a list of sale orders with various filters."""
    return crud_sale_orders.get_sale_orders(
        db,
        context.tenant_id,
        status=status,
        sale_source=sale_source,
        patient_id=patient_id,
        start_date=start_date,
        end_date=end_date,
        skip=skip,
        limit=limit,
    )


@router.get("/{sale_order_id}", response_model=SaleOrderSchema)
def read_sale_order(sale_order_id: int, db: Session = Depends(get_db), context: ClinicContext = Depends(get_clinic_context)):
    """Retrieve a single sale order by ID."""
    db_order = crud_sale_orders.get_sale_order(db, sale_order_id, context.tenant_id)
    if db_order is None:
        raise HTTPException(status_code=404, detail="Sale Order not found")
    return db_order


@router.post("/{sale_order_id}/cancel", response_model=SaleOrderSchema)
def cancel_sale_order(
    sale_order_id: int,
    cancel: Optional[SaleOrderCancel] = None,
    db: Session = Depends(get_db),
    context: ClinicContext = Depends(require_role(PHARMACY_STAFF)),
):
    """Cancel a completed sale and put its quantities back on the batches they came from."""
    db_order = crud_sale_orders.get_sale_order(db, sale_order_id, context.tenant_id)
    if db_order is None:
        raise HTTPException(status_code=404, detail="Sale Order not found")
    try:
        return crud_sale_orders.cancel_sale_order(db, db_order, context, reason=cancel.reason if cancel else None)
    except (SaleOrderAlreadyCancelled, TransientStorageConflict) as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
