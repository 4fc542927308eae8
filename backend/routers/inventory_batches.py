from datetime import date
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from database import get_db
from schemas.inventory_batches import (
    InventoryBatch,
    InventoryBatchAdjust,
    InventoryBatchAudit,
    InventoryBatchCreate,
    MedicineStockSummary,
)
from crud import inventory_batches as crud_inventory_batches
from utils.context import ClinicContext, get_clinic_context, require_role, PHARMACY_STAFF
from utils.exceptions import InvalidBatchAdjustment, TransientStorageConflict, UnknownMedicine

router = APIRouter(prefix="/inventory-batches", tags=["Inventory Batches"])
logger = logging.getLogger("inventory_batches")


def _get_or_404(db: Session, batch_id: int, tenant_id: str):
    db_batch = crud_inventory_batches.get_batch(db=db, batch_id=batch_id, tenant_id=tenant_id)
    if db_batch is None:
        raise HTTPException(status_code=404, detail="Inventory batch not found")
    return db_batch


@router.post("/", response_model=InventoryBatch, status_code=status.HTTP_201_CREATED)
def receive_inventory_batch(
    batch: InventoryBatchCreate,
    db: Session = Depends(get_db),
    context: ClinicContext = Depends(require_role(PHARMACY_STAFF)),
):
    """Record received goods as a new batch."""
    try:
        return crud_inventory_batches.receive_batch(db=db, batch=batch, context=context)
    except UnknownMedicine as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/stock-summary", response_model=List[MedicineStockSummary])
def read_stock_summary(
    low_stock_only: bool = False,
    db: Session = Depends(get_db),
    context: ClinicContext = Depends(get_clinic_context),
):
    """Total stock per active medicine with its low-stock flag."""
    return crud_inventory_batches.get_stock_summary(db, context.tenant_id, low_stock_only=low_stock_only)


@router.get("/", response_model=List[InventoryBatch])
def read_inventory_batches(
    medicine_id: Optional[int] = None,
    active_only: bool = False,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    context: ClinicContext = Depends(get_clinic_context),
):
    """List batches, soonest expiry first."""
    return crud_inventory_batches.get_batches(
        db, context.tenant_id, medicine_id=medicine_id, active_only=active_only, skip=skip, limit=limit
    )


@router.get("/{batch_id}", response_model=InventoryBatch)
def read_inventory_batch(batch_id: int, db: Session = Depends(get_db), context: ClinicContext = Depends(get_clinic_context)):
    """Retrieve a single batch by ID."""
    return _get_or_404(db, batch_id, context.tenant_id)


@router.post("/{batch_id}/adjust", response_model=InventoryBatch)
def adjust_inventory_batch(
    batch_id: int,
    adjustment: InventoryBatchAdjust,
    db: Session = Depends(get_db),
    context: ClinicContext = Depends(require_role(PHARMACY_STAFF)),
):
    """Correct a batch's remaining quantity after a stock count."""
    db_batch = _get_or_404(db, batch_id, context.tenant_id)
    try:
        return crud_inventory_batches.adjust_batch(db, db_batch, adjustment.new_quantity, adjustment.reason, context)
    except InvalidBatchAdjustment as e:
        raise HTTPException(status_code=400, detail=str(e))
    except TransientStorageConflict as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))


@router.get("/{batch_id}/audit", response_model=List[InventoryBatchAudit])
def get_inventory_batch_audit_history(
    batch_id: int,
    db: Session = Depends(get_db),
    context: ClinicContext = Depends(get_clinic_context),
    start_date: Optional[date] = Query(None, description="Start date for filtering audit history"),
    end_date: Optional[date] = Query(None, description="End date for filtering audit history"),
):
    """
    Retrieve the quantity history for a specific batch.
    """
    _get_or_404(db, batch_id, context.tenant_id)
    return crud_inventory_batches.get_batch_audits(
        db=db,
        batch_id=batch_id,
        tenant_id=context.tenant_id,
        start_date=start_date,
        end_date=end_date,
    )
