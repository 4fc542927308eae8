from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from database import get_db
from crud import medicine as crud_medicine
from crud.audit_log import get_audit_logs
import logging
from typing import List, Optional
from schemas.audit_log import AuditLog
from schemas.medicine import Medicine, MedicineCreate, MedicineUpdate
from utils.context import ClinicContext, get_clinic_context, require_role, PHARMACY_STAFF
from utils.exceptions import MedicineInUse

router = APIRouter(prefix="/medicines", tags=["Medicines"])
logger = logging.getLogger("medicine")


def _get_or_404(db: Session, medicine_id: int, tenant_id: str):
    db_medicine = crud_medicine.get_medicine(db, medicine_id=medicine_id, tenant_id=tenant_id)
    if db_medicine is None:
        raise HTTPException(status_code=404, detail="Medicine not found")
    return db_medicine


@router.post("/", response_model=Medicine, status_code=status.HTTP_201_CREATED)
def create_medicine(
    medicine: MedicineCreate,
    db: Session = Depends(get_db),
    context: ClinicContext = Depends(require_role(PHARMACY_STAFF)),
):
    """Add a medicine to the catalog."""
    if crud_medicine.get_medicine_by_sku(db, medicine.sku, context.tenant_id):
        raise HTTPException(status_code=400, detail=f"Medicine with SKU '{medicine.sku}' already exists")

    db_medicine = crud_medicine.create_medicine(db=db, medicine=medicine, context=context)
    logger.info(f"Medicine '{db_medicine.name}' (SKU {db_medicine.sku}) created by user {context.user_identifier} for tenant {context.tenant_id}")
    return db_medicine


@router.get("/", response_model=List[Medicine])
def read_medicines(
    search: Optional[str] = None,
    category: Optional[str] = None,
    active_only: bool = False,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    context: ClinicContext = Depends(get_clinic_context),
):
    """List catalog medicines, optionally searching by name or SKU."""
    return crud_medicine.get_medicines(
        db, context.tenant_id, search=search, category=category, active_only=active_only, skip=skip, limit=limit
    )


@router.get("/{medicine_id}", response_model=Medicine)
def read_medicine(medicine_id: int, db: Session = Depends(get_db), context: ClinicContext = Depends(get_clinic_context)):
    """Get a specific medicine by ID."""
    return _get_or_404(db, medicine_id, context.tenant_id)


@router.patch("/{medicine_id}", response_model=Medicine)
def update_medicine(
    medicine_id: int,
    medicine: MedicineUpdate,
    db: Session = Depends(get_db),
    context: ClinicContext = Depends(require_role(PHARMACY_STAFF)),
):
    """Update an existing medicine."""
    db_medicine = _get_or_404(db, medicine_id, context.tenant_id)

    if medicine.sku is not None and medicine.sku != db_medicine.sku:
        if crud_medicine.get_medicine_by_sku(db, medicine.sku, context.tenant_id):
            raise HTTPException(status_code=400, detail=f"Medicine with SKU '{medicine.sku}' already exists")

    updated = crud_medicine.update_medicine(db, db_medicine, medicine, context)
    logger.info(f"Medicine '{updated.name}' (ID: {medicine_id}) updated by user {context.user_identifier} for tenant {context.tenant_id}")
    return updated


@router.post("/{medicine_id}/deactivate", response_model=Medicine)
def deactivate_medicine(
    medicine_id: int,
    db: Session = Depends(get_db),
    context: ClinicContext = Depends(require_role(PHARMACY_STAFF)),
):
    """Stop selling a medicine while keeping its batches and sales history."""
    db_medicine = _get_or_404(db, medicine_id, context.tenant_id)
    return crud_medicine.deactivate_medicine(db, db_medicine, context)


@router.delete("/{medicine_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_medicine(
    medicine_id: int,
    db: Session = Depends(get_db),
    context: ClinicContext = Depends(require_role(PHARMACY_STAFF)),
):
    """Delete a medicine. Medicines with batches or sales cannot be deleted, only deactivated."""
    db_medicine = _get_or_404(db, medicine_id, context.tenant_id)
    try:
        crud_medicine.delete_medicine(db, db_medicine, context)
    except MedicineInUse as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))


@router.get("/{medicine_id}/audit", response_model=List[AuditLog])
def read_medicine_audit(medicine_id: int, db: Session = Depends(get_db), context: ClinicContext = Depends(get_clinic_context)):
    """Catalog change history for a medicine, oldest first."""
    return get_audit_logs(db, "medicines", medicine_id, tenant_id=context.tenant_id)
