from typing import Optional
from sqlalchemy.orm import Session
from models.audit_log import AuditLog
from schemas.audit_log import AuditLogCreate

def create_audit_log(db: Session, log_entry: AuditLogCreate, commit: bool = True):
    """Record a change. Pass commit=False to stage it in the caller's transaction."""
    db_log_entry = AuditLog(**log_entry.model_dump())
    db.add(db_log_entry)
    if commit:
        db.commit()
        db.refresh(db_log_entry)
    return db_log_entry


def get_audit_logs(db: Session, table_name: str, record_id: int, tenant_id: Optional[str] = None):
    query = db.query(AuditLog).filter(AuditLog.table_name == table_name, AuditLog.record_id == record_id)
    if tenant_id:
        query = query.filter(AuditLog.tenant_id == tenant_id)
    return query.order_by(AuditLog.id).all()
