from pydantic import BaseModel
from typing import Optional, Dict, Any
from datetime import datetime

class AuditLogCreate(BaseModel):
    table_name: str
    record_id: int
    changed_by: str
    action: str
    old_values: Optional[Dict[str, Any]] = None
    new_values: Optional[Dict[str, Any]] = None
    tenant_id: Optional[str] = None


class AuditLog(AuditLogCreate):
    id: int
    changed_at: datetime

    class Config:
        from_attributes = True
