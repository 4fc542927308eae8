"""Per-request session context handed to crud functions instead of global state."""

from typing import Any, Dict, List

from fastapi import Depends, Header, HTTPException
from pydantic import BaseModel

from utils.auth_utils import get_current_user, get_user_identifier, require_group


def get_tenant_id(x_tenant_id: str = Header(...)) -> str:
    """Every request names the clinic it acts for in the X-Tenant-ID header."""
    tenant_id = x_tenant_id.strip() if x_tenant_id else ""
    if not tenant_id:
        raise HTTPException(status_code=400, detail="X-Tenant-ID header is missing")
    return tenant_id


class ClinicContext(BaseModel):
    user: Dict[str, Any]
    tenant_id: str

    @property
    def user_identifier(self) -> str:
        return get_user_identifier(self.user)


def get_clinic_context(
    user: dict = Depends(get_current_user),
    tenant_id: str = Depends(get_tenant_id),
) -> ClinicContext:
    return ClinicContext(user=user, tenant_id=tenant_id)


def require_role(allowed_groups: List[str]):
    """Like get_clinic_context, but only for users in one of the given groups."""

    def dependency(
        user: dict = Depends(require_group(allowed_groups)),
        tenant_id: str = Depends(get_tenant_id),
    ) -> ClinicContext:
        return ClinicContext(user=user, tenant_id=tenant_id)

    return dependency


PHARMACY_STAFF = ["admin", "pharmacist"]
CHECKOUT_STAFF = ["admin", "pharmacist", "receptionist"]
