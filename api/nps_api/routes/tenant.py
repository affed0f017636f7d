from typing import Any

from fastapi import APIRouter, Depends

from ..auth.deps import get_container, get_current_user, require_admin
from ..container import Container
from ..errors import ok
from ..schemas import TenantSettingsUpdate
from ..services.tenancy import public_tenant

router = APIRouter()


@router.get("")
def get_tenant(
    current_user: dict[str, Any] = Depends(get_current_user),
    container: Container = Depends(get_container),
) -> dict[str, Any]:
    return ok(public_tenant(container.tenants.get(current_user["tenantId"])))


@router.put("/settings")
def update_tenant_settings(
    payload: TenantSettingsUpdate,
    current_user: dict[str, Any] = Depends(require_admin),
    container: Container = Depends(get_container),
) -> dict[str, Any]:
    tenant = container.tenants.update_settings(current_user["tenantId"], payload)
    return ok(public_tenant(tenant))
