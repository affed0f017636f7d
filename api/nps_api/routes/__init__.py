from fastapi import APIRouter, FastAPI

from .auth import router as auth_router
from .health import router as health_router
from .surveys import router as surveys_router
from .tenant import router as tenant_router
from .webhooks import router as webhooks_router


def include_modular_routers(app: FastAPI) -> None:
    app.include_router(health_router, prefix="/health", tags=["health"])
    app.include_router(auth_router, prefix="/v1/auth", tags=["auth"])
    app.include_router(surveys_router, prefix="/v1/surveys", tags=["surveys"])
    app.include_router(tenant_router, prefix="/v1/tenant", tags=["tenant"])
    app.include_router(webhooks_router, prefix="/webhooks", tags=["webhooks"])


__all__ = ["include_modular_routers", "APIRouter"]
