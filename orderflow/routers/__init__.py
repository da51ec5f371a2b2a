# orderflow/routers/__init__.py
from fastapi import APIRouter

from .auth import router as auth_router
from .orders import router as orders_router
from .inventory import router as inventory_router
from .notifications import router as notifications_router
from .audit_router import router as audit_router

api_router = APIRouter(prefix="/api")

api_router.include_router(auth_router)
api_router.include_router(orders_router)
api_router.include_router(inventory_router)
api_router.include_router(notifications_router)
api_router.include_router(audit_router)

__all__ = ["api_router"]
