from fastapi import APIRouter

from .accessories import router as accessories_router
from .alerts import router as alerts_router

router = APIRouter(prefix="/inventory")

router.include_router(accessories_router)
router.include_router(alerts_router)
