from fastapi import APIRouter

from .notifications import router as notifications_router
from .email import router as email_router

router = APIRouter()

router.include_router(notifications_router)
router.include_router(email_router)
