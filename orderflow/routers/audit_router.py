# orderflow/routers/audit_router.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from orderflow.core.db import get_db
from orderflow.services.audit_service import list_audit, to_out
from orderflow.schemas.audit_schemas import AuditListResponse
from orderflow.utils.get_user import get_current_user
from orderflow.utils.check_roles import require_role, AUDIT_VIEWER_ROLES, ORDER_CREATOR_ROLES

router = APIRouter(prefix="/audit", tags=["Audit Log"])


@router.get("/", response_model=AuditListResponse)
@require_role(AUDIT_VIEWER_ROLES)
async def list_audit_entries(
    db: AsyncSession = Depends(get_db),
    _user=Depends(get_current_user),
    target_type: Optional[str] = Query(None),
    target_id: Optional[int] = Query(None),
    action_type: Optional[str] = Query(None, description="Prefix match, e.g. 'product_routed'"),
    user_id: Optional[int] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    sort_by: str = Query("timestamp"),
    order: str = Query("desc")
):
    """
    Fetch audit entries with pagination, filtering, and sorting. Each entry
    carries its structured changes plus display lines.
    """
    # Non-admin viewers only see the entries they wrote themselves
    if _user.role not in ORDER_CREATOR_ROLES:
        user_id = _user.id

    total, entries = await list_audit(
        db=db,
        target_type=target_type,
        target_id=target_id,
        action_type=action_type,
        user_id=user_id,
        page=page,
        page_size=page_size,
        sort_by=sort_by,
        order=order
    )

    return AuditListResponse(
        message="Audit log fetched successfully",
        total=total,
        data=[to_out(e) for e in entries]
    )
