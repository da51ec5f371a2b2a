# orderflow/utils/check_roles.py
from fastapi import HTTPException
from typing import Callable, Iterable
from functools import wraps

from orderflow.core.exceptions import PermissionDenied
from orderflow.models.user_models import UserRole

# ---------------------------
# Role groups
# ---------------------------
ADMIN_ROLES = {UserRole.super_admin.value, UserRole.admin.value, UserRole.order_approver.value}
LOCK_ROLES = {UserRole.super_admin.value, UserRole.admin.value}
ORDER_CREATOR_ROLES = ADMIN_ROLES | {UserRole.order_creator.value}
MANUFACTURER_ROLES = {
    UserRole.manufacturer.value,
    UserRole.manufacturer_team_member.value,
    UserRole.sub_manufacturer.value,
}
CLIENT_ROLES = {UserRole.client.value}
ORDER_PARTICIPANT_ROLES = ORDER_CREATOR_ROLES | MANUFACTURER_ROLES | CLIENT_ROLES
INVENTORY_ROLES = LOCK_ROLES | MANUFACTURER_ROLES | {UserRole.manufacturer_inventory_manager.value}
AUDIT_VIEWER_ROLES = ORDER_CREATOR_ROLES | MANUFACTURER_ROLES | {UserRole.manufacturer_inventory_manager.value}
USER_ADMIN_ROLES = {UserRole.super_admin.value}


def role_group(role: str) -> str | None:
    """Routing queue a role acts for: 'admin', 'manufacturer', 'client' or None."""
    if role in ADMIN_ROLES:
        return "admin"
    if role in MANUFACTURER_ROLES:
        return "manufacturer"
    if role in CLIENT_ROLES:
        return "client"
    return None


def has_role(user, roles: Iterable[str]) -> bool:
    return user is not None and user.role.lower() in {r.lower() for r in roles}


def require_role(roles: Iterable[str]):
    """Decorator to validate user role; expects user to be passed by route."""
    roles = list(roles)

    def decorator(func: Callable):
        @wraps(func)
        async def wrapper(*args, _user, **kwargs):
            if _user is None:
                raise HTTPException(status_code=401, detail="User not authenticated")
            if not has_role(_user, roles):
                raise PermissionDenied()
            return await func(*args, _user=_user, **kwargs)
        return wrapper
    return decorator
