# orderflow/utils/audit_helpers.py
from typing import Any, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from orderflow.models.audit_models import AuditLogEntry


def _plain(value: Any) -> Any:
    """JSON-safe rendering of a column value."""
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if hasattr(value, "value"):  # str enums
        return value.value
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return str(value)


def field_change(field: str, old: Any, new: Any) -> dict:
    return {"field": field, "old": _plain(old), "new": _plain(new)}


def diff_fields(obj, updates: dict) -> List[dict]:
    """Field-level changes that applying ``updates`` to ``obj`` would make."""
    changes = []
    for field, new in updates.items():
        old = getattr(obj, field)
        if old != new:
            changes.append(field_change(field, old, new))
    return changes


def apply_updates(obj, updates: dict) -> None:
    for field, value in updates.items():
        setattr(obj, field, value)


async def log_audit(
    db: AsyncSession,
    user,
    action_type: str,
    target_type: str,
    target_id: int,
    old_value: Optional[str] = None,
    new_value: Optional[str] = None,
    changes: Optional[List[dict]] = None,
    commit: bool = False,
) -> AuditLogEntry:
    """
    Adds an audit log entry to the session. The caller is responsible for the commit.
    """
    entry = AuditLogEntry(
        user_id=getattr(user, "id", None),
        user_name=getattr(user, "name", None) or getattr(user, "email", None) or "Unknown User",
        action_type=action_type,
        target_type=target_type,
        target_id=target_id,
        old_value=old_value,
        new_value=new_value,
        changes=list(changes or []),
    )
    db.add(entry)
    if commit:
        await db.commit()
    return entry
