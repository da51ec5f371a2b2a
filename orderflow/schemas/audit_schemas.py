# orderflow/schemas/audit_schemas.py
from pydantic import BaseModel
from datetime import datetime
from typing import Any, List, Optional


class FieldChange(BaseModel):
    field: str
    old: Any = None
    new: Any = None


class AuditEntryOut(BaseModel):
    id: int
    user_id: Optional[int]
    user_name: str
    action_type: str
    target_type: str
    target_id: int
    old_value: Optional[str] = None
    new_value: Optional[str] = None
    changes: List[FieldChange] = []
    timestamp: datetime
    label: Optional[str] = None
    lines: List[str] = []

    class Config:
        from_attributes = True


class AuditListResponse(BaseModel):
    message: str
    total: int
    data: List[AuditEntryOut]
