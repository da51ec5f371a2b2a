# orderflow/models/audit_models.py
from sqlalchemy import Column, Integer, String, DateTime, Text, JSON, Index
from orderflow.core.db import Base
from orderflow.utils.time_utils import utcnow


class AuditLogEntry(Base):
    """Append-only action history. Rows are inserted, never updated or deleted."""

    __tablename__ = "audit_log"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=True, index=True)
    user_name = Column(String, nullable=False)
    action_type = Column(String, nullable=False, index=True)
    target_type = Column(String, nullable=False)
    target_id = Column(Integer, nullable=False)
    old_value = Column(Text, nullable=True)
    new_value = Column(Text, nullable=True)
    # [{"field": ..., "old": ..., "new": ...}, ...]
    changes = Column(JSON, nullable=False, default=list)
    timestamp = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)


Index("ix_audit_target", AuditLogEntry.target_type, AuditLogEntry.target_id)
