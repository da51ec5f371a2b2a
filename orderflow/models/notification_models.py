# orderflow/models/notification_models.py
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Text
from orderflow.core.db import Base
from orderflow.utils.time_utils import utcnow


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=True, index=True)
    order_product_id = Column(Integer, ForeignKey("order_products.id", ondelete="CASCADE"), nullable=True)
    type = Column(String, nullable=False)
    message = Column(Text, nullable=False)
    link = Column(String, nullable=True)
    is_read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)


class EmailHistory(Base):
    __tablename__ = "email_history"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    recipient = Column(String, nullable=False)
    recipient_type = Column(String, nullable=False)
    subject = Column(String, nullable=False)
    message_id = Column(String, nullable=True)
    attachment_count = Column(Integer, default=0, nullable=False)
    status = Column(String, default="sent", nullable=False)
    sent_by = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
