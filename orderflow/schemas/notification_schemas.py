from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime


class NotificationOut(BaseModel):
    id: int
    order_id: Optional[int] = None
    order_product_id: Optional[int] = None
    type: str
    message: str
    link: Optional[str] = None
    is_read: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class NotificationListResponse(BaseModel):
    message: str
    unread_count: int
    data: List[NotificationOut]


# --------------------------
# Email Schemas
# --------------------------
class EmailSendRequest(BaseModel):
    orderId: int
    includeAttachments: bool = True
    customMessage: Optional[str] = Field(default=None, description="Optional note shown above the order summary")
    showPricing: bool = False
    subject: Optional[str] = None


class EmailSendResponse(BaseModel):
    success: bool
    messageId: Optional[str] = None
    recipient: str
    attachmentCount: int = 0
