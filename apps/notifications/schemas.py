"""
API Schemas for Notifications app.
"""
from typing import Optional
from uuid import UUID
from datetime import datetime
from ninja import Schema


class NotificationOut(Schema):
    id: UUID
    notification_type: str
    method: str
    subject: str
    message: str
    status: str
    order_id: Optional[UUID] = None
    subscription_id: Optional[UUID] = None
    sent_at: Optional[datetime] = None
    read_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
