"""DTOs for Notifications app."""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional
from uuid import UUID


@dataclass(frozen=True)
class NotificationDTO:
    id: UUID
    user_id: UUID
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
