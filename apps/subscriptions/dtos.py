"""DTOs for Subscriptions app."""
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID


@dataclass(frozen=True)
class SubscriptionDTO:
    id: UUID
    user_id: UUID
    box_size: str
    fulfillment_type: str
    payment_interval: int
    box_price: Decimal
    total_orders: int
    remaining_orders: int
    status: str
    period_start: datetime
    period_end: datetime
    renewed_from_id: Optional[UUID] = None
