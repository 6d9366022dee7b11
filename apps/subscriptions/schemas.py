"""
API Schemas for Subscriptions app.
"""
from typing import Optional
from uuid import UUID
from decimal import Decimal
from datetime import datetime
from ninja import Schema


# =============================================================================
# Request Schemas
# =============================================================================

class SubscriptionIn(Schema):
    """Schema for purchasing a subscription."""
    box_size: str
    fulfillment_type: str
    payment_interval: int
    payment_method_id: Optional[str] = None
    period_start: Optional[datetime] = None


# =============================================================================
# Response Schemas
# =============================================================================

class SubscriptionOut(Schema):
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
