"""
API Schemas for Payments app.
"""
from typing import Optional
from uuid import UUID
from decimal import Decimal
from datetime import datetime
from ninja import Schema


class PaymentOut(Schema):
    id: UUID
    subscription_id: Optional[UUID] = None
    order_id: Optional[UUID] = None
    payment_type: str
    status: str
    amount: Decimal
    refunded_amount: Decimal
    currency: str
    failure_reason: str = ""
    created_at: Optional[datetime] = None
