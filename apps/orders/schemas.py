"""
API Schemas for Orders app.
"""
from typing import Optional
from uuid import UUID
from decimal import Decimal
from datetime import date, datetime, time
from ninja import Schema
from django.utils import timezone


class OrderNotesIn(Schema):
    notes: str


class OrderOut(Schema):
    id: UUID
    subscription_id: UUID
    user_id: UUID
    sequence: int
    fulfillment_date: date
    fulfillment_time: time
    cutoff_datetime: datetime
    status: str
    total_amount: Decimal
    notes: str
    is_editable: bool
    locked_at: Optional[datetime] = None
    fulfilled_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None

    @classmethod
    def from_dto(cls, dto) -> "OrderOut":
        return cls(
            **vars(dto),
            is_editable=dto.status == 'pending' and timezone.now() < dto.cutoff_datetime,
        )


class OrderAddonIn(Schema):
    addon_id: str
    quantity: int = 1
    payment_method_id: str


class OrderAddonOut(Schema):
    id: UUID
    order_id: UUID
    addon_id: str
    name: str
    quantity: int
    unit_price: Decimal
    total_price: Decimal
