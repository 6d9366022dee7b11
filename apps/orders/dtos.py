"""DTOs for Orders app."""
from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal
from typing import Optional
from uuid import UUID


@dataclass(frozen=True)
class OrderDTO:
    id: UUID
    subscription_id: UUID
    user_id: UUID
    sequence: int
    fulfillment_date: date
    fulfillment_time: time
    cutoff_datetime: datetime
    status: str
    total_amount: Decimal
    notes: str = ""
    locked_at: Optional[datetime] = None
    fulfilled_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None


@dataclass(frozen=True)
class OrderAddonDTO:
    id: UUID
    order_id: UUID
    addon_id: str
    name: str
    quantity: int
    unit_price: Decimal
    total_price: Decimal
