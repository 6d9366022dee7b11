"""DTOs for Payments app."""
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID


@dataclass(frozen=True)
class PaymentDTO:
    id: UUID
    user_id: UUID
    subscription_id: Optional[UUID]
    payment_type: str
    status: str
    amount: Decimal
    refunded_amount: Decimal
    currency: str
    order_id: Optional[UUID] = None
    order_addon_id: Optional[UUID] = None
    transaction_id: str = ""
    failure_reason: str = ""
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class ChargeResult:
    """Outcome of a gateway charge. A decline is a result, not an exception."""
    success: bool
    transaction_id: str = ""
    error: str = ""
