"""
API Router for Payments app.
Payment history is read-only; charges and refunds run in the background.
"""
from typing import List
from ninja import Router
from django.http import HttpRequest

from apps.identity.decorators import require_auth
from .schemas import PaymentOut
from . import services

router = Router(tags=["Payments"])


@router.get("/", response=List[PaymentOut], auth=None)
def list_my_payments(request: HttpRequest):
    user = require_auth(request)
    return [
        PaymentOut(
            id=p.id,
            subscription_id=p.subscription_id,
            order_id=p.order_id,
            payment_type=p.payment_type,
            status=p.status,
            amount=p.amount,
            refunded_amount=p.refunded_amount,
            currency=p.currency,
            failure_reason=p.failure_reason,
            created_at=p.created_at,
        )
        for p in services.list_user_payments(user.id)
    ]
