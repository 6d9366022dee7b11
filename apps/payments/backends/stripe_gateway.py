"""
Stripe Payment Gateway - PaymentIntents for production.

Charges confirm a PaymentIntent immediately, with no redirects. When the
member has a Stripe customer the charge runs off-session against their
saved payment method. Card declines come back as a failed ChargeResult;
every other Stripe error propagates.

Required settings:
    STRIPE_SECRET_KEY
    STRIPE_CURRENCY (default: usd)
"""

import logging
from decimal import Decimal
from typing import Dict, Optional

from django.conf import settings

from apps.payments.dtos import ChargeResult
from apps.payments.gateway import PaymentGatewayInterface, to_minor_units

logger = logging.getLogger(__name__)


class StripePaymentGateway(PaymentGatewayInterface):

    def __init__(self):
        import stripe
        self.stripe = stripe
        self.stripe.api_key = settings.STRIPE_SECRET_KEY
        self.currency = getattr(settings, 'STRIPE_CURRENCY', 'usd')

    def charge(
        self,
        amount: Decimal,
        payment_method_id: str,
        customer_id: Optional[str] = None,
        description: str = "",
        metadata: Optional[Dict[str, str]] = None,
        idempotency_key: Optional[str] = None,
    ) -> ChargeResult:
        params = {
            'amount': to_minor_units(amount),
            'currency': self.currency,
            'payment_method': payment_method_id,
            'confirm': True,
            'automatic_payment_methods': {'enabled': True, 'allow_redirects': 'never'},
            'description': description,
            'metadata': metadata or {},
        }
        if customer_id:
            params['customer'] = customer_id
            params['off_session'] = True
        if idempotency_key:
            params['idempotency_key'] = idempotency_key

        try:
            intent = self.stripe.PaymentIntent.create(**params)
        except self.stripe.CardError as e:
            logger.info(f"[STRIPE] Card declined for {payment_method_id}: {e.user_message}")
            return ChargeResult(success=False, error=e.user_message or str(e))

        if intent.status != 'succeeded':
            logger.warning(f"[STRIPE] PaymentIntent {intent.id} ended in {intent.status}")
            return ChargeResult(
                success=False,
                transaction_id=intent.id,
                error=f"Payment {intent.status}",
            )

        logger.info(f"[STRIPE] Charged {amount} {self.currency} ({intent.id})")
        return ChargeResult(success=True, transaction_id=intent.id)

    def refund(self, transaction_id: str, amount: Optional[Decimal] = None) -> str:
        params = {'payment_intent': transaction_id}
        if amount is not None:
            params['amount'] = to_minor_units(amount)
        refund = self.stripe.Refund.create(**params)
        logger.info(f"[STRIPE] Refund {refund.id} for {transaction_id}")
        return refund.id
