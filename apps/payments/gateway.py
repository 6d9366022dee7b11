"""
PaymentGateway - Abstraction over the payment processor.

Services talk to PaymentGatewayInterface only; the concrete gateway is
picked by the PAYMENT_BACKEND setting.

Usage:
    from apps.payments.gateway import get_payment_gateway

    gateway = get_payment_gateway()
    result = gateway.charge(Decimal('100.00'), payment_method_id='pm_card_visa')
    if not result.success:
        ...

Environment Configuration:
    PAYMENT_BACKEND=local   # Simulated charges (development, tests)
    PAYMENT_BACKEND=stripe  # Stripe PaymentIntents (production)
"""

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Dict, Optional

from django.conf import settings

from .dtos import ChargeResult


class PaymentGatewayInterface(ABC):
    """
    Abstract interface for payment gateways.

    Implementations:
    - LocalPaymentGateway: Simulated charges for development/testing
    - StripePaymentGateway: Stripe SDK for production

    `charge` returns a ChargeResult for declines; transport and
    configuration errors are raised so the caller's retry policy applies.
    """

    @abstractmethod
    def charge(
        self,
        amount: Decimal,
        payment_method_id: str,
        customer_id: Optional[str] = None,
        description: str = "",
        metadata: Optional[Dict[str, str]] = None,
        idempotency_key: Optional[str] = None,
    ) -> ChargeResult:
        pass

    @abstractmethod
    def refund(self, transaction_id: str, amount: Optional[Decimal] = None) -> str:
        """Refund all or part of a charge. Returns the gateway refund id."""
        pass


def to_minor_units(amount: Decimal) -> int:
    """Dollars to cents."""
    return int((amount * 100).quantize(Decimal('1')))


def get_payment_gateway() -> PaymentGatewayInterface:
    """Get the gateway named by the PAYMENT_BACKEND setting."""
    backend = getattr(settings, 'PAYMENT_BACKEND', 'local')

    if backend == 'local':
        from apps.payments.backends.local_gateway import LocalPaymentGateway
        return LocalPaymentGateway()
    elif backend == 'stripe':
        from apps.payments.backends.stripe_gateway import StripePaymentGateway
        return StripePaymentGateway()
    else:
        raise ValueError(f"Unknown PAYMENT_BACKEND: {backend}")
