"""
Local Payment Gateway - Simulated charges for development.

Payment method ids follow Stripe's test tokens: anything starting with
"pm_card_declined" is declined, everything else succeeds.
"""

import uuid
import logging
from decimal import Decimal
from typing import Dict, Optional

from apps.payments.dtos import ChargeResult
from apps.payments.gateway import PaymentGatewayInterface

logger = logging.getLogger(__name__)

DECLINED_PREFIX = "pm_card_declined"


class LocalPaymentGateway(PaymentGatewayInterface):

    def charge(
        self,
        amount: Decimal,
        payment_method_id: str,
        customer_id: Optional[str] = None,
        description: str = "",
        metadata: Optional[Dict[str, str]] = None,
        idempotency_key: Optional[str] = None,
    ) -> ChargeResult:
        if payment_method_id.startswith(DECLINED_PREFIX):
            logger.info(f"[LOCAL] Declined charge of {amount} on {payment_method_id}")
            return ChargeResult(success=False, error="Your card was declined.")

        transaction_id = f"pi_local_{uuid.uuid4().hex[:24]}"
        logger.info(f"[LOCAL] Charged {amount} on {payment_method_id} ({transaction_id})")
        return ChargeResult(success=True, transaction_id=transaction_id)

    def refund(self, transaction_id: str, amount: Optional[Decimal] = None) -> str:
        refund_id = f"re_local_{uuid.uuid4().hex[:24]}"
        logger.info(f"[LOCAL] Refunded {amount if amount is not None else 'full amount'} of {transaction_id}")
        return refund_id
