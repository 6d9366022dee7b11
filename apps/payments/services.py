"""
Payment services.

Subscriptions are paid upfront for the whole term; add-ons are charged
one line at a time. A decline is recorded as a FAILED payment and the
customer is notified. A gateway error leaves the payment PENDING and is
re-raised so the task runner retries the charge on the same row, with the
same idempotency key, so the gateway never bills the term twice.
"""
import logging
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from django.contrib.auth import get_user_model

from apps.core.actions import SendPaymentFailed
from apps.core.errors import InvalidState, NotFound
from apps.orders.models import OrderAddon, OrderStatus
from apps.subscriptions.models import Subscription, SubscriptionStatus
from .dtos import PaymentDTO
from .gateway import get_payment_gateway
from .models import Payment, PaymentStatus, PaymentType

logger = logging.getLogger(__name__)


def _to_dto(payment: Payment) -> PaymentDTO:
    return PaymentDTO(
        id=payment.id,
        user_id=payment.user_id,
        subscription_id=payment.subscription_id,
        payment_type=payment.payment_type,
        status=payment.status,
        amount=payment.amount,
        refunded_amount=payment.refunded_amount,
        currency=payment.currency,
        order_id=payment.order_id,
        order_addon_id=payment.order_addon_id,
        transaction_id=payment.transaction_id,
        failure_reason=payment.failure_reason,
        created_at=payment.created_at,
    )


def _customer_id(user_id: UUID) -> Optional[str]:
    user = get_user_model().objects.filter(id=user_id).first()
    return (user.stripe_customer_id or None) if user else None


def _charge(payment: Payment, gateway, description: str, metadata: dict, key_prefix: str) -> Payment:
    """
    Send one charge for `payment` and record the outcome on the row.

    The idempotency key is derived from the row, so retrying a PENDING
    payment after a gateway error replays the same request.
    """
    try:
        result = gateway.charge(
            payment.amount,
            payment.payment_method_id,
            customer_id=_customer_id(payment.user_id),
            description=description,
            metadata={**metadata, 'payment_id': str(payment.id)},
            idempotency_key=f"{key_prefix}-{payment.id}",
        )
    except Exception as e:
        # Outcome unknown: keep the row PENDING for the retry
        payment.failure_reason = str(e)
        payment.save(update_fields=['failure_reason', 'updated_at'])
        logger.error(f"Payment gateway error for payment {payment.id}: {e}")
        raise

    payment.transaction_id = result.transaction_id
    if result.success:
        payment.status = PaymentStatus.COMPLETED
        payment.failure_reason = ""
        payment.save(update_fields=['status', 'transaction_id', 'failure_reason', 'updated_at'])
        logger.info(f"Payment {payment.id} completed: {payment.amount}")
        return payment

    payment.status = PaymentStatus.FAILED
    payment.failure_reason = result.error
    payment.save(update_fields=['status', 'transaction_id', 'failure_reason', 'updated_at'])
    logger.warning(f"Payment {payment.id} declined: {result.error}")
    return payment


def process_subscription_payment(
    subscription_id: UUID,
    payment_method_id: str,
    amount: Decimal,
    tasks=None,
    gateway=None,
) -> PaymentDTO:
    """
    Charge the upfront payment for a subscription term.

    A subscription that already has a completed payment is not charged
    again; the existing payment is returned. A pending payment left by a
    gateway error is retried rather than duplicated.

    Raises:
        NotFound: unknown subscription
        InvalidState: subscription was cancelled before the charge ran
    """
    try:
        subscription = Subscription.objects.get(id=subscription_id)
    except Subscription.DoesNotExist:
        raise NotFound("Subscription", subscription_id)

    if subscription.status == SubscriptionStatus.CANCELLED:
        raise InvalidState(
            f"Cannot charge a {subscription.status} subscription",
            current_status=subscription.status,
        )

    payments = Payment.objects.filter(
        subscription_id=subscription_id,
        payment_type=PaymentType.SUBSCRIPTION,
    )
    existing = payments.filter(status__in=[PaymentStatus.COMPLETED, PaymentStatus.REFUNDED]).first()
    if existing:
        logger.info(f"Subscription {subscription_id} already paid ({existing.id})")
        return _to_dto(existing)

    payment = payments.filter(status=PaymentStatus.PENDING).first()
    if payment:
        logger.info(f"Retrying pending payment {payment.id} for subscription {subscription_id}")
    else:
        payment = Payment.objects.create(
            user_id=subscription.user_id,
            subscription_id=subscription.id,
            payment_type=PaymentType.SUBSCRIPTION,
            amount=amount,
            payment_method_id=payment_method_id,
            status=PaymentStatus.PENDING,
        )

    payment = _charge(
        payment,
        gateway or get_payment_gateway(),
        description=f"CSA subscription ({subscription.payment_interval} weeks, {subscription.box_size} box)",
        metadata={'subscription_id': str(subscription.id)},
        key_prefix="subscription-charge",
    )

    if payment.status == PaymentStatus.FAILED and tasks is not None:
        tasks.enqueue(SendPaymentFailed(subscription_id=subscription.id))
    return _to_dto(payment)


def process_addon_payment(
    order_addon_id: UUID,
    payment_method_id: str,
    tasks=None,
    gateway=None,
) -> PaymentDTO:
    """
    Charge one add-on line of an order.

    Raises:
        NotFound: unknown add-on line
        InvalidState: the order was cancelled before the charge ran
    """
    try:
        line = OrderAddon.objects.select_related('order').get(id=order_addon_id)
    except OrderAddon.DoesNotExist:
        raise NotFound("OrderAddon", order_addon_id)

    order = line.order
    if order.status == OrderStatus.CANCELLED:
        raise InvalidState(f"Cannot charge an add-on on a {order.status} order", current_status=order.status)

    payments = Payment.objects.filter(order_addon_id=order_addon_id, payment_type=PaymentType.ADDON)
    existing = payments.filter(status__in=[PaymentStatus.COMPLETED, PaymentStatus.REFUNDED]).first()
    if existing:
        logger.info(f"Add-on {order_addon_id} already paid ({existing.id})")
        return _to_dto(existing)

    payment = payments.filter(status=PaymentStatus.PENDING).first()
    if payment is None:
        payment = Payment.objects.create(
            user_id=order.user_id,
            subscription_id=order.subscription_id,
            order_id=order.id,
            order_addon_id=line.id,
            payment_type=PaymentType.ADDON,
            amount=line.total_price,
            payment_method_id=payment_method_id,
            status=PaymentStatus.PENDING,
        )

    payment = _charge(
        payment,
        gateway or get_payment_gateway(),
        description=f"CSA add-on: {line.quantity} x {line.name}",
        metadata={'order_id': str(order.id), 'order_addon_id': str(line.id)},
        key_prefix="addon-charge",
    )

    if payment.status == PaymentStatus.FAILED and tasks is not None:
        tasks.enqueue(SendPaymentFailed(subscription_id=order.subscription_id))
    return _to_dto(payment)


def process_refund(payment_id: UUID, amount: Optional[Decimal] = None, gateway=None) -> PaymentDTO:
    """
    Refund a completed payment, in full or up to `amount`.

    Refunding an already-refunded payment returns it unchanged.

    Raises:
        NotFound: unknown payment
        InvalidState: payment is not completed
    """
    try:
        payment = Payment.objects.get(id=payment_id)
    except Payment.DoesNotExist:
        raise NotFound("Payment", payment_id)

    if payment.status == PaymentStatus.REFUNDED:
        return _to_dto(payment)
    if payment.status != PaymentStatus.COMPLETED:
        raise InvalidState(f"Cannot refund a {payment.status} payment", current_status=payment.status)

    refund_amount = payment.amount if amount is None else min(amount, payment.amount)
    gateway = gateway or get_payment_gateway()
    refund_id = gateway.refund(payment.transaction_id, refund_amount)

    payment.status = PaymentStatus.REFUNDED
    payment.refunded_amount = refund_amount
    payment.refund_id = refund_id
    payment.save(update_fields=['status', 'refunded_amount', 'refund_id', 'updated_at'])
    logger.info(f"Refunded {refund_amount} of payment {payment_id}")
    return _to_dto(payment)


def get_refundable_payment(subscription_id: UUID) -> Optional[PaymentDTO]:
    """Latest completed subscription payment, if any."""
    payment = Payment.objects.filter(
        subscription_id=subscription_id,
        payment_type=PaymentType.SUBSCRIPTION,
        status=PaymentStatus.COMPLETED,
    ).order_by('-created_at').first()
    return _to_dto(payment) if payment else None


def list_user_payments(user_id: UUID) -> List[PaymentDTO]:
    return [_to_dto(p) for p in Payment.objects.filter(user_id=user_id)]


def get_completed_addon_payments(order_ids: List[UUID]) -> List[PaymentDTO]:
    """Completed (not yet refunded) add-on payments on the given orders."""
    qs = Payment.objects.filter(
        order_id__in=order_ids,
        payment_type=PaymentType.ADDON,
        status=PaymentStatus.COMPLETED,
    )
    return [_to_dto(p) for p in qs]
