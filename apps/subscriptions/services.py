"""
Services for Subscriptions app.

Covers purchase, cancellation, the fulfillment counter and renewal
(auto-enrollment). Background work is handed to the task registry passed
in as `tasks`; nothing here reaches for a module-level queue.
"""
import logging
from datetime import datetime, timedelta
from decimal import Decimal
from typing import List, Optional, Tuple
from uuid import UUID

from django.db import transaction
from django.utils import timezone

from apps.catalog.catalog import calculate_box_price, get_fulfillment_option, get_payment_interval
from apps.core.actions import ChargeSubscription, GenerateOrders, RefundPayment, SendSubscriptionRenewed
from apps.core.errors import Forbidden, InvalidState, NotFound
from .dtos import SubscriptionDTO
from .models import Subscription, SubscriptionStatus

logger = logging.getLogger(__name__)


def _to_dto(subscription: Subscription) -> SubscriptionDTO:
    return SubscriptionDTO(
        id=subscription.id,
        user_id=subscription.user_id,
        box_size=subscription.box_size,
        fulfillment_type=subscription.fulfillment_type,
        payment_interval=subscription.payment_interval,
        box_price=subscription.box_price,
        total_orders=subscription.total_orders,
        remaining_orders=subscription.remaining_orders,
        status=subscription.status,
        period_start=subscription.period_start,
        period_end=subscription.period_end,
        renewed_from_id=subscription.renewed_from_id,
    )


def _get(subscription_id: UUID) -> Subscription:
    try:
        return Subscription.objects.get(id=subscription_id)
    except Subscription.DoesNotExist:
        raise NotFound("Subscription", subscription_id)


# =============================================================================
# Purchase
# =============================================================================

def create_subscription(
    user_id: UUID,
    box_size: str,
    fulfillment_type: str,
    payment_interval: int,
    tasks,
    payment_method_id: Optional[str] = None,
    period_start: Optional[datetime] = None,
    renewed_from_id: Optional[UUID] = None,
) -> SubscriptionDTO:
    """
    Purchase a subscription and queue its order generation.

    The per-box price has the payment-interval discount applied. When a
    payment method is given the whole term is charged upfront.

    Raises:
        ValidationFailed: unknown box size or payment interval
        InvalidFulfillmentType: unknown fulfillment type
    """
    get_fulfillment_option(fulfillment_type)
    interval = get_payment_interval(payment_interval)
    box_price = calculate_box_price(box_size, payment_interval)

    period_start = period_start or timezone.now()
    period_end = period_start + timedelta(weeks=interval.weeks)

    subscription = Subscription.objects.create(
        user_id=user_id,
        box_size=box_size,
        fulfillment_type=fulfillment_type,
        payment_interval=interval.weeks,
        box_price=box_price,
        total_orders=interval.weeks,
        remaining_orders=interval.weeks,
        status=SubscriptionStatus.ACTIVE,
        period_start=period_start,
        period_end=period_end,
        payment_method_id=payment_method_id or "",
        renewed_from_id=renewed_from_id,
    )
    logger.info(
        f"Created subscription {subscription.id} for user {user_id}: "
        f"{box_size}/{fulfillment_type} x{interval.weeks} at {box_price}"
    )

    tasks.enqueue(GenerateOrders(subscription_id=subscription.id))
    if payment_method_id:
        tasks.enqueue(ChargeSubscription(
            subscription_id=subscription.id,
            payment_method_id=payment_method_id,
            amount=subscription.total_amount,
        ))

    return _to_dto(subscription)


# =============================================================================
# Queries
# =============================================================================

def get_subscription(subscription_id: UUID, requester_id: Optional[UUID] = None) -> SubscriptionDTO:
    """Fetch a subscription, enforcing ownership when a requester is given."""
    subscription = _get(subscription_id)
    if requester_id is not None and subscription.user_id != requester_id:
        raise Forbidden("You do not own this subscription")
    return _to_dto(subscription)


def list_user_subscriptions(user_id: UUID, status: Optional[str] = None) -> List[SubscriptionDTO]:
    qs = Subscription.objects.filter(user_id=user_id)
    if status:
        qs = qs.filter(status=status)
    return [_to_dto(s) for s in qs]


# =============================================================================
# Cancellation
# =============================================================================

def cancel_subscription(subscription_id: UUID, requester_id: UUID, tasks) -> SubscriptionDTO:
    """
    Cancel a subscription and its open orders.

    Pending and locked orders are cancelled. If the term was paid, the
    cancelled orders' total is refunded (capped at the amount paid), and
    so is every paid add-on on those orders. A charge still queued for
    the term is skipped once the subscription is cancelled.
    """
    from apps.orders.services import cancel_subscription_orders, queue_addon_refunds
    from apps.payments.services import get_refundable_payment

    subscription = _get(subscription_id)
    if subscription.user_id != requester_id:
        raise Forbidden("You do not own this subscription")

    with transaction.atomic():
        updated = Subscription.objects.filter(
            id=subscription_id,
            status__in=[SubscriptionStatus.ACTIVE, SubscriptionStatus.PAUSED],
        ).update(status=SubscriptionStatus.CANCELLED, updated_at=timezone.now())
        if not updated:
            subscription.refresh_from_db()
            raise InvalidState(
                f"Subscription is already {subscription.status}",
                current_status=subscription.status,
            )
        cancelled_orders = cancel_subscription_orders(subscription_id)

    refund_amount = sum((o.total_amount for o in cancelled_orders), Decimal('0.00'))
    logger.info(
        f"Cancelled subscription {subscription_id} ({len(cancelled_orders)} open orders, "
        f"{refund_amount} unused)"
    )

    payment = get_refundable_payment(subscription_id)
    if payment and refund_amount > 0:
        tasks.enqueue(RefundPayment(
            payment_id=payment.id,
            amount=min(refund_amount, payment.amount),
        ))
    queue_addon_refunds([o.id for o in cancelled_orders], tasks)

    return _to_dto(_get(subscription_id))


# =============================================================================
# Fulfillment counter
# =============================================================================

def decrement_remaining_orders(subscription_id: UUID) -> Tuple[SubscriptionDTO, bool]:
    """
    Count one fulfilled order against the subscription.

    Decrements `remaining_orders` (floored at 0) under a row lock and marks
    the subscription completed when it reaches 0. Meant to run inside the
    caller's transaction, right after the order update.

    Returns:
        (subscription, completed_now)
    """
    with transaction.atomic():
        try:
            subscription = Subscription.objects.select_for_update().get(id=subscription_id)
        except Subscription.DoesNotExist:
            raise NotFound("Subscription", subscription_id)

        remaining = max(subscription.remaining_orders - 1, 0)
        completed_now = (
            remaining == 0
            and subscription.status not in (SubscriptionStatus.COMPLETED, SubscriptionStatus.CANCELLED)
        )

        subscription.remaining_orders = remaining
        update_fields = ['remaining_orders', 'updated_at']
        if completed_now:
            subscription.status = SubscriptionStatus.COMPLETED
            update_fields.append('status')
        subscription.save(update_fields=update_fields)

    if completed_now:
        logger.info(f"Subscription {subscription_id} completed")
    return _to_dto(subscription), completed_now


# =============================================================================
# Renewal
# =============================================================================

def renew_subscription(subscription_id: UUID, tasks) -> Optional[SubscriptionDTO]:
    """
    Auto-enroll a completed subscription into a new term.

    The new subscription keeps box size, fulfillment type, interval and
    payment method, and starts where the old one ended. Returns None when
    the subscription is not completed or was already renewed.
    """
    subscription = _get(subscription_id)
    if subscription.status != SubscriptionStatus.COMPLETED:
        logger.info(f"Not renewing subscription {subscription_id}: status is {subscription.status}")
        return None

    if Subscription.objects.filter(renewed_from_id=subscription_id).exists():
        logger.info(f"Subscription {subscription_id} already renewed")
        return None

    renewed = create_subscription(
        user_id=subscription.user_id,
        box_size=subscription.box_size,
        fulfillment_type=subscription.fulfillment_type,
        payment_interval=subscription.payment_interval,
        tasks=tasks,
        payment_method_id=subscription.payment_method_id or None,
        period_start=max(subscription.period_end, timezone.now()),
        renewed_from_id=subscription_id,
    )
    tasks.enqueue(SendSubscriptionRenewed(subscription_id=renewed.id))
    logger.info(f"Renewed subscription {subscription_id} as {renewed.id}")
    return renewed
