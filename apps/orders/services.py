"""
Order lifecycle services.

State machine:
    pending -> locked -> fulfilled
    pending/locked -> cancelled

Every transition is a single conditional UPDATE filtered on the allowed
source statuses, so the precondition is re-checked at write time and a
concurrent transition cannot be overwritten. Fulfillment and the
subscription counter share one transaction, order first.

Notifications are queued on the task registry only after the database
work is done.
"""
import logging
from datetime import datetime, timedelta
from typing import List, Optional
from uuid import UUID

from django.db import transaction
from django.utils import timezone

from apps.catalog.catalog import get_addon
from apps.core.actions import AutoEnroll, ChargeAddon, RefundPayment, SendOrderFulfilled, SendOrderLocked
from apps.core.errors import (
    EditWindowClosed, Forbidden, InvalidState, NotFound, PreconditionFailed, ValidationFailed,
)
from apps.subscriptions.services import decrement_remaining_orders
from .dtos import OrderAddonDTO, OrderDTO
from .models import Order, OrderAddon, OrderStatus

logger = logging.getLogger(__name__)

REMINDER_WINDOW = timedelta(hours=24)


def to_order_dto(order: Order) -> OrderDTO:
    return OrderDTO(
        id=order.id,
        subscription_id=order.subscription_id,
        user_id=order.user_id,
        sequence=order.sequence,
        fulfillment_date=order.fulfillment_date,
        fulfillment_time=order.fulfillment_time,
        cutoff_datetime=order.cutoff_datetime,
        status=order.status,
        total_amount=order.total_amount,
        notes=order.notes,
        locked_at=order.locked_at,
        fulfilled_at=order.fulfilled_at,
        cancelled_at=order.cancelled_at,
    )


def _get(order_id: UUID) -> Order:
    try:
        return Order.objects.get(id=order_id)
    except Order.DoesNotExist:
        raise NotFound("Order", order_id)


def _require_owner(order: Order, requester_id: UUID) -> None:
    if order.user_id != requester_id:
        raise Forbidden("You do not own this order")


def _require_edit_window(order: Order, now: datetime) -> None:
    if now >= order.cutoff_datetime:
        raise EditWindowClosed("Order cannot be modified after cutoff time")
    if order.status != OrderStatus.PENDING:
        raise EditWindowClosed("Order can no longer be modified")


def to_order_addon_dto(line: OrderAddon) -> OrderAddonDTO:
    return OrderAddonDTO(
        id=line.id,
        order_id=line.order_id,
        addon_id=line.addon_id,
        name=line.name,
        quantity=line.quantity,
        unit_price=line.unit_price,
        total_price=line.total_price,
    )


# =============================================================================
# Queries
# =============================================================================

def get_order(order_id: UUID, requester_id: Optional[UUID] = None) -> OrderDTO:
    order = _get(order_id)
    if requester_id is not None:
        _require_owner(order, requester_id)
    return to_order_dto(order)


def list_user_orders(
    user_id: UUID,
    status: Optional[str] = None,
    limit: int = 20,
    offset: int = 0,
) -> List[OrderDTO]:
    qs = Order.objects.filter(user_id=user_id)
    if status:
        qs = qs.filter(status=status)
    return [to_order_dto(o) for o in qs[offset:offset + limit]]


def list_subscription_orders(subscription_id: UUID) -> List[OrderDTO]:
    qs = Order.objects.filter(subscription_id=subscription_id).order_by('sequence')
    return [to_order_dto(o) for o in qs]


def get_orders_due_for_reminder(now: Optional[datetime] = None) -> List[OrderDTO]:
    """Pending orders whose cutoff falls within the next 24 hours."""
    now = now or timezone.now()
    qs = Order.objects.filter(
        status=OrderStatus.PENDING,
        cutoff_datetime__gt=now,
        cutoff_datetime__lte=now + REMINDER_WINDOW,
    ).order_by('cutoff_datetime')
    return [to_order_dto(o) for o in qs]


def get_orders_due_for_locking(now: Optional[datetime] = None) -> List[OrderDTO]:
    """Pending orders whose cutoff has passed."""
    now = now or timezone.now()
    qs = Order.objects.filter(
        status=OrderStatus.PENDING,
        cutoff_datetime__lte=now,
    ).order_by('cutoff_datetime')
    return [to_order_dto(o) for o in qs]


# =============================================================================
# Transitions
# =============================================================================

def lock_order(order_id: UUID, tasks=None) -> OrderDTO:
    """
    Lock an order for fulfillment (pending -> locked).

    Locking an already-locked order returns it unchanged and queues nothing.

    Raises:
        NotFound: unknown order
        InvalidState: order is fulfilled or cancelled
    """
    order = _get(order_id)
    now = timezone.now()

    updated = Order.objects.filter(
        id=order_id,
        status=OrderStatus.PENDING,
    ).update(status=OrderStatus.LOCKED, locked_at=now, updated_at=now)

    order.refresh_from_db()
    if not updated:
        if order.status == OrderStatus.LOCKED:
            logger.debug(f"Order {order_id} already locked")
            return to_order_dto(order)
        raise InvalidState(f"Cannot lock a {order.status} order", current_status=order.status)

    logger.info(f"Locked order {order_id}")
    if tasks is not None:
        tasks.enqueue(SendOrderLocked(order_id=order.id))
    return to_order_dto(order)


def fulfill_order(order_id: UUID, tasks=None) -> OrderDTO:
    """
    Mark a locked order fulfilled and count it against its subscription.

    Raises:
        NotFound: unknown order
        PreconditionFailed: order is not locked (it is left unchanged)
    """
    order = _get(order_id)
    now = timezone.now()

    with transaction.atomic():
        updated = Order.objects.filter(
            id=order_id,
            status=OrderStatus.LOCKED,
        ).update(status=OrderStatus.FULFILLED, fulfilled_at=now, updated_at=now)

        if not updated:
            order.refresh_from_db()
            raise PreconditionFailed(
                f"Order must be locked before fulfillment (current status: {order.status})",
                current_status=order.status,
            )

        subscription, completed_now = decrement_remaining_orders(order.subscription_id)

    order.refresh_from_db()
    logger.info(
        f"Fulfilled order {order_id}; subscription {subscription.id} has "
        f"{subscription.remaining_orders} orders remaining"
    )

    if tasks is not None:
        tasks.enqueue(SendOrderFulfilled(order_id=order.id))
        if completed_now:
            tasks.enqueue(AutoEnroll(subscription_id=subscription.id))
    return to_order_dto(order)


def cancel_order(order_id: UUID, requester_id: UUID, tasks=None) -> OrderDTO:
    """
    Cancel an order on behalf of its owner (pending/locked -> cancelled).

    Paid add-ons on the order are refunded. Cancelling an already-cancelled
    order returns it unchanged.

    Raises:
        NotFound: unknown order
        Forbidden: requester does not own the order
        InvalidState: order is already fulfilled
    """
    order = _get(order_id)
    _require_owner(order, requester_id)
    now = timezone.now()

    updated = Order.objects.filter(
        id=order_id,
        status__in=[OrderStatus.PENDING, OrderStatus.LOCKED],
    ).update(status=OrderStatus.CANCELLED, cancelled_at=now, updated_at=now)

    order.refresh_from_db()
    if not updated:
        if order.status == OrderStatus.CANCELLED:
            return to_order_dto(order)
        raise InvalidState(f"Cannot cancel a {order.status} order", current_status=order.status)

    logger.info(f"Cancelled order {order_id}")
    if tasks is not None:
        queue_addon_refunds([order.id], tasks)
    return to_order_dto(order)


def update_order_notes(
    order_id: UUID,
    requester_id: UUID,
    notes: str,
    now: Optional[datetime] = None,
) -> OrderDTO:
    """
    Edit an order's notes. Only pending orders before their cutoff are editable.

    Raises:
        NotFound: unknown order
        Forbidden: requester does not own the order
        EditWindowClosed: past cutoff, or the order is no longer pending
    """
    order = _get(order_id)
    _require_owner(order, requester_id)
    now = now or timezone.now()
    _require_edit_window(order, now)

    updated = Order.objects.filter(
        id=order_id,
        status=OrderStatus.PENDING,
        cutoff_datetime__gt=now,
    ).update(notes=notes, updated_at=timezone.now())

    if not updated:
        raise EditWindowClosed("Order can no longer be modified")

    order.refresh_from_db()
    return to_order_dto(order)


def cancel_subscription_orders(subscription_id: UUID) -> List[OrderDTO]:
    """Cancel every open (pending or locked) order of a subscription. Returns the cancelled orders."""
    open_ids = list(
        Order.objects.filter(
            subscription_id=subscription_id,
            status__in=[OrderStatus.PENDING, OrderStatus.LOCKED],
        ).values_list('id', flat=True)
    )
    now = timezone.now()
    Order.objects.filter(
        id__in=open_ids,
        status__in=[OrderStatus.PENDING, OrderStatus.LOCKED],
    ).update(status=OrderStatus.CANCELLED, cancelled_at=now, updated_at=now)

    cancelled = Order.objects.filter(id__in=open_ids, status=OrderStatus.CANCELLED)
    return [to_order_dto(o) for o in cancelled]


# =============================================================================
# Add-ons
# =============================================================================

def list_order_addons(order_id: UUID, requester_id: Optional[UUID] = None) -> List[OrderAddonDTO]:
    order = _get(order_id)
    if requester_id is not None:
        _require_owner(order, requester_id)
    return [to_order_addon_dto(line) for line in order.addons.all()]


def add_order_addon(
    order_id: UUID,
    requester_id: UUID,
    addon_id: str,
    quantity: int,
    payment_method_id: str,
    tasks,
    now: Optional[datetime] = None,
) -> OrderAddonDTO:
    """
    Add a catalog add-on to a pending order and queue its charge.

    Add-ons follow the same edit window as notes: pending orders only,
    before cutoff. The line is priced from the catalog at the time it is
    added and charged on its own, outside the subscription payment.

    Raises:
        NotFound: unknown order
        Forbidden: requester does not own the order
        EditWindowClosed: past cutoff, or the order is no longer pending
        ValidationFailed: unknown/unavailable add-on or quantity below 1
    """
    order = _get(order_id)
    _require_owner(order, requester_id)
    _require_edit_window(order, now or timezone.now())

    if quantity < 1:
        raise ValidationFailed("Quantity must be at least 1")
    addon = get_addon(addon_id)

    line = OrderAddon.objects.create(
        order=order,
        addon_id=addon.addon_id,
        name=addon.name,
        quantity=quantity,
        unit_price=addon.price,
        total_price=addon.price * quantity,
    )
    logger.info(f"Added {quantity} x {addon.addon_id} to order {order_id} ({line.total_price})")

    tasks.enqueue(ChargeAddon(order_addon_id=line.id, payment_method_id=payment_method_id))
    return to_order_addon_dto(line)


def queue_addon_refunds(order_ids: List[UUID], tasks) -> int:
    """Queue a full refund for every completed add-on payment on these orders."""
    from apps.payments.services import get_completed_addon_payments

    payments = get_completed_addon_payments(order_ids)
    for payment in payments:
        tasks.enqueue(RefundPayment(payment_id=payment.id))
    return len(payments)
