"""
Notification services.

Each send_* function builds the message for one event, records a
Notification row and pushes it through the user's channels. A delivery
error marks the row failed and is re-raised so the task runner retries.

The order-event senders return None without sending when the order has
moved on (a reminder for an order that is no longer pending, for
example); the dispatcher reports those as skipped.
"""
import logging
from typing import List, Optional
from uuid import UUID

from django.contrib.auth import get_user_model
from django.utils import timezone

from apps.core.errors import Forbidden, NotFound
from apps.orders.models import Order, OrderStatus
from apps.subscriptions.models import Subscription
from .channels import get_channels, method_for_user
from .dtos import NotificationDTO
from .models import Notification, NotificationStatus, NotificationType

logger = logging.getLogger(__name__)


def _to_dto(notification: Notification) -> NotificationDTO:
    return NotificationDTO(
        id=notification.id,
        user_id=notification.user_id,
        notification_type=notification.notification_type,
        method=notification.method,
        subject=notification.subject,
        message=notification.message,
        status=notification.status,
        order_id=notification.order_id,
        subscription_id=notification.subscription_id,
        sent_at=notification.sent_at,
        read_at=notification.read_at,
        created_at=notification.created_at,
    )


def _get_user(user_id: UUID):
    User = get_user_model()
    try:
        return User.objects.get(id=user_id)
    except User.DoesNotExist:
        raise NotFound("User", user_id)


def _get_order(order_id: UUID) -> Order:
    try:
        return Order.objects.get(id=order_id)
    except Order.DoesNotExist:
        raise NotFound("Order", order_id)


def _get_subscription(subscription_id: UUID) -> Subscription:
    try:
        return Subscription.objects.get(id=subscription_id)
    except Subscription.DoesNotExist:
        raise NotFound("Subscription", subscription_id)


def _display_name(user) -> str:
    return user.name or user.email


def deliver(
    user,
    notification_type: str,
    subject: str,
    message: str,
    order_id: Optional[UUID] = None,
    subscription_id: Optional[UUID] = None,
) -> NotificationDTO:
    """Record and send one notification. Re-raises channel errors after recording them."""
    method = method_for_user(user)
    notification = Notification.objects.create(
        user_id=user.id,
        order_id=order_id,
        subscription_id=subscription_id,
        notification_type=notification_type,
        method=method,
        subject=subject,
        message=message,
        status=NotificationStatus.PENDING,
    )

    try:
        for channel in get_channels(method):
            channel.send(user, subject, message)
    except Exception as e:
        notification.status = NotificationStatus.FAILED
        notification.error = str(e)
        notification.save(update_fields=['status', 'error', 'updated_at'])
        logger.error(f"Failed to send {notification_type} to user {user.id}: {e}")
        raise

    notification.status = NotificationStatus.SENT
    notification.sent_at = timezone.now()
    notification.save(update_fields=['status', 'sent_at', 'updated_at'])
    logger.info(f"Sent {notification_type} to user {user.id} via {method}")
    return _to_dto(notification)


# =============================================================================
# Order events
# =============================================================================

def send_order_reminder(order_id: UUID) -> Optional[NotificationDTO]:
    """Remind the customer that the order's cutoff is 24 hours away."""
    order = _get_order(order_id)
    if order.status != OrderStatus.PENDING:
        logger.info(f"No reminder for order {order_id}: status is {order.status}")
        return None

    user = _get_user(order.user_id)
    cutoff = timezone.localtime(order.cutoff_datetime)
    message = (
        f"Hi {_display_name(user)}! Your CSA order deadline is in 24 hours "
        f"({cutoff:%A %b %d, %I:%M %p}). Please review and finalize your order. "
        f"Order ID: {order.id}"
    )
    return deliver(
        user,
        NotificationType.ORDER_REMINDER,
        "CSA Order Reminder - 24 Hours Left",
        message,
        order_id=order.id,
        subscription_id=order.subscription_id,
    )


def send_order_locked(order_id: UUID) -> Optional[NotificationDTO]:
    order = _get_order(order_id)
    if order.status != OrderStatus.LOCKED:
        logger.info(f"No lock notice for order {order_id}: status is {order.status}")
        return None

    user = _get_user(order.user_id)
    message = (
        f"Hi {_display_name(user)}! Your CSA order for {order.fulfillment_date:%A %b %d} "
        f"has been locked and will be prepared for fulfillment. Order ID: {order.id}"
    )
    return deliver(
        user,
        NotificationType.ORDER_LOCKED,
        "CSA Order Locked - Preparation Started",
        message,
        order_id=order.id,
        subscription_id=order.subscription_id,
    )


def send_order_fulfilled(order_id: UUID) -> Optional[NotificationDTO]:
    order = _get_order(order_id)
    if order.status != OrderStatus.FULFILLED:
        logger.info(f"No fulfillment notice for order {order_id}: status is {order.status}")
        return None

    user = _get_user(order.user_id)
    message = (
        f"Hi {_display_name(user)}! Your CSA box for {order.fulfillment_date:%A %b %d} "
        f"is ready. Enjoy! Order ID: {order.id}"
    )
    return deliver(
        user,
        NotificationType.ORDER_FULFILLED,
        "CSA Order Fulfilled",
        message,
        order_id=order.id,
        subscription_id=order.subscription_id,
    )


# =============================================================================
# Subscription events
# =============================================================================

def send_payment_failed(subscription_id: UUID) -> NotificationDTO:
    subscription = _get_subscription(subscription_id)
    user = _get_user(subscription.user_id)
    message = (
        f"Hi {_display_name(user)}! We couldn't process the payment for your CSA "
        f"subscription. Please update your payment method to keep your boxes coming."
    )
    return deliver(
        user,
        NotificationType.PAYMENT_FAILED,
        "CSA Payment Failed - Action Required",
        message,
        subscription_id=subscription.id,
    )


def send_subscription_renewed(subscription_id: UUID) -> NotificationDTO:
    subscription = _get_subscription(subscription_id)
    user = _get_user(subscription.user_id)
    start = timezone.localtime(subscription.period_start)
    message = (
        f"Hi {_display_name(user)}! Your CSA subscription has been renewed for another "
        f"{subscription.payment_interval} weeks starting {start:%b %d}."
    )
    return deliver(
        user,
        NotificationType.SUBSCRIPTION_RENEWED,
        "CSA Subscription Renewed",
        message,
        subscription_id=subscription.id,
    )


# =============================================================================
# Inbox
# =============================================================================

def list_user_notifications(user_id: UUID, unread_only: bool = False, limit: int = 50) -> List[NotificationDTO]:
    qs = Notification.objects.filter(user_id=user_id)
    if unread_only:
        qs = qs.filter(read_at__isnull=True)
    return [_to_dto(n) for n in qs[:limit]]


def mark_read(notification_id: UUID, requester_id: UUID) -> NotificationDTO:
    try:
        notification = Notification.objects.get(id=notification_id)
    except Notification.DoesNotExist:
        raise NotFound("Notification", notification_id)

    if notification.user_id != requester_id:
        raise Forbidden("You do not own this notification")

    if notification.read_at is None:
        notification.read_at = timezone.now()
        notification.save(update_fields=['read_at', 'updated_at'])
    return _to_dto(notification)
