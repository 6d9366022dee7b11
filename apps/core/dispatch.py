"""
Deferred action dispatch.

Maps each DeferredAction variant to the service that performs it. The
isinstance chain below covers every member of the DeferredAction union;
an action that falls through is a programming error and raises TypeError.

Domain no-ops (locking an order that was cancelled in the meantime,
charging a subscription the owner already cancelled) come back as a
skipped ActionResult instead of an exception, so the runner does not
retry them.
"""
import logging
from dataclasses import dataclass

from .actions import (
    AutoEnroll, ChargeAddon, ChargeSubscription, DeferredAction, FulfillOrder,
    GenerateOrders, LockOrder, RefundPayment, SendOrderFulfilled,
    SendOrderLocked, SendOrderReminder, SendPaymentFailed,
    SendSubscriptionRenewed,
)
from .errors import InvalidState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ActionResult:
    message: str
    skipped: bool = False


def _notification_result(notification, label: str, target) -> ActionResult:
    if notification is None:
        return ActionResult(f"{label} not sent for {target}", skipped=True)
    return ActionResult(f"{label} {notification.status} for {target}")


def execute_action(action: DeferredAction, tasks) -> ActionResult:
    """Run one deferred action against the service layer."""
    # Imported here: the service apps import apps.core at module load
    from apps.orders import services as order_services
    from apps.orders.generator import generate_orders
    from apps.notifications import services as notification_services
    from apps.payments import services as payment_services
    from apps.subscriptions import services as subscription_services

    if isinstance(action, GenerateOrders):
        orders = generate_orders(action.subscription_id, tasks=tasks)
        return ActionResult(f"Generated {len(orders)} orders for subscription {action.subscription_id}")

    if isinstance(action, LockOrder):
        try:
            order = order_services.lock_order(action.order_id, tasks=tasks)
        except InvalidState as e:
            logger.info(f"Lock skipped for order {action.order_id}: {e.message}")
            return ActionResult(e.message, skipped=True)
        return ActionResult(f"Order {order.id} is {order.status}")

    if isinstance(action, FulfillOrder):
        # PreconditionFailed is an InvalidState
        try:
            order = order_services.fulfill_order(action.order_id, tasks=tasks)
        except InvalidState as e:
            logger.info(f"Fulfill skipped for order {action.order_id}: {e.message}")
            return ActionResult(e.message, skipped=True)
        return ActionResult(f"Order {order.id} is {order.status}")

    if isinstance(action, SendOrderReminder):
        notification = notification_services.send_order_reminder(action.order_id)
        return _notification_result(notification, "Reminder", action.order_id)

    if isinstance(action, SendOrderLocked):
        notification = notification_services.send_order_locked(action.order_id)
        return _notification_result(notification, "Lock notice", action.order_id)

    if isinstance(action, SendOrderFulfilled):
        notification = notification_services.send_order_fulfilled(action.order_id)
        return _notification_result(notification, "Fulfillment notice", action.order_id)

    if isinstance(action, SendPaymentFailed):
        notification = notification_services.send_payment_failed(action.subscription_id)
        return _notification_result(notification, "Payment failure notice", action.subscription_id)

    if isinstance(action, SendSubscriptionRenewed):
        notification = notification_services.send_subscription_renewed(action.subscription_id)
        return _notification_result(notification, "Renewal notice", action.subscription_id)

    if isinstance(action, ChargeSubscription):
        try:
            payment = payment_services.process_subscription_payment(
                subscription_id=action.subscription_id,
                payment_method_id=action.payment_method_id,
                amount=action.amount,
                tasks=tasks,
            )
        except InvalidState as e:
            logger.info(f"Charge skipped for subscription {action.subscription_id}: {e.message}")
            return ActionResult(e.message, skipped=True)
        return ActionResult(f"Payment {payment.id} {payment.status}")

    if isinstance(action, ChargeAddon):
        try:
            payment = payment_services.process_addon_payment(
                order_addon_id=action.order_addon_id,
                payment_method_id=action.payment_method_id,
                tasks=tasks,
            )
        except InvalidState as e:
            logger.info(f"Charge skipped for add-on {action.order_addon_id}: {e.message}")
            return ActionResult(e.message, skipped=True)
        return ActionResult(f"Payment {payment.id} {payment.status}")

    if isinstance(action, RefundPayment):
        payment = payment_services.process_refund(action.payment_id, amount=action.amount)
        return ActionResult(f"Payment {payment.id} {payment.status}")

    if isinstance(action, AutoEnroll):
        renewed = subscription_services.renew_subscription(action.subscription_id, tasks=tasks)
        if renewed is None:
            return ActionResult(f"Subscription {action.subscription_id} not renewed", skipped=True)
        return ActionResult(f"Subscription {action.subscription_id} renewed as {renewed.id}")

    raise TypeError(f"Unhandled deferred action: {action!r}")
