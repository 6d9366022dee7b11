"""
Deferred action payloads.

Every unit of background work is one of the frozen dataclasses below.
Each class names its `kind` (the wire tag) and the `queue` it runs on, so a
payload always carries enough information to be routed and dispatched
without inspecting loose dictionaries.

Usage:
    from apps.core.actions import LockOrder, to_payload, action_from_payload

    payload = to_payload(LockOrder(order_id=order.id))
    action = action_from_payload(payload)  # -> LockOrder(order_id=UUID(...))
"""
from dataclasses import dataclass, fields
from decimal import Decimal
from typing import Any, ClassVar, Dict, Optional, Union, get_args
from uuid import UUID


class Queue:
    """Queue names. Concurrency per queue lives in settings.CSA_QUEUES."""
    ORDERS = "orders"
    NOTIFICATIONS = "notifications"
    PAYMENTS = "payments"
    SUBSCRIPTIONS = "subscriptions"


# =============================================================================
# Order actions
# =============================================================================

@dataclass(frozen=True)
class GenerateOrders:
    kind: ClassVar[str] = "generate_orders"
    queue: ClassVar[str] = Queue.ORDERS
    subscription_id: UUID


@dataclass(frozen=True)
class LockOrder:
    kind: ClassVar[str] = "lock_order"
    queue: ClassVar[str] = Queue.ORDERS
    order_id: UUID


@dataclass(frozen=True)
class FulfillOrder:
    kind: ClassVar[str] = "fulfill_order"
    queue: ClassVar[str] = Queue.ORDERS
    order_id: UUID


# =============================================================================
# Notification actions
# =============================================================================

@dataclass(frozen=True)
class SendOrderReminder:
    kind: ClassVar[str] = "send_order_reminder"
    queue: ClassVar[str] = Queue.NOTIFICATIONS
    order_id: UUID


@dataclass(frozen=True)
class SendOrderLocked:
    kind: ClassVar[str] = "send_order_locked"
    queue: ClassVar[str] = Queue.NOTIFICATIONS
    order_id: UUID


@dataclass(frozen=True)
class SendOrderFulfilled:
    kind: ClassVar[str] = "send_order_fulfilled"
    queue: ClassVar[str] = Queue.NOTIFICATIONS
    order_id: UUID


@dataclass(frozen=True)
class SendPaymentFailed:
    kind: ClassVar[str] = "send_payment_failed"
    queue: ClassVar[str] = Queue.NOTIFICATIONS
    subscription_id: UUID


@dataclass(frozen=True)
class SendSubscriptionRenewed:
    kind: ClassVar[str] = "send_subscription_renewed"
    queue: ClassVar[str] = Queue.NOTIFICATIONS
    subscription_id: UUID


# =============================================================================
# Payment actions
# =============================================================================

@dataclass(frozen=True)
class ChargeSubscription:
    kind: ClassVar[str] = "charge_subscription"
    queue: ClassVar[str] = Queue.PAYMENTS
    subscription_id: UUID
    payment_method_id: str
    amount: Decimal


@dataclass(frozen=True)
class ChargeAddon:
    kind: ClassVar[str] = "charge_addon"
    queue: ClassVar[str] = Queue.PAYMENTS
    order_addon_id: UUID
    payment_method_id: str


@dataclass(frozen=True)
class RefundPayment:
    kind: ClassVar[str] = "refund_payment"
    queue: ClassVar[str] = Queue.PAYMENTS
    payment_id: UUID
    amount: Optional[Decimal] = None


# =============================================================================
# Subscription actions
# =============================================================================

@dataclass(frozen=True)
class AutoEnroll:
    kind: ClassVar[str] = "auto_enroll"
    queue: ClassVar[str] = Queue.SUBSCRIPTIONS
    subscription_id: UUID


DeferredAction = Union[
    GenerateOrders, LockOrder, FulfillOrder,
    SendOrderReminder, SendOrderLocked, SendOrderFulfilled,
    SendPaymentFailed, SendSubscriptionRenewed,
    ChargeSubscription, ChargeAddon, RefundPayment,
    AutoEnroll,
]

ACTION_TYPES: Dict[str, type] = {cls.kind: cls for cls in get_args(DeferredAction)}


# =============================================================================
# Serialization
# =============================================================================

def to_payload(action: DeferredAction) -> Dict[str, Any]:
    """Serialize an action to a JSON-safe dict tagged with its kind."""
    payload: Dict[str, Any] = {"kind": action.kind}
    for f in fields(action):
        value = getattr(action, f.name)
        payload[f.name] = None if value is None else str(value)
    return payload


def _coerce(field_type, value):
    if value is None:
        return None
    # Optional[X] -> X
    args = [a for a in get_args(field_type) if a is not type(None)]
    target = args[0] if args else field_type
    return target(value)


def action_from_payload(payload: Dict[str, Any]) -> DeferredAction:
    """Rebuild an action from its payload. Raises ValueError on an unknown kind."""
    kind = payload.get("kind")
    cls = ACTION_TYPES.get(kind)
    if cls is None:
        raise ValueError(f"Unknown deferred action kind: {kind}")
    kwargs = {f.name: _coerce(f.type, payload.get(f.name)) for f in fields(cls)}
    return cls(**kwargs)
