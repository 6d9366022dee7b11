"""
Cutoff scheduling for generated orders.

Each order gets two keyed deferred actions:
    reminder-<order_id>  at cutoff - 24h  -> SendOrderReminder
    lock-<order_id>      at cutoff        -> LockOrder

Keys make registration idempotent. Trigger times already in the past are
skipped. Scheduling is fire-and-forget: a backend error is logged and
never propagates into order creation.
"""
import logging
from datetime import datetime, timedelta
from typing import List, Optional

from apps.core.actions import LockOrder, SendOrderReminder

logger = logging.getLogger(__name__)

REMINDER_LEAD = timedelta(hours=24)


def reminder_key(order_id) -> str:
    return f"reminder-{order_id}"


def lock_key(order_id) -> str:
    return f"lock-{order_id}"


def schedule_cutoff_actions(order, tasks, now: Optional[datetime] = None) -> List[str]:
    """
    Register the reminder and lock actions for one order.

    Returns the keys that are registered (newly or previously).
    """
    plan = [
        (reminder_key(order.id), order.cutoff_datetime - REMINDER_LEAD, SendOrderReminder(order_id=order.id)),
        (lock_key(order.id), order.cutoff_datetime, LockOrder(order_id=order.id)),
    ]

    registered = []
    for key, run_at, action in plan:
        try:
            scheduled = tasks.schedule(key, run_at, action, now=now)
        except Exception as e:
            logger.error(f"Failed to schedule {key} for order {order.id}: {e}")
            continue
        if scheduled is not None:
            registered.append(key)
    return registered
