"""
Order generation.

A subscription buys `total_orders` weekly boxes upfront. For week N the
fulfillment date is the first day on or after period_start + N weeks that
falls on the schedule's day of week (always searching forward). The
cutoff is the fulfillment date/time minus the schedule's lead hours.

Dates and times are read in the farm's local TIME_ZONE.
"""
import logging
from datetime import date, datetime, timedelta
from typing import List, Optional
from uuid import UUID

from django.db import transaction
from django.utils import timezone

from apps.catalog.catalog import Catalog, FulfillmentSchedule, get_fulfillment_schedule
from apps.core.errors import NotFound
from apps.subscriptions.models import Subscription, SubscriptionStatus
from .dtos import OrderDTO
from .models import Order, OrderStatus
from .scheduler import schedule_cutoff_actions
from .services import to_order_dto

logger = logging.getLogger(__name__)


def day_of_week(d: date) -> int:
    """Day of week with 0 = Sunday, matching the catalog's numbering."""
    return (d.weekday() + 1) % 7


def next_weekday_on_or_after(start: date, target_day: int) -> date:
    """First date on or after `start` that falls on `target_day` (0 = Sunday)."""
    offset = (target_day - day_of_week(start) + 7) % 7
    return start + timedelta(days=offset)


def compute_fulfillment_slots(period_start: datetime, weeks: int, schedule: FulfillmentSchedule):
    """
    Yield (sequence, fulfillment_date, cutoff_datetime) for each week of a term.
    """
    start_date = timezone.localtime(period_start).date()
    lead = timedelta(hours=schedule.cutoff_hours_before)

    for week in range(weeks):
        fulfillment_date = next_weekday_on_or_after(start_date + timedelta(weeks=week), schedule.day_of_week)
        fulfillment_at = timezone.make_aware(datetime.combine(fulfillment_date, schedule.fulfillment_time))
        yield week, fulfillment_date, fulfillment_at - lead


def generate_orders(
    subscription_id: UUID,
    tasks,
    catalog: Optional[Catalog] = None,
    now: Optional[datetime] = None,
) -> List[OrderDTO]:
    """
    Create every order of a subscription's term and schedule their cutoffs.

    Running it again for the same subscription creates nothing new: the
    existing orders are returned and their cutoff actions re-registered
    (registration is idempotent per key).

    Raises:
        NotFound: unknown subscription
        InvalidFulfillmentType: no catalog entry for the fulfillment type
        NoSchedulesAvailable: the catalog entry has no active schedule
    """
    try:
        subscription = Subscription.objects.get(id=subscription_id)
    except Subscription.DoesNotExist:
        raise NotFound("Subscription", subscription_id)

    existing = list(Order.objects.filter(subscription_id=subscription_id).order_by('sequence'))
    if existing:
        logger.info(f"Orders already generated for subscription {subscription_id}")
        orders = existing
    elif subscription.status == SubscriptionStatus.CANCELLED:
        logger.info(f"Subscription {subscription_id} is cancelled, no orders generated")
        return []
    else:
        schedule = get_fulfillment_schedule(subscription.fulfillment_type, catalog)
        orders = [
            Order(
                subscription_id=subscription.id,
                user_id=subscription.user_id,
                sequence=sequence,
                fulfillment_date=fulfillment_date,
                fulfillment_time=schedule.fulfillment_time,
                cutoff_datetime=cutoff,
                status=OrderStatus.PENDING,
                total_amount=subscription.box_price,
            )
            for sequence, fulfillment_date, cutoff in compute_fulfillment_slots(
                subscription.period_start, subscription.total_orders, schedule
            )
        ]
        with transaction.atomic():
            Order.objects.bulk_create(orders)
        logger.info(f"Generated {len(orders)} orders for subscription {subscription_id}")

    for order in orders:
        if order.status == OrderStatus.PENDING:
            schedule_cutoff_actions(order, tasks, now=now)

    return [to_order_dto(o) for o in orders]
