"""
CSA catalog: box sizes, fulfillment options, payment intervals and add-ons.

Static configuration read by subscription purchase and the order generator.
A deployment can replace the whole catalog with settings.CSA_CATALOG
(a Catalog instance with the same shape as DEFAULT_CATALOG).

Day-of-week numbering is 0-6 starting on Sunday.
"""
from dataclasses import dataclass
from datetime import time
from decimal import Decimal
from typing import Optional, Tuple

from django.conf import settings

from apps.core.errors import (
    InvalidFulfillmentType, NoSchedulesAvailable, ValidationFailed,
)

CENT = Decimal('0.01')


@dataclass(frozen=True)
class BoxSize:
    size: str
    name: str
    description: str
    price: Decimal


@dataclass(frozen=True)
class FulfillmentSchedule:
    fulfillment_type: str
    day_of_week: int
    fulfillment_time: time
    cutoff_hours_before: int
    active: bool = True


@dataclass(frozen=True)
class FulfillmentOption:
    type: str
    name: str
    description: str
    schedules: Tuple[FulfillmentSchedule, ...]

    @property
    def active_schedules(self) -> Tuple[FulfillmentSchedule, ...]:
        return tuple(s for s in self.schedules if s.active)


@dataclass(frozen=True)
class PaymentInterval:
    weeks: int
    name: str
    description: str
    discount: Decimal


@dataclass(frozen=True)
class Addon:
    """An extra item a member can add to a single week's order."""
    addon_id: str
    name: str
    description: str
    price: Decimal
    available: bool = True


@dataclass(frozen=True)
class Catalog:
    box_sizes: Tuple[BoxSize, ...]
    fulfillment_options: Tuple[FulfillmentOption, ...]
    payment_intervals: Tuple[PaymentInterval, ...]
    addons: Tuple[Addon, ...] = ()


DEFAULT_CATALOG = Catalog(
    box_sizes=(
        BoxSize('small', 'Small Box', 'Perfect for 1-2 people', Decimal('25.00')),
        BoxSize('large', 'Large Box', 'Perfect for 3-4 people', Decimal('40.00')),
    ),
    fulfillment_options=(
        FulfillmentOption(
            type='delivery',
            name='Home Delivery',
            description='Delivered to your door',
            schedules=(
                FulfillmentSchedule('delivery', 3, time(10, 0), 48),  # Wednesday
                FulfillmentSchedule('delivery', 6, time(10, 0), 48),  # Saturday
            ),
        ),
        FulfillmentOption(
            type='pickup',
            name='Farm Pickup',
            description='Pick up at the farm',
            schedules=(
                FulfillmentSchedule('pickup', 2, time(14, 0), 24),  # Tuesday
                FulfillmentSchedule('pickup', 5, time(14, 0), 24),  # Friday
            ),
        ),
    ),
    payment_intervals=(
        PaymentInterval(4, '4 Week Plan', 'Monthly payment', Decimal('0')),
        PaymentInterval(8, '8 Week Plan', 'Bi-monthly payment', Decimal('0.05')),
        PaymentInterval(12, '12 Week Plan', 'Quarterly payment', Decimal('0.10')),
    ),
    addons=(
        Addon('eggs', 'Farm Eggs', 'One dozen pasture-raised eggs', Decimal('6.00')),
        Addon('honey', 'Wildflower Honey', '12 oz jar', Decimal('9.50')),
        Addon('bread', 'Sourdough Loaf', 'Baked the morning of fulfillment', Decimal('7.00')),
        Addon('flowers', 'Cut Flowers', 'Seasonal bouquet', Decimal('15.00'), available=False),
    ),
)


def get_catalog() -> Catalog:
    """Active catalog: settings.CSA_CATALOG if set, else the defaults."""
    return getattr(settings, 'CSA_CATALOG', None) or DEFAULT_CATALOG


def get_box_size(size: str, catalog: Optional[Catalog] = None) -> BoxSize:
    catalog = catalog or get_catalog()
    for box in catalog.box_sizes:
        if box.size == size:
            return box
    raise ValidationFailed(f"Invalid box size: {size}")


def get_payment_interval(weeks: int, catalog: Optional[Catalog] = None) -> PaymentInterval:
    catalog = catalog or get_catalog()
    for interval in catalog.payment_intervals:
        if interval.weeks == weeks:
            return interval
    raise ValidationFailed(f"Invalid payment interval: {weeks}")


def get_fulfillment_option(
    fulfillment_type: str,
    catalog: Optional[Catalog] = None,
) -> FulfillmentOption:
    """Raises InvalidFulfillmentType when no option matches."""
    catalog = catalog or get_catalog()
    for option in catalog.fulfillment_options:
        if option.type == fulfillment_type:
            return option
    raise InvalidFulfillmentType(fulfillment_type)


def get_fulfillment_schedule(
    fulfillment_type: str,
    catalog: Optional[Catalog] = None,
) -> FulfillmentSchedule:
    """
    Schedule used for order generation.

    When a fulfillment type has several active rows the first one wins.
    Raises InvalidFulfillmentType or NoSchedulesAvailable.
    """
    option = get_fulfillment_option(fulfillment_type, catalog)
    schedules = option.active_schedules
    if not schedules:
        raise NoSchedulesAvailable(fulfillment_type)
    return schedules[0]


def get_addon(addon_id: str, catalog: Optional[Catalog] = None) -> Addon:
    """Raises ValidationFailed for unknown or unavailable add-ons."""
    catalog = catalog or get_catalog()
    for addon in catalog.addons:
        if addon.addon_id == addon_id:
            if not addon.available:
                raise ValidationFailed(f"Add-on is not available: {addon_id}")
            return addon
    raise ValidationFailed(f"Invalid add-on: {addon_id}")


def calculate_box_price(size: str, weeks: int, catalog: Optional[Catalog] = None) -> Decimal:
    """Per-box price after the payment-interval discount, rounded to cents."""
    box = get_box_size(size, catalog)
    interval = get_payment_interval(weeks, catalog)
    return (box.price * (Decimal('1') - interval.discount)).quantize(CENT)
