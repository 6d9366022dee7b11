"""
API Schemas for Catalog app.
"""
from typing import List
from decimal import Decimal
from datetime import time
from ninja import Schema


class BoxSizeOut(Schema):
    size: str
    name: str
    description: str
    price: Decimal


class FulfillmentScheduleOut(Schema):
    day_of_week: int
    fulfillment_time: time
    cutoff_hours_before: int


class FulfillmentOptionOut(Schema):
    type: str
    name: str
    description: str
    schedules: List[FulfillmentScheduleOut]


class PaymentIntervalOut(Schema):
    weeks: int
    name: str
    description: str
    discount: Decimal


class AddonOut(Schema):
    addon_id: str
    name: str
    description: str
    price: Decimal


class CatalogOut(Schema):
    box_sizes: List[BoxSizeOut]
    fulfillment_options: List[FulfillmentOptionOut]
    payment_intervals: List[PaymentIntervalOut]
    addons: List[AddonOut]


class PriceQuoteOut(Schema):
    """Price breakdown for a box size / payment interval pair."""
    box_size: str
    payment_interval: int
    base_price: Decimal
    discount: Decimal
    box_price: Decimal
    total_orders: int
    total_amount: Decimal
