"""
API Router for Catalog app.
Read-only, public endpoints describing what can be purchased.
"""
from typing import List
from ninja import Router
from django.http import HttpRequest

from .catalog import (
    calculate_box_price, get_box_size, get_catalog, get_payment_interval,
)
from .schemas import (
    AddonOut, BoxSizeOut, CatalogOut, FulfillmentOptionOut, FulfillmentScheduleOut,
    PaymentIntervalOut, PriceQuoteOut,
)

router = Router(tags=["Catalog"])


def _available_addons(catalog) -> List[AddonOut]:
    return [
        AddonOut(addon_id=a.addon_id, name=a.name, description=a.description, price=a.price)
        for a in catalog.addons if a.available
    ]


def _option_out(option) -> FulfillmentOptionOut:
    return FulfillmentOptionOut(
        type=option.type,
        name=option.name,
        description=option.description,
        schedules=[
            FulfillmentScheduleOut(
                day_of_week=s.day_of_week,
                fulfillment_time=s.fulfillment_time,
                cutoff_hours_before=s.cutoff_hours_before,
            )
            for s in option.active_schedules
        ],
    )


@router.get("/", response=CatalogOut, auth=None)
def get_full_catalog(request: HttpRequest):
    """Everything a customer chooses from when subscribing."""
    catalog = get_catalog()
    return CatalogOut(
        box_sizes=[BoxSizeOut(**vars(b)) for b in catalog.box_sizes],
        fulfillment_options=[_option_out(o) for o in catalog.fulfillment_options],
        payment_intervals=[PaymentIntervalOut(**vars(i)) for i in catalog.payment_intervals],
        addons=_available_addons(catalog),
    )


@router.get("/box-sizes", response=List[BoxSizeOut], auth=None)
def list_box_sizes(request: HttpRequest):
    return [BoxSizeOut(**vars(b)) for b in get_catalog().box_sizes]


@router.get("/fulfillment-options", response=List[FulfillmentOptionOut], auth=None)
def list_fulfillment_options(request: HttpRequest):
    return [_option_out(o) for o in get_catalog().fulfillment_options]


@router.get("/payment-intervals", response=List[PaymentIntervalOut], auth=None)
def list_payment_intervals(request: HttpRequest):
    return [PaymentIntervalOut(**vars(i)) for i in get_catalog().payment_intervals]


@router.get("/addons", response=List[AddonOut], auth=None)
def list_addons(request: HttpRequest):
    """Add-ons that can currently be ordered."""
    return _available_addons(get_catalog())


@router.get("/quote", response=PriceQuoteOut, auth=None)
def quote(request: HttpRequest, box_size: str, payment_interval: int):
    """
    Preview the price of a subscription before purchase.
    Unknown box sizes or intervals return 400.
    """
    box = get_box_size(box_size)
    interval = get_payment_interval(payment_interval)
    box_price = calculate_box_price(box_size, payment_interval)
    return PriceQuoteOut(
        box_size=box.size,
        payment_interval=interval.weeks,
        base_price=box.price,
        discount=interval.discount,
        box_price=box_price,
        total_orders=interval.weeks,
        total_amount=box_price * interval.weeks,
    )
