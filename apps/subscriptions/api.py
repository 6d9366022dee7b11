"""
API Router for Subscriptions app.
Customers purchase, view and cancel their own subscriptions.
"""
from typing import List, Optional
from uuid import UUID
from ninja import Router
from django.http import HttpRequest

from apps.core.task_service import get_task_registry
from apps.identity.decorators import require_auth
from apps.identity.permissions import Permissions, get_user_permissions
from apps.orders.schemas import OrderOut
from apps.orders.services import list_subscription_orders
from .schemas import SubscriptionIn, SubscriptionOut
from . import services

router = Router(tags=["Subscriptions"])


def _subscription_out(dto) -> SubscriptionOut:
    return SubscriptionOut(**vars(dto))


def _requester_scope(user) -> Optional[UUID]:
    """Ownership check applies unless the user can view every subscription."""
    if Permissions.SUBSCRIPTIONS_VIEW_ALL in get_user_permissions(user):
        return None
    return user.id


@router.post("/", response={201: SubscriptionOut}, auth=None)
def create_subscription(request: HttpRequest, payload: SubscriptionIn):
    """
    Purchase a subscription.
    Orders for the whole term are generated in the background.
    """
    user = require_auth(request)
    dto = services.create_subscription(
        user_id=user.id,
        box_size=payload.box_size,
        fulfillment_type=payload.fulfillment_type,
        payment_interval=payload.payment_interval,
        tasks=get_task_registry(),
        payment_method_id=payload.payment_method_id,
        period_start=payload.period_start,
    )
    return 201, _subscription_out(dto)


@router.get("/", response=List[SubscriptionOut], auth=None)
def list_my_subscriptions(request: HttpRequest, status: Optional[str] = None):
    user = require_auth(request)
    return [_subscription_out(s) for s in services.list_user_subscriptions(user.id, status=status)]


@router.get("/{subscription_id}", response=SubscriptionOut, auth=None)
def get_subscription(request: HttpRequest, subscription_id: UUID):
    user = require_auth(request)
    dto = services.get_subscription(subscription_id, requester_id=_requester_scope(user))
    return _subscription_out(dto)


@router.post("/{subscription_id}/cancel", response=SubscriptionOut, auth=None)
def cancel_subscription(request: HttpRequest, subscription_id: UUID):
    """Cancel a subscription and its open orders; unused boxes are refunded."""
    user = require_auth(request)
    dto = services.cancel_subscription(subscription_id, requester_id=user.id, tasks=get_task_registry())
    return _subscription_out(dto)


@router.get("/{subscription_id}/orders", response=List[OrderOut], auth=None)
def list_orders(request: HttpRequest, subscription_id: UUID):
    """All orders of a subscription, in week order."""
    user = require_auth(request)
    services.get_subscription(subscription_id, requester_id=_requester_scope(user))
    return [OrderOut.from_dto(o) for o in list_subscription_orders(subscription_id)]
