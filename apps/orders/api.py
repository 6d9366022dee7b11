"""
API Router for Orders app.
Customers view, annotate and cancel their own orders; staff lock and
fulfill orders and see what is coming due.
"""
from typing import List, Optional
from uuid import UUID
from ninja import Router
from django.http import HttpRequest

from apps.core.task_service import get_task_registry
from apps.identity.decorators import has_permission, require_auth
from apps.identity.permissions import Permissions, get_user_permissions
from .schemas import OrderAddonIn, OrderAddonOut, OrderNotesIn, OrderOut
from . import services

router = Router(tags=["Orders"])


# =============================================================================
# Customer Endpoints
# =============================================================================

@router.get("/", response=List[OrderOut], auth=None)
def list_my_orders(
    request: HttpRequest,
    status: Optional[str] = None,
    limit: int = 20,
    offset: int = 0,
):
    user = require_auth(request)
    orders = services.list_user_orders(user.id, status=status, limit=limit, offset=offset)
    return [OrderOut.from_dto(o) for o in orders]


# Declared before /{order_id} so the literal paths win
@router.get("/due/reminders", response=List[OrderOut], auth=None)
@has_permission(Permissions.ORDERS_VIEW_ALL)
def due_for_reminder(request: HttpRequest):
    """Pending orders whose cutoff is within the next 24 hours."""
    return [OrderOut.from_dto(o) for o in services.get_orders_due_for_reminder()]


@router.get("/due/locking", response=List[OrderOut], auth=None)
@has_permission(Permissions.ORDERS_VIEW_ALL)
def due_for_locking(request: HttpRequest):
    """Pending orders already past their cutoff."""
    return [OrderOut.from_dto(o) for o in services.get_orders_due_for_locking()]


@router.get("/{order_id}", response=OrderOut, auth=None)
def get_order(request: HttpRequest, order_id: UUID):
    user = require_auth(request)
    requester_id = None if Permissions.ORDERS_VIEW_ALL in get_user_permissions(user) else user.id
    return OrderOut.from_dto(services.get_order(order_id, requester_id=requester_id))


@router.patch("/{order_id}", response=OrderOut, auth=None)
def update_notes(request: HttpRequest, order_id: UUID, payload: OrderNotesIn):
    """Edit order notes. Only allowed while the order is pending and before cutoff."""
    user = require_auth(request)
    return OrderOut.from_dto(services.update_order_notes(order_id, user.id, payload.notes))


@router.post("/{order_id}/cancel", response=OrderOut, auth=None)
def cancel_order(request: HttpRequest, order_id: UUID):
    """Cancel an order. Paid add-ons on it are refunded."""
    user = require_auth(request)
    return OrderOut.from_dto(services.cancel_order(order_id, user.id, tasks=get_task_registry()))


@router.get("/{order_id}/addons", response=List[OrderAddonOut], auth=None)
def list_addons(request: HttpRequest, order_id: UUID):
    user = require_auth(request)
    requester_id = None if Permissions.ORDERS_VIEW_ALL in get_user_permissions(user) else user.id
    return [OrderAddonOut(**vars(a)) for a in services.list_order_addons(order_id, requester_id=requester_id)]


@router.post("/{order_id}/addons", response={201: OrderAddonOut}, auth=None)
def add_addon(request: HttpRequest, order_id: UUID, payload: OrderAddonIn):
    """Add an add-on to a pending order before cutoff. It is charged separately."""
    user = require_auth(request)
    line = services.add_order_addon(
        order_id,
        user.id,
        addon_id=payload.addon_id,
        quantity=payload.quantity,
        payment_method_id=payload.payment_method_id,
        tasks=get_task_registry(),
    )
    return 201, OrderAddonOut(**vars(line))


# =============================================================================
# Staff Endpoints
# =============================================================================

@router.post("/{order_id}/lock", response=OrderOut, auth=None)
@has_permission(Permissions.ORDERS_MANAGE)
def lock_order(request: HttpRequest, order_id: UUID):
    """Lock an order ahead of its cutoff. Locking a locked order is a no-op."""
    return OrderOut.from_dto(services.lock_order(order_id, tasks=get_task_registry()))


@router.post("/{order_id}/fulfill", response=OrderOut, auth=None)
@has_permission(Permissions.ORDERS_MANAGE)
def fulfill_order(request: HttpRequest, order_id: UUID):
    """Mark a locked order as fulfilled."""
    return OrderOut.from_dto(services.fulfill_order(order_id, tasks=get_task_registry()))
