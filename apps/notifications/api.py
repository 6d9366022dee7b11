"""
API Router for Notifications app.
"""
from typing import List
from uuid import UUID
from ninja import Router
from django.http import HttpRequest

from apps.identity.decorators import require_auth
from .schemas import NotificationOut
from . import services

router = Router(tags=["Notifications"])


def _out(dto) -> NotificationOut:
    data = vars(dto).copy()
    data.pop('user_id')
    return NotificationOut(**data)


@router.get("/", response=List[NotificationOut], auth=None)
def list_notifications(request: HttpRequest, unread_only: bool = False, limit: int = 50):
    user = require_auth(request)
    return [_out(n) for n in services.list_user_notifications(user.id, unread_only=unread_only, limit=limit)]


@router.post("/{notification_id}/read", response=NotificationOut, auth=None)
def mark_read(request: HttpRequest, notification_id: UUID):
    user = require_auth(request)
    return _out(services.mark_read(notification_id, requester_id=user.id))
