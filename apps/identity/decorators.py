"""
Request authentication helpers for Ninja endpoints.

Endpoints are declared with auth=None and resolve the user from the JWT
access token themselves, so the same view works with cookies (browser)
and bearer tokens (API clients).
"""
from functools import wraps
from typing import Callable, Optional
from ninja.errors import HttpError
from django.http import HttpRequest

from .jwt_auth import get_token_from_request, get_user_id_from_token
from .models import User
from .permissions import get_user_permissions


def get_current_user(request: HttpRequest) -> Optional[User]:
    """
    Extract and validate user from the JWT access token.

    Returns User object if valid token, None otherwise.
    """
    token = get_token_from_request(request)
    if not token:
        return None

    user_id = get_user_id_from_token(token)
    if not user_id:
        return None

    try:
        return User.objects.get(id=user_id, is_active=True)
    except User.DoesNotExist:
        return None


def require_auth(request: HttpRequest) -> User:
    """
    Require authentication. Raises 401 if not authenticated.
    """
    user = get_current_user(request)
    if not user:
        raise HttpError(401, "Authentication required")
    return user


def has_permission(required_perm: str):
    """
    Decorator to enforce a specific permission on a Django Ninja endpoint.

    The authenticated user is stored on request.auth_user.

    Usage:
        @router.post("/{order_id}/lock", auth=None)
        @has_permission(Permissions.ORDERS_MANAGE)
        def lock(request, order_id: UUID):
            ...
    """
    def decorator(view_func: Callable):
        @wraps(view_func)
        def wrapper(request: HttpRequest, *args, **kwargs):
            user = require_auth(request)

            perms = get_user_permissions(user)
            if required_perm not in perms:
                raise HttpError(403, "Permission denied")

            request.auth_user = user
            return view_func(request, *args, **kwargs)
        return wrapper
    return decorator
