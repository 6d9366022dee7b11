"""
JWT tokens for members and farm staff.

Access tokens are short-lived and carry the user's role; refresh tokens
only identify the user. Both travel in httpOnly cookies, and API clients
may send the access token as `Authorization: Bearer <token>` instead.
Lifetimes come from JWT_ACCESS_TTL_MINUTES / JWT_REFRESH_TTL_DAYS.
"""
import jwt
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple
from uuid import UUID
from django.conf import settings

JWT_ALGORITHM = 'HS256'

ACCESS_COOKIE = 'access_token'
REFRESH_COOKIE = 'refresh_token'


def _access_ttl() -> timedelta:
    return timedelta(minutes=settings.JWT_ACCESS_TTL_MINUTES)


def _refresh_ttl() -> timedelta:
    return timedelta(days=settings.JWT_REFRESH_TTL_DAYS)


def _encode(user_id: UUID, token_type: str, ttl: timedelta, **claims) -> str:
    issued_at = datetime.now(timezone.utc)
    payload = {
        'sub': str(user_id),
        'type': token_type,
        'iat': issued_at,
        'exp': issued_at + ttl,
        **claims,
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=JWT_ALGORITHM)


def create_access_token(user_id: UUID, role: str) -> str:
    return _encode(user_id, 'access', _access_ttl(), role=role)


def create_refresh_token(user_id: UUID) -> str:
    return _encode(user_id, 'refresh', _refresh_ttl())


def create_token_pair(user_id: UUID, role: str) -> Tuple[str, str]:
    """Returns (access_token, refresh_token)."""
    return create_access_token(user_id, role), create_refresh_token(user_id)


def get_user_id_from_token(token: str, token_type: str = 'access') -> Optional[UUID]:
    """
    User id from a valid, unexpired token of the given type.

    Returns None for anything else (bad signature, expired, wrong type).
    """
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except jwt.InvalidTokenError:
        return None

    if payload.get('type') != token_type:
        return None
    try:
        return UUID(payload['sub'])
    except (KeyError, ValueError):
        return None


def set_token_cookie(response, name: str, token: str) -> None:
    """Attach a token cookie; Secure whenever DEBUG is off."""
    ttl = _access_ttl() if name == ACCESS_COOKIE else _refresh_ttl()
    response.set_cookie(
        name,
        token,
        max_age=int(ttl.total_seconds()),
        httponly=True,
        secure=not settings.DEBUG,
        samesite='Lax',
        path='/',
    )


def clear_token_cookies(response) -> None:
    response.delete_cookie(ACCESS_COOKIE, path='/')
    response.delete_cookie(REFRESH_COOKIE, path='/')


def get_token_from_request(request) -> Optional[str]:
    """
    Access token from the `access_token` cookie, or an
    `Authorization: Bearer <token>` header for API clients.
    """
    token = request.COOKIES.get(ACCESS_COOKIE)
    if token:
        return token
    header = request.headers.get('Authorization', '')
    scheme, _, value = header.partition(' ')
    if scheme.lower() == 'bearer' and value:
        return value.strip()
    return None
