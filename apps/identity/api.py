"""
Identity API: member accounts and sessions.

Sign-in sets the access and refresh tokens as httpOnly cookies. The access
token is echoed in the body so scripts and staff tools can send it as a
bearer token instead. Register and login are rate limited per client IP
(AUTH_THROTTLE_RATE) and answer 429 once the limit is hit.
"""
from typing import Optional
from ninja import Router, Schema
from django.conf import settings
from django.http import HttpRequest, HttpResponse
from ninja.errors import HttpError
from ninja.throttling import AnonRateThrottle

from .models import User
from .dtos import UserDTO, UserCreate, UserUpdate
from .services import authenticate_user, get_user_dto, register_user, to_user_dto, update_user
from .decorators import require_auth
from .jwt_auth import (
    ACCESS_COOKIE,
    REFRESH_COOKIE,
    clear_token_cookies,
    create_access_token,
    create_token_pair,
    get_user_id_from_token,
    set_token_cookie,
)

router = Router(tags=["Identity"])


class SignInThrottle(AnonRateThrottle):
    """Per-IP limit on register and login, counted separately from other anonymous traffic."""
    scope = "sign_in"


sign_in_throttle = SignInThrottle(settings.AUTH_THROTTLE_RATE)


class LoginIn(Schema):
    email: str
    password: str


class SessionOut(Schema):
    success: bool
    user: Optional[UserDTO] = None
    access_token: Optional[str] = None
    message: Optional[str] = None


def _json(body: SessionOut, status: int = 200) -> HttpResponse:
    # Built by hand so cookies can be attached to the response
    return HttpResponse(body.model_dump_json(), content_type='application/json', status=status)


def _signed_in(user: User, status: int = 200) -> HttpResponse:
    access, refresh = create_token_pair(user.id, user.role)
    response = _json(SessionOut(success=True, user=to_user_dto(user), access_token=access), status)
    set_token_cookie(response, ACCESS_COOKIE, access)
    set_token_cookie(response, REFRESH_COOKIE, refresh)
    return response


# =============================================================================
# Sessions
# =============================================================================

@router.post("/register", response={201: SessionOut}, auth=None, throttle=sign_in_throttle)
def register(request: HttpRequest, payload: UserCreate):
    """Create a member account and sign it in."""
    created = register_user(payload)
    return _signed_in(User.objects.get(id=created.id), status=201)


@router.post("/login", response=SessionOut, auth=None, throttle=sign_in_throttle)
def login(request: HttpRequest, payload: LoginIn):
    user = authenticate_user(payload.email, payload.password)
    if user is None:
        raise HttpError(401, "Invalid email or password")
    return _signed_in(user)


@router.post("/logout", response=SessionOut, auth=None)
def logout(request: HttpRequest):
    response = _json(SessionOut(success=True, message="Logged out"))
    clear_token_cookies(response)
    return response


@router.post("/refresh", response=SessionOut, auth=None)
def refresh(request: HttpRequest):
    """Issue a new access token from the refresh token cookie."""
    token = request.COOKIES.get(REFRESH_COOKIE)
    user_id = get_user_id_from_token(token, token_type='refresh') if token else None
    user = User.objects.filter(id=user_id, is_active=True).first() if user_id else None
    if user is None:
        raise HttpError(401, "Invalid refresh token")

    access = create_access_token(user.id, user.role)
    response = _json(SessionOut(success=True, user=to_user_dto(user), access_token=access))
    set_token_cookie(response, ACCESS_COOKIE, access)
    return response


# =============================================================================
# Profile
# =============================================================================

@router.get("/me", response=UserDTO, auth=None)
def get_me(request: HttpRequest):
    user = require_auth(request)
    profile = get_user_dto(user.id)
    if profile is None:
        raise HttpError(404, "User not found")
    return profile


@router.patch("/me", response=UserDTO, auth=None)
def update_me(request: HttpRequest, payload: UserUpdate):
    """Update name, phone or address. A phone number turns on SMS notifications."""
    user = require_auth(request)
    return update_user(user.id, payload.model_dump(exclude_unset=True))
