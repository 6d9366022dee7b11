"""Services for Identity app."""
from typing import Optional

from apps.core.errors import ValidationFailed
from .models import User, UserRole
from .dtos import UserDTO, UserCreate
from .permissions import get_user_permissions


def to_user_dto(user: User) -> UserDTO:
    return UserDTO(
        id=user.id,
        email=user.email,
        name=user.name,
        role=user.role,
        phone=user.phone,
        address=user.address,
        is_active=user.is_active,
        permissions=get_user_permissions(user),
    )


def get_user_dto(user_id) -> Optional[UserDTO]:
    try:
        return to_user_dto(User.objects.get(id=user_id))
    except User.DoesNotExist:
        return None


def register_user(payload: UserCreate, role: str = UserRole.CUSTOMER) -> UserDTO:
    """Create a member account. Email is normalized and must be unique."""
    email = User.objects.normalize_email(payload.email).lower()
    if User.objects.filter(email__iexact=email).exists():
        raise ValidationFailed("An account with this email already exists")
    if len(payload.password) < 8:
        raise ValidationFailed("Password must be at least 8 characters")

    user = User.objects.create_user(
        username=email,
        email=email,
        password=payload.password,
        name=payload.name,
        phone=payload.phone or "",
        address=payload.address or "",
        role=role,
        is_active=True
    )
    return to_user_dto(user)


def authenticate_user(email: str, password: str) -> Optional[User]:
    """Return the active user for these credentials, or None."""
    user = User.objects.filter(email__iexact=email.strip()).first()
    if user is None or not user.is_active or not user.check_password(password):
        return None
    return user


def update_user(user_id, data: dict) -> Optional[UserDTO]:
    try:
        user = User.objects.get(id=user_id)
    except User.DoesNotExist:
        return None

    for key, value in data.items():
        if value is not None:
            setattr(user, key, value)

    user.save()
    return to_user_dto(user)
