from typing import List, Dict
from .models import UserRole, User

# Define all available permissions here for reference
class Permissions:
    # Orders
    ORDERS_VIEW_ALL = "orders.view_all"
    ORDERS_MANAGE = "orders.manage"  # lock, fulfill

    # Subscriptions
    SUBSCRIPTIONS_VIEW_ALL = "subscriptions.view_all"

    # Identity
    IDENTITY_VIEW_USER = "identity.view_user"
    IDENTITY_MANAGE_USER = "identity.manage_user"


# Static Role -> Permission Mapping
ROLE_PERMISSIONS: Dict[str, List[str]] = {
    UserRole.ADMIN: [
        Permissions.ORDERS_VIEW_ALL,
        Permissions.ORDERS_MANAGE,
        Permissions.SUBSCRIPTIONS_VIEW_ALL,
        Permissions.IDENTITY_VIEW_USER,
        Permissions.IDENTITY_MANAGE_USER,
    ],
    UserRole.STAFF: [
        # Runs the weekly pack: can lock and fulfill, not manage users
        Permissions.ORDERS_VIEW_ALL,
        Permissions.ORDERS_MANAGE,
        Permissions.SUBSCRIPTIONS_VIEW_ALL,
        Permissions.IDENTITY_VIEW_USER,
    ],
    UserRole.CUSTOMER: [
        # Own subscriptions/orders only, enforced at the service level
    ],
}

def get_user_permissions(user: User) -> List[str]:
    """
    Returns a list of permission strings for the given user based on their role.
    """
    if not user or not user.is_active:
        return []

    return ROLE_PERMISSIONS.get(user.role, [])
