"""
URL configuration for the CSA project.
"""
from django.contrib import admin
from django.urls import path
from ninja import NinjaAPI

from apps.core.errors import CSAError

api = NinjaAPI(
    title="CSA API",
    version="1.0.0",
    description="Farm-share subscriptions, weekly orders and cutoffs",
    docs_url="/docs",
)


@api.exception_handler(CSAError)
def csa_error_handler(request, exc: CSAError):
    """Render domain errors with the status each error class declares."""
    return api.create_response(
        request,
        {"detail": exc.message, "code": exc.code},
        status=exc.status_code,
    )


from apps.identity.api import router as identity_router
from apps.catalog.api import router as catalog_router
from apps.subscriptions.api import router as subscriptions_router
from apps.orders.api import router as orders_router
from apps.notifications.api import router as notifications_router
from apps.payments.api import router as payments_router

api.add_router("/identity/", identity_router)
api.add_router("/catalog/", catalog_router)
api.add_router("/subscriptions/", subscriptions_router)
api.add_router("/orders/", orders_router)
api.add_router("/notifications/", notifications_router)
api.add_router("/payments/", payments_router)

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/', api.urls),
]
