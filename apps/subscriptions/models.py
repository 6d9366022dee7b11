import uuid
from decimal import Decimal
from django.db import models


class BoxSize(models.TextChoices):
    SMALL = 'small', 'Small Box'
    LARGE = 'large', 'Large Box'


class FulfillmentType(models.TextChoices):
    DELIVERY = 'delivery', 'Home Delivery'
    PICKUP = 'pickup', 'Farm Pickup'


class SubscriptionStatus(models.TextChoices):
    ACTIVE = 'active', 'Active'
    PAUSED = 'paused', 'Paused'
    COMPLETED = 'completed', 'Completed'
    CANCELLED = 'cancelled', 'Cancelled'


class Subscription(models.Model):
    """
    A farm-share purchase: one box per week for `payment_interval` weeks.

    All orders for the term are generated upfront. `remaining_orders` is
    only changed by the fulfillment counter in services.record_order_fulfilled.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    # References identity.User
    user_id = models.UUIDField(db_index=True)

    box_size = models.CharField(max_length=20, choices=BoxSize.choices)
    fulfillment_type = models.CharField(max_length=20, choices=FulfillmentType.choices)
    payment_interval = models.PositiveIntegerField(help_text="Term length in weeks")
    box_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal('0.00'),
        help_text="Per-box price after the interval discount"
    )

    total_orders = models.PositiveIntegerField()
    remaining_orders = models.PositiveIntegerField()

    status = models.CharField(
        max_length=20,
        choices=SubscriptionStatus.choices,
        default=SubscriptionStatus.ACTIVE,
        db_index=True
    )
    period_start = models.DateTimeField()
    period_end = models.DateTimeField()

    # Saved gateway payment method, reused for renewal charges
    payment_method_id = models.CharField(max_length=255, blank=True)
    # References subscriptions.Subscription (the term this one renews)
    renewed_from_id = models.UUIDField(null=True, blank=True, unique=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
    def __str__(self):
        return f"{self.box_size} {self.fulfillment_type} x{self.total_orders} ({self.status})"

    @property
    def total_amount(self) -> Decimal:
        return self.box_price * self.total_orders
