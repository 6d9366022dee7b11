import uuid
from decimal import Decimal
from django.db import models


class OrderStatus(models.TextChoices):
    """
    Order lifecycle.

    pending -> locked -> fulfilled, or pending/locked -> cancelled.
    Fulfilled and cancelled are terminal.
    """
    PENDING = 'pending', 'Pending'
    LOCKED = 'locked', 'Locked'
    FULFILLED = 'fulfilled', 'Fulfilled'
    CANCELLED = 'cancelled', 'Cancelled'


class Order(models.Model):
    """
    One weekly box of a subscription.

    Generated in a batch when the subscription is created. Orders are
    never deleted, only moved through OrderStatus.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    # References subscriptions.Subscription
    subscription_id = models.UUIDField(db_index=True)
    # References identity.User (denormalized from the subscription)
    user_id = models.UUIDField(db_index=True)

    sequence = models.PositiveIntegerField(help_text="Week index within the subscription term")
    fulfillment_date = models.DateField()
    fulfillment_time = models.TimeField()
    cutoff_datetime = models.DateTimeField(db_index=True)

    status = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.PENDING,
        db_index=True
    )
    total_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    notes = models.TextField(blank=True)

    locked_at = models.DateTimeField(null=True, blank=True)
    fulfilled_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['fulfillment_date', 'sequence']
        constraints = [
            models.UniqueConstraint(
                fields=['subscription_id', 'sequence'],
                name='unique_order_week_per_subscription',
            ),
        ]
        indexes = [
            models.Index(fields=['status', 'cutoff_datetime']),
        ]

    def __str__(self):
        return f"Order {self.fulfillment_date} ({self.status})"


class OrderAddon(models.Model):
    """
    An extra item on one order, billed separately from the subscription.

    Prices are copied from the catalog when the line is added.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name='addons')
    # Catalog key (apps.catalog.catalog.Addon.addon_id)
    addon_id = models.CharField(max_length=50)
    name = models.CharField(max_length=255)
    quantity = models.PositiveIntegerField()
    unit_price = models.DecimalField(max_digits=10, decimal_places=2)
    total_price = models.DecimalField(max_digits=10, decimal_places=2)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['created_at']

    def __str__(self):
        return f"{self.quantity} x {self.name}"
