import uuid
from decimal import Decimal
from django.db import models


class PaymentType(models.TextChoices):
    SUBSCRIPTION = 'subscription', 'Subscription'
    ADDON = 'addon', 'Add-on'


class PaymentStatus(models.TextChoices):
    PENDING = 'pending', 'Pending'
    COMPLETED = 'completed', 'Completed'
    FAILED = 'failed', 'Failed'
    REFUNDED = 'refunded', 'Refunded'


class Payment(models.Model):
    """
    A charge against the payment gateway.

    A declined charge stays FAILED with the gateway's reason and a new
    attempt gets a new row. A charge whose outcome is unknown (gateway
    error) stays PENDING and is retried on the same row, so the retry
    reuses its idempotency key.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    # References identity.User
    user_id = models.UUIDField(db_index=True)
    # References subscriptions.Subscription
    subscription_id = models.UUIDField(null=True, blank=True, db_index=True)
    # References orders.Order (add-on payments)
    order_id = models.UUIDField(null=True, blank=True)
    # References orders.OrderAddon
    order_addon_id = models.UUIDField(null=True, blank=True, db_index=True)

    payment_type = models.CharField(
        max_length=20,
        choices=PaymentType.choices,
        default=PaymentType.SUBSCRIPTION
    )
    status = models.CharField(
        max_length=20,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING,
        db_index=True
    )
    amount = models.DecimalField(max_digits=10, decimal_places=2)
    refunded_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    currency = models.CharField(max_length=3, default='usd')

    payment_method_id = models.CharField(max_length=255, blank=True)
    # Gateway reference (Stripe PaymentIntent id)
    transaction_id = models.CharField(max_length=255, blank=True)
    refund_id = models.CharField(max_length=255, blank=True)
    failure_reason = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.payment_type} {self.amount} {self.currency} ({self.status})"
