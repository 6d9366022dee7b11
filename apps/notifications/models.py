import uuid
from django.db import models


class NotificationType(models.TextChoices):
    ORDER_REMINDER = 'order_reminder', 'Order Reminder'
    ORDER_LOCKED = 'order_locked', 'Order Locked'
    ORDER_FULFILLED = 'order_fulfilled', 'Order Fulfilled'
    PAYMENT_DUE = 'payment_due', 'Payment Due'
    PAYMENT_FAILED = 'payment_failed', 'Payment Failed'
    SUBSCRIPTION_RENEWED = 'subscription_renewed', 'Subscription Renewed'


class NotificationMethod(models.TextChoices):
    EMAIL = 'email', 'Email'
    SMS = 'sms', 'SMS'
    SMS_AND_EMAIL = 'sms_and_email', 'SMS and Email'


class NotificationStatus(models.TextChoices):
    PENDING = 'pending', 'Pending'
    SENT = 'sent', 'Sent'
    FAILED = 'failed', 'Failed'


class Notification(models.Model):
    """
    One delivery attempt to a customer.

    Every attempt is recorded, failed ones included. Delivery results never
    feed back into order state.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    # References identity.User
    user_id = models.UUIDField(db_index=True)
    # References orders.Order
    order_id = models.UUIDField(null=True, blank=True, db_index=True)
    # References subscriptions.Subscription
    subscription_id = models.UUIDField(null=True, blank=True, db_index=True)

    notification_type = models.CharField(max_length=30, choices=NotificationType.choices)
    method = models.CharField(
        max_length=20,
        choices=NotificationMethod.choices,
        default=NotificationMethod.EMAIL
    )
    subject = models.CharField(max_length=255)
    message = models.TextField()

    status = models.CharField(
        max_length=20,
        choices=NotificationStatus.choices,
        default=NotificationStatus.PENDING
    )
    error = models.TextField(blank=True)
    sent_at = models.DateTimeField(null=True, blank=True)
    read_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.notification_type} to {self.user_id} ({self.status})"
