import uuid
from django.db import models
from django.contrib.auth.models import AbstractUser


class UserRole(models.TextChoices):
    ADMIN = 'ADMIN', 'Administrator'
    STAFF = 'STAFF', 'Farm Staff'
    CUSTOMER = 'CUSTOMER', 'Customer'


class User(AbstractUser):
    """
    Custom User model for CSA members and farm staff.

    Members sign in with their email; `username` is kept for Django admin
    and is set to the email on registration.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    email = models.EmailField(unique=True)
    name = models.CharField(max_length=255, blank=True)
    role = models.CharField(
        max_length=20,
        choices=UserRole.choices,
        default=UserRole.CUSTOMER
    )
    phone = models.CharField(max_length=20, blank=True)
    address = models.TextField(blank=True)
    stripe_customer_id = models.CharField(max_length=255, blank=True)

    class Meta:
        ordering = ['email']

    def __str__(self):
        return self.email or self.username
