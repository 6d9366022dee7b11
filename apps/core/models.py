"""Models for Core app."""
import uuid
from django.db import models


class ScheduledActionStatus(models.TextChoices):
    SCHEDULED = 'SCHEDULED', 'Scheduled'
    COMPLETED = 'COMPLETED', 'Completed'
    SKIPPED = 'SKIPPED', 'Skipped'
    FAILED = 'FAILED', 'Failed'


class ScheduledAction(models.Model):
    """
    Ledger of deferred actions registered with the task backend.
    The unique key makes re-registration idempotent (e.g. `lock-<order_id>`).
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    key = models.CharField(max_length=255, unique=True)

    kind = models.CharField(max_length=50, db_index=True)
    queue = models.CharField(max_length=50)
    payload = models.JSONField(default=dict)
    run_at = models.DateTimeField(db_index=True)

    status = models.CharField(
        max_length=20,
        choices=ScheduledActionStatus.choices,
        default=ScheduledActionStatus.SCHEDULED
    )
    attempts = models.PositiveIntegerField(default=0)
    last_error = models.TextField(blank=True)
    backend_task_id = models.CharField(max_length=255, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['run_at']
        indexes = [
            models.Index(fields=['status', 'run_at']),
        ]

    def __str__(self):
        return f"{self.key} ({self.status})"
