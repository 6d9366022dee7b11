"""
Celery Task Backend - Async execution via Celery + Redis.

Every action is sent to the single `run_deferred_action` task, routed to
the queue named by the action, with an ETA for scheduled actions.

Usage:
    Set TASK_BACKEND=celery in your .env file.
    Requires Redis and Celery workers running (see `manage.py run_worker`).
"""

import uuid
import logging
from datetime import datetime
from typing import Optional

from apps.core.actions import DeferredAction, to_payload
from apps.core.task_service import TaskServiceInterface

logger = logging.getLogger(__name__)


class CeleryTaskService(TaskServiceInterface):
    """Execute tasks via Celery + Redis."""

    def send_task(
        self,
        action: DeferredAction,
        run_at: Optional[datetime] = None,
        key: Optional[str] = None,
    ) -> str:
        """Queue task via Celery."""
        from apps.core.tasks import run_deferred_action

        task_id = key or str(uuid.uuid4())

        logger.info(f"[CELERY] Queueing task {action.kind} on {action.queue} (id={task_id})")

        options = {'task_id': task_id, 'queue': action.queue}
        if run_at is not None:
            options['eta'] = run_at

        run_deferred_action.apply_async(
            args=[to_payload(action)],
            kwargs={'key': key},
            **options
        )
        return task_id

    def close(self) -> None:
        """Drop pooled broker connections."""
        from celery import current_app
        current_app.pool.force_close_all()
        logger.info("[CELERY] Broker connections closed")
        super().close()
