"""Celery tasks for Core app."""
import logging

from celery import shared_task

from .actions import action_from_payload
from .task_service import get_task_registry

logger = logging.getLogger(__name__)


@shared_task(
    bind=True,
    autoretry_for=(Exception,),
    retry_backoff=2,
    retry_backoff_max=600,
    retry_jitter=False,
    max_retries=2,
)
def run_deferred_action(self, payload, key=None):
    """
    Execute one deferred action on a worker.

    Three attempts in all, backing off 2s then 4s. After the last retry the
    ScheduledAction row is marked FAILED and the error is logged; no
    compensating action runs.
    """
    action = action_from_payload(payload)
    final_attempt = self.request.retries >= self.max_retries

    try:
        result = get_task_registry().run(action, key=key, final_attempt=final_attempt)
    except Exception as e:
        if final_attempt:
            logger.error(f"Deferred action {action.kind} (key={key}) failed permanently: {e}")
        raise

    return result.message
