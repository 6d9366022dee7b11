"""
TaskService - Abstraction layer for deferred action execution.

This module provides a platform-agnostic interface for running background
work. A single TaskRegistry is built at startup (CoreConfig.ready), opened
with the backend named by the TASK_BACKEND setting, and closed when the
worker shuts down. Services receive the registry as an explicit `tasks`
argument instead of reaching for module-level queues.

Usage:
    from apps.core.task_service import get_task_registry
    from apps.core.actions import LockOrder

    tasks = get_task_registry()

    # Run as soon as a worker is free
    tasks.enqueue(LockOrder(order_id=order.id))

    # Run at a given time, at most once per key
    tasks.schedule(f"lock-{order.id}", order.cutoff_datetime, LockOrder(order_id=order.id))

Environment Configuration:
    TASK_BACKEND=local   # In-process execution (development, tests)
    TASK_BACKEND=celery  # Celery + Redis (production)
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, Optional

from django.conf import settings
from django.db.models import F
from django.utils import timezone

from .actions import DeferredAction, to_payload
from .models import ScheduledAction, ScheduledActionStatus

logger = logging.getLogger(__name__)


ActionRunner = Callable[..., object]


class TaskServiceInterface(ABC):
    """
    Abstract interface for task backends.

    Implementations:
    - LocalTaskService: In-process execution for development/testing
    - CeleryTaskService: Celery + Redis for production
    """

    _runner: Optional[ActionRunner] = None

    def open(self, runner: ActionRunner) -> None:
        """Bind the callable that executes an action in this process."""
        self._runner = runner

    def close(self) -> None:
        """Release backend resources. Default is a no-op."""
        self._runner = None

    @abstractmethod
    def send_task(
        self,
        action: DeferredAction,
        run_at: Optional[datetime] = None,
        key: Optional[str] = None,
    ) -> str:
        """
        Hand an action to the backend.

        Args:
            action: The deferred action to run
            run_at: Earliest execution time (None = immediate)
            key: Idempotency key for scheduled actions

        Returns:
            Task ID for tracking
        """
        pass


class TaskRegistry:
    """
    Owns the task backend for the lifetime of a process.

    Created once at startup, opened with a backend, closed on shutdown.
    Scheduling goes through the ScheduledAction ledger so that registering
    the same key twice never produces a second deferred action.
    """

    def __init__(self, backend: TaskServiceInterface):
        self.backend = backend
        self.is_open = False

    def open(self) -> "TaskRegistry":
        self.backend.open(self.run)
        self.is_open = True
        logger.info(f"Task registry opened with {type(self.backend).__name__}")
        return self

    def close(self) -> None:
        if not self.is_open:
            return
        self.backend.close()
        self.is_open = False
        logger.info("Task registry closed")

    def enqueue(self, action: DeferredAction) -> str:
        """Queue an action for immediate execution."""
        logger.info(f"Queueing {action.kind} on {action.queue}")
        return self.backend.send_task(action)

    def schedule(
        self,
        key: str,
        run_at: datetime,
        action: DeferredAction,
        now: Optional[datetime] = None,
    ) -> Optional[ScheduledAction]:
        """
        Schedule an action to run at `run_at`, at most once per `key`.

        Returns the ledger row, or None when `run_at` has already passed
        (past triggers are skipped, never fired retroactively).
        """
        now = now or timezone.now()
        if run_at <= now:
            logger.info(f"Skipping {key}: trigger time {run_at.isoformat()} already passed")
            return None

        scheduled, created = ScheduledAction.objects.get_or_create(
            key=key,
            defaults={
                'kind': action.kind,
                'queue': action.queue,
                'payload': to_payload(action),
                'run_at': run_at,
            }
        )
        if not created:
            logger.debug(f"Action {key} already registered ({scheduled.status})")
            return scheduled

        try:
            task_id = self.backend.send_task(action, run_at=run_at, key=key)
        except Exception:
            # Drop the ledger row so a later registration can try again
            scheduled.delete()
            raise

        ScheduledAction.objects.filter(id=scheduled.id).update(backend_task_id=task_id)
        scheduled.backend_task_id = task_id
        logger.info(f"Scheduled {action.kind} at {run_at.isoformat()} (key={key})")
        return scheduled

    def run(
        self,
        action: DeferredAction,
        key: Optional[str] = None,
        final_attempt: bool = True,
    ):
        """
        Execute an action in this process and record the outcome for keyed actions.

        A failure is recorded on the ledger only when `final_attempt` is set;
        earlier attempts are left to the backend's retry policy.
        """
        from .dispatch import ActionResult, execute_action

        if key:
            # At-least-once delivery: a redelivered keyed action runs once
            done = ScheduledAction.objects.filter(
                key=key,
                status__in=[ScheduledActionStatus.COMPLETED, ScheduledActionStatus.SKIPPED],
            ).exists()
            if done:
                logger.info(f"Action {key} already ran, ignoring redelivery")
                return ActionResult(f"{key} already ran", skipped=True)
            ScheduledAction.objects.filter(key=key).update(attempts=F('attempts') + 1)

        try:
            result = execute_action(action, tasks=self)
        except Exception as e:
            if final_attempt:
                self.record_failure(key, e)
            raise

        if key:
            status = ScheduledActionStatus.SKIPPED if result.skipped else ScheduledActionStatus.COMPLETED
            ScheduledAction.objects.filter(key=key).update(status=status)
        return result

    def record_failure(self, key: Optional[str], error: Exception) -> None:
        """Mark a keyed action as failed after the backend gives up on it."""
        if not key:
            return
        ScheduledAction.objects.filter(key=key).update(
            status=ScheduledActionStatus.FAILED,
            last_error=str(error)[:2000],
        )


def _get_backend(backend_name: str) -> TaskServiceInterface:
    """Get the task backend for a TASK_BACKEND name."""
    if backend_name == 'local':
        from apps.core.backends.local_backend import LocalTaskService
        return LocalTaskService(eager=getattr(settings, 'TASK_LOCAL_EAGER', True))
    elif backend_name == 'celery':
        from apps.core.backends.celery_backend import CeleryTaskService
        return CeleryTaskService()
    else:
        raise ValueError(f"Unknown TASK_BACKEND: {backend_name}")


def build_task_registry(backend_name: Optional[str] = None) -> TaskRegistry:
    """Build and open a registry for the configured backend."""
    backend_name = backend_name or getattr(settings, 'TASK_BACKEND', 'local')
    return TaskRegistry(_get_backend(backend_name)).open()


def get_task_registry() -> TaskRegistry:
    """Return the registry created at startup by CoreConfig."""
    from django.apps import apps
    return apps.get_app_config('core').task_registry
