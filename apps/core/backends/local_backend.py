"""
Local Task Backend - In-process execution for development.

Immediate actions run synchronously in the same process (eager mode) or
are collected for an explicit `run_queued()` call. Scheduled actions are
held in memory until `run_due()` is called with a time past their trigger.
No Redis or external dependencies required.

Usage:
    Set TASK_BACKEND=local in your .env file.
"""

import uuid
import logging
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from django.utils import timezone

from apps.core.actions import DeferredAction
from apps.core.task_service import TaskServiceInterface

logger = logging.getLogger(__name__)


class LocalTaskService(TaskServiceInterface):
    """
    Execute tasks in the same process.

    This is ideal for:
    - Local development without Docker/Redis
    - Unit testing with inspectable queues (eager=False)
    - Debugging task logic

    Note: In eager mode tasks run in the request cycle, so they block
    the response. Only use for development.
    """

    def __init__(self, eager: bool = True):
        self.eager = eager
        self.queued: List[DeferredAction] = []
        self.scheduled: Dict[str, Tuple[datetime, DeferredAction]] = {}

    def send_task(
        self,
        action: DeferredAction,
        run_at: Optional[datetime] = None,
        key: Optional[str] = None,
    ) -> str:
        """Execute, queue, or hold the action depending on mode and run_at."""
        task_id = key or str(uuid.uuid4())

        if run_at is not None:
            if task_id in self.scheduled:
                logger.warning(f"[LOCAL] Task {task_id} already scheduled, ignoring")
                return task_id
            self.scheduled[task_id] = (run_at, action)
            logger.info(f"[LOCAL] Scheduled task {action.kind} at {run_at.isoformat()} (id={task_id})")
            return task_id

        if not self.eager:
            self.queued.append(action)
            logger.info(f"[LOCAL] Queued task {action.kind} (id={task_id})")
            return task_id

        self._execute(action, task_id)
        return task_id

    def run_queued(self) -> int:
        """Run queued actions, including any they queue in turn. Returns count run."""
        count = 0
        while self.queued:
            action = self.queued.pop(0)
            self._execute(action, str(uuid.uuid4()))
            count += 1
        return count

    def run_due(self, now: Optional[datetime] = None) -> int:
        """Run every scheduled action whose trigger time has passed, oldest first."""
        now = now or timezone.now()
        due = sorted(
            (run_at, key) for key, (run_at, _) in self.scheduled.items() if run_at <= now
        )
        for _, key in due:
            _, action = self.scheduled.pop(key)
            self._execute(action, key, key=key)
        return len(due)

    def _execute(self, action: DeferredAction, task_id: str, key: Optional[str] = None):
        if self._runner is None:
            raise RuntimeError("Local task backend is not open")

        logger.info(f"[LOCAL] Executing task {action.kind} (id={task_id})")
        try:
            result = self._runner(action, key=key)
            logger.info(f"[LOCAL] Task {action.kind} completed: {result.message}")
        except Exception as e:
            logger.exception(f"[LOCAL] Task {action.kind} failed: {e}")
            raise
        return result
