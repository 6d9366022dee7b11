"""
Celery configuration for the CSA project.

One queue per action family; `manage.py run_worker <queue>` starts a
worker with that queue's concurrency from settings.CSA_QUEUES. There is
no beat schedule: cutoff actions are sent with an ETA when orders are
generated.
"""
import os
from celery import Celery
from celery.signals import worker_shutdown
from kombu import Queue

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')

app = Celery('config')
app.config_from_object('django.conf:settings', namespace='CELERY')
app.autodiscover_tasks()

app.conf.task_queues = [
    Queue('orders'),
    Queue('notifications'),
    Queue('payments'),
    Queue('subscriptions'),
]
app.conf.task_default_queue = 'orders'


@worker_shutdown.connect
def close_task_registry(**kwargs):
    """Close the process-wide task registry when a worker stops."""
    from apps.core.task_service import get_task_registry
    get_task_registry().close()
