from django.apps import AppConfig


class CoreConfig(AppConfig):
    name = 'apps.core'
    label = 'core'
    default_auto_field = 'django.db.models.BigAutoField'

    task_registry = None

    def ready(self):
        from .task_service import build_task_registry
        self.task_registry = build_task_registry()
