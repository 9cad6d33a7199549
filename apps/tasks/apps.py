from django.apps import AppConfig


class TasksConfig(AppConfig):
    name = 'apps.tasks'
    label = 'tasks'
    default_auto_field = 'django.db.models.BigAutoField'

    def ready(self):
        from . import signals  # noqa: F401
