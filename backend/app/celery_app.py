"""
Module: celery_app.

But: Initialiser l'instance Celery de l'application et charger la config runtime.

Notes:
- Aucun secret loggé.
- Les tâches sont déclarées dans `backend.tasks.*` et routées sur la queue `default`.
"""

from celery import Celery

from backend.core.container import container

celery_app = Celery(
    "content_models",
    broker=container.settings.CELERY_BROKER_URL,
    backend=container.settings.CELERY_RESULT_BACKEND,
    include=["backend.tasks.screenshot_tasks"],
)
# Load configuration from module (timeouts, acks)
celery_app.config_from_object("backend.app.celeryconfig")
celery_app.conf.task_routes = {"backend.tasks.*": {"queue": "default"}}

__all__ = ["celery_app"]
