"""
Tâches Celery pour la génération des captures.

Exécute le pipeline de captures pour un modèle identifié par son `slug`, selon le plan de
régénération sérialisé par le dispatcher.
"""

from __future__ import annotations

import structlog
from celery.signals import worker_process_init

from backend.app.celery_app import celery_app
from backend.core.container import container
from backend.core.logging import setup_logging
from backend.domain.versioning import RegenerationPlan


@worker_process_init.connect
def _configure_worker_logging(**_: object) -> None:
    setup_logging(container.settings.LOG_LEVEL, container.settings.LOG_JSON)


@celery_app.task(name="backend.tasks.generate_screenshots", bind=True)
def generate_screenshots_task(self, slug: str, plan: dict | None = None) -> str:
    structlog.contextvars.bind_contextvars(task_id=self.request.id)
    try:
        result = container.screenshot_pipeline().run(slug, RegenerationPlan.from_dict(plan or {}))
    finally:
        structlog.contextvars.unbind_contextvars("task_id")
    return result.status
