"""
Délégation des régénérations de captures en tâche de fond.

Le dispatcher reçoit un slug et un `RegenerationPlan` et lance le pipeline sans que l'appelant
n'attende le résultat. Implémentations:
- `CeleryScreenshotDispatcher`: envoie la tâche `backend.tasks.generate_screenshots` au broker.
- `InlineScreenshotDispatcher`: exécute le pipeline dans le processus, sur un thread (dev).
- `DisabledScreenshotDispatcher`: journalise et ignore le plan.

C'est aussi le point d'ancrage d'un éventuel verrou « une régénération par modèle ».
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from concurrent.futures import Executor, Future, ThreadPoolExecutor

import structlog

from backend.app.metrics import SCREENSHOT_DISPATCH_TOTAL
from backend.domain.versioning import RegenerationPlan

log = structlog.get_logger(__name__)

GENERATE_SCREENSHOTS_TASK = "backend.tasks.generate_screenshots"


class ScreenshotDispatcher(ABC):
    """Contrat commun des dispatchers."""

    name = "abstract"

    @abstractmethod
    def dispatch(self, slug: str, plan: RegenerationPlan) -> None:
        """Confie la régénération de `slug` selon `plan`; ne bloque pas sur le rendu."""


class CeleryScreenshotDispatcher(ScreenshotDispatcher):
    """Envoie la régénération à un worker Celery."""

    name = "celery"

    def __init__(self, queue: str | None = "default") -> None:
        self._queue = queue

    def dispatch(self, slug: str, plan: RegenerationPlan) -> None:
        # Import local pour éviter de charger Celery côté scripts/tests
        from backend.app.celery_app import celery_app

        opts: dict[str, object] = {}
        if self._queue:
            opts["queue"] = self._queue
        try:
            celery_app.send_task(
                GENERATE_SCREENSHOTS_TASK,
                kwargs={"slug": slug, "plan": plan.as_dict()},
                **opts,
            )
        except Exception as exc:
            SCREENSHOT_DISPATCH_TOTAL.labels(dispatcher=self.name, result="error").inc()
            log.error("screenshot_dispatch_failed", slug=slug, error=type(exc).__name__)
            return
        SCREENSHOT_DISPATCH_TOTAL.labels(dispatcher=self.name, result="enqueued").inc()
        log.info("screenshot_dispatched", slug=slug, dispatcher=self.name)


class InlineScreenshotDispatcher(ScreenshotDispatcher):
    """Exécute le pipeline dans le processus courant, sur un thread dédié.

    La requête qui a commité la mutation n'attend pas le rendu: les runs sont soumis à un
    exécuteur mono-thread, donc traités un par un dans l'ordre d'arrivée.
    """

    name = "inline"

    def __init__(
        self,
        pipeline_factory: Callable[[], object],
        executor: Executor | None = None,
    ) -> None:
        self._pipeline_factory = pipeline_factory
        self._executor = executor or ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="screenshots"
        )

    def dispatch(self, slug: str, plan: RegenerationPlan) -> Future:
        future = self._executor.submit(self._run, slug, plan)
        log.info("screenshot_dispatched", slug=slug, dispatcher=self.name)
        return future

    def _run(self, slug: str, plan: RegenerationPlan) -> str:
        try:
            status = self._pipeline_factory().run(slug, plan).status
        except Exception as exc:
            SCREENSHOT_DISPATCH_TOTAL.labels(dispatcher=self.name, result="error").inc()
            log.error("screenshot_inline_run_failed", slug=slug, error=type(exc).__name__)
            return "failed"
        SCREENSHOT_DISPATCH_TOTAL.labels(dispatcher=self.name, result=status).inc()
        return status

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)


class DisabledScreenshotDispatcher(ScreenshotDispatcher):
    """Ignore les régénérations (environnements sans navigateur)."""

    name = "off"

    def dispatch(self, slug: str, plan: RegenerationPlan) -> None:
        SCREENSHOT_DISPATCH_TOTAL.labels(dispatcher=self.name, result="skipped").inc()
        log.info("screenshot_dispatch_skipped", slug=slug)
