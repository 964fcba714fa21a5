"""
Pipeline de génération des images dérivées d'un modèle de contenu.

Objectif du module
------------------
Rendre le diagramme dans un navigateur headless selon trois configurations (aperçu méta,
diagramme complet, diagramme sans connexions), envoyer chaque capture au stockage d'images et
rattacher les références obtenues au modèle / à sa dernière version.

États successifs: AcquireSession → RenderMeta (optionnel) → MeasureDiagram →
RenderDiagramWithConnections → RenderDiagramWithoutConnections → Persist → Release.

Le pipeline ne lève jamais: il est lancé en tâche de fond, détaché de la requête qui l'a
déclenché. Toute erreur est journalisée et la session navigateur est toujours libérée.
"""

from __future__ import annotations

import math
import time
from collections.abc import Callable
from contextlib import AbstractContextManager
from dataclasses import dataclass, field
from enum import Enum
from urllib.parse import quote, urlencode

import structlog
from pydantic import AliasChoices, BaseModel, Field
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.engine import Engine

from backend.app.metrics import (
    SCREENSHOT_PIPELINE_DURATION,
    SCREENSHOT_PIPELINE_RUNS,
    SCREENSHOT_UPLOADS,
)
from backend.core.settings import Settings
from backend.domain.errors import DependencyError
from backend.domain.versioning import RegenerationPlan
from backend.domain.visibility import Visibility
from backend.infra.assets.base import AssetStore, UploadResult
from backend.infra.browser.playwright_session import BrowserPage, BrowserSession
from backend.infra.repo.content_model_repo import ContentModelRepo
from backend.infra.repo.db import session_scope

META_VIEWPORT = (1200, 627)
DIAGRAM_PADDING = 40
DIAGRAM_DEVICE_SCALE_FACTOR = 2
READY_SELECTOR = ".is-fully-drawn"
DIMENSIONS_EXPRESSION = (
    "() => (window.contentmodelio && window.contentmodelio.dimensions) || null"
)

BrowserFactory = Callable[[], AbstractContextManager[BrowserSession]]


class PipelineState(str, Enum):
    ACQUIRE_SESSION = "acquire_session"
    RENDER_META = "render_meta"
    MEASURE_DIAGRAM = "measure_diagram"
    RENDER_DIAGRAM = "render_diagram_with_connections"
    RENDER_DIAGRAM_NO_CONNECTIONS = "render_diagram_without_connections"
    PERSIST = "persist"
    RELEASE = "release"


class DiagramDimensions(BaseModel):
    """Dimensions calculées exposées par la page embarquée."""

    scale: float = 1
    position: dict[str, float] | None = None
    total_width: float = Field(
        validation_alias=AliasChoices("totalWidth", "totalContentTypesWidth")
    )
    total_height: float = Field(
        validation_alias=AliasChoices("totalHeight", "totalContentTypesHeight")
    )

    def viewport(self, padding: int = DIAGRAM_PADDING) -> tuple[int, int]:
        return (
            math.ceil(self.total_width + padding * 2),
            math.ceil(self.total_height + padding * 2),
        )


@dataclass(frozen=True)
class PipelineConfig:
    """Paramètres du pipeline (cible de rendu, dossier d'upload, attente bornée)."""

    frontend_url: str
    screenshots_folder: str
    poll_interval_ms: int = 200
    poll_max_attempts: int = 150
    bypass_secret: str | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> PipelineConfig:
        return cls(
            frontend_url=settings.FRONTEND_URL.rstrip("/"),
            screenshots_folder=settings.screenshots_folder,
            poll_interval_ms=settings.SCREENSHOT_POLL_INTERVAL_MS,
            poll_max_attempts=settings.SCREENSHOT_POLL_MAX_ATTEMPTS,
            bypass_secret=settings.PREVIEW_BYPASS_SECRET,
        )


@dataclass
class PipelineResult:
    """Bilan d'une exécution: `ok`, `failed`, `aborted` (session) ou `not_found`."""

    slug: str
    status: str = "pending"
    state: PipelineState | None = None
    visited: list[PipelineState] = field(default_factory=list)
    meta_image: UploadResult | None = None
    diagram_image: UploadResult | None = None
    diagram_no_connections_image: UploadResult | None = None
    persisted_version: int | None = None
    error: str | None = None
    released: bool = False


@dataclass(frozen=True)
class _Target:
    id: str
    slug: str
    visibility: Visibility


class ScreenshotPipeline:
    """Orchestrateur des captures d'un modèle de contenu."""

    def __init__(
        self,
        engine: Engine,
        asset_store: AssetStore,
        browser_factory: BrowserFactory,
        config: PipelineConfig,
    ) -> None:
        self._engine = engine
        self._assets = asset_store
        self._browser_factory = browser_factory
        self._config = config
        self._log = structlog.get_logger(__name__)

    def run(self, slug: str, plan: RegenerationPlan | None = None) -> PipelineResult:
        """Exécute le pipeline pour `slug`; ne lève jamais."""
        plan = plan or RegenerationPlan()
        log = self._log.bind(slug=slug)
        result = PipelineResult(slug=slug)
        started = time.perf_counter()
        log.info(
            "screenshot_pipeline_started",
            meta=plan.generate_meta_image,
            diagrams=plan.generate_diagram_images,
        )
        try:
            target = self._load_target(slug)
        except DependencyError as exc:
            return self._finish(result, "failed", started, log, error=exc.message)
        if target is None:
            return self._finish(result, "not_found", started, log)

        acquired = False
        self._enter(result, PipelineState.ACQUIRE_SESSION, log)
        try:
            with self._browser_factory() as browser:
                acquired = True
                if plan.generate_meta_image:
                    self._render_meta(browser, target, plan, result, log)
                if plan.generate_diagram_images:
                    self._render_diagrams(browser, target, plan, result, log)
        except Exception as exc:
            status = "failed" if acquired else "aborted"
            log.error(
                "screenshot_pipeline_failed",
                state=result.state.value if result.state else None,
                error=type(exc).__name__,
                detail=str(exc)[:300],
            )
            error = f"{type(exc).__name__}: {exc}"
            return self._finish(result, status, started, log, error=error, acquired=acquired)
        return self._finish(result, "ok", started, log, acquired=True)

    def _finish(
        self,
        result: PipelineResult,
        status: str,
        started: float,
        log,
        error: str | None = None,
        acquired: bool = False,
    ) -> PipelineResult:
        if acquired:
            result.visited.append(PipelineState.RELEASE)
            result.released = True
            log.info("screenshot_session_released")
        result.status = status
        result.error = error
        SCREENSHOT_PIPELINE_RUNS.labels(result=status).inc()
        SCREENSHOT_PIPELINE_DURATION.observe(time.perf_counter() - started)
        log.info("screenshot_pipeline_finished", status=status)
        return result

    def _enter(self, result: PipelineResult, state: PipelineState, log) -> None:
        result.state = state
        result.visited.append(state)
        log.debug("screenshot_state", state=state.value)

    def _load_target(self, slug: str) -> _Target | None:
        with session_scope(self._engine) as session:
            model = ContentModelRepo(session).get_by_slug(slug)
            if model is None:
                return None
            return _Target(id=model.id, slug=model.slug, visibility=model.visibility)

    def _url(self, target: _Target, route: str, **flags: int) -> str:
        params: dict[str, object] = dict(flags)
        if target.visibility is Visibility.PRIVATE and self._config.bypass_secret:
            params["previewSecret"] = self._config.bypass_secret
        base = f"{self._config.frontend_url}/content-models/{quote(target.slug)}/{route}"
        return f"{base}?{urlencode(params)}" if params else base

    def _upload(
        self, data: bytes, target: _Target, public_id: str | None, kind: str, log
    ) -> UploadResult:
        if public_id is not None:
            upload = self._assets.upload(data, public_id=public_id, overwrite=True)
            mode = "overwrite"
        else:
            upload = self._assets.upload(
                data, folder=f"{self._config.screenshots_folder}/{target.slug}"
            )
            mode = "create"
        SCREENSHOT_UPLOADS.labels(kind=kind, mode=mode).inc()
        log.info("screenshot_uploaded", kind=kind, mode=mode, public_id=upload.public_id)
        return upload

    def _capture(self, page: BrowserPage, url: str) -> bytes:
        page.goto(url)
        page.wait_for_selector(READY_SELECTOR)
        return page.screenshot()

    def _render_meta(self, browser, target, plan, result, log) -> None:
        self._enter(result, PipelineState.RENDER_META, log)
        page = browser.new_page(*META_VIEWPORT)
        try:
            png = self._capture(page, self._url(target, "preview-image"))
        finally:
            page.close()
        upload = self._upload(png, target, plan.meta_image_public_id, "meta", log)
        with session_scope(self._engine) as session:
            ContentModelRepo(session).set_meta_image(target.id, upload)
        result.meta_image = upload

    def _measure(self, browser, target, result, log) -> DiagramDimensions:
        self._enter(result, PipelineState.MEASURE_DIAGRAM, log)
        page = browser.new_page(*META_VIEWPORT)
        try:
            page.goto(self._url(target, "embed"))
            return self._poll_dimensions(page, log)
        finally:
            page.close()

    def _poll_dimensions(self, page: BrowserPage, log) -> DiagramDimensions:
        """Interroge la page à intervalle fixe, au plus `poll_max_attempts` fois."""
        for attempt in range(1, self._config.poll_max_attempts + 1):
            raw = page.evaluate(DIMENSIONS_EXPRESSION)
            if raw:
                try:
                    return DiagramDimensions.model_validate(raw)
                except PydanticValidationError:
                    log.debug("diagram_dimensions_incomplete", attempt=attempt)
            page.wait_for_timeout(self._config.poll_interval_ms)
        raise DependencyError("diagram_dimensions_timeout")

    def _render_diagrams(self, browser, target, plan, result, log) -> None:
        width, height = self._measure(browser, target, result, log).viewport()
        page = browser.new_page(width, height, DIAGRAM_DEVICE_SCALE_FACTOR)
        try:
            self._enter(result, PipelineState.RENDER_DIAGRAM, log)
            png = self._capture(
                page, self._url(target, "embed", animatedAppearance=0, showControls=0)
            )
            result.diagram_image = self._upload(
                png, target, plan.diagram_image_public_id, "diagram", log
            )

            self._enter(result, PipelineState.RENDER_DIAGRAM_NO_CONNECTIONS, log)
            png = self._capture(
                page,
                self._url(
                    target, "embed", animatedAppearance=0, showControls=0, drawConnections=0
                ),
            )
            result.diagram_no_connections_image = self._upload(
                png,
                target,
                plan.diagram_no_connections_image_public_id,
                "diagram_no_connections",
                log,
            )
        finally:
            page.close()

        self._enter(result, PipelineState.PERSIST, log)
        with session_scope(self._engine) as session:
            result.persisted_version = ContentModelRepo(session).set_latest_version_images(
                target.id, result.diagram_image, result.diagram_no_connections_image
            )
