"""
Conteneur d'injection de dépendances et configuration application.

Instancie les composants centraux (settings, moteur SQL, stockage d'images, navigateur,
dispatcher des régénérations) et expose un singleton `container` utilisé par le reste de
l'application.
"""

from __future__ import annotations

from contextlib import AbstractContextManager

from backend.core.settings import Settings, get_settings
from backend.infra.assets.base import AssetStore
from backend.infra.assets.cloudinary_store import CloudinaryAssetStore
from backend.infra.assets.memory_store import InMemoryAssetStore
from backend.infra.browser.playwright_session import BrowserSession, open_browser_session
from backend.infra.ops.dispatch import (
    CeleryScreenshotDispatcher,
    DisabledScreenshotDispatcher,
    InlineScreenshotDispatcher,
    ScreenshotDispatcher,
)
from backend.infra.repo.db import get_engine
from backend.infra.repo.models import Base
from backend.services.screenshot_pipeline import PipelineConfig, ScreenshotPipeline


class Container:
    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()
        self.engine = get_engine(self.settings.DATABASE_URL)
        if self.settings.DB_CREATE_ALL:
            Base.metadata.create_all(self.engine)

        if self.settings.CLOUDINARY_URL:
            self.asset_store: AssetStore = CloudinaryAssetStore(
                self.settings.CLOUDINARY_URL,
                api_base_url=self.settings.ASSET_STORE_API_URL,
                delivery_base_url=self.settings.ASSET_DELIVERY_URL,
            )
            self.asset_backend = "cloudinary"
        else:
            self.asset_store = InMemoryAssetStore()
            self.asset_backend = "memory"

        self.dispatcher = self._build_dispatcher()

    def _build_dispatcher(self) -> ScreenshotDispatcher:
        mode = (self.settings.SCREENSHOT_DISPATCH or "celery").strip().lower()
        if mode == "inline":
            return InlineScreenshotDispatcher(self.screenshot_pipeline)
        if mode == "off":
            return DisabledScreenshotDispatcher()
        return CeleryScreenshotDispatcher()

    def browser_session(self) -> AbstractContextManager[BrowserSession]:
        """Ouvre une session navigateur (locale ou distante selon la configuration)."""
        return open_browser_session(
            remote_endpoint=self.settings.REMOTE_PLAYWRIGHT,
            timeout_ms=self.settings.BROWSER_TIMEOUT_MS,
        )

    def screenshot_pipeline(self) -> ScreenshotPipeline:
        return ScreenshotPipeline(
            engine=self.engine,
            asset_store=self.asset_store,
            browser_factory=self.browser_session,
            config=PipelineConfig.from_settings(self.settings),
        )


container = Container()
