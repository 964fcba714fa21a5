"""
Session de navigateur headless (Playwright, API synchrone).

Lance un Chromium local, ou se connecte à un pool distant si `REMOTE_PLAYWRIGHT` est défini.
Chaque page vit dans son propre contexte: fermer la page ferme le contexte, ce qui permet de
changer la taille du viewport et la densité de pixels d'une capture à l'autre.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, Protocol

import structlog
from playwright.sync_api import Browser, BrowserContext
from playwright.sync_api import Page as PlaywrightPage
from playwright.sync_api import sync_playwright

log = structlog.get_logger(__name__)


class BrowserPage(Protocol):
    """Sous-ensemble des opérations de page utilisé par le pipeline."""

    def goto(self, url: str) -> Any: ...

    def wait_for_selector(self, selector: str) -> Any: ...

    def screenshot(self) -> bytes: ...

    def evaluate(self, expression: str) -> Any: ...

    def wait_for_timeout(self, timeout_ms: float) -> None: ...

    def close(self) -> None: ...


class BrowserSession(Protocol):
    """Session capable d'ouvrir des pages dimensionnées."""

    def new_page(self, width: int, height: int, device_scale_factor: float = 1) -> BrowserPage: ...


class PlaywrightPageHandle:
    """Page Playwright dont la fermeture libère aussi son contexte."""

    def __init__(self, context: BrowserContext, page: PlaywrightPage) -> None:
        self._context = context
        self._page = page

    def goto(self, url: str) -> Any:
        return self._page.goto(url)

    def wait_for_selector(self, selector: str) -> Any:
        return self._page.wait_for_selector(selector)

    def screenshot(self) -> bytes:
        return self._page.screenshot(type="png")

    def evaluate(self, expression: str) -> Any:
        return self._page.evaluate(expression)

    def wait_for_timeout(self, timeout_ms: float) -> None:
        self._page.wait_for_timeout(timeout_ms)

    def close(self) -> None:
        try:
            self._page.close()
        finally:
            self._context.close()


class PlaywrightBrowserSession:
    """Session Playwright: une page active à la fois, timeouts configurables."""

    def __init__(self, browser: Browser, timeout_ms: int) -> None:
        self._browser = browser
        self._timeout_ms = timeout_ms

    def new_page(self, width: int, height: int, device_scale_factor: float = 1) -> BrowserPage:
        context = self._browser.new_context(
            viewport={"width": width, "height": height},
            device_scale_factor=device_scale_factor,
        )
        context.set_default_timeout(self._timeout_ms)
        context.set_default_navigation_timeout(self._timeout_ms)
        return PlaywrightPageHandle(context, context.new_page())


@contextmanager
def open_browser_session(
    remote_endpoint: str | None = None, timeout_ms: int = 30000
) -> Iterator[PlaywrightBrowserSession]:
    """Ouvre une session navigateur et garantit sa fermeture en sortie."""
    with sync_playwright() as p:
        if remote_endpoint:
            browser = p.chromium.connect(remote_endpoint, timeout=timeout_ms)
            log.info("browser_connected", remote=True)
        else:
            browser = p.chromium.launch(headless=True)
            log.info("browser_launched", remote=False)
        try:
            yield PlaywrightBrowserSession(browser, timeout_ms)
        finally:
            browser.close()
