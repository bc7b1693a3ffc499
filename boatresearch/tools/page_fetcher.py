from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable

from loguru import logger

from boatresearch.config import settings
from boatresearch.services.browser_mutex import BrowserMutex

CHALLENGE_TITLE_MARKERS = (
    "just a moment",
    "attention required",
    "challenge",
)


@dataclass(frozen=True, slots=True)
class BrowserPolicy:
    engine: str = "webkit"
    headless: bool = False
    profile_dir: str = ""
    timeout_ms: int = 30000
    settle_ms: int = 3000
    cooldown_ms: int = 2000
    viewport_width: int = 1440
    viewport_height: int = 900

    @classmethod
    def from_settings(cls) -> BrowserPolicy:
        return cls(
            engine=settings.browser_engine,
            headless=settings.browser_headless,
            profile_dir=settings.browser_profile_dir,
            timeout_ms=settings.browser_navigation_timeout_ms,
            settle_ms=settings.browser_settle_ms,
            cooldown_ms=settings.browser_cooldown_ms,
            viewport_width=settings.browser_viewport_width,
            viewport_height=settings.browser_viewport_height,
        )


# (title, html) of the loaded page
PageCapture = tuple[str, str]
BrowserSession = Callable[[str, BrowserPolicy], Awaitable[PageCapture]]


def is_challenge_title(title: str | None) -> bool:
    normalized = (title or "").lower()
    return any(marker in normalized for marker in CHALLENGE_TITLE_MARKERS)


class PageFetcher:
    """Loads a URL in a real browser and returns the rendered HTML.

    ``fetch`` returns ``None`` when the browser cannot launch, navigation
    fails or times out, or the page is a bot-challenge interstitial. An empty
    string means the page loaded but had no content; callers rely on the
    difference to decide whether a negative result may be cached.
    """

    def __init__(
        self,
        mutex: BrowserMutex,
        *,
        policy: BrowserPolicy | None = None,
        session: BrowserSession | None = None,
    ):
        self.mutex = mutex
        self.policy = policy or BrowserPolicy.from_settings()
        self._session = session or _playwright_session

    async def fetch(self, url: str) -> str | None:
        async with self.mutex:
            logger.info(f"Launching {self.policy.engine} for {url}")
            try:
                title, html = await self._session(url, self.policy)
            except Exception as exc:
                logger.error(f"Browser fetch failed for {url}: {exc}")
                return None

            if is_challenge_title(title):
                logger.error(f"Bot challenge page for {url} (title={title!r})")
                return None

            if self.policy.cooldown_ms > 0:
                # Give the engine time to release the profile before the next launch.
                await asyncio.sleep(self.policy.cooldown_ms / 1000.0)
            return html


async def _playwright_session(url: str, policy: BrowserPolicy) -> PageCapture:
    from playwright.async_api import async_playwright

    viewport = {"width": policy.viewport_width, "height": policy.viewport_height}
    async with async_playwright() as playwright:  # pragma: no cover - integration behavior
        browser_type = getattr(playwright, policy.engine)
        browser = None
        if policy.profile_dir:
            context = await browser_type.launch_persistent_context(
                policy.profile_dir,
                headless=policy.headless,
                viewport=viewport,
            )
        else:
            browser = await browser_type.launch(headless=policy.headless)
            context = await browser.new_context(viewport=viewport)

        try:
            page = await context.new_page()
            await page.goto(url, wait_until="domcontentloaded", timeout=policy.timeout_ms)
            await page.wait_for_timeout(policy.settle_ms)
            title = await page.title()
            html = await page.content()
            return title, html
        finally:
            await context.close()
            if browser is not None:
                await browser.close()
