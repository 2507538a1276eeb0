"""
Browser session: the live Playwright page a workflow is replayed against.

Wraps launch, context options (viewport, video capture, timeouts, stored
login state) and teardown. One session serves exactly one workflow run.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from playwright.sync_api import Browser, BrowserContext, Page, Playwright, sync_playwright

from persistence import ensure_directory
from recording_config import BrowserConfig, Size
from ui_injector import OverlayInjector

logger = logging.getLogger(__name__)

BROWSER_TYPES = ("chromium", "firefox", "webkit")
SESSIONS_DIR = Path("sessions")
DEFAULT_VIDEO_DIR = Path("output/temp-videos")


class BrowserSession:
    """Owns the Playwright driver, browser, context and page of one run."""

    def __init__(self, video_dir: Path | str = DEFAULT_VIDEO_DIR,
                 sessions_dir: Path | str = SESSIONS_DIR):
        self.video_dir = Path(video_dir)
        self.sessions_dir = Path(sessions_dir)
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self._page: Optional[Page] = None
        self._overlays: Optional[OverlayInjector] = None

    def session_path(self, name: str) -> Path:
        return self.sessions_dir / f"{name}.json"

    def launch(
        self,
        config: BrowserConfig,
        browser_type: str = "chromium",
        load_session: Optional[str] = None,
        record: bool = True,
        video_size: Optional[Size] = None,
    ) -> None:
        """
        Start the browser and open the page.

        Args:
            config: Merged browser configuration
            browser_type: chromium, firefox or webkit
            load_session: Name of a stored session to restore cookies/storage from
            record: Capture the page to a WebM file in video_dir
            video_size: Capture size, defaults to the viewport
        """
        if browser_type not in BROWSER_TYPES:
            raise ValueError(f"Unsupported browser type: {browser_type}")

        self._playwright = sync_playwright().start()
        launcher = getattr(self._playwright, browser_type)
        self._browser = launcher.launch(headless=config.headless, slow_mo=config.slow_mo)

        viewport = {"width": config.viewport.width, "height": config.viewport.height}
        context_options: dict = {"viewport": viewport}

        if load_session:
            state_file = self.session_path(load_session)
            if state_file.exists():
                context_options["storage_state"] = str(state_file)
                logger.info(f"Loading session from: {state_file}")
            else:
                logger.warning(f"Session file not found: {state_file}")

        if record:
            ensure_directory(self.video_dir)
            size = video_size or config.viewport
            context_options["record_video_dir"] = str(self.video_dir)
            context_options["record_video_size"] = {"width": size.width, "height": size.height}

        self._context = self._browser.new_context(**context_options)
        if config.default_timeout:
            self._context.set_default_timeout(config.default_timeout)
        if config.navigation_timeout:
            self._context.set_default_navigation_timeout(config.navigation_timeout)

        self._page = self._context.new_page()

    @property
    def page(self) -> Page:
        if self._page is None:
            raise RuntimeError("Page not initialized. Call launch() first.")
        return self._page

    @property
    def overlays(self) -> OverlayInjector:
        """Notification injector for this session's page, created on first use."""
        if self._overlays is None:
            self._overlays = OverlayInjector(self.page)
        return self._overlays

    def is_initialized(self) -> bool:
        return self._browser is not None and self._context is not None and self._page is not None

    def close_page(self) -> Optional[Path]:
        """
        Close the page so the capture is flushed to disk.

        Returns:
            Path of the capture file, or None when nothing was recorded
        """
        page = self.page
        video = page.video
        if not page.is_closed():
            page.close()
        if video is None:
            return None
        return Path(video.path())

    def save_session(self, name: str) -> Path:
        """Store cookies and local storage so a later run can reuse the login."""
        if self._context is None:
            raise RuntimeError("Browser context not initialized")
        ensure_directory(self.sessions_dir)
        state_file = self.session_path(name)
        self._context.storage_state(path=str(state_file))
        logger.info(f"Session saved to: {state_file}")
        return state_file

    def close(self) -> None:
        if self._page is not None and not self._page.is_closed():
            self._page.close()
        if self._context is not None:
            self._context.close()
            self._context = None
        if self._browser is not None:
            self._browser.close()
            self._browser = None
        if self._playwright is not None:
            self._playwright.stop()
            self._playwright = None
        self._page = None
        self._overlays = None
