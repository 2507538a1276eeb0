"""
Unit tests for the browser session wrapper and the overlay injector.

Playwright itself is patched out; these check the options passed to it.
"""

import tempfile
import unittest
from pathlib import Path
from unittest.mock import MagicMock, patch

from browser_session import BrowserSession
from recording_config import Size, default_config
from ui_injector import MessageOptions, OverlayInjector


class TestBrowserSession(unittest.TestCase):

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.root = Path(self.temp_dir.name)
        self.session = BrowserSession(video_dir=self.root / "videos", sessions_dir=self.root / "sessions")

        patcher = patch("browser_session.sync_playwright")
        self.sync_playwright = patcher.start()
        self.addCleanup(patcher.stop)
        self.playwright = self.sync_playwright.return_value.start.return_value
        self.browser = self.playwright.chromium.launch.return_value
        self.context = self.browser.new_context.return_value
        self.page = self.context.new_page.return_value

    def tearDown(self):
        self.temp_dir.cleanup()

    def test_page_before_launch(self):
        with self.assertRaises(RuntimeError):
            self.session.page
        self.assertFalse(self.session.is_initialized())

    def test_launch_with_recording(self):
        config = default_config()
        self.session.launch(config.browser, video_size=Size(width=1280, height=720))

        self.playwright.chromium.launch.assert_called_once_with(headless=False, slow_mo=0)
        kwargs = self.browser.new_context.call_args.kwargs
        self.assertEqual(kwargs["viewport"], {"width": 1920, "height": 1080})
        self.assertEqual(kwargs["record_video_dir"], str(self.root / "videos"))
        self.assertEqual(kwargs["record_video_size"], {"width": 1280, "height": 720})
        self.assertNotIn("storage_state", kwargs)
        self.context.set_default_timeout.assert_called_once_with(30000)
        self.context.set_default_navigation_timeout.assert_called_once_with(30000)
        self.assertIs(self.session.page, self.page)
        self.assertTrue(self.session.is_initialized())

    def test_launch_without_recording(self):
        self.session.launch(default_config().browser, record=False)
        self.assertNotIn("record_video_dir", self.browser.new_context.call_args.kwargs)

    def test_other_browser_types(self):
        self.session.launch(default_config().browser, "firefox", record=False)
        self.playwright.firefox.launch.assert_called_once()
        with self.assertRaises(ValueError):
            BrowserSession().launch(default_config().browser, "netscape")

    def test_load_stored_session(self):
        state = self.root / "sessions" / "me.json"
        state.parent.mkdir(parents=True)
        state.write_text("{}")
        self.session.launch(default_config().browser, load_session="me", record=False)
        self.assertEqual(self.browser.new_context.call_args.kwargs["storage_state"], str(state))

    def test_missing_stored_session_ignored(self):
        self.session.launch(default_config().browser, load_session="nobody", record=False)
        self.assertNotIn("storage_state", self.browser.new_context.call_args.kwargs)

    def test_save_session(self):
        self.session.launch(default_config().browser, record=False)
        path = self.session.save_session("me")
        self.context.storage_state.assert_called_once_with(path=str(self.root / "sessions" / "me.json"))
        self.assertEqual(path, self.root / "sessions" / "me.json")

    def test_close_page_returns_capture(self):
        self.session.launch(default_config().browser)
        self.page.is_closed.return_value = False
        self.page.video.path.return_value = "/tmp/videos/abc.webm"
        self.assertEqual(self.session.close_page(), Path("/tmp/videos/abc.webm"))
        self.page.close.assert_called_once()

        self.page.video = None
        self.assertIsNone(self.session.close_page())

    def test_close_releases_everything(self):
        self.session.launch(default_config().browser, record=False)
        self.page.is_closed.return_value = True
        self.session.close()
        self.context.close.assert_called_once()
        self.browser.close.assert_called_once()
        self.playwright.stop.assert_called_once()
        self.assertFalse(self.session.is_initialized())

    def test_overlays_bound_to_page(self):
        self.session.launch(default_config().browser, record=False)
        overlays = self.session.overlays
        self.assertIs(overlays.page, self.page)
        self.assertIs(self.session.overlays, overlays)


class TestOverlayInjector(unittest.TestCase):

    def setUp(self):
        self.page = MagicMock()
        self.injector = OverlayInjector(self.page)

    def test_show_message_injects_styles_first(self):
        self.injector.show_message(MessageOptions(message="<b>hi</b>", position="center"))
        first, second = self.page.evaluate.call_args_list
        self.assertIn("playflow-styles", first.args[0])
        payload = second.args[1]
        self.assertEqual(payload["message"], "<b>hi</b>")
        self.assertEqual(payload["position"], "center")
        self.assertTrue(payload["closeButton"])
        self.assertIn("textContent", second.args[0])

    def test_overlay_is_sticky(self):
        self.injector.show_overlay(MessageOptions(message="Log in", duration=5000))
        payload = self.page.evaluate.call_args.args[1]
        self.assertEqual(payload["duration"], 0)
        self.assertFalse(payload["closeButton"])

    def test_progress_clamped(self):
        self.injector.update_progress(140)
        self.assertEqual(self.page.evaluate.call_args.args[1], 100.0)

    def test_wait_until_closed(self):
        self.injector.wait_until_closed(1000)
        self.assertEqual(self.page.wait_for_function.call_args.kwargs["timeout"], 1000)


if __name__ == '__main__':
    unittest.main()
