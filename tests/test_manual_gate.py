"""
Unit tests for the manual gate handler.

Time is faked: each page.wait_for_timeout call advances the patched
monotonic clock, so timeouts are exercised without sleeping.
"""

import tempfile
import unittest
from pathlib import Path
from unittest.mock import MagicMock, patch

from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from action_handlers import ExecutionContext
from action_handlers.manual_gate import POLL_INTERVAL_MS, wait_for_manual_action
from workflow_errors import ManualActionTimeout
from workflow_validation import validate_action


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now

    def advance(self, ms):
        self.now += ms / 1000


class ManualGateTestCase(unittest.TestCase):

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.signal_file = Path(self.temp_dir.name) / ".continue"
        self.clock = FakeClock()

        self.session = MagicMock()
        self.session.page.wait_for_timeout.side_effect = self.clock.advance

        patches = [
            patch("action_handlers.manual_gate.monotonic", self.clock),
            patch("action_handlers.manual_gate.CONTINUE_FILE", str(self.signal_file)),
        ]
        for p in patches:
            p.start()
            self.addCleanup(p.stop)

    def tearDown(self):
        self.temp_dir.cleanup()

    def run_gate(self, **data):
        action = validate_action({"type": "waitForManualAction", **data})
        wait_for_manual_action(action, self.session, ExecutionContext())


class TestSignalFile(ManualGateTestCase):
    """Test the signal-file fallback."""

    def test_times_out_without_signal(self):
        """No selector, no text, no file: fails after the timeout."""
        with self.assertRaises(ManualActionTimeout) as ctx:
            self.run_gate(timeout=2000)
        self.assertIn("2 seconds", str(ctx.exception))
        self.assertIsInstance(ctx.exception, TimeoutError)
        self.assertGreaterEqual(self.clock.now, 2.0)
        self.session.page.wait_for_timeout.assert_called_with(POLL_INTERVAL_MS)
        self.assertEqual(self.session.page.wait_for_timeout.call_count, 2)

    def test_releases_when_file_appears(self):
        def create_file_later(ms):
            self.clock.advance(ms)
            if self.clock.now >= 3:
                self.signal_file.touch()

        self.session.page.wait_for_timeout.side_effect = create_file_later
        self.run_gate(timeout=10000)
        self.assertFalse(self.signal_file.exists())
        self.assertEqual(self.session.page.wait_for_timeout.call_count, 3)

    def test_existing_file_releases_immediately(self):
        self.signal_file.touch()
        self.run_gate()
        self.assertFalse(self.signal_file.exists())
        self.session.page.wait_for_timeout.assert_not_called()


class TestPageConditions(ManualGateTestCase):
    """Test selector and text release strategies."""

    def test_selector_has_priority(self):
        self.run_gate(continueSelector="#done", continueText="Done", timeout=5000)
        self.session.page.wait_for_selector.assert_called_once_with("#done", state="visible", timeout=5000)
        self.session.page.wait_for_function.assert_not_called()

    def test_text_condition(self):
        self.run_gate(continueText="Welcome back")
        args, kwargs = self.session.page.wait_for_function.call_args
        self.assertEqual(kwargs["arg"], "Welcome back")
        self.assertEqual(kwargs["timeout"], 300000)
        self.assertIn("innerText", args[0])

    def test_page_timeout_becomes_manual_timeout(self):
        self.session.page.wait_for_selector.side_effect = PlaywrightTimeoutError("Timeout 1000ms exceeded")
        with self.assertRaises(ManualActionTimeout) as ctx:
            self.run_gate(continueSelector="#done", timeout=1000)
        self.assertIn("1 seconds", str(ctx.exception))


class TestOverlay(ManualGateTestCase):
    """Test the guidance overlay lifecycle."""

    def test_overlay_shown_and_removed_on_success(self):
        self.run_gate(continueSelector="#done", showOverlay=True,
                      overlayOptions={"title": "Log in", "instruction": "Use the test account",
                                      "backdrop": True})
        options = self.session.overlays.show_overlay.call_args[0][0]
        self.assertEqual(options.title, "Log in")
        self.assertEqual(options.message, "Use the test account")
        self.assertTrue(options.backdrop)
        self.session.overlays.remove_overlay.assert_called_once()

    def test_overlay_defaults(self):
        self.run_gate(continueSelector="#done", showOverlay=True, message="Solve the captcha")
        options = self.session.overlays.show_overlay.call_args[0][0]
        self.assertEqual(options.title, "Manual Action Required")
        self.assertEqual(options.message, "Solve the captcha")

    def test_overlay_removed_on_timeout(self):
        with self.assertRaises(ManualActionTimeout):
            self.run_gate(timeout=1000, showOverlay=True)
        self.session.overlays.remove_overlay.assert_called_once()

    def test_removal_failure_does_not_mask_error(self):
        self.session.overlays.remove_overlay.side_effect = RuntimeError("page crashed")
        with self.assertLogs("action_handlers.manual_gate", level="WARNING"):
            with self.assertRaises(ManualActionTimeout):
                self.run_gate(timeout=1000, showOverlay=True)

    def test_progress_updated_while_polling(self):
        with self.assertRaises(ManualActionTimeout):
            self.run_gate(timeout=2000, showOverlay=True, overlayOptions={"progress": True})
        percents = [c.args[0] for c in self.session.overlays.update_progress.call_args_list]
        self.assertEqual(percents, [0.0, 50.0])

    def test_no_overlay_by_default(self):
        self.run_gate(continueSelector="#done")
        self.session.overlays.show_overlay.assert_not_called()
        self.session.overlays.remove_overlay.assert_not_called()


if __name__ == '__main__':
    unittest.main()
