"""
Unit tests for the dispatch registry and the page action handlers.

The browser session is a MagicMock; handlers are checked for the exact page
call they make.
"""

import tempfile
import unittest
from pathlib import Path
from unittest.mock import MagicMock

from action_handlers import (
    ActionDispatcher,
    ExecutionContext,
    create_default_dispatcher,
    create_dry_run_dispatcher,
)
from action_handlers.screenshot import resolve_screenshot_path
from action_handlers.show_message import CLOSE_WAIT_LIMIT_MS
from workflow_errors import DispatchError
from workflow_models import ActionType
from workflow_validation import validate_action


def _action(**data):
    return validate_action(data)


class TestActionDispatcher(unittest.TestCase):
    """Test handler registration and dispatch."""

    def setUp(self):
        self.session = MagicMock()
        self.context = ExecutionContext()

    def test_missing_handler(self):
        """Dispatching an unregistered tag names the tag and index."""
        dispatcher = ActionDispatcher()
        action = _action(type="click", selector="#a")
        with self.assertRaises(DispatchError) as ctx:
            dispatcher.dispatch(action, self.session, self.context, 3)
        self.assertIn("click", str(ctx.exception))
        self.assertEqual(ctx.exception.action_index, 3)
        self.assertIs(ctx.exception.action, action)

    def test_handler_failure_is_wrapped(self):
        """A handler's exception is chained, not swallowed."""
        cause = RuntimeError("element not found")
        dispatcher = ActionDispatcher()
        dispatcher.register("click", MagicMock(side_effect=cause))
        with self.assertRaises(DispatchError) as ctx:
            dispatcher.dispatch(_action(type="click", selector="#a"), self.session, self.context, 1)
        self.assertIs(ctx.exception.__cause__, cause)
        self.assertEqual(ctx.exception.action_index, 1)
        self.assertIn("element not found", str(ctx.exception))

    def test_register_by_string_or_enum(self):
        handler = MagicMock()
        dispatcher = ActionDispatcher()
        dispatcher.register("waitForSelector", handler)
        self.assertIs(dispatcher.handler_for(ActionType.WAIT_FOR_SELECTOR), handler)
        dispatcher.register(ActionType.HOVER, handler)
        self.assertIs(dispatcher.handler_for("hover"), handler)
        self.assertIsNone(dispatcher.handler_for("teleport"))

    def test_handler_receives_context(self):
        handler = MagicMock()
        dispatcher = ActionDispatcher()
        dispatcher.register("press", handler)
        action = _action(type="press", key="Enter")
        dispatcher.dispatch(action, self.session, self.context, 0)
        handler.assert_called_once_with(action, self.session, self.context)

    def test_default_dispatcher_is_total(self):
        """Every action type has a built-in handler."""
        self.assertEqual(create_default_dispatcher().registered_types, frozenset(ActionType))

    def test_dry_run_never_touches_session(self):
        dispatcher = create_dry_run_dispatcher()
        self.assertEqual(dispatcher.registered_types, frozenset(ActionType))
        session = MagicMock()
        dispatcher.dispatch(_action(type="click", selector="#a"), session, self.context, 0)
        self.assertEqual(session.mock_calls, [])


class TestPageActions(unittest.TestCase):
    """Test that each handler makes the expected page call."""

    def setUp(self):
        self.session = MagicMock()
        self.page = self.session.page
        self.dispatcher = create_default_dispatcher()

    def _dispatch(self, **data):
        self.dispatcher.dispatch(_action(**data), self.session, ExecutionContext(), 0)

    def test_goto_waits_for_network_idle(self):
        self._dispatch(type="goto", url="https://example.com")
        self.page.goto.assert_called_once_with("https://example.com", wait_until="networkidle")

    def test_selector_actions(self):
        for tag, method in [("click", "click"), ("hover", "hover"),
                            ("check", "check"), ("uncheck", "uncheck")]:
            self._dispatch(type=tag, selector="#target")
            getattr(self.page, method).assert_called_once_with("#target")

    def test_fill(self):
        self._dispatch(type="fill", selector="#email", value="me@example.com")
        self.page.fill.assert_called_once_with("#email", "me@example.com")

    def test_type_uses_delay(self):
        self._dispatch(type="type", selector="#q", text="hello", delay=120)
        self.page.locator.assert_called_once_with("#q")
        self.page.locator.return_value.press_sequentially.assert_called_once_with("hello", delay=120)

    def test_press(self):
        self._dispatch(type="press", key="Enter")
        self.page.keyboard.press.assert_called_once_with("Enter")

    def test_wait_for_selector_visible(self):
        self._dispatch(type="waitForSelector", selector="h1")
        self.page.wait_for_selector.assert_called_once_with("h1", state="visible")

    def test_wait_for_timeout(self):
        self._dispatch(type="waitForTimeout", timeout=750)
        self.page.wait_for_timeout.assert_called_once_with(750)

    def test_select_option(self):
        self._dispatch(type="selectOption", selector="#country", value="fr")
        self.page.select_option.assert_called_once_with("#country", "fr")

    def test_select_multiple_options(self):
        self._dispatch(type="selectOption", selector="#tags", value=["a", "b"])
        self.page.select_option.assert_called_once_with("#tags", ["a", "b"])

    def test_evaluate_verbatim(self):
        script = "document.body.style.zoom = '150%'"
        self._dispatch(type="evaluate", script=script)
        self.page.evaluate.assert_called_once_with(script)


class TestShowMessage(unittest.TestCase):
    """Test the on-page message handler."""

    def setUp(self):
        self.session = MagicMock()
        self.dispatcher = create_default_dispatcher()

    def test_shows_message(self):
        action = _action(type="showMessage", message="Hello", position="center", style="success")
        self.dispatcher.dispatch(action, self.session, ExecutionContext(), 0)
        options = self.session.overlays.show_message.call_args[0][0]
        self.assertEqual(options.message, "Hello")
        self.assertEqual(options.position, "center")
        self.assertEqual(options.style, "success")
        self.session.overlays.wait_until_closed.assert_not_called()

    def test_waits_for_close_when_sticky(self):
        action = _action(type="showMessage", message="Click x to go on", duration=0, waitForClose=True)
        self.dispatcher.dispatch(action, self.session, ExecutionContext(), 0)
        self.session.overlays.wait_until_closed.assert_called_once_with(CLOSE_WAIT_LIMIT_MS)

    def test_no_wait_when_duration_set(self):
        action = _action(type="showMessage", message="hi", duration=2000, waitForClose=True)
        self.dispatcher.dispatch(action, self.session, ExecutionContext(), 0)
        self.session.overlays.wait_until_closed.assert_not_called()


class TestScreenshot(unittest.TestCase):
    """Test screenshot path resolution and capture."""

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.run_dir = Path(self.temp_dir.name)

    def tearDown(self):
        self.temp_dir.cleanup()

    def test_generated_name(self):
        path = resolve_screenshot_path(_action(type="screenshot"), self.run_dir, now_ms=1700000000123)
        self.assertEqual(path, self.run_dir / "screenshots" / "screenshot_1700000000123.png")

    def test_filename(self):
        path = resolve_screenshot_path(_action(type="screenshot", filename="home.png"), self.run_dir)
        self.assertEqual(path, self.run_dir / "screenshots" / "home.png")

    def test_relative_path_reduced_to_base_name(self):
        action = _action(type="screenshot", path="shots/nested/login.jpg", filename="ignored")
        path = resolve_screenshot_path(action, self.run_dir)
        self.assertEqual(path, self.run_dir / "screenshots" / "login.png")

    def test_absolute_path_used_as_is(self):
        target = str(self.run_dir / "elsewhere" / "final.png")
        path = resolve_screenshot_path(_action(type="screenshot", path=target), self.run_dir)
        self.assertEqual(path, Path(target))

    def test_handler_captures_page(self):
        session = MagicMock()
        action = _action(type="screenshot", filename="step", fullPage=True)
        create_default_dispatcher().dispatch(action, session, ExecutionContext(output_dir=self.run_dir), 0)
        expected = self.run_dir / "screenshots" / "step.png"
        session.page.screenshot.assert_called_once_with(path=str(expected), full_page=True)
        self.assertTrue(expected.parent.is_dir())


if __name__ == '__main__':
    unittest.main()
