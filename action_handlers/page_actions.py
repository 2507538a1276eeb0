"""
Handlers that translate one action into one Playwright page call.

Timeouts are not passed per call; the session sets the context's default
and navigation timeouts at launch.
"""

from __future__ import annotations

from action_handlers.registry import ExecutionContext


def goto(action, session, context: ExecutionContext) -> None:
    session.page.goto(action.url, wait_until="networkidle")


def click(action, session, context: ExecutionContext) -> None:
    session.page.click(action.selector)


def fill(action, session, context: ExecutionContext) -> None:
    # fill() clears the field before setting the value
    session.page.fill(action.selector, action.value)


def type_text(action, session, context: ExecutionContext) -> None:
    session.page.locator(action.selector).press_sequentially(action.text, delay=action.delay)


def press(action, session, context: ExecutionContext) -> None:
    session.page.keyboard.press(action.key)


def hover(action, session, context: ExecutionContext) -> None:
    session.page.hover(action.selector)


def wait_for_selector(action, session, context: ExecutionContext) -> None:
    session.page.wait_for_selector(action.selector, state="visible")


def wait_for_timeout(action, session, context: ExecutionContext) -> None:
    session.page.wait_for_timeout(action.timeout)


def select_option(action, session, context: ExecutionContext) -> None:
    value = action.value if isinstance(action.value, str) else list(action.value)
    session.page.select_option(action.selector, value)


def check(action, session, context: ExecutionContext) -> None:
    session.page.check(action.selector)


def uncheck(action, session, context: ExecutionContext) -> None:
    session.page.uncheck(action.selector)


def evaluate(action, session, context: ExecutionContext) -> None:
    # Runs as written; workflow authors are trusted
    session.page.evaluate(action.script)
