"""
Manual gate: pause the workflow until a person has done something.

Release happens on the first configured condition, in priority order:

1. ``continueSelector`` becomes visible
2. ``continueText`` appears in the page body text
3. a ``.continue`` file appears in the working directory (deleted on release)

Each is bounded by the action's timeout. An optional blocking overlay tells
the operator what to do; it is removed however the gate ends.
"""

from __future__ import annotations

import logging
from pathlib import Path
from time import monotonic

from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from action_handlers.registry import ExecutionContext
from ui_injector import MessageOptions
from workflow_errors import ManualActionTimeout

logger = logging.getLogger(__name__)

CONTINUE_FILE = ".continue"
POLL_INTERVAL_MS = 1000

_TEXT_PRESENT_JS = (
    "(text) => { const body = document.querySelector('body'); "
    "return body ? body.innerText.includes(text) : false; }"
)


def _wait_for_signal_file(session, timeout_ms: float, show_progress: bool,
                          signal_file: Path) -> None:
    started = monotonic()
    while True:
        if signal_file.exists():
            signal_file.unlink()
            logger.info("Continue signal received")
            return
        elapsed_ms = (monotonic() - started) * 1000
        if elapsed_ms >= timeout_ms:
            raise ManualActionTimeout(timeout_ms)
        if show_progress:
            session.overlays.update_progress(elapsed_ms / timeout_ms * 100)
        session.page.wait_for_timeout(POLL_INTERVAL_MS)


def _release(action, session) -> None:
    page = session.page
    options = action.overlay_options
    show_progress = bool(action.show_overlay and options and options.progress)

    try:
        if action.continue_selector:
            logger.info(f"Waiting for selector: {action.continue_selector}")
            page.wait_for_selector(action.continue_selector, state="visible",
                                   timeout=action.timeout)
        elif action.continue_text:
            logger.info(f"Waiting for text: {action.continue_text}")
            page.wait_for_function(_TEXT_PRESENT_JS, arg=action.continue_text,
                                   timeout=action.timeout)
        else:
            logger.info(f"Create a '{CONTINUE_FILE}' file to continue...")
            _wait_for_signal_file(session, action.timeout, show_progress, Path(CONTINUE_FILE))
    except PlaywrightTimeoutError as e:
        raise ManualActionTimeout(action.timeout) from e


def wait_for_manual_action(action, session, context: ExecutionContext) -> None:
    message = action.message or "Waiting for manual action..."
    logger.info(f"[MANUAL ACTION REQUIRED] {message}")

    if not action.show_overlay:
        _release(action, session)
        logger.info("Manual action completed, continuing...")
        return

    options = action.overlay_options
    session.overlays.show_overlay(MessageOptions(
        title=(options.title if options else None) or "Manual Action Required",
        message=(options.instruction if options else None) or message,
        style="warning",
        backdrop=bool(options and options.backdrop),
        progress=bool(options and options.progress),
    ))
    try:
        _release(action, session)
    finally:
        try:
            session.overlays.remove_overlay()
        except Exception as e:
            logger.warning(f"Could not remove manual action overlay: {e}")
    logger.info("Manual action completed, continuing...")
