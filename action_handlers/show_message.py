"""On-page message handler."""

from __future__ import annotations

import logging

from action_handlers.registry import ExecutionContext
from ui_injector import MessageOptions

logger = logging.getLogger(__name__)

# Upper bound on waiting for a sticky message to be dismissed
CLOSE_WAIT_LIMIT_MS = 5 * 60 * 1000


def show_message(action, session, context: ExecutionContext) -> None:
    session.overlays.show_message(MessageOptions(
        message=action.message,
        position=action.position,
        duration=action.duration,
        style=action.style,
        close_button=action.close_button,
    ))

    if action.wait_for_close and action.duration == 0:
        logger.info("Waiting for message to be closed...")
        session.overlays.wait_until_closed(CLOSE_WAIT_LIMIT_MS)
