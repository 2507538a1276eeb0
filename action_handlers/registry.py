"""
Action dispatch registry.

Maps an action's ``type`` tag to the handler that performs it. The runner
only ever talks to the dispatcher, so handlers can be swapped (for example
for a dry run) without touching the run loop.

A handler is any callable ``handler(action, session, context)``; ``session``
exposes ``.page`` (a Playwright page) and ``.overlays`` (an OverlayInjector).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Optional

from workflow_errors import DispatchError
from workflow_models import ActionType, action_label

logger = logging.getLogger(__name__)

ActionHandler = Callable[[Any, Any, "ExecutionContext"], None]


@dataclass(frozen=True)
class ExecutionContext:
    """What a handler may know about the run besides the page."""

    output_dir: Optional[Path] = None


class ActionDispatcher:
    """Resolves handlers by action tag and invokes them."""

    def __init__(self):
        self._handlers: dict[ActionType, ActionHandler] = {}

    def register(self, tag: ActionType | str, handler: ActionHandler) -> None:
        """Bind a handler to a tag, replacing any previous one."""
        self._handlers[ActionType(tag)] = handler

    def handler_for(self, tag: str) -> Optional[ActionHandler]:
        try:
            return self._handlers.get(ActionType(tag))
        except ValueError:
            return None

    @property
    def registered_types(self) -> frozenset[ActionType]:
        return frozenset(self._handlers)

    def dispatch(self, action: Any, session: Any, context: ExecutionContext, index: int) -> None:
        """
        Run one action.

        Raises:
            DispatchError: If no handler is registered for the tag or the
                handler fails; the original exception is chained as __cause__
        """
        handler = self.handler_for(action.type)
        if handler is None:
            raise DispatchError(
                f"No handler registered for action type: {action.type} (action {index})",
                index,
                action,
            )
        try:
            handler(action, session, context)
        except Exception as e:
            raise DispatchError(
                f"Failed to execute {action.type} action (action {index}): {e}",
                index,
                action,
            ) from e


def dry_run_handler(action: Any, session: Any, context: ExecutionContext) -> None:
    """Log the action without touching the page."""
    logger.info(f"[dry run] {action.type}: {action_label(action)}")


def create_dry_run_dispatcher() -> ActionDispatcher:
    dispatcher = ActionDispatcher()
    for tag in ActionType:
        dispatcher.register(tag, dry_run_handler)
    return dispatcher
