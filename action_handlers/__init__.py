"""
Action handlers.

Each handler performs one action type against a live browser session. The
dispatcher maps action tags to handlers so the runner never needs to know
what an action means.
"""

from .registry import (
    ActionDispatcher,
    ActionHandler,
    ExecutionContext,
    create_dry_run_dispatcher,
    dry_run_handler,
)
from .builtin import BUILTIN_HANDLERS, create_default_dispatcher

__all__ = [
    'ActionDispatcher',
    'ActionHandler',
    'BUILTIN_HANDLERS',
    'ExecutionContext',
    'create_default_dispatcher',
    'create_dry_run_dispatcher',
    'dry_run_handler',
]
