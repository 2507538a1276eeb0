"""
Exception hierarchy for PlayFlow.

Every error raised on purpose by the runner derives from PlayFlowError so the
CLI and the API server can tell expected failures from bugs.
"""

from __future__ import annotations

from typing import Any, Optional


class PlayFlowError(Exception):
    """Base class for all PlayFlow errors."""


class WorkflowValidationError(PlayFlowError):
    """A workflow was rejected before execution. Carries every issue found."""

    def __init__(self, issues: list[Any]):
        self.issues = list(issues)
        count = len(self.issues)
        super().__init__(f"Workflow validation failed with {count} error(s)")


class WorkflowNotFoundError(PlayFlowError):
    def __init__(self, name: str, path: str):
        self.name = name
        self.path = path
        super().__init__(f"Workflow '{name}' not found at {path}")


class DispatchError(PlayFlowError):
    """An action could not be dispatched, or its handler failed."""

    def __init__(self, message: str, action_index: int, action: Any):
        self.action_index = action_index
        self.action = action
        super().__init__(message)


class ConfigError(PlayFlowError):
    def __init__(self, message: str, config_path: Optional[str] = None):
        self.config_path = config_path
        super().__init__(message)


class FileSystemError(PlayFlowError):
    def __init__(self, message: str, path: Optional[str] = None):
        self.path = path
        super().__init__(message)


class EncoderError(PlayFlowError):
    """ffmpeg exited with a non-zero status or could not be started."""


class ManualActionTimeout(PlayFlowError, TimeoutError):
    """Nobody released a manual gate before its timeout."""

    def __init__(self, timeout_ms: float):
        self.timeout_ms = timeout_ms
        super().__init__(f"Manual action timed out after {timeout_ms / 1000:g} seconds")
