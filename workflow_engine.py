"""
Workflow Runner: replays a validated workflow against a live browser page.

Actions run strictly one after another through the dispatcher, each bracketed
by timeline entries. Whether the loop finishes or a handler fails, the runner
closes the page, salvages the capture into an MP4, and finalizes the
timeline exactly once. It never exits the process; callers get an
ExecutionResult.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Optional

from action_handlers import ActionDispatcher, ExecutionContext, create_default_dispatcher
from browser_session import BrowserSession
from persistence import OutputStore, copy_file, delete_file
from recording_config import (
    CONFIG_FILE,
    DEFAULT_CONFIG_FILE,
    GlobalConfig,
    load_global_config,
    merge_configs,
)
from timeline_logger import TimelineLogger
from video_converter import convert_and_cleanup
from workflow_loader import WORKFLOWS_DIR, load_workflow
from workflow_models import Workflow, action_label

logger = logging.getLogger(__name__)

ACTION_DELAY_MS = 500


class RunState(str, Enum):
    LOADED = "loaded"
    VALIDATED = "validated"
    RUNNING = "running"
    FINALIZING = "finalizing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class ExecutionResult:
    success: bool
    duration_ms: int
    video_path: Optional[Path] = None
    output_directory: Optional[Path] = None
    error: Optional[BaseException] = None


Encoder = Callable[[Path, Path, Optional[Path]], Path]


class WorkflowRunner:
    """Runs one workflow once."""

    def __init__(
        self,
        workflow: Workflow,
        config: GlobalConfig,
        dispatcher: Optional[ActionDispatcher] = None,
        session_factory: Callable[..., BrowserSession] = BrowserSession,
        encoder: Encoder = convert_and_cleanup,
        output_store: Optional[OutputStore] = None,
        action_delay_ms: float = ACTION_DELAY_MS,
        record: bool = True,
        load_session: Optional[str] = None,
        save_session: Optional[str] = None,
        browser_type: str = "chromium",
        clock: Callable[[], float] = time.monotonic,
    ):
        self.workflow = workflow
        self.config = config
        self.dispatcher = dispatcher or create_default_dispatcher()
        self.session_factory = session_factory
        self.encoder = encoder
        self.output_store = output_store or OutputStore()
        self.action_delay_ms = action_delay_ms
        self.record = record
        self.load_session = load_session
        self.save_session = save_session
        self.browser_type = browser_type
        self._clock = clock

        self.state = RunState.VALIDATED
        self._session: Optional[BrowserSession] = None
        self._timeline: Optional[TimelineLogger] = None
        self._output_dir: Optional[Path] = None
        self._error: Optional[BaseException] = None

    @property
    def timeline(self) -> Optional[TimelineLogger]:
        return self._timeline

    def run(self) -> ExecutionResult:
        if self.state is not RunState.VALIDATED:
            raise RuntimeError(f"Runner cannot start from state {self.state.value}")

        started = self._clock()
        self.state = RunState.RUNNING
        logger.info(f"Starting workflow: {self.workflow.name} ({len(self.workflow.actions)} actions)")

        try:
            self._open()
            self._run_actions()
            logger.info("Workflow completed successfully")
        except Exception as e:
            self._error = e
            logger.error(f"Error executing workflow: {e}")

        self.state = RunState.FINALIZING
        video_path = self._finish(started)

        duration_ms = self._elapsed_ms(started)
        success = self._error is None
        self.state = RunState.SUCCEEDED if success else RunState.FAILED
        return ExecutionResult(
            success=success,
            duration_ms=duration_ms,
            video_path=video_path,
            output_directory=self._output_dir,
            error=self._error,
        )

    def _elapsed_ms(self, started: float) -> int:
        return int(round((self._clock() - started) * 1000))

    def _open(self) -> None:
        self._session = self.session_factory(video_dir=self.output_store.temp_video_dir)
        self._session.launch(
            self.config.browser,
            self.browser_type,
            load_session=self.load_session,
            record=self.record,
            video_size=self.config.video.size,
        )
        self._output_dir = self.output_store.create_run_directory(self.workflow.name)
        # Started after the browser so times line up with the capture
        self._timeline = TimelineLogger(
            self._output_dir,
            self.workflow.name,
            skip_all_vtt=self.config.video.skip_all_vtt,
            skip_all_chapters=self.config.video.skip_all_chapters,
            clock=self._clock,
        )

    def _run_actions(self) -> None:
        context = ExecutionContext(output_dir=self._output_dir)
        total = len(self.workflow.actions)

        for index, action in enumerate(self.workflow.actions):
            logger.info(f"[{index + 1}/{total}] {action.type}: {action_label(action)}")
            self._timeline.record_start(action, index)
            action_started = self._clock()
            try:
                self.dispatcher.dispatch(action, self._session, context, index)
            except Exception as e:
                self._timeline.record_failure(action, index, e)
                raise
            self._timeline.record_complete(action, index, self._elapsed_ms(action_started))

            if self.action_delay_ms > 0:
                self._session.page.wait_for_timeout(self.action_delay_ms)

    def _attempt(self, label: str, step: Callable, *args):
        """Run a finishing step; a failure is logged and only recorded if nothing failed before."""
        try:
            return step(*args)
        except Exception as e:
            logger.error(f"{label} failed: {e}")
            if self._error is None:
                self._error = e
            return None

    def _finish(self, started: float) -> Optional[Path]:
        session = self._session
        video_path = None

        if session is not None and session.is_initialized():
            capture = self._attempt("Closing page", session.close_page)
            if self.record and self._output_dir is not None:
                video_path = self._attempt("Saving video", self._save_video, capture)
            if self.save_session and self._error is None:
                self._attempt("Saving session", session.save_session, self.save_session)

        if self._timeline is not None and not self._timeline.finalized:
            self._attempt("Finalizing timeline", self._timeline.finalize, self._elapsed_ms(started))

        if session is not None:
            self._attempt("Closing browser", session.close)

        return video_path

    def _save_video(self, capture: Optional[Path]) -> Optional[Path]:
        if capture is None or not capture.exists():
            capture = self.output_store.latest_capture()
        if capture is None:
            logger.warning("No video capture found")
            return None

        if self._timeline is not None:
            self._timeline.emit_derived_tracks()

        webm_path, mp4_path = OutputStore.video_paths(self._output_dir)
        copy_file(capture, webm_path)
        logger.info("Converting video to MP4 format...")
        chapter_path = self._timeline.chapter_path if self._timeline is not None else None
        video_path = self.encoder(webm_path, mp4_path, chapter_path)
        logger.info(f"Video saved: {video_path}")

        delete_file(capture)
        return video_path


def run_workflow(
    name: str,
    workflows_dir: Path = WORKFLOWS_DIR,
    config_path: Path | str = CONFIG_FILE,
    default_config_path: Path | str = DEFAULT_CONFIG_FILE,
    **runner_options,
) -> ExecutionResult:
    """
    Load, validate and run a named workflow.

    Raises:
        WorkflowNotFoundError, WorkflowValidationError, ConfigError: Before
            any browser or output directory is created
    """
    workflow = load_workflow(name, workflows_dir)
    config = merge_configs(load_global_config(config_path, default_config_path), workflow.config)
    return WorkflowRunner(workflow, config, **runner_options).run()
