#!/usr/bin/env python3
"""
PlayFlow command line.

Replays JSON workflows in a real browser and records them to MP4 with
timecoded chapters. Exit codes are decided here and nowhere else.
"""

import argparse
import json
import logging
import subprocess
import sys
from collections import Counter
from pathlib import Path

from action_handlers import ExecutionContext, create_dry_run_dispatcher
from browser_session import BROWSER_TYPES
from persistence import OUTPUT_ROOT, SCREENSHOTS_DIR, TEMP_VIDEO_DIR, ensure_directory, write_text
from recording_config import (
    CONFIG_FILE,
    DEFAULT_CONFIG_FILE,
    config_to_dict,
    default_config,
    load_global_config,
    merge_configs,
)
from video_converter import check_ffmpeg
from workflow_engine import WorkflowRunner
from workflow_errors import PlayFlowError, WorkflowValidationError
from workflow_loader import WORKFLOWS_DIR, create_workflow_template, list_workflows, load_workflow
from workflow_models import action_label
from workflow_validation import format_issue

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

MAX_LISTED_ACTIONS = 3


def _log_issues(error: WorkflowValidationError) -> None:
    logger.error("Workflow validation failed:")
    for issue in error.issues:
        logger.error(f"  - {format_issue(issue)}")


def cmd_setup(args) -> int:
    logger.info("Setting up PlayFlow...")
    for directory in (WORKFLOWS_DIR, Path(OUTPUT_ROOT) / SCREENSHOTS_DIR, Path(OUTPUT_ROOT) / TEMP_VIDEO_DIR):
        ensure_directory(directory)

    if not Path(CONFIG_FILE).exists():
        logger.info("Creating default configuration...")
        write_text(CONFIG_FILE, json.dumps(config_to_dict(default_config()), indent=2) + "\n")

    logger.info("Installing Playwright browsers...")
    install = subprocess.run([sys.executable, "-m", "playwright", "install"])
    if install.returncode != 0:
        logger.error(f"Playwright install exited with code {install.returncode}")
        return 1

    if check_ffmpeg():
        logger.info("FFmpeg is installed")
    else:
        logger.warning("FFmpeg is not installed or not in PATH; videos will be kept as WebM")

    if not (WORKFLOWS_DIR / "example").exists():
        create_workflow_template("example")

    logger.info("Setup completed. Edit workflows/example/actions.json, then run: playflow record example")
    return 0


def _run(args, record: bool) -> int:
    logger.info(f"Loading workflow: {args.workflow}")
    try:
        workflow = load_workflow(args.workflow)
    except WorkflowValidationError as e:
        _log_issues(e)
        return 1
    logger.info("Workflow is valid")

    if getattr(args, "dry_run", False):
        dispatcher = create_dry_run_dispatcher()
        for index, action in enumerate(workflow.actions):
            dispatcher.dispatch(action, None, ExecutionContext(), index)
        logger.info("Dry run mode - workflow not executed")
        return 0

    config_path = getattr(args, "config", CONFIG_FILE)
    config = merge_configs(load_global_config(config_path, DEFAULT_CONFIG_FILE), workflow.config)

    runner = WorkflowRunner(
        workflow,
        config,
        record=record,
        load_session=args.session,
        save_session=args.save_session,
        browser_type=args.browser,
    )
    result = runner.run()

    if result.success:
        logger.info("Workflow executed successfully!")
        if result.video_path:
            logger.info(f"Video saved to: {result.video_path}")
        logger.info(f"Duration: {result.duration_ms / 1000:.3f}s")
        if args.save_session:
            logger.info(f"Session saved as: {args.save_session}")
        return 0

    logger.error(f"Workflow execution failed: {result.error}")
    if result.video_path:
        logger.warning(f"Partial video saved to: {result.video_path}")
    return 1


def cmd_record(args) -> int:
    return _run(args, record=True)


def cmd_execute(args) -> int:
    return _run(args, record=False)


def cmd_list(args) -> int:
    workflows = list_workflows()
    if not workflows:
        logger.warning("No workflows found. Create one by running: playflow setup")
        return 0

    print(f"Found {len(workflows)} workflow(s):\n")
    for name in workflows:
        print(f"  * {name}")
        if not args.details:
            continue
        try:
            workflow = load_workflow(name)
        except PlayFlowError as e:
            print(f"    Error loading workflow: {e}")
            continue
        print(f"    Actions: {len(workflow.actions)}")
        for index, action in enumerate(workflow.actions[:MAX_LISTED_ACTIONS]):
            print(f"      {index + 1}. {action.type}: {action_label(action)}")
        if len(workflow.actions) > MAX_LISTED_ACTIONS:
            print(f"      ... and {len(workflow.actions) - MAX_LISTED_ACTIONS} more")
    return 0


def cmd_validate(args) -> int:
    logger.info(f"Validating workflow: {args.workflow}")
    try:
        workflow = load_workflow(args.workflow)
    except WorkflowValidationError as e:
        _log_issues(e)
        return 1

    print("Workflow structure is valid")
    if args.verbose:
        for index, action in enumerate(workflow.actions):
            print(f"  ok Action {index + 1}: {action.type}")
            if action.description:
                print(f"     {action.description}")

    print("\nWorkflow summary:")
    print(f"  Name: {workflow.name}")
    print(f"  Actions: {len(workflow.actions)}")
    print("  Action types:")
    for action_type, count in Counter(action.type for action in workflow.actions).items():
        print(f"    - {action_type}: {count}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="playflow",
        description="Replay browser workflows and record them as chaptered videos",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  playflow setup
  playflow record example
  playflow record example --dry-run
  playflow record login --save-session me
  playflow execute dashboard --session me
  playflow list --details
  playflow validate example --verbose
        """
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("setup", help="Create directories, default config and install browsers")

    def add_run_options(p):
        p.add_argument("workflow", help="Workflow name (directory under workflows/)")
        p.add_argument("--session", help="Load browser session with this name")
        p.add_argument("--save-session", help="Save browser session under this name afterwards")
        p.add_argument("--browser", choices=BROWSER_TYPES, default="chromium")

    p_record = sub.add_parser("record", help="Execute a workflow and record the browser")
    add_run_options(p_record)
    p_record.add_argument("-c", "--config", default=CONFIG_FILE, help="Path to recording config")
    p_record.add_argument("--dry-run", action="store_true", help="Validate and log actions without executing")

    p_execute = sub.add_parser("execute", help="Execute a workflow without recording")
    add_run_options(p_execute)

    p_list = sub.add_parser("list", help="List available workflows")
    p_list.add_argument("-d", "--details", action="store_true", help="Show workflow details")

    p_validate = sub.add_parser("validate", help="Validate a workflow")
    p_validate.add_argument("workflow")
    p_validate.add_argument("-v", "--verbose", action="store_true", help="Show per-action results")

    return parser


COMMANDS = {
    "setup": cmd_setup,
    "record": cmd_record,
    "execute": cmd_execute,
    "list": cmd_list,
    "validate": cmd_validate,
}


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    try:
        return COMMANDS[args.command](args)
    except PlayFlowError as e:
        logger.error(f"Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
