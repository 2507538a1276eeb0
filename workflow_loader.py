"""
Workflow loader.

Workflows live one per directory:

    workflows/<name>/actions.json   (or actions.yaml) - list of actions
    workflows/<name>/config.json    optional browser/video overrides
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from persistence import ensure_directory, list_directories, write_text
from recording_config import read_config_file
from workflow_errors import ConfigError, WorkflowNotFoundError
from workflow_models import Workflow
from workflow_validation import validate_workflow

logger = logging.getLogger(__name__)

WORKFLOWS_DIR = Path("workflows")
ACTION_FILES = ("actions.json", "actions.yaml", "actions.yml")
WORKFLOW_CONFIG_FILE = "config.json"

SAMPLE_ACTIONS = [
    {
        "type": "goto",
        "url": "https://example.com",
        "description": "Navigate to example.com",
    },
    {
        "type": "waitForSelector",
        "selector": "h1",
        "description": "Wait for page to load",
    },
    {
        "type": "screenshot",
        "description": "Take a screenshot",
    },
]

SAMPLE_CONFIG = {
    "browser": {"headless": False},
    "video": {"fps": 30},
}


def find_actions_file(workflow_dir: Path) -> Optional[Path]:
    for filename in ACTION_FILES:
        path = workflow_dir / filename
        if path.exists():
            return path
    return None


def load_workflow_definition(name: str, workflows_dir: Path = WORKFLOWS_DIR) -> Dict[str, Any]:
    """
    Read a workflow from disk without validating it.

    Returns:
        Raw dict with ``name``, ``actions`` and, when present, ``config``
        (config.json wins over a ``config`` block inside the actions file)

    Raises:
        WorkflowNotFoundError: If the workflow has no actions file
        ConfigError: If a file cannot be parsed
    """
    workflow_dir = Path(workflows_dir) / name
    actions_path = find_actions_file(workflow_dir)
    if actions_path is None:
        raise WorkflowNotFoundError(name, str(workflow_dir / ACTION_FILES[0]))

    try:
        with open(actions_path, 'r', encoding='utf-8') as f:
            if actions_path.suffix == ".json":
                actions = json.load(f)
            else:
                actions = yaml.safe_load(f)
    except (OSError, json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to read workflow actions: {e}", str(actions_path)) from e

    # Wrapped form {"actions": [...], "config"?: {...}} is accepted too
    inline_config = None
    if isinstance(actions, dict) and "actions" in actions:
        inline_config = actions.get("config")
        actions = actions["actions"]

    definition: Dict[str, Any] = {"name": name, "actions": actions}
    if inline_config is not None:
        definition["config"] = inline_config

    # config.json takes precedence over an inline config block
    config_path = workflow_dir / WORKFLOW_CONFIG_FILE
    if config_path.exists():
        if inline_config is not None:
            logger.warning(f"Workflow {name}: {WORKFLOW_CONFIG_FILE} overrides the inline config in {actions_path.name}")
        definition["config"] = read_config_file(config_path)

    return definition


def load_workflow(name: str, workflows_dir: Path = WORKFLOWS_DIR) -> Workflow:
    """
    Load and validate a workflow.

    Raises:
        WorkflowNotFoundError, ConfigError, WorkflowValidationError
    """
    return validate_workflow(load_workflow_definition(name, workflows_dir))


def list_workflows(workflows_dir: Path = WORKFLOWS_DIR) -> List[str]:
    """Names of all workflow directories that contain an actions file, sorted."""
    workflows_dir = Path(workflows_dir)
    if not workflows_dir.exists():
        return []
    return sorted(
        name for name in list_directories(workflows_dir)
        if find_actions_file(workflows_dir / name) is not None
    )


def create_workflow_template(name: str, workflows_dir: Path = WORKFLOWS_DIR) -> Path:
    """
    Scaffold a new workflow with sample actions and config.

    Raises:
        FileExistsError: If the workflow already has an actions file
    """
    workflow_dir = Path(workflows_dir) / name
    if find_actions_file(workflow_dir) is not None:
        raise FileExistsError(f"Workflow '{name}' already exists at {workflow_dir}")

    ensure_directory(workflow_dir)
    write_text(workflow_dir / ACTION_FILES[0], json.dumps(SAMPLE_ACTIONS, indent=2) + "\n")
    write_text(workflow_dir / WORKFLOW_CONFIG_FILE, json.dumps(SAMPLE_CONFIG, indent=2) + "\n")
    logger.info(f"Created workflow template: {name}")
    return workflow_dir
