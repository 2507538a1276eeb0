"""
Workflow validation.

Checks a raw (JSON-decoded) workflow against the action schemas before
anything is executed. All problems across all actions are collected so the
author sees every defect in one pass; nothing here touches the disk.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from pydantic import TypeAdapter, ValidationError

from recording_config import WorkflowConfig
from workflow_errors import WorkflowValidationError
from workflow_models import Action, Workflow

_ACTION_ADAPTER: TypeAdapter = TypeAdapter(Action)


@dataclass(frozen=True)
class ValidationIssue:
    message: str
    action_index: Optional[int] = None
    action_type: Optional[str] = None
    field: Optional[str] = None


def format_issue(issue: ValidationIssue) -> str:
    """One-line rendering used by the CLI and the API."""
    text = issue.message
    if issue.action_index is not None:
        kind = f" ({issue.action_type})" if issue.action_type else ""
        text = f"Action {issue.action_index}{kind}: {text}"
    if issue.field:
        text += f" [field: {issue.field}]"
    return text


def _issue_from_error(err: dict, index: Optional[int], action_type: Optional[str]) -> ValidationIssue:
    loc = [str(part) for part in err["loc"]]
    if err["type"] == "union_tag_invalid":
        tag = err.get("ctx", {}).get("tag", action_type)
        return ValidationIssue(f"Unknown action type: {tag}", index, action_type, "type")
    if err["type"] == "union_tag_not_found":
        return ValidationIssue("Missing action type", index, None, "type")
    # Tagged unions prefix the location with the tag itself
    if loc and loc[0] == action_type:
        loc = loc[1:]
    return ValidationIssue(err["msg"], index, action_type, ".".join(loc) or None)


def _check_action(data: Any, index: Optional[int]) -> tuple[Optional[Any], list[ValidationIssue]]:
    if not isinstance(data, dict):
        return None, [ValidationIssue("Action must be an object", index)]
    action_type = data.get("type") if isinstance(data.get("type"), str) else None
    try:
        return _ACTION_ADAPTER.validate_python(data), []
    except ValidationError as e:
        return None, [_issue_from_error(err, index, action_type) for err in e.errors()]


def validate_action(data: Any, index: Optional[int] = None) -> Any:
    """
    Validate a single action.

    Returns:
        The typed, immutable action model

    Raises:
        WorkflowValidationError: If the action is invalid
    """
    action, issues = _check_action(data, index)
    if issues:
        raise WorkflowValidationError(issues)
    return action


def _check_workflow(data: Any) -> tuple[list[ValidationIssue], list[Any], Optional[WorkflowConfig]]:
    if not isinstance(data, dict):
        return [ValidationIssue("Workflow must be an object")], [], None

    issues: list[ValidationIssue] = []
    actions: list[Any] = []
    config = None

    name = data.get("name")
    if not isinstance(name, str) or not name.strip():
        issues.append(ValidationIssue("Workflow name must be a non-empty string", field="name"))

    raw_actions = data.get("actions")
    if not isinstance(raw_actions, list):
        issues.append(ValidationIssue("Workflow actions must be a list", field="actions"))
    else:
        for index, raw in enumerate(raw_actions):
            action, action_issues = _check_action(raw, index)
            issues.extend(action_issues)
            if action is not None:
                actions.append(action)

    raw_config = data.get("config")
    if raw_config is not None:
        try:
            config = WorkflowConfig.model_validate(raw_config)
        except ValidationError as e:
            for err in e.errors():
                loc = ".".join(["config"] + [str(part) for part in err["loc"]])
                issues.append(ValidationIssue(err["msg"], field=loc))

    return issues, actions, config


def collect_errors(data: Any) -> list[ValidationIssue]:
    """Return every validation issue in a raw workflow (empty when valid)."""
    issues, _, _ = _check_workflow(data)
    return issues


def validate_workflow(data: Any) -> Workflow:
    """
    Validate a raw workflow and build the typed Workflow.

    Raises:
        WorkflowValidationError: Carrying all issues, if any were found
    """
    issues, actions, config = _check_workflow(data)
    if issues:
        raise WorkflowValidationError(issues)
    return Workflow(name=data["name"], actions=tuple(actions), config=config)
