"""
Workflow data models.

Defines the JSON structure of a workflow: an ordered list of typed actions
plus an optional configuration override. Actions form a discriminated union
on their ``type`` field; JSON keys are camelCase, attributes snake_case.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Literal, Optional, Union
from urllib.parse import urlparse

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictStr,
    field_validator,
)
from pydantic.alias_generators import to_camel

from recording_config import WorkflowConfig

NonEmptyStr = Annotated[StrictStr, Field(min_length=1)]
PositiveMs = Annotated[float, Field(gt=0, strict=True)]
NonNegativeMs = Annotated[float, Field(ge=0, strict=True)]

DEFAULT_TYPE_DELAY_MS = 50
DEFAULT_MANUAL_TIMEOUT_MS = 300_000
DEFAULT_MESSAGE_DURATION_MS = 5000


class ActionType(str, Enum):
    GOTO = "goto"
    CLICK = "click"
    FILL = "fill"
    TYPE = "type"
    PRESS = "press"
    HOVER = "hover"
    SCREENSHOT = "screenshot"
    WAIT_FOR_SELECTOR = "waitForSelector"
    WAIT_FOR_TIMEOUT = "waitForTimeout"
    WAIT_FOR_MANUAL_ACTION = "waitForManualAction"
    SELECT_OPTION = "selectOption"
    CHECK = "check"
    UNCHECK = "uncheck"
    EVALUATE = "evaluate"
    SHOW_MESSAGE = "showMessage"


class ActionBase(BaseModel):
    """Fields shared by every action."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    description: Optional[StrictStr] = None
    skip_vtt: StrictBool = Field(
        default=False,
        validation_alias=AliasChoices("skipVtt", "skipTimelineCue", "skip_vtt"),
    )
    skip_chapter: StrictBool = False


class GotoAction(ActionBase):
    type: Literal["goto"]
    url: NonEmptyStr

    @field_validator("url")
    @classmethod
    def _check_url(cls, value: str) -> str:
        parsed = urlparse(value)
        if any(ch.isspace() for ch in value) or not parsed.scheme:
            raise ValueError("Invalid url")
        if not (parsed.netloc or parsed.path):
            raise ValueError("Invalid url")
        return value


class ClickAction(ActionBase):
    type: Literal["click"]
    selector: NonEmptyStr


class FillAction(ActionBase):
    type: Literal["fill"]
    selector: NonEmptyStr
    value: StrictStr


class TypeAction(ActionBase):
    type: Literal["type"]
    selector: NonEmptyStr
    text: StrictStr
    delay: NonNegativeMs = DEFAULT_TYPE_DELAY_MS  # between keystrokes


class PressAction(ActionBase):
    type: Literal["press"]
    key: NonEmptyStr


class HoverAction(ActionBase):
    type: Literal["hover"]
    selector: NonEmptyStr


class ScreenshotAction(ActionBase):
    type: Literal["screenshot"]
    path: Optional[NonEmptyStr] = None
    filename: Optional[NonEmptyStr] = None
    full_page: StrictBool = False


class WaitForSelectorAction(ActionBase):
    type: Literal["waitForSelector"]
    selector: NonEmptyStr


class WaitForTimeoutAction(ActionBase):
    type: Literal["waitForTimeout"]
    timeout: PositiveMs


class OverlayOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: Optional[StrictStr] = None
    instruction: Optional[StrictStr] = None
    backdrop: StrictBool = False
    progress: StrictBool = False


class WaitForManualAction(ActionBase):
    type: Literal["waitForManualAction"]
    message: Optional[StrictStr] = None
    continue_selector: Optional[NonEmptyStr] = None
    continue_text: Optional[NonEmptyStr] = None
    timeout: PositiveMs = DEFAULT_MANUAL_TIMEOUT_MS
    show_overlay: StrictBool = False
    overlay_options: Optional[OverlayOptions] = None


class SelectOptionAction(ActionBase):
    type: Literal["selectOption"]
    selector: NonEmptyStr
    value: Union[StrictStr, tuple[StrictStr, ...]]


class CheckAction(ActionBase):
    type: Literal["check"]
    selector: NonEmptyStr


class UncheckAction(ActionBase):
    type: Literal["uncheck"]
    selector: NonEmptyStr


class EvaluateAction(ActionBase):
    type: Literal["evaluate"]
    script: NonEmptyStr


MessagePosition = Literal[
    "top-left", "top-center", "top-right",
    "bottom-left", "bottom-center", "bottom-right",
    "center",
]
MessageStyle = Literal["info", "warning", "error", "success"]


class ShowMessageAction(ActionBase):
    type: Literal["showMessage"]
    message: StrictStr
    position: MessagePosition = "top-left"
    duration: NonNegativeMs = DEFAULT_MESSAGE_DURATION_MS
    style: MessageStyle = "info"
    close_button: StrictBool = True
    wait_for_close: StrictBool = False


Action = Annotated[
    Union[
        GotoAction,
        ClickAction,
        FillAction,
        TypeAction,
        PressAction,
        HoverAction,
        ScreenshotAction,
        WaitForSelectorAction,
        WaitForTimeoutAction,
        WaitForManualAction,
        SelectOptionAction,
        CheckAction,
        UncheckAction,
        EvaluateAction,
        ShowMessageAction,
    ],
    Field(discriminator="type"),
]

ACTION_MODELS: dict[ActionType, type[ActionBase]] = {
    ActionType.GOTO: GotoAction,
    ActionType.CLICK: ClickAction,
    ActionType.FILL: FillAction,
    ActionType.TYPE: TypeAction,
    ActionType.PRESS: PressAction,
    ActionType.HOVER: HoverAction,
    ActionType.SCREENSHOT: ScreenshotAction,
    ActionType.WAIT_FOR_SELECTOR: WaitForSelectorAction,
    ActionType.WAIT_FOR_TIMEOUT: WaitForTimeoutAction,
    ActionType.WAIT_FOR_MANUAL_ACTION: WaitForManualAction,
    ActionType.SELECT_OPTION: SelectOptionAction,
    ActionType.CHECK: CheckAction,
    ActionType.UNCHECK: UncheckAction,
    ActionType.EVALUATE: EvaluateAction,
    ActionType.SHOW_MESSAGE: ShowMessageAction,
}


class Workflow(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: NonEmptyStr
    actions: tuple[Action, ...] = ()
    config: Optional[WorkflowConfig] = None


def describe_action(action: ActionBase) -> str:
    """Build the default human-readable description for an action."""
    kind = action.type
    if kind == "goto":
        return f"Navigate to {action.url}"
    if kind == "click":
        return f"Click {action.selector}"
    if kind == "fill":
        return f'Fill {action.selector} with "{action.value}"'
    if kind == "type":
        return f"Type text in {action.selector}"
    if kind == "press":
        return f"Press {action.key}"
    if kind == "hover":
        return f"Hover over {action.selector}"
    if kind == "screenshot":
        return f"Take screenshot ({action.filename})" if action.filename else "Take screenshot"
    if kind == "waitForSelector":
        return f"Wait for {action.selector}"
    if kind == "waitForTimeout":
        return f"Wait {action.timeout:g}ms"
    if kind == "selectOption":
        return f"Select option in {action.selector}"
    if kind == "check":
        return f"Check {action.selector}"
    if kind == "uncheck":
        return f"Uncheck {action.selector}"
    if kind == "evaluate":
        return "Execute JavaScript"
    if kind == "waitForManualAction":
        return action.message or "Wait for manual action"
    if kind == "showMessage":
        return f"Show message: {action.message}"
    return "Execute action"


def action_label(action: ActionBase) -> str:
    """The author's description if given, otherwise the default one."""
    return action.description or describe_action(action)
