"""Default handler table: one handler per action type."""

from action_handlers import page_actions
from action_handlers.manual_gate import wait_for_manual_action
from action_handlers.registry import ActionDispatcher
from action_handlers.screenshot import take_screenshot
from action_handlers.show_message import show_message
from workflow_models import ActionType

BUILTIN_HANDLERS = {
    ActionType.GOTO: page_actions.goto,
    ActionType.CLICK: page_actions.click,
    ActionType.FILL: page_actions.fill,
    ActionType.TYPE: page_actions.type_text,
    ActionType.PRESS: page_actions.press,
    ActionType.HOVER: page_actions.hover,
    ActionType.SCREENSHOT: take_screenshot,
    ActionType.WAIT_FOR_SELECTOR: page_actions.wait_for_selector,
    ActionType.WAIT_FOR_TIMEOUT: page_actions.wait_for_timeout,
    ActionType.WAIT_FOR_MANUAL_ACTION: wait_for_manual_action,
    ActionType.SELECT_OPTION: page_actions.select_option,
    ActionType.CHECK: page_actions.check,
    ActionType.UNCHECK: page_actions.uncheck,
    ActionType.EVALUATE: page_actions.evaluate,
    ActionType.SHOW_MESSAGE: show_message,
}


def create_default_dispatcher() -> ActionDispatcher:
    dispatcher = ActionDispatcher()
    for tag, handler in BUILTIN_HANDLERS.items():
        dispatcher.register(tag, handler)
    return dispatcher
