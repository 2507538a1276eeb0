"""
Configuration for browser sessions and video output.

Global settings come from recording-config.json in the working directory,
then recording-config.default.json, then the built-in defaults below. A
workflow can override any of them through its own config.json.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Annotated, Any, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, StrictBool, ValidationError
from pydantic.alias_generators import to_camel

from workflow_errors import ConfigError

logger = logging.getLogger(__name__)

# Config files, looked up in this order
CONFIG_FILE = "recording-config.json"
DEFAULT_CONFIG_FILE = "recording-config.default.json"

# Browser window visible by default: recordings are meant to be watched
HEADLESS = False

# Delay in ms Playwright inserts before every browser operation
SLOW_MO = 0

VIEWPORT = {"width": 1920, "height": 1080}

# Timeouts in ms for element actions and for navigations
DEFAULT_TIMEOUT = 30000
NAVIGATION_TIMEOUT = 30000

VIDEO_SIZE = {"width": 1920, "height": 1080}
VIDEO_FPS = 30
MAX_FPS = 60

Dimension = Annotated[int, Field(gt=0, strict=True)]
PositiveNumber = Annotated[float, Field(gt=0, strict=True)]
NonNegativeNumber = Annotated[float, Field(ge=0, strict=True)]
Fps = Annotated[float, Field(gt=0, le=MAX_FPS, strict=True)]


class _ConfigModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Size(_ConfigModel):
    width: Dimension
    height: Dimension


class BrowserConfig(_ConfigModel):
    headless: StrictBool
    slow_mo: NonNegativeNumber
    viewport: Size
    show_browser_ui: Optional[StrictBool] = Field(default=None, alias="showBrowserUI")
    default_timeout: Optional[PositiveNumber] = None
    navigation_timeout: Optional[PositiveNumber] = None


class VideoConfig(_ConfigModel):
    size: Size
    fps: Fps
    skip_all_vtt: StrictBool = False
    skip_all_chapters: StrictBool = False


class GlobalConfig(_ConfigModel):
    browser: BrowserConfig
    video: VideoConfig


class PartialSize(_ConfigModel):
    width: Optional[Dimension] = None
    height: Optional[Dimension] = None


class BrowserOverrides(_ConfigModel):
    headless: Optional[StrictBool] = None
    slow_mo: Optional[NonNegativeNumber] = None
    viewport: Optional[PartialSize] = None
    show_browser_ui: Optional[StrictBool] = Field(default=None, alias="showBrowserUI")
    default_timeout: Optional[PositiveNumber] = None
    navigation_timeout: Optional[PositiveNumber] = None


class VideoOverrides(_ConfigModel):
    size: Optional[PartialSize] = None
    fps: Optional[Fps] = None
    skip_all_vtt: Optional[StrictBool] = None
    skip_all_chapters: Optional[StrictBool] = None


class WorkflowConfig(_ConfigModel):
    """Per-workflow overrides; every field is optional."""

    browser: Optional[BrowserOverrides] = None
    video: Optional[VideoOverrides] = None


def default_config() -> GlobalConfig:
    return GlobalConfig(
        browser=BrowserConfig(
            headless=HEADLESS,
            slow_mo=SLOW_MO,
            viewport=Size(**VIEWPORT),
            default_timeout=DEFAULT_TIMEOUT,
            navigation_timeout=NAVIGATION_TIMEOUT,
        ),
        video=VideoConfig(size=Size(**VIDEO_SIZE), fps=VIDEO_FPS),
    )


def config_to_dict(config: BaseModel) -> dict[str, Any]:
    """Serialize a config model back to its camelCase JSON shape."""
    return config.model_dump(by_alias=True, exclude_none=True)


def format_validation_error(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        loc = ".".join(str(part) for part in item["loc"])
        parts.append(f"{loc}: {item['msg']}" if loc else item["msg"])
    return ", ".join(parts)


def read_config_file(path: Path) -> Any:
    """Read a JSON (or YAML, by suffix) config file."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            if path.suffix in (".yaml", ".yml"):
                return yaml.safe_load(f)
            return json.load(f)
    except (OSError, json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to read config: {e}", str(path)) from e


def load_global_config(config_path: str | Path = CONFIG_FILE,
                       default_path: str | Path = DEFAULT_CONFIG_FILE) -> GlobalConfig:
    """
    Load the global configuration.

    Args:
        config_path: User config, used when it exists
        default_path: Shipped default config, used when the user config is absent

    Returns:
        GlobalConfig, falling back to the built-in defaults

    Raises:
        ConfigError: If the chosen file is unreadable or fails validation
    """
    for path, label in ((Path(config_path), "global"), (Path(default_path), "default")):
        if not path.exists():
            continue
        data = read_config_file(path)
        try:
            config = GlobalConfig.model_validate(data)
        except ValidationError as e:
            raise ConfigError(f"Invalid {label} config: {format_validation_error(e)}", str(path)) from e
        if label == "default":
            logger.info(f"Using default configuration from {path}")
        return config

    logger.info("No config files found, using built-in defaults")
    return default_config()


def load_workflow_config(path: str | Path) -> Optional[WorkflowConfig]:
    """Load a workflow's config override, or None when the file is absent."""
    path = Path(path)
    if not path.exists():
        return None
    data = read_config_file(path)
    try:
        return WorkflowConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid workflow config: {format_validation_error(e)}", str(path)) from e


def _merge_section(base: dict[str, Any], overrides: Optional[BaseModel], nested: str) -> dict[str, Any]:
    merged = dict(base)
    if overrides is None:
        return merged
    values = overrides.model_dump(exclude_none=True)
    inner = values.pop(nested, None) or {}
    merged.update(values)
    merged[nested] = {**base[nested], **inner}
    return merged


def merge_configs(global_config: GlobalConfig,
                  workflow_config: Optional[WorkflowConfig]) -> GlobalConfig:
    """
    Overlay workflow settings on the global ones.

    Each top-level section is merged field by field; ``viewport`` and
    ``size`` are merged one level deeper. Unset workflow fields inherit.
    """
    if workflow_config is None:
        return global_config

    base = global_config.model_dump()
    return GlobalConfig.model_validate({
        "browser": _merge_section(base["browser"], workflow_config.browser, "viewport"),
        "video": _merge_section(base["video"], workflow_config.video, "size"),
    })
