"""Screenshot handler and output path resolution."""

from __future__ import annotations

import logging
import time
from pathlib import Path

from action_handlers.registry import ExecutionContext
from persistence import SCREENSHOTS_DIR, OutputStore, ensure_directory

logger = logging.getLogger(__name__)

IMAGE_SUFFIXES = (".png", ".jpg", ".jpeg")


def _strip_image_suffix(name: str) -> str:
    lowered = name.lower()
    for suffix in IMAGE_SUFFIXES:
        if lowered.endswith(suffix):
            return name[: -len(suffix)]
    return name


def resolve_screenshot_path(action, output_dir: Path | None, now_ms: int | None = None) -> Path:
    """
    Work out where a screenshot goes.

    An absolute ``path`` is used as-is. Otherwise the image lands in the run's
    screenshots directory, named after the base name of ``path``, then
    ``filename``, then ``screenshot_<epoch ms>``. An existing file is
    overwritten.
    """
    if action.path and Path(action.path).is_absolute():
        path = Path(action.path)
        return path if path.suffix.lower() in IMAGE_SUFFIXES else path.with_name(path.name + ".png")

    if action.path:
        stem = _strip_image_suffix(Path(action.path).name)
    elif action.filename:
        stem = _strip_image_suffix(action.filename)
    else:
        if now_ms is None:
            now_ms = int(time.time() * 1000)
        stem = f"screenshot_{now_ms}"

    if output_dir is None:
        return Path(SCREENSHOTS_DIR) / f"{stem}.png"
    return OutputStore.screenshot_path(output_dir, stem)


def take_screenshot(action, session, context: ExecutionContext) -> None:
    path = resolve_screenshot_path(action, context.output_dir)
    ensure_directory(path.parent)
    session.page.screenshot(path=str(path), full_page=action.full_page)
    logger.info(f"Screenshot saved: {path}")
