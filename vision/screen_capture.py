"""Screen capture helpers for the automator.

Assumptions:
    - Only the primary display is captured.
    - A fresh snapshot is taken for every match attempt; nothing is cached.

This module wraps ``pyautogui.screenshot`` and ``pyautogui.size`` and returns
PIL Image objects for downstream matching. Backend failures surface as
``CaptureError``.
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional, Tuple, Union

from PIL import Image

from core.errors import CaptureError

logger = logging.getLogger(__name__)

FAILURE_TIMESTAMP_FORMAT = "%Y_%d_%m_%H_%M_%S"


def _backend():
    # pyautogui connects to the display server on import.
    import pyautogui

    return pyautogui


def primary_screen_size() -> Tuple[int, int]:
    """Return (width, height) of the primary display in pixels."""
    try:
        width, height = _backend().size()
    except Exception as exc:
        raise CaptureError(f"Unable to query primary display bounds: {exc}") from exc
    return int(width), int(height)


def capture_fullscreen() -> Image.Image:
    """Capture the entire primary display."""
    try:
        screenshot = _backend().screenshot()
    except Exception as exc:
        raise CaptureError(f"Screen capture failed: {exc}") from exc
    if screenshot.mode != "RGB":
        screenshot = screenshot.convert("RGB")
    return screenshot


def failure_screenshot_name(moment: Optional[datetime] = None) -> str:
    """Return ``failure_<YYYY_DD_MM_HH_mm_ss>.png`` for ``moment``.

    Names only have second granularity, so two failures within the same
    second overwrite each other.
    """
    moment = moment or datetime.now()
    return f"failure_{moment.strftime(FAILURE_TIMESTAMP_FORMAT)}.png"


def save_failure_screenshot(snapshot: Image.Image, directory: Union[str, Path] = ".") -> Path:
    """Persist ``snapshot`` as a timestamped diagnostic PNG and return its path."""
    target_dir = Path(directory)
    target_dir.mkdir(parents=True, exist_ok=True)
    path = target_dir / failure_screenshot_name()
    snapshot.save(str(path))
    logger.warning("Saved diagnostic screenshot to %s", path)
    return path
