"""Image-driven GUI automation.

This module glues together screen capture, template matching and the input
controllers. Every search takes a fresh snapshot of the primary display,
matches a reference image against it and either yields the match rectangle
or reports the image as absent. Searches run one at a time on the calling
thread; ``wait`` blocks with real sleeps between attempts.

Diagnostic screenshots are written as ``failure_<timestamp>.png`` whenever a
search that requires a match gives up.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional, Tuple, Union

from PIL import Image

from controller import clipboard
from controller.interfaces import KeyboardControl, PointerControl
from core import config_loader
from core.errors import ImageNotFound, InvalidReference, NotFoundAfterTimeout
from vision import match_evaluator, screen_capture, template_matcher
from vision.match_evaluator import MatchRectangle, Point
from vision.template_matcher import MatchResult

logger = logging.getLogger(__name__)

DEFAULT_RETRY_INTERVAL = 1.0
DEFAULT_KEY_DELAY_MS = 500


@dataclass(frozen=True)
class SearchOutcome:
    image_path: str
    result: MatchResult
    rectangle: Optional[MatchRectangle]
    snapshot: Image.Image

    @property
    def found(self) -> bool:
        return self.rectangle is not None


class Automator:
    """Drive the desktop by locating reference images on screen.

    Parameters
    ----------
    matching_accuracy:
        Score a match must strictly exceed, within (0, 1). 0.75 is adequate
        for most UI elements.
    pointer, keyboard:
        Input collaborators. Default to the ``pyautogui`` implementations.
    """

    def __init__(
        self,
        matching_accuracy: float,
        *,
        pointer: Optional[PointerControl] = None,
        keyboard: Optional[KeyboardControl] = None,
        retry_interval: float = DEFAULT_RETRY_INTERVAL,
        diagnostics_dir: Union[str, Path] = ".",
        key_delay_ms: int = DEFAULT_KEY_DELAY_MS,
        legacy_integer_scaling: bool = False,
        move_duration: float = 0.0,
    ) -> None:
        if not 0.0 < matching_accuracy < 1.0:
            raise ValueError(f"matching_accuracy must be within (0, 1), got {matching_accuracy}")
        self.matching_accuracy = float(matching_accuracy)
        self.retry_interval = retry_interval
        self.diagnostics_dir = Path(diagnostics_dir)
        self.key_delay_ms = key_delay_ms
        self.legacy_integer_scaling = legacy_integer_scaling

        # Display bounds are read once; resolution changes mid-run are not tracked.
        self.screen_size: Tuple[int, int] = screen_capture.primary_screen_size()

        if pointer is None:
            from controller.mouse_controller import PyAutoGuiPointer

            pointer = PyAutoGuiPointer(self.screen_size, move_duration=move_duration)
        if keyboard is None:
            from controller.keyboard_controller import PyAutoGuiKeyboard

            keyboard = PyAutoGuiKeyboard()
        self.pointer = pointer
        self.keyboard = keyboard

    @classmethod
    def from_config(cls, config: Mapping[str, Any], **overrides: Any) -> "Automator":
        """Build an automator from a mapping produced by ``config_loader``."""
        if "paths" not in config:
            config = config_loader.build_config(config)
        search_cfg = config["search"]
        input_cfg = config["input"]
        options = {
            "matching_accuracy": float(search_cfg["matching_accuracy"]),
            "retry_interval": float(search_cfg["retry_interval_seconds"]),
            "legacy_integer_scaling": bool(search_cfg["legacy_integer_scaling"]),
            "diagnostics_dir": config["paths"]["diagnostics_dir"],
            "key_delay_ms": int(input_cfg["key_delay_ms"]),
            "move_duration": float(input_cfg["move_duration"]),
        }
        options.update(overrides)
        return cls(**options)

    # ------------------------------------------------------------------ search

    def _search(self, image_path: str, snapshot: Image.Image) -> SearchOutcome:
        reference = template_matcher.load_reference(image_path)
        result = template_matcher.match(snapshot, reference, image_path)
        rectangle = match_evaluator.evaluate(result, self.matching_accuracy)
        return SearchOutcome(image_path=image_path, result=result, rectangle=rectangle, snapshot=snapshot)

    def _save_diagnostic(self, snapshot: Image.Image) -> Path:
        return screen_capture.save_failure_screenshot(snapshot, self.diagnostics_dir)

    def find(self, image_path: str) -> SearchOutcome:
        """Run one capture, match and evaluate cycle.

        Absence is reported through ``SearchOutcome.found``. Capture failures
        and invalid references raise; an invalid reference first writes a
        diagnostic screenshot of the snapshot it was matched against.
        """
        image_path = str(image_path)
        snapshot = screen_capture.capture_fullscreen()
        try:
            outcome = self._search(image_path, snapshot)
        except InvalidReference:
            self._save_diagnostic(snapshot)
            raise
        logger.debug(
            "Search for %s: score=%.4f found=%s", image_path, outcome.result.best_score, outcome.found
        )
        return outcome

    def exists(self, image_path: str) -> bool:
        """Return whether ``image_path`` is currently visible on screen."""
        return self.find(image_path).found

    def locate(self, image_path: str) -> MatchRectangle:
        """Return the match rectangle or raise ``ImageNotFound``."""
        outcome = self.find(image_path)
        if outcome.rectangle is None:
            self._save_diagnostic(outcome.snapshot)
            logger.warning(
                "%s not found on screen (best score %.4f, accuracy %.2f)",
                outcome.image_path,
                outcome.result.best_score,
                self.matching_accuracy,
            )
            raise ImageNotFound(outcome.image_path, outcome.result.best_score)
        return outcome.rectangle

    def wait(self, image_path: str, timeout_seconds: int) -> MatchRectangle:
        """Retry the search once per ``retry_interval`` until the image appears.

        Makes at most ``timeout_seconds`` attempts. Errors raised by any
        attempt other than the last are logged and retried. After the last
        attempt fails, the most recent snapshot is saved and
        ``NotFoundAfterTimeout`` is raised, chained to the last attempt's
        error when there was one.
        """
        image_path = str(image_path)
        if timeout_seconds < 1:
            raise ValueError(f"timeout_seconds must be at least 1, got {timeout_seconds}")

        last_snapshot: Optional[Image.Image] = None
        for attempt in range(1, timeout_seconds + 1):
            error: Optional[Exception] = None
            score: Optional[float] = None
            try:
                last_snapshot = screen_capture.capture_fullscreen()
                outcome = self._search(image_path, last_snapshot)
            except Exception as exc:
                error = exc
                logger.info("Attempt %d/%d for %s raised: %s", attempt, timeout_seconds, image_path, exc)
            else:
                if outcome.rectangle is not None:
                    logger.debug("Found %s on attempt %d", image_path, attempt)
                    return outcome.rectangle
                score = outcome.result.best_score

            if attempt == timeout_seconds:
                if last_snapshot is not None:
                    self._save_diagnostic(last_snapshot)
                else:
                    logger.warning("No snapshot available for %s diagnostics", image_path)
                raise NotFoundAfterTimeout(image_path, timeout_seconds, score) from error

            try:
                last_snapshot = screen_capture.capture_fullscreen()
            except Exception as exc:
                logger.info("Re-capture after attempt %d failed: %s", attempt, exc)
            time.sleep(self.retry_interval)

        # Unreachable: the final iteration either returns or raises.
        raise NotFoundAfterTimeout(image_path, timeout_seconds)

    # ----------------------------------------------------------------- pointer

    def _point_at(self, image_path: str) -> Point:
        rectangle = self.locate(image_path)
        target = match_evaluator.to_absolute(
            rectangle.center, self.screen_size, legacy_integer_scaling=self.legacy_integer_scaling
        )
        self.pointer.move_absolute(target.x, target.y)
        return target

    def hover(self, image_path: str) -> Point:
        """Move the pointer over the center of ``image_path``."""
        return self._point_at(image_path)

    def click_image(self, image_path: str) -> Point:
        target = self._point_at(image_path)
        self.pointer.click_left()
        return target

    def double_click_image(self, image_path: str) -> Point:
        target = self._point_at(image_path)
        self.pointer.double_click_left()
        return target

    def right_click_image(self, image_path: str) -> Point:
        target = self._point_at(image_path)
        self.pointer.click_right()
        return target

    def move_mouse(self, dx: int, dy: int) -> None:
        """Nudge the pointer relative to its current position."""
        self.pointer.move_relative(dx, dy)

    def click(self) -> None:
        self.pointer.click_left()

    def right_click(self) -> None:
        self.pointer.click_right()

    def double_click(self) -> None:
        self.pointer.double_click_left()

    # ---------------------------------------------------------------- keyboard

    def _pause(self) -> None:
        self.keyboard.delay(self.key_delay_ms)

    def type_text(self, text: str) -> None:
        self._pause()
        self.keyboard.type_text(text)

    def press_tab(self) -> None:
        self._pause()
        self.keyboard.key_press("tab")

    def press_enter(self) -> None:
        self._pause()
        self.keyboard.key_press("enter")

    def press_escape(self) -> None:
        self._pause()
        self.keyboard.key_press("esc")

    def select_all(self) -> None:
        self._pause()
        self.keyboard.modified_key_stroke(["ctrl"], "a")

    def cut(self) -> None:
        self._pause()
        self.keyboard.modified_key_stroke(["ctrl"], "x")

    def copy(self) -> None:
        self._pause()
        self.keyboard.modified_key_stroke(["ctrl"], "c")

    def paste(self, text: str) -> None:
        """Put ``text`` on the clipboard, then send ctrl+v."""
        clipboard.set_text(text)
        self.keyboard.modified_key_stroke(["ctrl"], "v")

    def show_desktop(self) -> None:
        self._pause()
        self.keyboard.modified_key_stroke(["win"], "d")
