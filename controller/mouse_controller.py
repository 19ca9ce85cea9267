"""Mouse control for the automator.

Assumptions:
    - The automator has exclusive control of the mouse while running.
    - ``pyautogui`` is installed and allowed to move the system cursor.

Positions arrive in the 0-65535 absolute pointer space and are mapped back
onto the pixel grid of the primary display before being handed to
``pyautogui``.
"""

from __future__ import annotations

import logging
from typing import Optional, Tuple

from controller.interfaces import PointerControl
from vision.match_evaluator import ABSOLUTE_POINTER_MAX

logger = logging.getLogger(__name__)


def absolute_to_pixel(x: int, y: int, screen_size: Tuple[int, int]) -> Tuple[int, int]:
    """Map an absolute pointer coordinate onto screen pixels."""
    width, height = screen_size
    pixel_x = min(round(x * width / ABSOLUTE_POINTER_MAX), width - 1)
    pixel_y = min(round(y * height / ABSOLUTE_POINTER_MAX), height - 1)
    return pixel_x, pixel_y


class PyAutoGuiPointer(PointerControl):
    def __init__(self, screen_size: Optional[Tuple[int, int]] = None, move_duration: float = 0.0) -> None:
        import pyautogui

        # Fail fast if failsafe triggers due to rapid corner movement.
        pyautogui.FAILSAFE = True
        pyautogui.PAUSE = 0.0
        self._gui = pyautogui
        self.screen_size = screen_size or tuple(pyautogui.size())
        self.move_duration = move_duration

    def move_absolute(self, x: int, y: int) -> None:
        pixel_x, pixel_y = absolute_to_pixel(x, y, self.screen_size)
        logger.debug("Moving pointer to (%d, %d) -> pixel (%d, %d)", x, y, pixel_x, pixel_y)
        self._gui.moveTo(pixel_x, pixel_y, duration=self.move_duration, tween=self._gui.easeInOutQuad)

    def move_relative(self, dx: int, dy: int) -> None:
        self._gui.moveRel(dx, dy, duration=self.move_duration)

    def click_left(self) -> None:
        self._gui.click(button="left")

    def click_right(self) -> None:
        self._gui.click(button="right")

    def double_click_left(self) -> None:
        self._gui.doubleClick(button="left")
