"""Keyboard control backed by ``pyautogui``."""

from __future__ import annotations

import time
from typing import Sequence

from controller.interfaces import KeyboardControl


class PyAutoGuiKeyboard(KeyboardControl):
    def __init__(self, typing_interval: float = 0.0) -> None:
        import pyautogui

        self._gui = pyautogui
        self.typing_interval = typing_interval

    def type_text(self, text: str) -> None:
        self._gui.write(text, interval=self.typing_interval)

    def key_press(self, key: str) -> None:
        self._gui.press(key)

    def modified_key_stroke(self, modifiers: Sequence[str], key: str) -> None:
        self._gui.hotkey(*modifiers, key)

    def delay(self, milliseconds: int) -> None:
        time.sleep(milliseconds / 1000.0)
