"""Input collaborator interfaces consumed by the automator."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Sequence


class PointerControl(ABC):
    """Pointer operations. Absolute coordinates are in 0-65535 space."""

    @abstractmethod
    def move_absolute(self, x: int, y: int) -> None:
        ...

    @abstractmethod
    def move_relative(self, dx: int, dy: int) -> None:
        ...

    @abstractmethod
    def click_left(self) -> None:
        ...

    @abstractmethod
    def click_right(self) -> None:
        ...

    @abstractmethod
    def double_click_left(self) -> None:
        ...


class KeyboardControl(ABC):
    """Keyboard operations."""

    @abstractmethod
    def type_text(self, text: str) -> None:
        ...

    @abstractmethod
    def key_press(self, key: str) -> None:
        ...

    @abstractmethod
    def modified_key_stroke(self, modifiers: Sequence[str], key: str) -> None:
        """Hold ``modifiers``, press ``key``, release in reverse order."""
        ...

    @abstractmethod
    def delay(self, milliseconds: int) -> None:
        ...
