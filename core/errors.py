"""Exception hierarchy for screen search failures.

Only truly exceptional conditions are raised from a single search attempt;
"image absent" is reported through ``SearchOutcome`` and only becomes an
exception in the operations that require a match (``locate``, ``wait`` and
the click helpers built on them).
"""

from __future__ import annotations

from typing import Optional


class AutomatorError(Exception):
    """Base class for every error raised by the automator."""


class CaptureError(AutomatorError):
    """The screen could not be captured or measured."""


class InvalidReference(AutomatorError):
    """A reference image is missing, unreadable or larger than the screen."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Invalid reference image {path}: {reason}")
        self.path = path
        self.reason = reason


class ImageNotFound(AutomatorError):
    """The best match score did not clear the matching accuracy."""

    def __init__(self, image_path: str, score: Optional[float] = None, message: Optional[str] = None) -> None:
        super().__init__(message or f"{image_path} not found on screen")
        self.image_path = image_path
        self.score = score


class NotFoundAfterTimeout(ImageNotFound):
    """``wait`` ran out of attempts without a match."""

    def __init__(self, image_path: str, seconds: int, score: Optional[float] = None) -> None:
        super().__init__(image_path, score, f"{image_path} not found after {seconds} seconds")
        self.seconds = seconds
