"""Template matching helpers for locating reference images on screen.

Assumptions:
    - Snapshots are RGB PIL images as returned by ``screen_capture``.
    - Reference images are any raster format ``cv2.imread`` can decode.

The functions here wrap OpenCV (cv2) normalized correlation-coefficient
matching and return the single best score and location. Applying the
confidence threshold is left to ``match_evaluator``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Tuple, Union

import cv2
import numpy as np
from PIL import Image

from core.errors import InvalidReference

logger = logging.getLogger(__name__)

MATCH_METHOD = cv2.TM_CCOEFF_NORMED


@dataclass(frozen=True)
class MatchResult:
    best_score: float
    best_location: Tuple[int, int]
    match_size: Tuple[int, int]


def _to_bgr(image: Image.Image) -> np.ndarray:
    return cv2.cvtColor(np.array(image.convert("RGB")), cv2.COLOR_RGB2BGR)


def load_reference(path: Union[str, Path]) -> np.ndarray:
    """Load a reference image as a BGR array."""
    path_str = str(path)
    if not Path(path_str).is_file():
        raise InvalidReference(path_str, "file not found")
    reference = cv2.imread(path_str, cv2.IMREAD_COLOR)
    if reference is None:
        raise InvalidReference(path_str, "unreadable or unsupported format")
    return reference


def match(snapshot: Image.Image, reference: np.ndarray, reference_path: str = "<reference>") -> MatchResult:
    """Return the best-scoring location of ``reference`` within ``snapshot``.

    Scores are in [-1, 1] and higher is better. Ties resolve to the first
    location in row-major order.
    """
    haystack = _to_bgr(snapshot)
    ref_height, ref_width = reference.shape[:2]
    screen_height, screen_width = haystack.shape[:2]
    if ref_width > screen_width or ref_height > screen_height:
        raise InvalidReference(
            reference_path,
            f"{ref_width}x{ref_height} exceeds screen {screen_width}x{screen_height}",
        )

    scores = cv2.matchTemplate(haystack, reference, MATCH_METHOD)
    # Flat windows produce NaN/inf under normalization; they are never a match.
    scores = np.nan_to_num(scores, nan=0.0, posinf=0.0, neginf=0.0)
    _min_val, max_val, _min_loc, max_loc = cv2.minMaxLoc(scores)

    result = MatchResult(
        best_score=float(max_val),
        best_location=(int(max_loc[0]), int(max_loc[1])),
        match_size=(int(ref_width), int(ref_height)),
    )
    logger.debug("Best match for %s: score=%.4f at %s", reference_path, result.best_score, result.best_location)
    return result
