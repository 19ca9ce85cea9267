"""Logging configuration for automation runs."""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Mapping

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(config: Mapping[str, Any]) -> logging.Logger:
    """Attach console (and optionally rotating file) handlers to the root logger."""
    logging_cfg = config.get("logging", {})
    level = str(logging_cfg.get("level", "INFO")).upper()

    root = logging.getLogger()
    root.setLevel(level)
    formatter = logging.Formatter(LOG_FORMAT)

    # Clear existing handlers to avoid duplicates when configured twice.
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler(stream=sys.stderr)
    console.setFormatter(formatter)
    root.addHandler(console)

    if logging_cfg.get("to_file"):
        logs_dir = Path(config.get("paths", {}).get("logs_dir", logging_cfg.get("directory", "logs")))
        logs_dir.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            str(logs_dir / "automator.log"), maxBytes=5_000_000, backupCount=3, encoding="utf-8"
        )
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    return root
