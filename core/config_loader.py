"""Utilities for loading automator runtime configuration.

The default configuration file lives in ``config/config.yaml`` relative to
the working directory. Callers can pass an alternate path when they want to
override the defaults (e.g., for testing or per-machine setups). Any key
missing from the file falls back to ``DEFAULTS``.
"""

from __future__ import annotations

import copy
from pathlib import Path
from typing import Any, Mapping, MutableMapping, Optional

import yaml

DEFAULTS: Mapping[str, Mapping[str, Any]] = {
    "search": {
        "matching_accuracy": 0.75,
        "retry_interval_seconds": 1.0,
        "legacy_integer_scaling": False,
    },
    "diagnostics": {
        "directory": ".",
    },
    "input": {
        "key_delay_ms": 500,
        "move_duration": 0.0,
    },
    "logging": {
        "level": "INFO",
        "directory": "logs",
        "ensure_exists": True,
        "to_file": False,
    },
}


def _apply_defaults(raw_config: MutableMapping[str, Any]) -> None:
    for section, values in DEFAULTS.items():
        current = raw_config.get(section)
        if current is None:
            current = {}
            raw_config[section] = current
        if not isinstance(current, dict):
            raise ValueError(f"Config section '{section}' must be a mapping")
        for key, value in values.items():
            if current.get(key) is None:
                current[key] = value


def _validate(raw_config: Mapping[str, Any]) -> None:
    accuracy = float(raw_config["search"]["matching_accuracy"])
    if not 0.0 < accuracy < 1.0:
        raise ValueError(f"search.matching_accuracy must be within (0, 1), got {accuracy}")
    if float(raw_config["search"]["retry_interval_seconds"]) < 0:
        raise ValueError("search.retry_interval_seconds must not be negative")
    if int(raw_config["input"]["key_delay_ms"]) < 0:
        raise ValueError("input.key_delay_ms must not be negative")


def _resolve_paths(config_file: Optional[Path], raw_config: Mapping[str, Any]) -> MutableMapping[str, Path]:
    root = Path.cwd()
    logs_dir = (root / raw_config["logging"]["directory"]).resolve()
    diagnostics_dir = (root / raw_config["diagnostics"]["directory"]).resolve()
    paths: MutableMapping[str, Path] = {
        "root": root,
        "logs_dir": logs_dir,
        "diagnostics_dir": diagnostics_dir,
    }
    if config_file is not None:
        paths["config_file"] = config_file
    return paths


def _ensure_directories(paths: Mapping[str, Path], raw_config: Mapping[str, Any]) -> None:
    logging_cfg = raw_config["logging"]
    if logging_cfg.get("to_file") and logging_cfg.get("ensure_exists", True):
        paths["logs_dir"].mkdir(parents=True, exist_ok=True)


def build_config(raw_config: Optional[Mapping[str, Any]] = None, config_file: Optional[Path] = None) -> MutableMapping[str, Any]:
    """Merge ``raw_config`` over the defaults, validate it and resolve paths."""
    config: MutableMapping[str, Any] = copy.deepcopy(dict(raw_config or {}))
    _apply_defaults(config)
    _validate(config)

    paths = _resolve_paths(config_file, config)
    _ensure_directories(paths, config)
    config.setdefault("paths", {})
    config["paths"].update({name: str(value) for name, value in paths.items()})
    return config


def load_config(path: Optional[str] = None) -> MutableMapping[str, Any]:
    """Load configuration data from disk.

    Parameters
    ----------
    path:
        Optional override relative or absolute path to a YAML config file.

    Returns
    -------
    MutableMapping[str, Any]
        Dict-like object with configuration values.
    """

    config_file = (Path(path).expanduser() if path else Path.cwd() / "config" / "config.yaml").resolve()
    if not config_file.exists():
        raise FileNotFoundError(f"Config file not found: {config_file}")

    with config_file.open("r", encoding="utf-8") as fh:
        raw_config: MutableMapping[str, Any] = yaml.safe_load(fh) or {}

    return build_config(raw_config, config_file)
