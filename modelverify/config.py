"""Project-level .modelverifyrc.yml support.

Loads run settings from .modelverifyrc.yml (or .modelverifyrc.yaml,
.modelverifyrc.json) found by walking up from the working directory.

Example .modelverifyrc.yml:
    max_depth: 3
    max_duration: 30        # seconds, omit for no limit
    recursion: abstract     # or reject
    max_inline_depth: 4
    solver_timeout_ms: 5000
    log_level: info
    log_file: modelverify.log
    format: json
"""

from __future__ import annotations

import json
import math
import os
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

import yaml


class RecursionPolicy(Enum):
    """What to do with recursive call cycles between methods of a class."""
    REJECT = "reject"
    ABSTRACT = "abstract"


@dataclass
class VerifierConfig:
    """Settings of one verification run."""
    max_depth: int = 2
    # Wall-clock budget in seconds
    max_duration: float = math.inf
    recursion: RecursionPolicy = RecursionPolicy.REJECT
    max_inline_depth: int = 4
    # Per solver check, 0 = no limit
    solver_timeout_ms: int = 0
    log_level: str = "warning"
    log_file: str = ""
    format: str = "text"  # "text", "json"

    def __post_init__(self) -> None:
        if self.max_depth < 0:
            raise ValueError("max_depth must be non-negative")
        if self.max_duration < 0:
            raise ValueError("max_duration must be non-negative")
        if self.max_inline_depth < 0:
            raise ValueError("max_inline_depth must be non-negative")


LOG_LEVELS = ("debug", "info", "warning", "error", "critical")


# ---------------------------------------------------------------------------
# Config file names (in priority order)
# ---------------------------------------------------------------------------

_CONFIG_FILES = [
    ".modelverifyrc.yml",
    ".modelverifyrc.yaml",
    ".modelverifyrc.json",
]


def find_config(start_dir: str = ".") -> Optional[str]:
    """Find the nearest config file by walking up from start_dir."""
    current = os.path.abspath(start_dir)
    while True:
        for name in _CONFIG_FILES:
            path = os.path.join(current, name)
            if os.path.isfile(path):
                return path
        parent = os.path.dirname(current)
        if parent == current:
            break
        current = parent
    return None


def load_config(path: Optional[str] = None, start_dir: str = ".") -> VerifierConfig:
    """Load configuration from a file.

    If no path is given, searches for a config file starting from start_dir.
    If no config file is found or it cannot be read, returns defaults.
    """
    if path is None:
        path = find_config(start_dir)

    if path is None:
        return VerifierConfig()

    try:
        with open(path, "r") as f:
            content = f.read()
    except (IOError, OSError):
        return VerifierConfig()

    try:
        if path.endswith(".json"):
            data = json.loads(content)
        else:
            data = yaml.safe_load(content)
    except (json.JSONDecodeError, yaml.YAMLError):
        return VerifierConfig()

    if not isinstance(data, dict):
        return VerifierConfig()
    try:
        return _dict_to_config(data)
    except (TypeError, ValueError):
        return VerifierConfig()


def _dict_to_config(data: Dict[str, Any]) -> VerifierConfig:
    """Convert a parsed dict to VerifierConfig. Unknown keys are ignored."""
    config = VerifierConfig()

    if "max_depth" in data:
        config.max_depth = max(0, int(data["max_depth"]))
    if data.get("max_duration") is not None:
        config.max_duration = max(0.0, float(data["max_duration"]))
    if "recursion" in data:
        config.recursion = RecursionPolicy(str(data["recursion"]).lower())
    if "max_inline_depth" in data:
        config.max_inline_depth = max(0, int(data["max_inline_depth"]))
    if "solver_timeout_ms" in data:
        config.solver_timeout_ms = max(0, int(data["solver_timeout_ms"]))
    if "log_level" in data:
        level = str(data["log_level"]).lower()
        if level not in LOG_LEVELS:
            raise ValueError(f"Unknown log level '{level}'")
        config.log_level = level
    if "log_file" in data:
        config.log_file = str(data["log_file"] or "")
    if "format" in data:
        config.format = str(data["format"])

    return config
