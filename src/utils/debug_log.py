"""
Debug Log Utility

Two opt-in diagnostics channels for brush and prefetch sessions:

    CONTOUR_EDITOR_DEBUG_LOG=1       JSON lines appended to a log file
    CONTOUR_EDITOR_DEBUG_LOG_PATH    log file (default <project_root>/.debug/debug.log)
    CONTOUR_EDITOR_BRUSH_DEBUG=1     [BRUSH DEBUG] console lines

A log file that cannot be written is reported once on the console and
debug logging is switched off for the rest of the session.

Requirements:
    - Standard library only: json, os, pathlib, time
"""

import json
import os
import time
from pathlib import Path
from typing import Any, Dict

_TRUE_VALUES = ("1", "true", "yes")


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in _TRUE_VALUES


DEBUG_LOG_ENABLED = _env_flag("CONTOUR_EDITOR_DEBUG_LOG")
BRUSH_DEBUG_ENABLED = _env_flag("CONTOUR_EDITOR_BRUSH_DEBUG")

_DEFAULT_LOG_PATH = Path(__file__).resolve().parents[2] / ".debug" / "debug.log"


def brush_debug(msg: str) -> None:
    if BRUSH_DEBUG_ENABLED:
        print(f"[BRUSH DEBUG] {msg}")


def debug_log(location: str, message: str, data: Dict[str, Any]) -> None:
    """
    Append {location, message, data, timestamp} as one JSON line.

    Args:
        location: Call site, e.g. "brush_tool.py:_commit"
        message: Short event description
        data: Event context; values that are not JSON types are written with str()
    """
    global DEBUG_LOG_ENABLED
    if not DEBUG_LOG_ENABLED:
        return
    custom = os.getenv("CONTOUR_EDITOR_DEBUG_LOG_PATH", "").strip()
    log_path = Path(custom) if custom else _DEFAULT_LOG_PATH
    line = json.dumps({
        "location": location,
        "message": message,
        "data": data,
        "timestamp": int(time.time() * 1000),
    }, default=str)
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        with open(log_path, "a", encoding="utf-8") as f:
            f.write(line + "\n")
    except OSError as e:
        print(f"Warning: Debug log disabled, cannot write {log_path}: {e}")
        DEBUG_LOG_ENABLED = False
