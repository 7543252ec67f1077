"""
Core utilities for QLog Normals.

This module contains general-purpose utilities (logging and thread-pool sizing)
shared by the converter, the command line tool and the nodes.
"""

import os
import sys
import time
from contextlib import contextmanager

import torch

# --- Constants ---
QLOG_NORMALS_CATEGORY = "QLog-Normals"

LOG_LEVEL_ENV_VAR = "QLOG_NORMALS_LOG_LEVEL"
# Registered by web/qlog_settings.js
COMFY_LOG_SETTING_ID = "QLogNormals.LogLevel"
LOG_LEVELS = {"Debug": 0, "Info": 1, "Warning": 2, "Error": 3}


# --- Logging Configuration ---
# Log levels: Debug=0, Info=1, Warning=2, Error=3
# Debug: All messages including per-step detail
# Info: Standard info and warnings
# Warning: Warnings and errors only
# Error: Errors only

_log_level_cache: dict[str, object] = {"level": None, "override": None, "last_check": 0.0}


def _level_from_name(name, default: int = 1) -> int:
    if name is None:
        return default
    return LOG_LEVELS.get(str(name).strip().capitalize(), default)


def _read_comfy_log_level():
    """Returns the level stored in ComfyUI's user settings, or None outside ComfyUI."""
    import json

    try:
        import folder_paths
    except ImportError:
        return None

    settings_path = os.path.join(folder_paths.get_user_directory(), "default", "comfy.settings.json")
    if not os.path.exists(settings_path):
        return None
    try:
        with open(settings_path, encoding="utf-8") as f:
            settings = json.load(f)
    except (OSError, ValueError):
        return None
    return settings.get(COMFY_LOG_SETTING_ID)


def _get_log_level() -> int:
    """
    Get the current log level.

    An explicit override (set_log_level) wins. Otherwise the ComfyUI setting is used when
    running inside ComfyUI, then the QLOG_NORMALS_LOG_LEVEL environment variable.
    The lookup is cached and refreshed every 10 seconds to avoid disk I/O on every log call.

    Returns:
        0=Debug, 1=Info, 2=Warning, 3=Error
    """
    override = _log_level_cache["override"]
    if override is not None:
        return override

    current_time = time.time()
    if _log_level_cache["level"] is not None and current_time - _log_level_cache["last_check"] < 10:
        return _log_level_cache["level"]

    _log_level_cache["last_check"] = current_time
    level_name = _read_comfy_log_level() or os.environ.get(LOG_LEVEL_ENV_VAR)
    _log_level_cache["level"] = _level_from_name(level_name)
    return _log_level_cache["level"]


def set_log_level(level) -> None:
    """
    Forces the log level for the rest of the process.

    Args:
        level: A level name ('Debug', 'Info', 'Warning', 'Error'), a level number,
            or None to go back to the settings/environment lookup.
    """
    if level is None:
        _log_level_cache["override"] = None
        _log_level_cache["level"] = None
    elif isinstance(level, int):
        _log_level_cache["override"] = max(0, min(3, level))
    else:
        if str(level).strip().capitalize() not in LOG_LEVELS:
            raise ValueError(f"Unknown log level '{level}'. Expected one of: {', '.join(LOG_LEVELS)}")
        _log_level_cache["override"] = _level_from_name(level)


def log_error(context: str, message: str):
    """Logs an error message to stderr. Always shown (all log levels)."""
    print(f"ERROR: [{context}] {message}", file=sys.stderr)


def log_warning(context: str, message: str):
    """Logs a warning message to stderr. Shown at Debug/Info/Warning levels."""
    if _get_log_level() <= 2:
        print(f"WARNING: [{context}] {message}", file=sys.stderr)


def log_info(context: str, message: str):
    """Logs an informational message. Shown at Debug/Info levels."""
    if _get_log_level() <= 1:
        print(f"INFO: [{context}] {message}")


def log_verbose(context: str, message: str):
    """Logs a verbose/debug message. Only shown at Debug level."""
    if _get_log_level() == 0:
        print(f"DEBUG: [{context}] {message}")


def is_verbose_mode() -> bool:
    """Returns True if log verbosity is set to Debug."""
    return _get_log_level() == 0


# --- Threading ---
def configure_threads(count: int = 0) -> int:
    """
    Sizes torch's intra-op thread pool used by the vectorised conversion.

    Args:
        count: Number of worker threads. 0 uses every available hardware thread.

    Returns:
        The number of threads actually configured.
    """
    if count < 0:
        raise ValueError(f"Thread count must be >= 0, got {count}")
    threads = count or os.cpu_count() or 1
    torch.set_num_threads(threads)
    log_verbose("Threads", f"Using {threads} thread(s)")
    return threads


@contextmanager
def thread_limit(count: int = 0):
    """
    Applies configure_threads(count) for the duration of the block.

    The previous torch thread count is restored on exit, so a conversion inside a
    long-running host (ComfyUI) does not resize the pool for everything else.
    """
    previous = torch.get_num_threads()
    threads = configure_threads(count)
    try:
        yield threads
    finally:
        torch.set_num_threads(previous)
