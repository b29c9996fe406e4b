"""Utility functions for vsphere-provisioner."""

from __future__ import annotations

import os
import posixpath
import sys
from typing import Optional, Union

from vsphere_provisioner.constants import _LOG_VERBOSE, TRUTHY
from vsphere_provisioner.exceptions import ConfigError

_STDERR_LEVELS = {"ERROR", "WARN"}


def log(level: str, message: str) -> None:
    """Colour-tagged logging; errors and warnings go to stderr."""
    if level == "DEBUG" and not _LOG_VERBOSE:
        return
    colours = {
        "INFO": "\033[0;34m",
        "WARN": "\033[1;33m",
        "ERROR": "\033[0;31m",
        "SUCCESS": "\033[0;32m",
        "DEBUG": "\033[0;90m",
    }
    colour = colours.get(level, "")
    reset = "\033[0m" if colour else ""
    stream = sys.stderr if level in _STDERR_LEVELS else sys.stdout
    print(f"{colour}[{level}]{reset} {message}", file=stream, flush=True)


def get_env(name: str, default: Optional[str] = None) -> Optional[str]:
    return os.environ.get(name, default)


def parse_bool(raw: Union[str, bool]) -> bool:
    if isinstance(raw, bool):
        return raw
    return str(raw).strip().lower() in TRUTHY


def parse_int_setting(name: str, raw: Union[str, int], min_val: int = 1, max_val: Optional[int] = None) -> int:
    if isinstance(raw, bool):
        raise ConfigError(f"{name} must be an integer (got '{raw}')")
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise ConfigError(f"{name} must be an integer (got '{raw}')")
    if value < min_val:
        raise ConfigError(f"{name} must be >= {min_val} (got {value})")
    if max_val is not None and value > max_val:
        raise ConfigError(f"{name} must be <= {max_val} (got {value})")
    return value


def final_segment(path: str) -> str:
    """Return the last component of a local path, or '' for an empty path."""
    if not path:
        return ""
    return posixpath.basename(path.replace("\\", "/").rstrip("/"))


def datastore_path(datastore_name: str, relative_path: str = "") -> str:
    """Format a path the way vSphere names datastore files: ``[ds] dir/file``."""
    if not relative_path:
        return f"[{datastore_name}]"
    return f"[{datastore_name}] {relative_path}"
