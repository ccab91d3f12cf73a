"""Verbose diagnostics written to stderr so stdout stays clean for piping."""

from __future__ import annotations

import os
import sys

from termcolor import colored

_FALSE_VALUES = frozenset({"", "0", "false", "no", "off"})


def is_verbose() -> bool:
    """Return whether ``BL_VERBOSE`` asks for verbose output."""
    value = os.environ.get("BL_VERBOSE")
    if value is None:
        return False
    return value.strip().lower() not in _FALSE_VALUES


def _stderr_supports_colour() -> bool:
    if os.environ.get("NO_COLOR"):
        return False
    isatty = getattr(sys.stderr, "isatty", None)
    return bool(isatty and isatty())


def verbose(msg: str) -> None:
    """Print a dimmed message to stderr when verbose mode is on."""
    if not is_verbose():
        return
    text = colored(msg, attrs=["dark"], force_color=True) if _stderr_supports_colour() else msg
    print(text, file=sys.stderr)