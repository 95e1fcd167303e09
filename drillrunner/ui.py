"""Terminal styling and the warning and success messages."""

from __future__ import annotations

import os
import sys

_RESET = "\x1b[0m"
_BOLD = "1"
_RED = "31"
_GREEN = "32"


def _colors_enabled() -> bool:
    if os.environ.get("NO_COLOR"):
        return False
    force = os.environ.get("CLICOLOR_FORCE")
    if force is not None and force != "0":
        return True
    if os.environ.get("CLICOLOR") == "0":
        return False
    isatty = getattr(sys.stdout, "isatty", None)
    return bool(isatty and isatty())


def _style(text: object, *codes: str) -> str:
    if not _colors_enabled():
        return str(text)
    prefix = "".join(f"\x1b[{code}m" for code in codes)
    return f"{prefix}{text}{_RESET}"


def _emoji_disabled() -> bool:
    return "NO_EMOJI" in os.environ


def bold(text: object) -> str:
    """Return ``text`` in bold when the terminal shows colours."""
    return _style(text, _BOLD)


def warn(message: str) -> str:
    """Print a red warning line and return it."""
    icon = "!" if _emoji_disabled() else "⚠️ "
    line = f"{_style(icon, _RED)} {_style(message, _RED)}"
    print(line)
    return line


def success(message: str) -> str:
    """Print a green success line and return it."""
    icon = "✓" if _emoji_disabled() else "✅"
    line = f"{_style(icon, _GREEN)} {_style(message, _GREEN)}"
    print(line)
    return line