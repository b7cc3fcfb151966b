"""Key alias normalization for keyboard input."""

from types import MappingProxyType
from typing import Mapping

# Common aliases mapped to their X11 keysymdef.h names
KEY_ALIASES: Mapping[str, str] = MappingProxyType(
    {
        "alt": "Alt_L",
        "ctrl": "Control_L",
        "control": "Control_L",
        "meta": "Meta_L",
        "super": "Super_L",
        "shift": "Shift_L",
        "enter": "Return",
        "return": "Return",
    }
)


def normalize_key(key: str) -> str:
    """
    Normalize a human key alias to its platform key name.

    Lookup is case-insensitive. Keys without an alias are returned unchanged.

    The alias targets are X11 keysym names, which Playwright's keyboard does
    not recognise. Playwright names such as "Control" or "Enter" match an alias
    case-insensitively and get mapped too, so callers sending keys to a
    Playwright page should use key codes outside the table instead
    ("ControlLeft", "ShiftLeft", "AltLeft", "MetaLeft", "NumpadEnter").

    Args:
        key: Key name or alias (e.g. "ctrl", "Enter", "a")

    Returns:
        The mapped key name, or ``key`` itself.
    """
    return KEY_ALIASES.get(key.lower(), key)
