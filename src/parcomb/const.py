"""
General use constants.
"""

from __future__ import annotations
from typing import Final
from collections.abc import Mapping

WHITESPACES: Final[str] = " \t\r\n"
DECIMAL: Final[str] = "0123456789"
LOWERCASE: Final[str] = "abcdefghijklmnopqrstuvwxyz"
UPPERCASE: Final[str] = "ABCDEFGHIJKLMNOPQRSTUVWXYZ"

WHITESPACE_NAMES: Final[Mapping[str, str]] = {
    " ": "space",
    "\t": "tab",
    "\n": "line break",
    "\r": "carriage return",
}
"""How whitespace tokens are shown in error messages."""
