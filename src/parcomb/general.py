
from __future__ import annotations
from typing import Any

import parcomb.const as const
from parcomb.main import Parser, one_of, none_of

# character classes

def letter() -> Parser[str, str]:
    """Matches an ASCII letter. Named `letter`."""
    return (one_of(const.LOWERCASE) | one_of(const.UPPERCASE)).name_if_absent("letter")

def digit() -> Parser[str, str]:
    """Matches a decimal digit. Named `digit`."""
    return one_of(const.DECIMAL).name_if_absent("digit")

def whitespace() -> Parser[str, str]:
    """Matches a space, tab, carriage return or line break. Named `whitespace`."""
    return one_of(const.WHITESPACES).name_if_absent("whitespace")

def ws() -> Parser[str, list[str]]:
    """Matches zero or more whitespaces."""
    return whitespace().repeat(at_least=0)

def any_token() -> Parser[Any, Any]:
    """Matches any single token. Fails only at the end of the input."""
    return none_of([])
