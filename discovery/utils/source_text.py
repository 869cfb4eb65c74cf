"""Helpers for looking at live exports and at the text of factories."""
from __future__ import annotations

import inspect
import linecache
import re
from collections.abc import Mapping
from typing import Any, Pattern, Union

# Returned by `lookup_member` when a member is absent; `None` counts as defined
MISSING: Any = object()

IDENTIFIER_PATTERN = r"(?:[A-Za-z_$][\w$]*)"
_IDENT_ESCAPE = re.compile(r"(\\*)\\i")


def lookup_member(obj: Any, name: str) -> Any:
    """Return `obj[name]` for mappings or `obj.name` otherwise, or MISSING."""
    if obj is None:
        return MISSING
    if isinstance(obj, Mapping):
        return obj.get(name, MISSING)
    try:
        return getattr(obj, name, MISSING)
    except Exception:
        # Export objects can carry properties whose getters raise
        return MISSING


def default_export(exports: Any) -> Any:
    return lookup_member(exports, "default")


def function_source(obj: Any) -> str:
    """Serialized source of a callable, or an empty string if it has none.

    An explicit string `__source__` attribute wins over `inspect.getsource`, so
    loaders that keep factory text around can expose it without linecache.
    """
    explicit = lookup_member(obj, "__source__")
    if isinstance(explicit, str):
        return explicit
    try:
        return inspect.getsource(obj)
    except (OSError, TypeError):
        return ""


def canonicalize_match(matcher: Union[str, Pattern[str]]) -> Pattern[str]:
    """Compile `matcher`, expanding every unescaped `\\i` into an identifier pattern."""
    if isinstance(matcher, re.Pattern):
        source, flags = matcher.pattern, matcher.flags
    elif isinstance(matcher, str):
        source, flags = matcher, 0
    else:
        raise TypeError(f"Invalid matcher. Expected str or re.Pattern got {type(matcher).__name__}")

    def _expand(m: re.Match[str]) -> str:
        escapes = m.group(1)
        if len(escapes) % 2 == 0:
            return escapes + IDENTIFIER_PATTERN
        return m.group(0)

    canonical = _IDENT_ESCAPE.sub(_expand, source)
    if isinstance(matcher, re.Pattern) and canonical == source:
        return matcher
    return re.compile(canonical, flags)


def defining_text(obj: Any) -> str:
    """Full text of the file `obj` was compiled from, including any header comments."""
    code = getattr(obj, "__code__", None)
    if code is None:
        return function_source(obj)
    lines = linecache.getlines(code.co_filename)
    return "".join(lines) if lines else function_source(obj)
