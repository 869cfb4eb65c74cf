from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Tuple

from discovery.utils.source_text import MISSING, function_source, lookup_member


@dataclass(frozen=True, eq=False)
class Filter:
    evaluate: Callable[[Any], bool]
    kind: str
    args: Tuple[Any, ...]

    def __call__(self, candidate: Any) -> bool:
        return self.evaluate(candidate)

    def __repr__(self) -> str:
        return f"{self.kind}({', '.join(repr(a) for a in self.args)})"


def _require_strings(kind: str, values: Tuple[Any, ...]) -> None:
    if not values:
        raise ValueError(f"{kind} expects at least one argument")
    for value in values:
        if not isinstance(value, str):
            raise TypeError(f"{kind} expects str arguments, got {type(value).__name__}")


def by_props(*props: str) -> Filter:
    """Match candidates on which every named member is defined."""
    _require_strings("by_props", props)

    def _filter(candidate: Any) -> bool:
        return all(lookup_member(candidate, p) is not MISSING for p in props)

    return Filter(_filter, "by_props", props)


def by_code(*code: str) -> Filter:
    """Match callables whose source contains every given substring."""
    _require_strings("by_code", code)

    def _filter(candidate: Any) -> bool:
        if not callable(candidate):
            return False
        source = function_source(candidate)
        return all(c in source for c in code)

    return Filter(_filter, "by_code", code)


def by_store_name(name: str) -> Filter:
    """Match instances whose class declares `display_name == name`."""
    _require_strings("by_store_name", (name,))

    def _filter(candidate: Any) -> bool:
        if candidate is None:
            return False
        return lookup_member(type(candidate), "display_name") == name

    return Filter(_filter, "by_store_name", (name,))


def component_by_code(*code: str) -> Filter:
    """`by_code` that also looks one level inside memo/forward-ref wrappers."""
    _require_strings("component_by_code", code)
    inner = by_code(*code)

    def _filter(candidate: Any) -> bool:
        if inner(candidate):
            return True
        wrapped_type = lookup_member(candidate, "type")
        if wrapped_type is not MISSING and wrapped_type is not None:
            render = lookup_member(wrapped_type, "render")
            if render is not MISSING and render is not None:
                return inner(render)  # memo + forward ref
            return inner(wrapped_type)  # memo
        render = lookup_member(candidate, "render")
        if render is not MISSING and render is not None:
            return inner(render)  # forward ref
        return False

    return Filter(_filter, "component_by_code", code)
