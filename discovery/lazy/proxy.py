"""Deferred values.

`LazyProxy` is resolved exactly once by a producer (a subscription callback)
through `resolve_lazy`; `FactoryProxy` pulls its value from a factory on first
use. Both forward every observation to the real value once they have one.
The handle functions (`resolve_lazy`, `unwrap`, `is_resolved`) live at module
level so that no proxy method shadows a member of the real value.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Iterator, List, Optional, Tuple

logger = logging.getLogger(__name__)

UNRESOLVED: Any = object()

Accessor = Callable[[Any], Any]


def make_lazy(factory: Callable[[], Any], attempts: int = 5) -> Callable[[], Any]:
    """Wrap `factory` in a getter that caches its first non-None result.

    The factory is tried at most `attempts` times in total.
    """
    tries = 0
    cache: Any = None

    def get() -> Any:
        nonlocal tries, cache
        if cache is None and tries < attempts:
            tries += 1
            cache = factory()
            if cache is None and tries == attempts:
                logger.error("Lazy factory failed: %r", factory)
        return cache

    return get


class _ForwardingProxy:
    __slots__ = ()

    def _lazy_target(self) -> Any:
        raise NotImplementedError

    def _lazy_missing(self, accessor: Accessor, label: str) -> Any:
        raise NotImplementedError

    def _lazy_unresolved_call(self, *args: Any, **kwargs: Any) -> Any:
        raise NotImplementedError

    def __getattr__(self, name: str) -> Any:
        target = self._lazy_target()
        if target is UNRESOLVED:
            if name.startswith("__") and name.endswith("__"):
                raise AttributeError(name)
            return self._lazy_missing(lambda value: getattr(value, name), f".{name}")
        return getattr(target, name)

    def __setattr__(self, name: str, value: Any) -> None:
        target = self._lazy_target()
        if target is UNRESOLVED:
            raise AttributeError(f"Cannot set {name!r} on an unresolved lazy value")
        setattr(target, name, value)

    def __getitem__(self, key: Any) -> Any:
        target = self._lazy_target()
        if target is UNRESOLVED:
            return self._lazy_missing(lambda value: value[key], f"[{key!r}]")
        return target[key]

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        target = self._lazy_target()
        if target is UNRESOLVED:
            return self._lazy_unresolved_call(*args, **kwargs)
        return target(*args, **kwargs)

    def __iter__(self) -> Iterator[Any]:
        target = self._lazy_target()
        return iter(()) if target is UNRESOLVED else iter(target)

    def __len__(self) -> int:
        target = self._lazy_target()
        return 0 if target is UNRESOLVED else len(target)

    def __contains__(self, item: Any) -> bool:
        target = self._lazy_target()
        return False if target is UNRESOLVED else item in target

    def __bool__(self) -> bool:
        target = self._lazy_target()
        return False if target is UNRESOLVED else bool(target)

    def __eq__(self, other: Any) -> bool:
        target = self._lazy_target()
        if target is UNRESOLVED:
            return other is self
        return target == unwrap(other)

    def __ne__(self, other: Any) -> bool:
        return not self == other

    # Identity hashing keeps proxies usable as keys while they resolve
    def __hash__(self) -> int:
        return object.__hash__(self)

    def __str__(self) -> str:
        target = self._lazy_target()
        return repr(self) if target is UNRESOLVED else str(target)

    def __dir__(self) -> List[str]:
        target = self._lazy_target()
        return [] if target is UNRESOLVED else dir(target)


class LazyProxy(_ForwardingProxy):
    """Placeholder resolved once by a producer.

    Before resolution it is inert: members come back as child placeholders that
    resolve together with their parent, calls return None, and it is falsy and
    empty.
    """

    __slots__ = ("_lazy_value", "_lazy_children", "_lazy_label")

    def __init__(self, label: str = "value") -> None:
        object.__setattr__(self, "_lazy_value", UNRESOLVED)
        object.__setattr__(self, "_lazy_children", [])
        object.__setattr__(self, "_lazy_label", label)

    def _lazy_target(self) -> Any:
        return self._lazy_value

    def _lazy_missing(self, accessor: Accessor, label: str) -> "LazyProxy":
        child = LazyProxy(self._lazy_label + label)
        children: List[Tuple[Accessor, LazyProxy]] = self._lazy_children
        children.append((accessor, child))
        return child

    def _lazy_unresolved_call(self, *args: Any, **kwargs: Any) -> None:
        return None

    def _lazy_resolve(self, value: Any) -> None:
        if self._lazy_value is not UNRESOLVED:
            raise RuntimeError(f"Lazy {self._lazy_label} was already resolved")
        object.__setattr__(self, "_lazy_value", value)

        children: List[Tuple[Accessor, LazyProxy]] = self._lazy_children
        object.__setattr__(self, "_lazy_children", [])
        for accessor, child in children:
            try:
                member = accessor(value)
            except (AttributeError, LookupError, TypeError) as exc:
                logger.warning("Lazy %s resolved without member %s: %s", self._lazy_label, child._lazy_label, exc)
                continue
            child._lazy_resolve(member)

    def __repr__(self) -> str:
        if self._lazy_value is UNRESOLVED:
            return f"<LazyProxy {self._lazy_label} (unresolved)>"
        return repr(self._lazy_value)


class FactoryProxy(_ForwardingProxy):
    """Proxy for the value a factory produces on first use."""

    __slots__ = ("_lazy_get", "_lazy_factory")

    def __init__(self, factory: Callable[[], Any], attempts: int = 5) -> None:
        object.__setattr__(self, "_lazy_factory", factory)
        object.__setattr__(self, "_lazy_get", make_lazy(factory, attempts))

    def _lazy_target(self) -> Any:
        value = self._lazy_get()
        return UNRESOLVED if value is None else value

    def _lazy_missing(self, accessor: Accessor, label: str) -> Any:
        raise LookupError(f"proxy_lazy: factory {self._lazy_factory!r} has not produced a value (accessing {label})")

    def _lazy_unresolved_call(self, *args: Any, **kwargs: Any) -> Any:
        raise LookupError(f"proxy_lazy: factory {self._lazy_factory!r} has not produced a value")

    def __repr__(self) -> str:
        value = self._lazy_get()
        if value is None:
            return f"<FactoryProxy {self._lazy_factory!r} (pending)>"
        return repr(value)


def resolve_lazy(proxy: LazyProxy, value: Any) -> None:
    """Bind the real value behind `proxy`. May be called once per proxy."""
    proxy._lazy_resolve(value)


def proxy_lazy(factory: Callable[[], Any], attempts: int = 5) -> FactoryProxy:
    return FactoryProxy(factory, attempts)


def is_resolved(value: Any) -> bool:
    """False only for a proxy that has no real value yet."""
    if isinstance(value, _ForwardingProxy):
        return value._lazy_target() is not UNRESOLVED
    return True


def unwrap(value: Any) -> Optional[Any]:
    """The real value behind a proxy (None while unresolved); other values pass through."""
    if isinstance(value, _ForwardingProxy):
        target = value._lazy_target()
        return None if target is UNRESOLVED else target
    return value
