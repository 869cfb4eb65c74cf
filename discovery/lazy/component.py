"""Renderable handles whose implementation is bound after creation."""
from __future__ import annotations

from typing import Any, Callable

from .proxy import make_lazy

Component = Callable[..., Any]


def noop_component(*args: Any, **props: Any) -> None:
    """Placeholder component: renders nothing."""
    return None


class LazyComponent:
    """A component handle that renders through a replaceable inner component.

    Callers keep the handle they were given; `bind` swaps the implementation
    behind it and copies the new component's own attributes onto the handle.
    """

    def __init__(self, inner: Component = noop_component, name: str = "LazyComponent") -> None:
        self._lazy_inner = inner
        self._lazy_name = name

    def __call__(self, *args: Any, **props: Any) -> Any:
        return self.get_inner()(*args, **props)

    def get_inner(self) -> Component:
        return self._lazy_inner

    @property
    def is_bound(self) -> bool:
        return self.get_inner() is not noop_component

    def bind(self, component: Component) -> None:
        self._lazy_inner = component
        for key, value in getattr(component, "__dict__", {}).items():
            if key.startswith("__") or key.startswith("_lazy_"):
                continue
            setattr(self, key, value)

    def __repr__(self) -> str:
        state = "bound" if self.is_bound else "unbound"
        return f"<{type(self).__name__} {self._lazy_name} ({state})>"


class FactoryComponent(LazyComponent):
    """Component whose implementation comes from a factory on first render."""

    def __init__(self, factory: Callable[[], Any], attempts: int = 5) -> None:
        super().__init__(name=getattr(factory, "__name__", "factory"))
        self._lazy_get = make_lazy(factory, attempts)

    def get_inner(self) -> Component:
        component = self._lazy_get()
        return noop_component if component is None else component


def lazy_component(factory: Callable[[], Any], attempts: int = 5) -> FactoryComponent:
    return FactoryComponent(factory, attempts)
