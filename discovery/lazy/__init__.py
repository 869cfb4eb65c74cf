"""Placeholders that turn into the real value once it becomes available"""
from .component import FactoryComponent, LazyComponent, lazy_component, noop_component
from .proxy import FactoryProxy, LazyProxy, is_resolved, make_lazy, proxy_lazy, resolve_lazy, unwrap

__all__ = [
    "FactoryComponent",
    "FactoryProxy",
    "LazyComponent",
    "LazyProxy",
    "is_resolved",
    "lazy_component",
    "make_lazy",
    "noop_component",
    "proxy_lazy",
    "resolve_lazy",
    "unwrap",
]
