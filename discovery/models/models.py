from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Iterable, Optional, Protocol, Tuple, Union

ModuleId = Union[str, int]

Predicate = Callable[[Any], bool]
ModuleCallback = Callable[[Any], Any]
# Raw listeners receive every registered module: (exports, module_id)
ModuleListener = Callable[[Any, ModuleId], None]


@dataclass
class ModuleRecord:
    exports: Any = field(default_factory=dict)
    loaded: bool = False


class ModuleRegistry(Protocol):
    """Live id -> record mapping owned by the loader."""

    def entries(self) -> Iterable[Tuple[ModuleId, ModuleRecord]]: ...


class FactoryRegistry(Protocol):
    """id -> un-executed factory mapping owned by the loader."""

    def get(self, module_id: ModuleId) -> Optional[Callable[..., Any]]: ...

    def all_ids(self) -> Iterable[ModuleId]: ...


# Minimal protocol that describes the parts of the loader discovery relies on
class BundleLoader(Protocol):
    modules: ModuleRegistry
    factories: FactoryRegistry
    def load_chunk(self, entry_id: str) -> Awaitable[None]: ...
    def require(self, module_id: ModuleId) -> Any: ...
    def add_module_listener(self, callback: Callable[[ModuleId, Any], None]) -> None: ...


class SearchKind(str, Enum):
    WAIT_FOR = "wait_for"
    BIND_LAZY_VALUE = "bind_lazy_value"
    FIND_COMPONENT = "find_component"
    FIND_EXPORTED_COMPONENT = "find_exported_component"
    FIND_COMPONENT_BY_CODE = "find_component_by_code"
    FIND_BY_PROPS = "find_by_props"
    FIND_BY_CODE = "find_by_code"
    FIND_STORE = "find_store"
    EXTRACT_AND_LOAD_CHUNKS = "extract_and_load_chunks"
    PROXY_LAZY = "proxy_lazy"
    LAZY_COMPONENT = "lazy_component"


@dataclass(frozen=True)
class SearchHistoryEntry:
    kind: SearchKind
    args: Tuple[Any, ...]

    def to_serializable(self) -> dict[str, Any]:
        return {"kind": self.kind.value, "args": [repr(a) for a in self.args]}
