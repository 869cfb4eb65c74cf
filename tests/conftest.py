import linecache
import textwrap
from typing import Any, Callable, Dict, List

import pytest

from discovery import DiscoverySettings, ModuleDiscovery
from discovery.models import ModuleId, ModuleRecord


class _StubModules:
    def __init__(self):
        self.records: Dict[ModuleId, ModuleRecord] = {}

    def entries(self):
        return list(self.records.items())


class _StubFactories:
    def __init__(self):
        self.factories: Dict[ModuleId, Callable[..., Any]] = {}

    def get(self, module_id):
        return self.factories.get(module_id)

    def all_ids(self):
        return list(self.factories)


class StubBundleLoader:
    """In-memory loader: factories are compiled from source strings."""

    def __init__(self):
        self.modules = _StubModules()
        self.factories = _StubFactories()
        self.loaded_chunks: List[str] = []
        self.required: List[ModuleId] = []
        self.failing_chunks: set = set()
        self._listeners: List[Callable[[ModuleId, Any], None]] = []

    def define(self, module_id: ModuleId, source: str) -> Callable[..., Any]:
        """Compile `source` (which must define `factory`) as module `module_id`'s factory."""
        source = textwrap.dedent(source)
        filename = f"<bundle-module-{module_id}>"
        linecache.cache[filename] = (len(source), None, source.splitlines(True), filename)
        namespace: Dict[str, Any] = {}
        exec(compile(source, filename, "exec"), namespace)
        factory = namespace["factory"]
        self.factories.factories[module_id] = factory
        return factory

    def add_module_listener(self, callback):
        self._listeners.append(callback)

    def register(self, module_id: ModuleId, exports: Any) -> Any:
        """Register already-built exports, as if a factory had just run."""
        self.modules.records[module_id] = ModuleRecord(exports=exports, loaded=True)
        for callback in list(self._listeners):
            callback(module_id, exports)
        return exports

    def require(self, module_id: ModuleId) -> Any:
        self.required.append(module_id)
        record = self.modules.records.get(module_id)
        if record is not None:
            return record.exports
        factory = self.factories.get(module_id)
        if factory is None:
            raise KeyError(f"Unknown module {module_id!r}")
        record = ModuleRecord(exports={})
        factory(record, record.exports, self.require)
        return self.register(module_id, record.exports)

    async def load_chunk(self, entry_id: str) -> None:
        if entry_id in self.failing_chunks:
            raise ConnectionError(f"Loading chunk {entry_id} failed")
        self.loaded_chunks.append(entry_id)


@pytest.fixture
def loader() -> StubBundleLoader:
    return StubBundleLoader()


@pytest.fixture
def discovery(loader) -> ModuleDiscovery:
    return ModuleDiscovery(DiscoverySettings(record_history=True)).initialize(loader)


@pytest.fixture
def strict_discovery(loader) -> ModuleDiscovery:
    return ModuleDiscovery(DiscoverySettings(strict=True)).initialize(loader)
