"""
Module discovery service

Finds modules inside a running bundle by what they look like rather than by
their (unstable) ids, and hands out placeholders for modules that have not
loaded yet.
"""
import logging
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from discovery.config import DiscoverySettings, StrictnessPolicy
from discovery.diagnostics.history import SearchHistory
from discovery.diagnostics.tracer import Tracer
from discovery.errors import AlreadyInitializedError
from discovery.filters import by_code, by_props, by_store_name, component_by_code
from discovery.lazy import FactoryComponent, FactoryProxy, LazyComponent, LazyProxy, is_resolved, noop_component, resolve_lazy, unwrap
from discovery.models import BundleLoader, ModuleCallback, ModuleId, ModuleListener, Predicate, SearchKind
from discovery.search import DEFAULT_CHUNK_MATCHER, EagerSearch, SourceSearch
from discovery.search.source import Matcher, SearchFilter
from discovery.storage import ReadinessGate, SubscriptionRegistry
from discovery.utils.source_text import lookup_member

logger = logging.getLogger(__name__)

Transform = Callable[[Any], Any]


def _identity(value: Any) -> Any:
    return value


def _require_callable(value: Any, what: str) -> None:
    if not callable(value):
        raise TypeError(f"Invalid {what}. Expected a function got {type(value).__name__}")


class ModuleDiscovery:
    """
    Discovery service bound to one bundle loader.

    This class provides:
    - Eager searches over the modules loaded right now (find, find_all, find_bulk)
    - Subscriptions that fire when a matching module registers (wait_for)
    - Lazy values and components bound to modules that may not be loaded yet
    - Searches over factory source text and on-demand chunk loading

    Usage:
        discovery = ModuleDiscovery(DiscoverySettings(strict=True))
        discovery.initialize(loader)

        Flux = discovery.find_by_props("dispatch", "subscribe")
        Button = discovery.find_exported_component("Button")
        await discovery.extract_and_load_chunks(['"UserSettings"'])
    """

    def __init__(self, settings: Optional[DiscoverySettings] = None):
        """
        Args:
            settings: Strictness, history and tracing configuration. Defaults
                to resilient mode with history off.
        """
        self.settings = settings or DiscoverySettings()
        self.policy = StrictnessPolicy.from_settings(self.settings)
        self.tracer = Tracer(enabled=self.settings.trace)
        self.history = SearchHistory(enabled=self.settings.history_enabled)
        self.gate = ReadinessGate()
        self.subscriptions = SubscriptionRegistry()
        self.eager = EagerSearch(self.policy, self.tracer)
        self.source = SourceSearch(self.policy, self.tracer)
        self.loader: Optional[BundleLoader] = None
        self._initialized = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def initialize(self, loader: BundleLoader) -> "ModuleDiscovery":
        """
        Attach to the loader, hook its registration events and open the readiness gate.

        Subscriptions made before this point are checked against every module
        the loader has already executed.

        Returns:
            Self for method chaining

        Raises:
            AlreadyInitializedError: If a loader is already attached
        """
        if self._initialized:
            raise AlreadyInitializedError("Module discovery is already attached to a loader")
        if loader is None:
            raise TypeError("Invalid loader. Expected a bundle loader got None")

        logger.info("Attaching module discovery to bundle loader...")
        self.loader = loader
        self.eager.registry = loader.modules
        self.source.loader = loader
        loader.add_module_listener(self.on_module_registered)
        self._initialized = True

        satisfied = self._sweep_loaded_modules()
        self.gate.resolve()
        logger.info("✅ Module discovery ready (%d early subscriptions satisfied)", satisfied)
        return self

    def _sweep_loaded_modules(self) -> int:
        satisfied = 0
        for module_id, exports in self.eager.iter_exports():
            if self.subscriptions.pending_count == 0:
                break
            satisfied += self.subscriptions.notify(module_id, exports, include_listeners=False)
        return satisfied

    def is_initialized(self) -> bool:
        """Check if a loader has been attached."""
        return self._initialized

    async def wait_until_ready(self) -> None:
        await self.gate.wait()

    def set_tooling_attached(self, attached: bool) -> None:
        """Developer tooling open: report misses but never raise for them."""
        self.policy.tooling_attached = attached

    @property
    def pending_count(self) -> int:
        return self.subscriptions.pending_count

    def module_count(self) -> int:
        return sum(1 for _ in self.eager.iter_exports())

    # ------------------------------------------------------------------
    # Eager search
    # ------------------------------------------------------------------
    def find(self, predicate: Predicate, *, indirect: bool = False) -> Any:
        """
        Find the first loaded module export (or default export) matching a predicate.

        Args:
            predicate: Function taking an export and returning a bool
            indirect: Internal call; never report a miss

        Returns:
            The matching value, or None

        Raises:
            NoModuleMatchError: In strict mode, when nothing matches
        """
        return self.eager.find(predicate, indirect=indirect)

    def find_all(self, predicate: Predicate) -> List[Any]:
        return self.eager.find_all(predicate)

    def find_bulk(self, *predicates: Predicate) -> List[Any]:
        """Same as `find` for several predicates in one pass; results follow input order."""
        return self.eager.find_bulk(*predicates)

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------
    def wait_for(self, predicate: Predicate, callback: ModuleCallback, *, indirect: bool = False) -> None:
        """
        Call `callback` with the first module matching `predicate`.

        If such a module is already loaded the callback runs immediately;
        otherwise it runs once, when a matching module registers.
        """
        _require_callable(predicate, "filter")
        _require_callable(callback, "callback")

        if not indirect:
            self.history.record(SearchKind.WAIT_FOR, predicate)

        if self._initialized:
            existing = self.eager.find(predicate, indirect=True)
            if existing is not None:
                callback(existing)
                return

        self.subscriptions.subscribe(predicate, callback)

    def add_listener(self, listener: ModuleListener) -> None:
        """Receive `(exports, module_id)` for every module that registers."""
        _require_callable(listener, "listener")
        self.subscriptions.add_listener(listener)

    def remove_listener(self, listener: ModuleListener) -> None:
        self.subscriptions.remove_listener(listener)

    def on_module_registered(self, module_id: ModuleId, exports: Any) -> None:
        """Loader hook: a module finished executing."""
        self.subscriptions.notify(module_id, exports)

    # ------------------------------------------------------------------
    # Lazy binding
    # ------------------------------------------------------------------
    def bind_lazy_value(self, predicate: Predicate, transform: Transform = _identity, *, indirect: bool = False) -> Any:
        """
        A value that becomes `transform(module)` once a module matching `predicate` loads.

        Returns:
            The real value if the module is already loaded, otherwise a
            `LazyProxy` that forwards to it after resolution
        """
        _require_callable(predicate, "filter")
        _require_callable(transform, "transform")

        if not indirect:
            self.history.record(SearchKind.BIND_LAZY_VALUE, predicate)

        proxy = LazyProxy(repr(predicate))
        self.wait_for(predicate, lambda mod: resolve_lazy(proxy, transform(mod)), indirect=True)

        if is_resolved(proxy):
            return unwrap(proxy)
        return proxy

    def bind_lazy_component(
        self, predicate: Predicate, transform: Transform = _identity, *, indirect: bool = False
    ) -> Any:
        """
        A component handle that renders the placeholder until a matching module loads.

        The returned handle keeps working after resolution; it renders the real
        component from then on.
        """
        _require_callable(predicate, "filter")
        _require_callable(transform, "component transform")

        if not indirect:
            self.history.record(SearchKind.FIND_COMPONENT, predicate)

        return self._bind_component(predicate, transform, repr(predicate))

    def _bind_component(self, predicate: Predicate, on_match: Transform, name: str) -> Any:
        handle = LazyComponent(noop_component, name=name)
        self.wait_for(predicate, lambda mod: handle.bind(on_match(mod)), indirect=True)

        if handle.is_bound:
            return handle.get_inner()
        return handle

    def find_exported_component(self, *args: Union[str, Transform]) -> Any:
        """
        Component exported under the first of the given names.

        Examples:
            find_exported_component("FriendRow")
            find_exported_component("FriendRow", "Friend", wrap)
        """
        names: List[Any] = list(args)
        transform: Transform = _identity
        if names and callable(names[-1]) and not isinstance(names[-1], str):
            transform = names.pop()
        if not names:
            raise ValueError("find_exported_component expects at least one export name")

        self.history.record(SearchKind.FIND_EXPORTED_COMPONENT, *names)

        first = names[0]
        return self._bind_component(by_props(*names), lambda mod: transform(lookup_member(mod, first)), first)

    def find_component_by_code(self, *args: Union[str, Transform]) -> Any:
        code: List[Any] = list(args)
        transform: Transform = _identity
        if code and callable(code[-1]) and not isinstance(code[-1], str):
            transform = code.pop()

        self.history.record(SearchKind.FIND_COMPONENT_BY_CODE, *code)
        return self.bind_lazy_component(component_by_code(*code), transform, indirect=True)

    def find_by_props(self, *props: str) -> Any:
        self.history.record(SearchKind.FIND_BY_PROPS, *props)
        return self.bind_lazy_value(by_props(*props), indirect=True)

    def find_by_code(self, *code: str) -> Any:
        self.history.record(SearchKind.FIND_BY_CODE, *code)
        return self.bind_lazy_value(by_code(*code), indirect=True)

    def find_store(self, name: str) -> Any:
        self.history.record(SearchKind.FIND_STORE, name)
        return self.bind_lazy_value(by_store_name(name), indirect=True)

    def proxy_lazy(self, factory: Callable[[], Any], attempts: int = 5) -> FactoryProxy:
        """Proxy for `factory()`, evaluated on first use; tracked in search history."""
        _require_callable(factory, "factory")
        self.history.record(SearchKind.PROXY_LAZY, factory)
        return FactoryProxy(factory, attempts)

    def lazy_component(self, factory: Callable[[], Any], attempts: int = 5) -> FactoryComponent:
        """Component produced by `factory()` on first render; tracked in search history."""
        _require_callable(factory, "factory")
        self.history.record(SearchKind.LAZY_COMPONENT, factory)
        return FactoryComponent(factory, attempts)

    # ------------------------------------------------------------------
    # Factory source
    # ------------------------------------------------------------------
    def find_module_id(self, *code: str) -> Optional[ModuleId]:
        """Id of the first module factory whose source includes all of `code`."""
        return self.source.find_module_id(*code)

    def find_module_factory(self, *code: str) -> Optional[Callable[..., Any]]:
        return self.source.find_module_factory(*code)

    def search(self, *filters: SearchFilter) -> Dict[ModuleId, Callable[..., Any]]:
        """
        Search factories by keyword: display names, method names, strings anywhere in the code.

        Args:
            filters: Substrings or compiled regexes; all must match

        Returns:
            Mapping of module id to factory
        """
        return self.source.search(*filters)

    def extract(self, module_id: ModuleId) -> Optional[Callable[..., Any]]:
        """
        Standalone copy of a module's factory, for reading.

        The copy is NOT used by the bundle; changing or instrumenting it has no effect.
        """
        return self.source.extract(module_id)

    async def extract_and_load_chunks(self, code: Sequence[str], matcher: Matcher = DEFAULT_CHUNK_MATCHER) -> Any:
        """
        Load the chunks behind an entry point referenced in a known factory.

        Args:
            code: Strings the factory containing the entry point must include
            matcher: Regex whose `id` group (or first group) captures the entry
                point id. Defaults to the first `x.el("id").then(x.bind(x,"id"))`

        Returns:
            The entry module's exports, or None when extraction fails

        Raises:
            ChunkExtractionError: In strict mode, when the matcher finds no id
        """
        return await self.source.extract_and_load_chunks(code, matcher)

    def extract_and_load_chunks_lazy(
        self, code: Sequence[str], matcher: Matcher = DEFAULT_CHUNK_MATCHER
    ) -> Callable[[], Any]:
        """Like `extract_and_load_chunks`, but deferred until the returned function is called."""
        code = tuple(code)
        self.history.record(SearchKind.EXTRACT_AND_LOAD_CHUNKS, code, matcher)
        return lambda: self.extract_and_load_chunks(code, matcher)
