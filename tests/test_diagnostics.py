import pytest

from discovery import DiscoverySettings, ModuleDiscovery
from discovery.diagnostics import SearchHistory, Tracer, run_reporter
from discovery.filters import by_props
from discovery.models import SearchKind


def test_history_records_only_declared_searches(discovery):
    discovery.find_by_props("dispatch")
    discovery.find_exported_component("Button", "ButtonLink")
    discovery.find_store("UserStore")
    discovery.wait_for(by_props("Foo"), lambda mod: None)

    kinds = [entry.kind for entry in discovery.history]
    assert kinds == [
        SearchKind.FIND_BY_PROPS,
        SearchKind.FIND_EXPORTED_COMPONENT,
        SearchKind.FIND_STORE,
        SearchKind.WAIT_FOR,
    ]
    assert discovery.history.entries()[1].args == ("Button", "ButtonLink")


def test_history_defaults_to_strict_mode(loader):
    assert not ModuleDiscovery(DiscoverySettings()).history.enabled
    assert ModuleDiscovery(DiscoverySettings(strict=True)).history.enabled
    assert not ModuleDiscovery(DiscoverySettings(strict=True, record_history=False)).history.enabled


def test_disabled_history_records_nothing():
    history = SearchHistory(enabled=False)
    history.record(SearchKind.FIND_BY_PROPS, "a")
    assert len(history) == 0


def test_history_entry_serializes_args_as_reprs():
    history = SearchHistory(enabled=True)
    history.record(SearchKind.FIND_BY_CODE, ".format(")
    assert history.entries()[0].to_serializable() == {"kind": "find_by_code", "args": ["'.format('"]}


def test_tracer_accumulates_stats():
    tracer = Tracer(enabled=True)
    tracer.record("find", 0.5)
    tracer.record("find", 1.5)
    stat = tracer.stats()["find"]
    assert stat.calls == 2
    assert stat.total_seconds == 2.0
    assert stat.mean_seconds == 1.0


@pytest.mark.asyncio
async def test_reporter_passes_when_every_search_resolves(discovery, loader):
    discovery.find_by_props("dispatch")
    discovery.find_exported_component("Button")
    discovery.proxy_lazy(lambda: discovery.find(by_props("dispatch")))

    loader.register(1, {"dispatch": print})
    loader.register(2, {"Button": print})

    report = await run_reporter(discovery)
    assert report.checked == 3
    assert report.ok
    assert report.to_serializable()["failures"] == []


@pytest.mark.asyncio
async def test_reporter_lists_unresolved_searches(discovery, loader, caplog):
    discovery.find_by_props("dispatch")
    discovery.find_store("GuildStore")
    discovery.lazy_component(lambda: None)
    discovery.extract_and_load_chunks_lazy(['"NoSuchFactory"'])

    loader.register(1, {"dispatch": print})

    report = await run_reporter(discovery)
    assert report.checked == 4
    assert not report.ok
    kinds = [failure.entry.kind for failure in report.failures]
    assert kinds == [SearchKind.FIND_STORE, SearchKind.LAZY_COMPONENT, SearchKind.EXTRACT_AND_LOAD_CHUNKS]
    assert report.failures[0].reason == "no loaded module matched"
    assert "Reporter" in caplog.text


@pytest.mark.asyncio
async def test_reporter_records_failing_factories(discovery):
    def broken():
        raise KeyError("Sizes")

    discovery.proxy_lazy(broken)
    report = await run_reporter(discovery)
    assert report.failures[0].reason.startswith("factory raised KeyError")


def test_tracing_wraps_primitive_searches(loader):
    discovery = ModuleDiscovery(DiscoverySettings(trace=True)).initialize(loader)
    loader.define(1, 'def factory(module, exports, require):\n    exports["Foo"] = 1\n')

    discovery.find_module_id('"Foo"')
    discovery.find(by_props("nothing"))

    stats = discovery.tracer.stats()
    assert stats["find_module_id"].calls == 1
    assert stats["find"].calls == 1
