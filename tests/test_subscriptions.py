import asyncio

import pytest

from discovery import DiscoverySettings, ModuleDiscovery
from discovery.errors import AlreadyInitializedError
from discovery.filters import by_props
from discovery.storage import ReadinessGate


def test_wait_for_fires_once_after_registration(discovery, loader):
    calls = []
    discovery.wait_for(by_props("Foo"), calls.append)
    assert calls == []
    assert discovery.pending_count == 1

    loader.register(1, {"Foo": 1})
    loader.register(2, {"Foo": 2})
    assert calls == [{"Foo": 1}]
    assert discovery.pending_count == 0


def test_wait_for_fires_synchronously_when_already_loaded(discovery, loader):
    loader.register(1, {"Foo": 1})
    calls = []
    discovery.wait_for(by_props("Foo"), calls.append)
    assert calls == [{"Foo": 1}]
    assert discovery.pending_count == 0


def test_wait_for_matches_default_export(discovery, loader):
    calls = []
    discovery.wait_for(by_props("Foo"), calls.append)
    loader.register(1, {"default": {"Foo": 1}})
    assert calls == [{"Foo": 1}]


def test_every_matching_subscription_fires_for_one_module(discovery, loader):
    calls = []
    discovery.wait_for(by_props("Foo"), lambda m: calls.append("foo"))
    discovery.wait_for(by_props("Bar"), lambda m: calls.append("bar"))
    discovery.wait_for(by_props("Baz"), lambda m: calls.append("baz"))
    loader.register(1, {"Foo": 1, "Bar": 1})
    assert sorted(calls) == ["bar", "foo"]
    assert discovery.pending_count == 1


def test_same_predicate_registered_twice_keeps_last_callback(discovery, loader):
    calls = []
    f = by_props("Foo")
    discovery.wait_for(f, lambda m: calls.append("first"))
    discovery.wait_for(f, lambda m: calls.append("second"))
    loader.register(1, {"Foo": 1})
    assert calls == ["second"]


def test_subscription_added_during_fan_out_waits_for_next_module(discovery, loader):
    calls = []

    def subscribe_more(mod):
        discovery.wait_for(by_props("Foo"), calls.append)

    discovery.wait_for(by_props("Trigger"), subscribe_more)
    loader.register(1, {"Trigger": 1})
    # Module 1 has no "Foo", so the new subscription stays pending
    assert calls == []
    loader.register(2, {"Foo": 2})
    assert calls == [{"Foo": 2}]


def test_failing_callback_does_not_stop_fan_out(discovery, loader, caplog):
    calls = []

    def boom(mod):
        raise RuntimeError("boom")

    discovery.wait_for(by_props("Foo"), boom)
    discovery.wait_for(by_props("Foo", "Bar"), calls.append)
    loader.register(1, {"Foo": 1, "Bar": 1})
    assert calls == [{"Foo": 1, "Bar": 1}]
    assert "Error while firing subscription" in caplog.text
    assert discovery.pending_count == 0


def test_listeners_receive_every_module(discovery, loader):
    seen = []
    listener = lambda exports, module_id: seen.append(module_id)  # noqa: E731
    discovery.add_listener(listener)
    loader.register(1, {"Foo": 1})
    loader.register("two", {"Bar": 1})
    discovery.remove_listener(listener)
    loader.register(3, {"Baz": 1})
    assert seen == [1, "two"]


def test_wait_for_validates_arguments(discovery):
    with pytest.raises(TypeError):
        discovery.wait_for("Foo", print)
    with pytest.raises(TypeError):
        discovery.wait_for(by_props("Foo"), None)


def test_early_subscriptions_see_modules_loaded_before_initialize(loader):
    discovery = ModuleDiscovery()
    calls = []
    discovery.wait_for(by_props("Foo"), calls.append)
    loader.register(1, {"Foo": 1})
    assert calls == []

    discovery.initialize(loader)
    assert calls == [{"Foo": 1}]
    loader.register(2, {"Foo": 2})
    assert calls == [{"Foo": 1}]


def test_initialize_twice_is_an_error(discovery, loader):
    with pytest.raises(AlreadyInitializedError):
        discovery.initialize(loader)


def test_readiness_gate_resolves_once():
    gate = ReadinessGate()
    assert not gate.is_resolved
    gate.resolve()
    assert gate.is_resolved
    with pytest.raises(AlreadyInitializedError):
        gate.resolve()


@pytest.mark.asyncio
async def test_wait_until_ready_unblocks_on_initialize(loader):
    discovery = ModuleDiscovery(DiscoverySettings())
    waiter = asyncio.create_task(discovery.wait_until_ready())
    await asyncio.sleep(0)
    assert not waiter.done()

    discovery.initialize(loader)
    await asyncio.wait_for(waiter, timeout=1)
    assert discovery.is_initialized()
