import logging
import sys
import types

import pytest

from discovery import DiscoverySettings
from discovery.config import StrictnessPolicy
from discovery.errors import NoModuleMatchError
from discovery.utils.loader_ref import resolve_loader


def test_settings_from_env():
    settings = DiscoverySettings.from_env(
        {
            "DISCOVERY_STRICT": "true",
            "DISCOVERY_TOOLING_ATTACHED": "0",
            "DISCOVERY_TRACE": "yes",
            "DISCOVERY_LOADER": "bundle.runtime:loader",
        }
    )
    assert settings.strict is True
    assert settings.tooling_attached is False
    assert settings.trace is True
    assert settings.loader == "bundle.runtime:loader"
    assert settings.record_history is None
    assert settings.history_enabled is True


def test_settings_from_empty_env_uses_defaults():
    settings = DiscoverySettings.from_env({"DISCOVERY_STRICT": "  "})
    assert settings == DiscoverySettings()
    assert settings.history_enabled is False


def test_explicit_history_flag_wins():
    settings = DiscoverySettings.from_env({"DISCOVERY_STRICT": "1", "DISCOVERY_RECORD_HISTORY": "off"})
    assert settings.history_enabled is False


@pytest.mark.parametrize(
    "strict, tooling_attached, should_raise",
    [(False, False, False), (True, False, True), (True, True, False), (False, True, False)],
)
def test_strictness_policy(strict, tooling_attached, should_raise):
    policy = StrictnessPolicy(strict=strict, tooling_attached=tooling_attached)
    assert policy.should_raise is should_raise

    if should_raise:
        with pytest.raises(NoModuleMatchError):
            policy.report(NoModuleMatchError("missing"))
    else:
        policy.report(NoModuleMatchError("missing"))


def test_policy_report_logs_context(caplog):
    StrictnessPolicy().report(NoModuleMatchError("find found no module"), "by_props('x')", level=logging.WARNING)
    assert "find found no module | \"by_props('x')\"" in caplog.text


@pytest.fixture
def fake_bundle(monkeypatch):
    module = types.ModuleType("fake_bundle")

    class Loader:
        modules = {}

    module.Loader = Loader
    module.runtime = types.SimpleNamespace(loader=Loader(), make_loader=lambda: Loader())
    monkeypatch.setitem(sys.modules, "fake_bundle", module)
    return module


def test_resolve_loader_returns_instances(fake_bundle):
    assert resolve_loader("fake_bundle:runtime.loader") is fake_bundle.runtime.loader


def test_resolve_loader_calls_factories(fake_bundle):
    loader = resolve_loader("fake_bundle:runtime.make_loader")
    assert isinstance(loader, fake_bundle.Loader)
    assert loader is not fake_bundle.runtime.loader


@pytest.mark.parametrize("ref", ["fake_bundle", ":loader", "fake_bundle:"])
def test_resolve_loader_rejects_bad_references(ref):
    with pytest.raises(ValueError):
        resolve_loader(ref)
