from fastapi.testclient import TestClient

import server.app as server_app
from discovery import DiscoverySettings, ModuleDiscovery
from server.app import DiscoveryServer


def make_client(discovery):
    return TestClient(DiscoveryServer(discovery).create_app())


def test_health_status_and_history(discovery, loader):
    loader.register(1, {"dispatch": print})
    discovery.find_by_props("dispatch")

    with make_client(discovery) as client:
        r = client.get("/health")
        assert r.status_code == 200
        assert r.json() == {"status": "healthy", "system_ready": True}

        r = client.get("/status")
        assert r.status_code == 200
        body = r.json()
        assert body["initialized"] is True
        assert body["strict"] is False
        assert body["module_count"] == 1
        assert body["history_size"] == 1

        r = client.get("/history")
        assert r.status_code == 200
        assert r.json()["entries"] == [{"kind": "find_by_props", "args": ["'dispatch'"]}]


def test_search_module_id_and_source(discovery, loader):
    loader.define(1, 'def factory(module, exports, require):\n    exports["Foo"] = "Bar"\n')
    loader.define(2, 'def factory(module, exports, require):\n    exports["Foo"] = "Baz"\n')

    with make_client(discovery) as client:
        r = client.post("/search", json={"substrings": ["Foo"], "patterns": ["Ba[rz]"]})
        assert r.status_code == 200
        assert r.json() == {"module_ids": ["1", "2"], "count": 2}

        r = client.post("/search", json={"patterns": ["("]})
        assert r.status_code == 400

        r = client.post("/module-id", json={"code": ['"Baz"']})
        assert r.status_code == 200
        assert r.json()["module_id"] == "2"

        r = client.post("/module-id", json={"code": ["missing"]})
        assert r.status_code == 404

        r = client.post("/module-id", json={"code": []})
        assert r.status_code == 422

        r = client.get("/modules/1/source")
        assert r.status_code == 200
        assert r.json()["source"].startswith("# [EXTRACTED] BundleModule1")

        r = client.get("/modules/99/source")
        assert r.status_code == 404
        assert r.json()["detail"] == "Module 99 not found"


def test_module_id_miss_in_strict_mode_is_404(strict_discovery):
    with make_client(strict_discovery) as client:
        r = client.post("/module-id", json={"code": ["missing"]})
        assert r.status_code == 404


def test_report_endpoint(discovery, loader):
    discovery.find_by_props("dispatch")
    discovery.find_store("GuildStore")
    loader.register(1, {"dispatch": print})

    with make_client(discovery) as client:
        r = client.get("/report")
        assert r.status_code == 200
        body = r.json()
        assert body["checked"] == 2
        assert body["ok"] is False
        assert body["failures"][0]["kind"] == "find_store"


def test_trace_endpoint(loader):
    discovery = ModuleDiscovery(DiscoverySettings(trace=True)).initialize(loader)
    discovery.find_module_id("anything")

    with make_client(discovery) as client:
        r = client.get("/trace")
        assert r.status_code == 200
        assert r.json()["find_module_id"]["calls"] == 1


def test_endpoints_wait_for_a_loader(monkeypatch):
    monkeypatch.delenv("DISCOVERY_LOADER", raising=False)

    with TestClient(server_app.create_app()) as client:
        r = client.get("/health")
        assert r.json()["system_ready"] is False

        assert client.get("/status").status_code == 503
        assert client.post("/search", json={"substrings": ["x"]}).status_code == 503

        r = client.get("/")
        assert "GET /report" in r.json()["validEndpoints"]


def test_unknown_route_is_404(discovery):
    with make_client(discovery) as client:
        r = client.get("/nope")
        assert r.status_code == 404
        assert r.json()["error"] == "Not Found"
