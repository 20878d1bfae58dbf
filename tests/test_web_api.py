"""Tests for the web API: graph sessions, analyses, diffs."""

import pytest
from pathlib import Path

try:
    from fastapi.testclient import TestClient
    from depstat.web import create_app
    from depstat.web.state import state
    HAS_WEB = True
except ImportError:
    HAS_WEB = False

pytestmark = pytest.mark.skipif(not HAS_WEB, reason="web dependencies not installed")

FIXTURES = Path(__file__).parent / "fixtures"


@pytest.fixture
def client():
    state.clear()
    app = create_app()
    return TestClient(app)


def _upload(client, name, **extra):
    res = client.post("/api/analysis/graph", json={"raw": (FIXTURES / name).read_text(), **extra})
    assert res.status_code == 200
    return res.json()


# ── Graph sessions ────────────────────────────────────────────

class TestGraphSessions:
    def test_build(self, client):
        data = _upload(client, "simple.txt")
        assert data["main_modules"] == ["A"]
        assert data["nodes"] == 5
        assert data["edges"] == 5
        assert data["direct_dependencies"] == 2

    def test_build_with_main_modules(self, client):
        data = _upload(client, "versioned.txt", main_modules=["A", "D"])
        assert data["direct_dependencies"] == 3
        assert data["transitive_dependencies"] == 3

    def test_get_and_delete(self, client):
        graph_id = _upload(client, "simple.txt")["graph_id"]

        res = client.get(f"/api/analysis/graph/{graph_id}")
        assert res.status_code == 200
        assert res.json()["graph"]["A"] == ["B", "C"]

        res = client.delete(f"/api/analysis/graph/{graph_id}")
        assert res.status_code == 200
        assert client.get(f"/api/analysis/graph/{graph_id}").status_code == 404

    def test_get_returns_copies(self, client):
        import asyncio
        from depstat.web.api_analysis import get_graph

        graph_id = _upload(client, "simple.txt")["graph_id"]
        data = asyncio.run(get_graph(graph_id))
        data["graph"]["A"].append("Z")
        data["graph"].clear()
        data["direct_deps"].clear()
        data["versions"]["A"] = "v9.9.9"

        stored = state.get_graph(graph_id).graph
        assert stored.graph["A"] == ["B", "C"]
        assert stored.direct_deps == ["B", "C"]
        assert "v9.9.9" not in stored.versions.values()
        assert client.get(f"/api/analysis/graph/{graph_id}").json()["graph"]["A"] == ["B", "C"]

    def test_not_found(self, client):
        assert client.get("/api/analysis/graph/nonexistent").status_code == 404
        assert client.delete("/api/analysis/graph/nonexistent").status_code == 404
        res = client.post("/api/analysis/stats", json={"graph_id": "nonexistent"})
        assert res.status_code == 404


# ── Analyses ──────────────────────────────────────────────────

class TestAnalyses:
    def test_stats(self, client):
        graph_id = _upload(client, "simple.txt")["graph_id"]
        res = client.post("/api/analysis/stats", json={"graph_id": graph_id})
        assert res.json() == {"direct_deps": 2, "transitive_deps": 2, "total_deps": 4, "max_depth": 4}

    def test_list(self, client):
        graph_id = _upload(client, "simple.txt")["graph_id"]
        res = client.post("/api/analysis/list", json={"graph_id": graph_id})
        assert res.json()["all_dependencies"] == ["B", "C", "D", "E"]

    def test_cycles(self, client):
        graph_id = _upload(client, "cycle.txt")["graph_id"]
        res = client.post("/api/analysis/cycles", json={"graph_id": graph_id})
        assert res.json()["cycles"] == [["B", "C", "B"], ["C", "E", "F", "D", "C"]]

        res = client.post("/api/analysis/cycles", json={"graph_id": graph_id, "max_length": 2})
        assert res.json()["cycles"] == [["B", "C", "B"]]

    def test_cycles_summary(self, client):
        graph_id = _upload(client, "cycle.txt")["graph_id"]
        res = client.post("/api/analysis/cycles", json={"graph_id": graph_id, "summary": True, "top_n": 2})
        summary = res.json()["summary"]
        assert summary["total_cycles"] == 2
        assert [p["module"] for p in summary["top_participants"]] == ["C", "B"]

    def test_cycles_bad_cap(self, client):
        graph_id = _upload(client, "cycle.txt")["graph_id"]
        res = client.post("/api/analysis/cycles", json={"graph_id": graph_id, "max_length": 1})
        assert res.status_code == 400

    def test_why(self, client):
        graph_id = _upload(client, "simple.txt")["graph_id"]
        res = client.post("/api/analysis/why", json={"graph_id": graph_id, "target": "D"})
        data = res.json()
        assert data["found"]
        assert [p["path"] for p in data["paths"]] == [["A", "B", "D"], ["A", "C", "D"]]

    def test_why_bad_cap(self, client):
        graph_id = _upload(client, "simple.txt")["graph_id"]
        res = client.post("/api/analysis/why", json={"graph_id": graph_id, "target": "D", "max_paths": -1})
        assert res.status_code == 400

    def test_topology(self, client):
        graph_id = _upload(client, "simple.txt")["graph_id"]
        res = client.post("/api/analysis/topology", json={"graph_id": graph_id, "top": "out", "n": 1})
        data = res.json()
        assert len(data["nodes"]) == 5
        assert [n["module"] for n in data["rankings"]["by_out_degree"]] == ["A"]

    def test_topology_bad_mode(self, client):
        graph_id = _upload(client, "simple.txt")["graph_id"]
        res = client.post("/api/analysis/topology", json={"graph_id": graph_id, "top": "sideways"})
        assert res.status_code == 400


# ── Diff ──────────────────────────────────────────────────────

class TestDiff:
    def test_diff_stored_graphs(self, client):
        before_id = _upload(client, "before.txt")["graph_id"]
        after_id = _upload(client, "after.txt")["graph_id"]

        res = client.post("/api/diff", json={"before_id": before_id, "after_id": after_id})
        assert res.status_code == 200
        data = res.json()
        assert data["added"] == ["example.com/extra"]
        assert data["has_changes"] is True
        assert data["view"]["node_status"]["example.com/lib"] == "changed"

        cached = client.get(f"/api/diff/{data['diff_id']}")
        assert cached.json()["added"] == data["added"]

    def test_diff_raw(self, client):
        res = client.post("/api/diff", json={
            "before_raw": "app lib@v1.0.0\n",
            "after_raw": "app lib@v1.1.0\n",
        })
        data = res.json()
        assert data["version_changes"] == [{"module": "lib", "before": "v1.0.0", "after": "v1.1.0"}]
        assert data["added"] == []

    def test_diff_missing_side(self, client):
        res = client.post("/api/diff", json={"before_raw": "a b\n"})
        assert res.status_code == 400

    def test_diff_unknown_graph(self, client):
        res = client.post("/api/diff", json={"before_id": "nope", "after_raw": "a b\n"})
        assert res.status_code == 404

    def test_diff_not_found(self, client):
        assert client.get("/api/diff/nonexistent").status_code == 404

    def test_diff_raw_builds_off_event_loop(self, client):
        from unittest.mock import patch
        from depstat.analysis.dependency_graph import DependencyGraphBuilder

        worker = {"active": False, "builds": 0}
        real_build = DependencyGraphBuilder.build

        async def fake_to_thread(func, *args, **kwargs):
            worker["active"] = True
            try:
                return func(*args, **kwargs)
            finally:
                worker["active"] = False

        def checked_build(self, raw):
            assert worker["active"], "graph built on the event loop"
            worker["builds"] += 1
            return real_build(self, raw)

        with patch("depstat.web.api_diff.asyncio.to_thread", fake_to_thread), \
             patch.object(DependencyGraphBuilder, "build", checked_build):
            res = client.post("/api/diff", json={
                "before_raw": "app lib@v1.0.0\n",
                "after_raw": "app lib@v1.1.0\n",
            })
        assert res.status_code == 200
        assert worker["builds"] == 2
