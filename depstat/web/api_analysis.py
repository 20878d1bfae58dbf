"""Analysis API: build graphs from raw edge lists, then stats, cycles, why, topology."""

from __future__ import annotations

import asyncio
from dataclasses import asdict

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from depstat.web.state import GraphSession, state
from depstat.analysis.cycles import find_cycles, summarize_cycles
from depstat.analysis.dependency_graph import DependencyGraphBuilder
from depstat.analysis.diff import compute_stats
from depstat.analysis.graph_models import DependencyGraph
from depstat.analysis.paths import explain_dependency
from depstat.analysis.topology import build_rankings, build_topology

router = APIRouter(prefix="/api/analysis")


class BuildGraphRequest(BaseModel):
    raw: str
    main_modules: list[str] = []
    exclude_modules: list[str] = []


class GraphIdRequest(BaseModel):
    graph_id: str


class CyclesRequest(BaseModel):
    graph_id: str
    max_length: int = 0
    summary: bool = False
    top_n: int = 10


class WhyRequest(BaseModel):
    graph_id: str
    target: str
    max_paths: int = 1000


class TopologyRequest(BaseModel):
    graph_id: str
    top: str | None = None
    n: int = 10


def build_session(raw: str, main_modules: list[str], exclude_modules: list[str]) -> GraphSession:
    builder = DependencyGraphBuilder(main_modules, exclude_modules)
    session = GraphSession(graph=builder.build(raw))
    state.add_graph(session)
    return session


def _require_graph(graph_id: str) -> DependencyGraph:
    session = state.get_graph(graph_id)
    if not session:
        raise HTTPException(404, "Graph not found")
    return session.graph


def _graph_summary(session: GraphSession) -> dict:
    graph = session.graph
    return {
        "graph_id": session.id,
        "timestamp": session.timestamp,
        "main_modules": list(graph.main_modules),
        "nodes": len(graph.nodes()),
        "edges": len(graph.edges()),
        "direct_dependencies": len(graph.direct_deps),
        "transitive_dependencies": len(graph.transitive_deps),
    }


@router.post("/graph")
async def build_graph(req: BuildGraphRequest):
    session = await asyncio.to_thread(build_session, req.raw, req.main_modules, req.exclude_modules)
    return _graph_summary(session)


@router.get("/graph/{graph_id}")
async def get_graph(graph_id: str):
    session = state.get_graph(graph_id)
    if not session:
        raise HTTPException(404, "Graph not found")
    graph = session.graph
    return {
        **_graph_summary(session),
        "graph": {source: list(targets) for source, targets in graph.graph.items()},
        "direct_deps": list(graph.direct_deps),
        "transitive_deps": list(graph.transitive_deps),
        "versions": dict(graph.versions),
    }


@router.delete("/graph/{graph_id}")
async def delete_graph(graph_id: str):
    if not state.delete_graph(graph_id):
        raise HTTPException(404, "Graph not found")
    return {"deleted": graph_id}


@router.post("/stats")
async def get_stats(req: GraphIdRequest):
    graph = _require_graph(req.graph_id)
    result = await asyncio.to_thread(compute_stats, graph)
    return asdict(result)


@router.post("/list")
async def list_deps(req: GraphIdRequest):
    graph = _require_graph(req.graph_id)
    all_deps = sorted(graph.all_deps())
    return {
        "all_dependencies": all_deps,
        "main_modules": list(graph.main_modules),
        "total_dependencies": len(all_deps),
    }


@router.post("/cycles")
async def get_cycles(req: CyclesRequest):
    if req.max_length != 0 and req.max_length < 2:
        raise HTTPException(400, "max_length must be 0 or >= 2")
    if req.summary and req.top_n <= 0:
        raise HTTPException(400, "top_n must be > 0")
    graph = _require_graph(req.graph_id)

    cache_key = f"cycles:{req.max_length}"
    cycles = state.get_analysis(req.graph_id, cache_key)
    if cycles is None:
        cycles = await asyncio.to_thread(find_cycles, graph.graph, req.max_length)
        state.store_analysis(req.graph_id, cache_key, cycles)

    if req.summary:
        return {"summary": asdict(summarize_cycles(cycles, req.top_n))}
    return {"cycles": cycles}


@router.post("/why")
async def why(req: WhyRequest):
    if req.max_paths < 0:
        raise HTTPException(400, "max_paths must be >= 0")
    graph = _require_graph(req.graph_id)
    result = await asyncio.to_thread(explain_dependency, graph, req.target, req.max_paths)
    return asdict(result)


@router.post("/topology")
async def topology(req: TopologyRequest):
    graph = _require_graph(req.graph_id)
    nodes, edges = await asyncio.to_thread(build_topology, graph)

    rankings = None
    if req.top:
        try:
            rankings = build_rankings(nodes, req.top, req.n)
        except ValueError as e:
            raise HTTPException(400, str(e))

    return {
        "main_modules": list(graph.main_modules),
        "nodes": [asdict(n) for n in nodes],
        "edges": [asdict(e) for e in edges],
        "rankings": asdict(rankings) if rankings else None,
    }
