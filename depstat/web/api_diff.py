"""Dependency diff API: compare two stored graphs or two raw edge lists."""

from __future__ import annotations

import asyncio
import uuid
from dataclasses import asdict

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from depstat.web.state import state
from depstat.analysis.dependency_graph import DependencyGraphBuilder
from depstat.analysis.diff import build_diff_view, diff_graphs
from depstat.analysis.graph_models import DependencyGraph

router = APIRouter(prefix="/api/diff")


class DiffRequest(BaseModel):
    before_id: str | None = None
    after_id: str | None = None
    before_raw: str | None = None
    after_raw: str | None = None
    main_modules: list[str] = []
    exclude_modules: list[str] = []
    base_ref: str = "before"
    head_ref: str = "after"


def _resolve_side(graph_id: str | None, raw: str | None, side: str) -> DependencyGraph | str:
    """Stored graph for an id, or the raw text to build off the event loop."""
    if graph_id is not None:
        session = state.get_graph(graph_id)
        if not session:
            raise HTTPException(404, f"Graph not found: {graph_id}")
        return session.graph
    if raw is not None:
        return raw
    raise HTTPException(400, f"Provide {side}_id or {side}_raw")


def _compute(before: DependencyGraph | str, after: DependencyGraph | str, req: DiffRequest) -> dict:
    builder = DependencyGraphBuilder(req.main_modules, req.exclude_modules)
    if isinstance(before, str):
        before = builder.build(before)
    if isinstance(after, str):
        after = builder.build(after)

    result = diff_graphs(before, after, base_ref=req.base_ref, head_ref=req.head_ref)
    payload = asdict(result)
    payload["has_changes"] = result.has_changes
    payload["view"] = asdict(build_diff_view(result, before, after))
    return payload


@router.post("")
async def run_diff(req: DiffRequest):
    before = _resolve_side(req.before_id, req.before_raw, "before")
    after = _resolve_side(req.after_id, req.after_raw, "after")

    result = await asyncio.to_thread(_compute, before, after, req)

    diff_id = uuid.uuid4().hex[:12]
    result["diff_id"] = diff_id
    state.diffs[diff_id] = result
    return result


@router.get("/{diff_id}")
async def get_diff(diff_id: str):
    cached = state.diffs.get(diff_id)
    if not cached:
        raise HTTPException(404, "Diff not found")
    return cached
