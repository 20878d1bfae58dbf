"""Dependency diff: compare two graph snapshots by module, edge and effective version."""

from __future__ import annotations

from collections import deque

from depstat.analysis.graph_models import (
    DependencyGraph,
    DiffResult,
    DiffStats,
    DiffView,
    VersionChange,
    format_edge,
    split_edge,
)
from depstat.analysis.longest_chain import main_module_chain


def compute_stats(dep_graph: DependencyGraph) -> DiffStats:
    return DiffStats(
        direct_deps=len(dep_graph.direct_deps),
        transitive_deps=len(dep_graph.transitive_deps),
        total_deps=len(dep_graph.all_deps()),
        max_depth=len(main_module_chain(dep_graph)),
    )


def _missing_from(a: list[str], b: list[str]) -> list[str]:
    """Items of ``b`` that are not in ``a``, sorted."""
    seen = set(a)
    return sorted({item for item in b if item not in seen})


def diff_graphs(
    before: DependencyGraph,
    after: DependencyGraph,
    base_ref: str = "",
    head_ref: str = "",
) -> DiffResult:
    """Compare two independently built snapshots.

    Returns: DiffResult with stats, added/removed deps and edges, version changes
    """
    before_stats = compute_stats(before)
    after_stats = compute_stats(after)
    before_deps = before.all_deps()
    after_deps = after.all_deps()
    before_edges = before.edges()
    after_edges = after.edges()

    return DiffResult(
        base_ref=base_ref,
        head_ref=head_ref,
        before=before_stats,
        after=after_stats,
        delta=after_stats.delta(before_stats),
        added=_missing_from(before_deps, after_deps),
        removed=_missing_from(after_deps, before_deps),
        edges_added=_missing_from(before_edges, after_edges),
        edges_removed=_missing_from(after_edges, before_edges),
        version_changes=compute_version_changes(before, after),
    )


def compute_version_changes(before: DependencyGraph, after: DependencyGraph) -> list[VersionChange]:
    """Deps present in both snapshots whose effective version differs, by module name."""
    after_deps = set(after.all_deps())
    changes: list[VersionChange] = []
    for dep in before.all_deps():
        if dep not in after_deps:
            continue  # removed module, not a version change
        before_version = before.versions.get(dep, "")
        after_version = after.versions.get(dep, "")
        if before_version and after_version and before_version != after_version:
            changes.append(VersionChange(module=dep, before=before_version, after=after_version))
    changes.sort(key=lambda vc: vc.module)
    return changes


# ── Transitive reduction of diff edges ────────────────────────

def transitive_reduce_edges(
    diff_edges: list[str],
    full_graph: dict[str, list[str]],
    diff_nodes: set[str],
) -> list[str]:
    """Drop diff edges already explained by a longer path through other diff edges.

    Only the subgraph induced by ``diff_nodes`` is searched, and the
    alternate path must use at least one diff edge, so a new edge is never
    hidden by a path that existed all along.
    """
    diff_edge_set = set(diff_edges)

    sub_graph: dict[str, list[str]] = {}
    for node in diff_nodes:
        for neighbor in full_graph.get(node, []):
            if neighbor in diff_nodes:
                sub_graph.setdefault(node, []).append(neighbor)

    reduced: list[str] = []
    for edge in diff_edges:
        parts = split_edge(edge)
        if parts is None:
            continue
        if not reachable_via_diff_path(parts[0], parts[1], sub_graph, diff_edge_set):
            reduced.append(edge)
    return reduced


def reachable_via_diff_path(
    src: str,
    dst: str,
    graph: dict[str, list[str]],
    diff_edge_set: set[str],
) -> bool:
    """Whether ``dst`` is reachable from ``src`` other than by the direct edge,
    over a path that uses at least one diff edge."""
    reached: set[tuple[str, bool]] = set()
    queue: deque[tuple[str, bool]] = deque()

    for neighbor in graph.get(src, []):
        if neighbor == dst:
            continue
        state = (neighbor, format_edge(src, neighbor) in diff_edge_set)
        if state not in reached:
            reached.add(state)
            queue.append(state)

    while queue:
        node, has_diff = queue.popleft()
        if node == dst and has_diff:
            return True
        for neighbor in graph.get(node, []):
            state = (neighbor, has_diff or format_edge(node, neighbor) in diff_edge_set)
            if state not in reached:
                reached.add(state)
                queue.append(state)

    return False


def _diff_nodes(result: DiffResult) -> set[str]:
    nodes = set(result.added) | set(result.removed)
    nodes.update(vc.module for vc in result.version_changes)
    for edge in result.edges_added + result.edges_removed:
        parts = split_edge(edge)
        if parts:
            nodes.update(parts)
    return nodes


def build_diff_view(
    result: DiffResult,
    before: DependencyGraph,
    after: DependencyGraph,
) -> DiffView:
    """Reduce a diff to the nodes and edges worth drawing."""
    # collected before reduction so it only sees diff-visible nodes
    diff_nodes = _diff_nodes(result)
    edges_added = transitive_reduce_edges(result.edges_added, after.graph, diff_nodes)
    edges_removed = transitive_reduce_edges(result.edges_removed, before.graph, diff_nodes)

    status: dict[str, str] = {}
    for dep in result.added:
        status[dep] = "added"
    for dep in result.removed:
        status[dep] = "removed"
    for vc in result.version_changes:
        status.setdefault(vc.module, "changed")

    for edges, target_status in ((edges_added, "added"), (edges_removed, "removed")):
        for edge in edges:
            parts = split_edge(edge)
            if parts is None:
                continue
            status.setdefault(parts[0], "unchanged")
            status.setdefault(parts[1], target_status)

    # main modules whose diff edges were all reduced away get one thin edge back
    mains = set(before.main_modules) | set(after.main_modules)
    main_edges: list[str] = []
    for edge in result.edges_added + result.edges_removed:
        parts = split_edge(edge)
        if parts is None or parts[0] not in mains:
            continue
        if parts[0] in status:
            continue
        if parts[1] in status:
            status[parts[0]] = "main"
            main_edges.append(edge)

    return DiffView(
        node_status=dict(sorted(status.items())),
        edges_added=edges_added,
        edges_removed=edges_removed,
        main_module_edges=main_edges,
        version_changes={vc.module: vc for vc in result.version_changes},
    )
