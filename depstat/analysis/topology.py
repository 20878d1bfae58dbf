"""Graph topology: per-module degree and depth, plus top-N rankings."""

from __future__ import annotations

from collections import Counter, deque

from depstat.analysis.graph_models import (
    DependencyGraph,
    GraphEdge,
    GraphNode,
    GraphRankings,
)

RANKING_MODES = ("in", "out", "both")


def shortest_depth_by_module(main_modules: list[str] | tuple[str, ...], graph: dict[str, list[str]]) -> dict[str, int]:
    """BFS depth of every module reachable from the main modules (mains are 0)."""
    depth: dict[str, int] = {}
    queue: deque[str] = deque()
    for main in main_modules:
        if main not in depth:
            depth[main] = 0
            queue.append(main)

    while queue:
        current = queue.popleft()
        for nxt in graph.get(current, []):
            if nxt not in depth:
                depth[nxt] = depth[current] + 1
                queue.append(nxt)
    return depth


def build_topology(dep_graph: DependencyGraph) -> tuple[list[GraphNode], list[GraphEdge]]:
    in_degree: Counter[str] = Counter()
    edges: list[GraphEdge] = []
    for source, targets in dep_graph.graph.items():
        for target in targets:
            in_degree[target] += 1
            edges.append(GraphEdge(source=source, target=target))
    edges.sort(key=lambda e: (e.source, e.target))

    depth = shortest_depth_by_module(dep_graph.main_modules, dep_graph.graph)
    nodes = [
        GraphNode(
            module=module,
            in_degree=in_degree[module],
            out_degree=len(dep_graph.graph.get(module, [])),
            depth=depth.get(module, -1),
            is_main_module=dep_graph.is_main(module),
        )
        for module in sorted(dep_graph.nodes())
    ]
    return nodes, edges


def top_by_metric(nodes: list[GraphNode], n: int, metric: str) -> list[GraphNode]:
    attr = "in_degree" if metric == "in" else "out_degree"
    return sorted(nodes, key=lambda node: (-getattr(node, attr), node.module))[:n]


def build_rankings(nodes: list[GraphNode], mode: str, n: int) -> GraphRankings:
    if mode not in RANKING_MODES:
        raise ValueError(f"mode must be one of {', '.join(RANKING_MODES)}, got {mode!r}")
    if n < 0:
        raise ValueError(f"n must be >= 0, got {n}")

    rankings = GraphRankings(mode=mode, n=n)
    if mode in ("in", "both"):
        rankings.by_in_degree = top_by_metric(nodes, n, "in")
    if mode in ("out", "both"):
        rankings.by_out_degree = top_by_metric(nodes, n, "out")
    return rankings
