"""All-paths search between modules and "why is this dependency here" explanations."""

from __future__ import annotations

from depstat.analysis.graph_models import (
    EDGE_SEPARATOR,
    Chain,
    DependencyGraph,
    WhyPath,
    WhyResult,
)

_DONE = object()


def find_all_paths(
    start: str,
    target: str,
    graph: dict[str, list[str]],
    max_paths: int = 0,
) -> list[Chain]:
    """Every simple path from ``start`` to ``target``, endpoints included.

    A path ends at its first arrival at ``target``. Search stops as soon
    as ``max_paths`` paths are collected (0 = unbounded).
    """
    if max_paths < 0:
        raise ValueError(f"max_paths must be >= 0, got {max_paths}")
    if start == target:
        return [[start]]

    paths: list[Chain] = []
    path = [start]
    on_path = {start}
    frames = [iter(graph.get(start, []))]

    while frames:
        if max_paths and len(paths) >= max_paths:
            break
        nxt = next(frames[-1], _DONE)
        if nxt is _DONE:
            frames.pop()
            on_path.discard(path.pop())
            continue
        if nxt == target:
            paths.append(path + [nxt])
            continue
        if nxt in on_path:
            continue
        path.append(nxt)
        on_path.add(nxt)
        frames.append(iter(graph.get(nxt, [])))

    return paths


def direct_dependents(dep_graph: DependencyGraph, target: str) -> list[str]:
    return sorted(
        source for source, targets in dep_graph.graph.items() if target in targets
    )


def explain_dependency(
    dep_graph: DependencyGraph,
    target: str,
    max_paths: int = 0,
) -> WhyResult:
    """Show every path from the main modules that pulls in ``target``."""
    if max_paths < 0:
        raise ValueError(f"max_paths must be >= 0, got {max_paths}")

    result = WhyResult(target=target, main_modules=list(dep_graph.main_modules))
    if target not in dep_graph.all_deps():
        return result

    result.found = True
    result.direct_dependents = direct_dependents(dep_graph, target)

    all_paths: list[Chain] = []
    for main in dep_graph.main_modules:
        remaining = max_paths - len(all_paths) if max_paths else 0
        all_paths.extend(find_all_paths(main, target, dep_graph.graph, remaining))
        if max_paths and len(all_paths) >= max_paths:
            result.truncated = True
            break

    result.paths = [
        WhyPath(path=path, direct=len(path) == 2 and dep_graph.is_main(path[0]))
        for path in all_paths
    ]
    result.paths.sort(key=lambda wp: (len(wp.path), EDGE_SEPARATOR.join(wp.path)))
    result.total_paths = len(result.paths)
    return result
