"""Longest simple dependency chain from a start module."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator

from depstat.analysis.graph_models import Chain, DependencyGraph


@dataclass
class _Frame:
    node: str
    deps: Iterator[str]
    best: Chain = field(default_factory=list)

    def offer(self, chain: Chain) -> None:
        # strictly longer wins, so ties keep the first chain in adjacency order
        if len(chain) > len(self.best):
            self.best = chain


class LongestChainFinder:
    """Memoized longest-chain search over one adjacency mapping.

    Results are cached per module for the lifetime of the finder. A module
    already on the active path contributes nothing, which is what keeps
    the search finite on cyclic graphs.
    """

    def __init__(self, graph: dict[str, list[str]]):
        self.graph = graph
        self._memo: dict[str, Chain] = {}

    def find(self, start: str) -> Chain:
        frames: list[_Frame] = []
        on_path: set[str] = set()

        result = self._enter(start, frames, on_path)
        while frames:
            frame = frames[-1]
            dep = next(frame.deps, None)
            if dep is None:
                frames.pop()
                on_path.discard(frame.node)
                chain = [frame.node] + frame.best
                self._memo[frame.node] = chain
                if frames:
                    frames[-1].offer(chain)
                else:
                    result = chain
                continue

            child = self._enter(dep, frames, on_path)
            if child is not None:
                frame.offer(child)

        return list(result or [])

    def _enter(self, node: str, frames: list[_Frame], on_path: set[str]) -> Chain | None:
        """Return a finished chain for ``node``, or push a frame and return None."""
        if node in self._memo:
            return self._memo[node]

        deps = self.graph.get(node)
        if not deps:
            self._memo[node] = [node]
            return self._memo[node]

        if node in on_path:
            # cycle back into the active path: no extension, nothing memoized
            return []

        on_path.add(node)
        frames.append(_Frame(node=node, deps=iter(deps)))
        return None


def longest_chain(start: str | None, graph: dict[str, list[str]]) -> Chain:
    """Longest cycle-free chain starting at ``start``; empty when there is no start."""
    if not start:
        return []
    return LongestChainFinder(graph).find(start)


def main_module_chain(dep_graph: DependencyGraph) -> Chain:
    """Longest chain from the first main module, or ``[]`` without one."""
    if not dep_graph.main_modules:
        return []
    return longest_chain(dep_graph.main_modules[0], dep_graph.graph)
