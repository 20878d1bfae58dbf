"""Elementary cycle enumeration (Johnson's algorithm) and cycle summaries."""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Iterator

from depstat.analysis.graph_models import Chain, CycleParticipant, CycleSummary

logger = logging.getLogger(__name__)


@dataclass
class _CircuitFrame:
    node: int
    neighbors: Iterator[int]
    found: bool = False
    truncated: bool = False  # the length cap cut exploration short


class CyclesFinder:
    """Find every elementary cycle of a directed graph exactly once.

    Nodes are indexed in sorted order. For each start index ``s`` the
    search is restricted to the strongly connected component containing
    ``s`` within the subgraph of indices ``>= s``, so each cycle is
    reported once, anchored at its lowest-indexed node. Runs in
    O((V+E)(C+1)) for C cycles when uncapped.

    ``max_length`` bounds the number of edges in a reported cycle
    (0 = unbounded); paths are never extended past it.
    """

    def __init__(self, graph: dict[str, list[str]], max_length: int = 0):
        if max_length < 0:
            raise ValueError(f"max_length must be >= 0, got {max_length}")
        self.graph = graph
        self.max_length = max_length

        nodes = set(graph)
        for targets in graph.values():
            nodes.update(targets)
        self.index_node: list[str] = sorted(nodes)
        self.node_index: dict[str, int] = {n: i for i, n in enumerate(self.index_node)}
        self.adjacency: list[list[int]] = [
            [self.node_index[t] for t in graph.get(n, [])] for n in self.index_node
        ]

        self._blocked: list[bool] = [False] * len(self.index_node)
        self._blocked_map: list[set[int]] = [set() for _ in self.index_node]
        self._stack: list[int] = []
        self._cycles: list[Chain] = []

    def find(self) -> list[Chain]:
        self._cycles = []
        for start in range(len(self.index_node)):
            component = self._scc_containing(start)
            if not component:
                continue

            for idx in component:
                self._blocked[idx] = False
                self._blocked_map[idx] = set()
            self._circuit(start, set(component))

        logger.debug(
            "found %d cycles over %d nodes (max_length=%d)",
            len(self._cycles), len(self.index_node), self.max_length,
        )
        return self._cycles

    # ── Tarjan, restricted to indices >= start ────────────────

    def _scc_containing(self, start: int) -> list[int]:
        """SCC of ``start`` in the subgraph of indices >= start, if it can hold a cycle."""
        index: dict[int, int] = {start: 0}
        lowlink: dict[int, int] = {start: 0}
        counter = 1
        stack = [start]
        on_stack = {start}
        work: list[tuple[int, Iterator[int]]] = [(start, iter(self.adjacency[start]))]

        while work:
            v, neighbors = work[-1]
            descended = False
            for w in neighbors:
                if w < start:
                    continue
                if w not in index:
                    index[w] = lowlink[w] = counter
                    counter += 1
                    stack.append(w)
                    on_stack.add(w)
                    work.append((w, iter(self.adjacency[w])))
                    descended = True
                    break
                if w in on_stack:
                    lowlink[v] = min(lowlink[v], index[w])
            if descended:
                continue

            work.pop()
            if work:
                parent = work[-1][0]
                lowlink[parent] = min(lowlink[parent], lowlink[v])

            if lowlink[v] == index[v]:
                component = []
                while True:
                    w = stack.pop()
                    on_stack.discard(w)
                    component.append(w)
                    if w == v:
                        break
                if v == start:
                    if len(component) > 1 or start in self.adjacency[start]:
                        return component
                    return []

        return []

    # ── Johnson circuit search ────────────────────────────────

    def _can_extend(self) -> bool:
        return self.max_length == 0 or len(self._stack) < self.max_length

    def _circuit(self, start: int, component: set[int]) -> None:
        frames = [self._push(start)]

        while frames:
            frame = frames[-1]
            descended = False
            for w in frame.neighbors:
                if w not in component:
                    continue
                if w == start:
                    # the stack never outgrows max_length, so this cycle fits
                    self._record(start)
                    frame.found = True
                elif not self._blocked[w]:
                    if self._can_extend():
                        frames.append(self._push(w))
                        descended = True
                        break
                    frame.truncated = True
            if descended:
                continue

            frames.pop()
            v = frame.node
            if frame.found or frame.truncated:
                # a capped search proves nothing about v, so never leave it blocked
                self._unblock(v)
            else:
                for w in self.adjacency[v]:
                    if w in component:
                        self._blocked_map[w].add(v)
            self._stack.pop()

            if frames:
                frames[-1].found = frames[-1].found or frame.found
                frames[-1].truncated = frames[-1].truncated or frame.truncated

    def _push(self, v: int) -> _CircuitFrame:
        self._stack.append(v)
        self._blocked[v] = True
        return _CircuitFrame(node=v, neighbors=iter(self.adjacency[v]))

    def _record(self, start: int) -> None:
        cycle = [self.index_node[idx] for idx in self._stack]
        cycle.append(self.index_node[start])
        self._cycles.append(cycle)

    def _unblock(self, v: int) -> None:
        pending = [v]
        while pending:
            u = pending.pop()
            self._blocked[u] = False
            waiting = self._blocked_map[u]
            self._blocked_map[u] = set()
            for w in waiting:
                if self._blocked[w]:
                    pending.append(w)


def find_cycles(graph: dict[str, list[str]], max_length: int = 0) -> list[Chain]:
    """All elementary cycles as closed walks ``[n0, ..., nk, n0]``."""
    return CyclesFinder(graph, max_length).find()


def summarize_cycles(cycles: list[Chain], top_n: int) -> CycleSummary:
    """Counts by length, mutual-dependency pairs and the most frequent participants."""
    if top_n < 0:
        raise ValueError(f"top_n must be >= 0, got {top_n}")

    by_length: Counter[int] = Counter()
    pairs: set[tuple[str, str]] = set()
    participants: Counter[str] = Counter()

    for cycle in cycles:
        if len(cycle) < 2:
            continue
        length = len(cycle) - 1
        by_length[length] += 1
        participants.update(set(cycle[:-1]))

        if length == 2:
            a, b = sorted(cycle[:2])
            pairs.add((a, b))

    ranked = sorted(participants.items(), key=lambda item: (-item[1], item[0]))
    return CycleSummary(
        total_cycles=len(cycles),
        by_length={str(length): count for length, count in sorted(by_length.items())},
        two_node_cycles=[list(pair) for pair in sorted(pairs)],
        top_participants=[
            CycleParticipant(module=module, cycle_count=count)
            for module, count in ranked[:top_n]
        ],
    )
