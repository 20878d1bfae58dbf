"""Dependency graph builder: parses module graph output, resolves effective versions, classifies deps."""

from __future__ import annotations

import fnmatch
import logging
from collections import deque

from depstat.models import Module, parse_module
from depstat.versions import version_greater
from depstat.analysis.graph_models import DependencyGraph

logger = logging.getLogger(__name__)


class DependencyGraphBuilder:
    """Build a ``DependencyGraph`` from raw ``from to`` edge-list text.

    Each module resolves to a single effective version, the highest one
    requested from anywhere reachable, and edges declared by superseded
    versions are dropped.
    """

    def __init__(
        self,
        main_modules: list[str] | None = None,
        exclude_modules: list[str] | None = None,
    ):
        self.main_modules = list(main_modules or [])
        self.exclude_modules = list(exclude_modules or [])

    def build(self, raw: str) -> DependencyGraph:
        main_modules = list(self.main_modules)
        versioned: dict[Module, list[Module]] = {}
        sources: list[Module] = []  # LHS modules in the order first seen
        roots: list[Module] = []

        # Step 1: Parse lines into the raw versioned graph
        for lineno, line in enumerate(raw.splitlines(), start=1):
            words = line.split()
            if not words:
                continue
            if len(words) != 2:
                logger.debug("skipping malformed line %d: %r", lineno, line)
                continue
            lhs = parse_module(words[0])
            rhs = parse_module(words[1])
            if lhs.is_toolchain or rhs.is_toolchain:
                continue

            # the first LHS is always a root; listed main modules are roots too
            if (not roots or lhs.name in main_modules) and lhs not in roots:
                roots.append(lhs)
            if not main_modules:
                main_modules.append(lhs.name)

            if lhs not in versioned:
                versioned[lhs] = []
                sources.append(lhs)
            versioned[lhs].append(rhs)

        # Step 2: Resolve effective versions and reachability
        effective = self._resolve_versions(versioned, roots)

        # Step 3: Collapse edges declared by effective versions only
        edges: list[tuple[str, str]] = []
        for lhs in sources:
            if lhs.name not in effective:
                continue
            if effective[lhs.name] != lhs.version:
                continue
            for rhs in versioned[lhs]:
                edges.append((lhs.name, rhs.name))

        # Step 4: Apply exclusions and re-prune
        if self.exclude_modules:
            main_modules = [m for m in main_modules if not self.is_excluded(m)]
            edges = [
                (lhs, rhs) for lhs, rhs in edges
                if not self.is_excluded(lhs) and not self.is_excluded(rhs)
            ]
            reachable = self._reachable(main_modules, edges)
            edges = [(lhs, rhs) for lhs, rhs in edges if lhs in reachable]
            effective = {name: v for name, v in effective.items() if name in reachable}

        adjacency, direct, transitive = self._classify(edges, main_modules)
        graph = DependencyGraph(
            graph=adjacency,
            direct_deps=direct,
            transitive_deps=transitive,
            main_modules=tuple(main_modules),
            versions=effective,
        )
        logger.debug(
            "resolved graph: %d main, %d direct, %d transitive, %d sources",
            len(graph.main_modules), len(graph.direct_deps),
            len(graph.transitive_deps), len(graph.graph),
        )
        return graph

    def is_excluded(self, module: str) -> bool:
        return any(fnmatch.fnmatchcase(module, pattern) for pattern in self.exclude_modules)

    @staticmethod
    def _resolve_versions(
        versioned: dict[Module, list[Module]],
        roots: list[Module],
    ) -> dict[str, str]:
        """BFS from the roots; returns effective versions of reachable modules only."""
        effective: dict[str, str] = {}

        # roots record the versions of everything they require
        for root in roots:
            for required in versioned.get(root, []):
                current = effective.get(required.name)
                if current is None or version_greater(required.version, current):
                    effective[required.name] = required.version

        reachable: set[str] = set()
        queue = deque(roots)
        while queue:
            module = queue.popleft()
            if module.name in reachable:
                continue
            reachable.add(module.name)

            current = effective.get(module.name)
            if current is not None and version_greater(current, module.version):
                module = Module(module.name, current)
            else:
                effective[module.name] = module.version

            queue.extend(versioned.get(module, []))

        return {name: version for name, version in effective.items() if name in reachable}

    @staticmethod
    def _reachable(main_modules: list[str], edges: list[tuple[str, str]]) -> set[str]:
        forward: dict[str, list[str]] = {}
        for lhs, rhs in edges:
            forward.setdefault(lhs, []).append(rhs)

        seen = set(main_modules)
        queue = deque(main_modules)
        while queue:
            current = queue.popleft()
            for neighbor in forward.get(current, []):
                if neighbor not in seen:
                    seen.add(neighbor)
                    queue.append(neighbor)
        return seen

    @staticmethod
    def _classify(
        edges: list[tuple[str, str]],
        main_modules: list[str],
    ) -> tuple[dict[str, list[str]], list[str], list[str]]:
        mains = set(main_modules)
        graph: dict[str, list[str]] = {}
        direct: dict[str, None] = {}
        transitive: dict[str, None] = {}

        for lhs, rhs in edges:
            targets = graph.setdefault(lhs, [])
            # Avoid duplicate edges
            if rhs not in targets:
                targets.append(rhs)

            if lhs in mains and rhs in mains:
                continue
            if lhs in mains:
                direct[rhs] = None
            else:
                # a main module required through another module still counts
                transitive[rhs] = None

        return graph, list(direct), list(transitive)


def build_graph(
    raw: str,
    main_modules: list[str] | None = None,
    exclude_modules: list[str] | None = None,
) -> DependencyGraph:
    return DependencyGraphBuilder(main_modules, exclude_modules).build(raw)
