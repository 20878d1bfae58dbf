"""Data models for the dependency graph and the analyses built on it."""

from __future__ import annotations

from dataclasses import dataclass, field

Chain = list[str]

EDGE_SEPARATOR = " -> "


def format_edge(source: str, target: str) -> str:
    return f"{source}{EDGE_SEPARATOR}{target}"


def split_edge(edge: str) -> tuple[str, str] | None:
    parts = edge.split(EDGE_SEPARATOR)
    if len(parts) != 2:
        return None
    return parts[0], parts[1]


@dataclass(frozen=True)
class DependencyGraph:
    """Version-resolved module graph for one snapshot.

    ``graph`` only has keys for modules with outgoing edges; leaves are
    absent. Built once by ``DependencyGraphBuilder``. The containers are
    shared with every analysis of the snapshot and are read-only by
    convention: copy them before handing them to code that may mutate.
    """
    graph: dict[str, list[str]] = field(default_factory=dict)  # source -> [targets]
    direct_deps: list[str] = field(default_factory=list)
    transitive_deps: list[str] = field(default_factory=list)
    main_modules: tuple[str, ...] = ()
    versions: dict[str, str] = field(default_factory=dict)  # module -> effective version

    def all_deps(self) -> list[str]:
        """Direct and transitive deps, deduplicated, in first-seen order."""
        return list(dict.fromkeys(self.direct_deps + self.transitive_deps))

    def edges(self) -> list[str]:
        return sorted(
            format_edge(source, target)
            for source, targets in self.graph.items()
            for target in targets
        )

    def nodes(self) -> set[str]:
        found = set(self.main_modules)
        for source, targets in self.graph.items():
            found.add(source)
            found.update(targets)
        return found

    def is_main(self, module: str) -> bool:
        return module in self.main_modules


# ── Cycles ────────────────────────────────────────────────────

@dataclass
class CycleParticipant:
    module: str
    cycle_count: int


@dataclass
class CycleSummary:
    total_cycles: int = 0
    by_length: dict[str, int] = field(default_factory=dict)
    two_node_cycles: list[list[str]] = field(default_factory=list)
    top_participants: list[CycleParticipant] = field(default_factory=list)


# ── Why ───────────────────────────────────────────────────────

@dataclass
class WhyPath:
    path: Chain
    direct: bool = False  # single edge from a main module


@dataclass
class WhyResult:
    target: str
    found: bool = False
    paths: list[WhyPath] = field(default_factory=list)
    direct_dependents: list[str] = field(default_factory=list)
    main_modules: list[str] = field(default_factory=list)
    truncated: bool = False
    total_paths: int = 0


# ── Topology ──────────────────────────────────────────────────

@dataclass
class GraphNode:
    module: str
    in_degree: int = 0
    out_degree: int = 0
    depth: int = -1  # -1 means unreachable from any main module
    is_main_module: bool = False


@dataclass
class GraphEdge:
    source: str
    target: str


@dataclass
class GraphRankings:
    mode: str
    n: int
    by_in_degree: list[GraphNode] | None = None
    by_out_degree: list[GraphNode] | None = None


# ── Diff ──────────────────────────────────────────────────────

@dataclass
class DiffStats:
    direct_deps: int = 0
    transitive_deps: int = 0
    total_deps: int = 0
    max_depth: int = 0

    def delta(self, before: DiffStats) -> DiffStats:
        return DiffStats(
            direct_deps=self.direct_deps - before.direct_deps,
            transitive_deps=self.transitive_deps - before.transitive_deps,
            total_deps=self.total_deps - before.total_deps,
            max_depth=self.max_depth - before.max_depth,
        )


@dataclass
class VersionChange:
    module: str
    before: str
    after: str


@dataclass
class DiffResult:
    base_ref: str = ""
    head_ref: str = ""
    before: DiffStats = field(default_factory=DiffStats)
    after: DiffStats = field(default_factory=DiffStats)
    delta: DiffStats = field(default_factory=DiffStats)
    added: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    edges_added: list[str] = field(default_factory=list)
    edges_removed: list[str] = field(default_factory=list)
    version_changes: list[VersionChange] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return bool(self.added or self.removed or self.version_changes)


@dataclass
class DiffView:
    """Reduced diff data for visual renderers."""
    node_status: dict[str, str] = field(default_factory=dict)  # node -> added|removed|changed|unchanged|main
    edges_added: list[str] = field(default_factory=list)
    edges_removed: list[str] = field(default_factory=list)
    main_module_edges: list[str] = field(default_factory=list)
    version_changes: dict[str, VersionChange] = field(default_factory=dict)
