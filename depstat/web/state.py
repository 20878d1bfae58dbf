"""In-memory state for the web API, no database required."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from depstat.analysis.graph_models import DependencyGraph


@dataclass
class GraphSession:
    graph: DependencyGraph
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    timestamp: str = field(default_factory=lambda: datetime.now().isoformat())


class AppState:
    """Singleton in-memory state shared by all API routes."""

    def __init__(self):
        self.graphs: dict[str, GraphSession] = {}
        self.diffs: dict[str, dict[str, Any]] = {}
        self._analyses: dict[str, dict[str, Any]] = {}

    def add_graph(self, session: GraphSession) -> None:
        self.graphs[session.id] = session

    def get_graph(self, graph_id: str) -> GraphSession | None:
        return self.graphs.get(graph_id)

    # ── Analysis cache ──────────────────────────────────────

    def store_analysis(self, graph_id: str, name: str, data: Any) -> None:
        self._analyses.setdefault(graph_id, {})[name] = data

    def get_analysis(self, graph_id: str, name: str) -> Any | None:
        return self._analyses.get(graph_id, {}).get(name)

    def delete_graph(self, graph_id: str) -> bool:
        """Remove a graph and its cached analyses."""
        if self.graphs.pop(graph_id, None) is None:
            return False
        self._analyses.pop(graph_id, None)
        return True

    def clear(self) -> None:
        self.graphs.clear()
        self.diffs.clear()
        self._analyses.clear()


# Module-level singleton shared by all routers
state = AppState()
