"""Graph acquisition pipeline: read raw module graphs and build snapshots.

Raw edge lists come from a file, stdin, or ``go mod graph``. Diffs between
two git refs check each ref out in turn against the same working tree, so
the two snapshots are always built one after the other, never concurrently.
"""

from __future__ import annotations

import dataclasses
import logging
import subprocess
import sys
from pathlib import Path
from typing import Callable

from depstat.models import AnalysisConfig
from depstat.analysis.dependency_graph import DependencyGraphBuilder
from depstat.analysis.diff import diff_graphs
from depstat.analysis.graph_models import DependencyGraph, DiffResult

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, int, int], None]

STASH_MESSAGE = "depstat diff temporary stash"


class GraphSourceError(RuntimeError):
    """Raised when a module graph or git state cannot be obtained."""


def _run(args: list[str], cwd: Path | None = None) -> str:
    logger.debug("running %s (cwd=%s)", " ".join(args), cwd or ".")
    try:
        proc = subprocess.run(
            args,
            cwd=str(cwd) if cwd else None,
            capture_output=True,
            text=True,
            check=True,
        )
    except FileNotFoundError as e:
        raise GraphSourceError(f"{args[0]} not found on PATH") from e
    except subprocess.CalledProcessError as e:
        detail = (e.stderr or "").strip()
        raise GraphSourceError(f"{' '.join(args)} failed: {detail or e}") from e
    return proc.stdout


# ── Raw graph sources ─────────────────────────────────────────

def detect_main_module(directory: Path | None = None) -> str:
    """First line of ``go list -m``; in a workspace that is the current module."""
    try:
        output = _run(["go", "list", "-m"], cwd=directory)
    except GraphSourceError as e:
        logger.debug("main module detection failed: %s", e)
        return ""
    lines = output.strip().splitlines()
    return lines[0].strip() if lines else ""


def read_module_graph(directory: Path | None = None) -> str:
    return _run(["go", "mod", "graph"], cwd=directory)


def read_graph_file(graph_file: str) -> str:
    if graph_file == "-":
        return sys.stdin.read()
    try:
        return Path(graph_file).read_text()
    except OSError as e:
        raise GraphSourceError(f"cannot read graph file {graph_file}: {e}") from e


def load_graph(config: AnalysisConfig, raw: str | None = None) -> DependencyGraph:
    """Build one snapshot from ``raw`` text, the configured file, or the build tool."""
    main_modules = list(config.main_modules)
    if raw is None:
        if config.graph_file:
            raw = read_graph_file(config.graph_file)
        else:
            if not main_modules:
                main = detect_main_module(config.directory)
                if main:
                    main_modules = [main]
            raw = read_module_graph(config.directory)

    builder = DependencyGraphBuilder(main_modules, config.exclude_modules)
    return builder.build(raw)


# ── Git snapshots ─────────────────────────────────────────────

class GitWorkspace:
    """Git operations against one working tree."""

    def __init__(self, directory: Path | None = None):
        self.directory = directory

    def git(self, *args: str) -> str:
        return _run(["git", *args], cwd=self.directory).strip()

    def resolve_ref(self, ref: str) -> str:
        return self.git("rev-parse", ref)

    def current_ref(self) -> str:
        """Branch name when on a branch, otherwise the detached SHA."""
        try:
            ref = self.git("symbolic-ref", "-q", "HEAD")
        except GraphSourceError:
            ref = self.git("rev-parse", "HEAD")
        return ref.removeprefix("refs/heads/")

    def is_dirty(self) -> bool:
        return self.git("status", "--porcelain", "--untracked-files=no") != ""

    def _stash_ref(self) -> str:
        try:
            return self.git("rev-parse", "-q", "--verify", "refs/stash")
        except GraphSourceError:
            return ""

    def stash_push(self) -> bool:
        """Stash local changes; True only if a new stash entry was created."""
        before = self._stash_ref()
        self.git("stash", "push", "-m", STASH_MESSAGE)
        after = self._stash_ref()
        return bool(after) and after != before

    def stash_pop(self) -> None:
        self.git("stash", "pop", "-q")

    def checkout(self, ref: str) -> None:
        self.git("checkout", "-q", ref)


def snapshot_refs(
    config: AnalysisConfig,
    base_ref: str,
    head_ref: str = "HEAD",
    progress: ProgressCallback | None = None,
) -> tuple[DependencyGraph, DependencyGraph]:
    """Build the base and head snapshots one at a time, then restore the tree."""
    # each snapshot must come from the checked-out tree, never a saved file
    config = dataclasses.replace(config, graph_file=None)
    repo = GitWorkspace(config.directory)
    original_ref = repo.current_ref()

    stashed = False
    if repo.is_dirty():
        try:
            stashed = repo.stash_push()
        except GraphSourceError as e:
            raise GraphSourceError(f"working tree is dirty and automatic stash failed: {e}") from e

    try:
        # resolve before any checkout moves HEAD
        base_sha = repo.resolve_ref(base_ref)
        head_sha = repo.resolve_ref(head_ref)

        snapshots: list[DependencyGraph] = []
        for i, (ref, sha) in enumerate(((base_ref, base_sha), (head_ref, head_sha))):
            if progress:
                progress(f"Analyzing {ref}", i, 2)
            repo.checkout(sha)
            snapshots.append(load_graph(config))
        if progress:
            progress("Analyzing", 2, 2)
    finally:
        _restore(repo, original_ref, stashed)

    return snapshots[0], snapshots[1]


def _restore(repo: GitWorkspace, original_ref: str, stashed: bool) -> None:
    try:
        repo.checkout(original_ref)
    except GraphSourceError as e:
        logger.warning("failed to restore git ref %s: %s", original_ref, e)
    if stashed:
        try:
            repo.stash_pop()
        except GraphSourceError as e:
            logger.warning("failed to restore stashed changes: %s", e)


def run_diff(
    config: AnalysisConfig,
    base_ref: str,
    head_ref: str = "HEAD",
    progress: ProgressCallback | None = None,
) -> tuple[DiffResult, DependencyGraph, DependencyGraph]:
    """Diff two git refs; also returns both snapshots for reduced views."""
    before, after = snapshot_refs(config, base_ref, head_ref, progress=progress)
    return diff_graphs(before, after, base_ref=base_ref, head_ref=head_ref), before, after


def run_file_diff(
    config: AnalysisConfig,
    before_file: str,
    after_file: str,
) -> tuple[DiffResult, DependencyGraph, DependencyGraph]:
    """Diff two saved module graph outputs."""
    before = load_graph(config, read_graph_file(before_file))
    after = load_graph(config, read_graph_file(after_file))
    return diff_graphs(before, after, base_ref=before_file, head_ref=after_file), before, after
