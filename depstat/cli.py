"""Click CLI with stats, list, cycles, why, graph, diff, and serve subcommands."""

from __future__ import annotations

import dataclasses
import functools
import json
import logging
from pathlib import Path

import click

from depstat import __version__
from depstat.models import AnalysisConfig
from depstat.pipeline import GraphSourceError, load_graph, run_diff, run_file_diff
from depstat.analysis.cycles import find_cycles, summarize_cycles
from depstat.analysis.diff import build_diff_view, compute_stats
from depstat.analysis.graph_models import EDGE_SEPARATOR, DiffResult, DiffStats
from depstat.analysis.longest_chain import main_module_chain
from depstat.analysis.paths import explain_dependency
from depstat.analysis.topology import RANKING_MODES, build_rankings, build_topology

WHY_TEXT_PATHS = 20


def _split_csv(values: tuple[str, ...]) -> list[str]:
    return [part.strip() for value in values for part in value.split(",") if part.strip()]


def graph_options(func):
    """Options shared by every command that reads a module graph."""
    @click.option("--dir", "-d", "directory", type=click.Path(exists=True, file_okay=False, path_type=Path),
                  help="Directory containing the module to evaluate")
    @click.option("--graph-file", "-f", help="Read module graph output from a file ('-' for stdin)")
    @click.option("--main-module", "-m", "main_modules", multiple=True,
                  help="Modules whose deps count as direct (repeatable or comma-separated)")
    @click.option("--exclude-module", "exclude_modules", multiple=True,
                  help="Exclude module patterns, '*' wildcard (repeatable)")
    @click.option("--json", "-j", "as_json", is_flag=True, help="Output JSON")
    @functools.wraps(func)
    def wrapper(directory, graph_file, main_modules, exclude_modules, *args, **kwargs):
        config = AnalysisConfig(
            main_modules=_split_csv(main_modules),
            exclude_modules=_split_csv(exclude_modules),
            directory=directory,
            graph_file=graph_file,
        )
        return func(config, *args, **kwargs)
    return wrapper


def _load(config: AnalysisConfig):
    try:
        return load_graph(config)
    except (GraphSourceError, ValueError) as e:
        raise click.ClickException(str(e))


def _echo_json(obj) -> None:
    if dataclasses.is_dataclass(obj):
        obj = dataclasses.asdict(obj)
    click.echo(json.dumps(obj, indent=2))


def _echo_list(items: list[str]) -> None:
    click.echo()
    for item in sorted(items):
        click.echo(item)
    click.echo()


@click.group()
@click.version_option(version=__version__)
@click.option("--debug", is_flag=True, help="Enable debug logging")
def cli(debug: bool):
    """depstat: Analyze module dependency graphs."""
    if debug:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")


@cli.command()
@graph_options
@click.option("--verbose", "-v", is_flag=True, help="List all deps and the longest chain")
def stats(config: AnalysisConfig, as_json: bool, verbose: bool):
    """Show dependency counts and the max chain depth."""
    graph = _load(config)
    result = compute_stats(graph)

    if as_json:
        _echo_json(result)
        return

    click.echo(f"Direct Dependencies: {result.direct_deps}")
    click.echo(f"Transitive Dependencies: {result.transitive_deps}")
    click.echo(f"Total Dependencies: {result.total_deps}")
    click.echo(f"Max Depth Of Dependencies: {result.max_depth}")

    if verbose:
        click.echo("All dependencies:")
        _echo_list(graph.all_deps())
        click.echo("Longest chain: ")
        click.echo(EDGE_SEPARATOR.join(main_module_chain(graph)))


@cli.command(name="list")
@graph_options
def list_deps(config: AnalysisConfig, as_json: bool):
    """List all direct and transitive dependencies."""
    graph = _load(config)
    if not graph.main_modules:
        raise click.ClickException(
            "no main modules remain after exclusions; adjust --exclude-module or --main-module"
        )
    all_deps = sorted(graph.all_deps())

    if as_json:
        _echo_json({
            "all_dependencies": all_deps,
            "main_modules": list(graph.main_modules),
            "total_dependencies": len(all_deps),
        })
        return

    click.echo("List of all dependencies:")
    _echo_list(all_deps)


@cli.command()
@graph_options
@click.option("--max-length", default=0, type=int, help="Limit cycles to length <= N (0 = no limit)")
@click.option("--summary", is_flag=True, help="Show a cycle summary instead of every cycle")
@click.option("--top", "-n", "top_n", default=10, type=int, help="Top participants in the summary")
def cycles(config: AnalysisConfig, as_json: bool, max_length: int, summary: bool, top_n: int):
    """Show every cycle in the dependency graph."""
    if max_length != 0 and max_length < 2:
        raise click.UsageError("--max-length must be >= 2 (minimum cycle length is 2)")
    if summary and top_n <= 0:
        raise click.UsageError("-n must be > 0")

    graph = _load(config)
    found = find_cycles(graph.graph, max_length)

    if summary:
        result = summarize_cycles(found, top_n)
        if as_json:
            _echo_json({"summary": dataclasses.asdict(result)})
            return
        click.echo(f"Total cycles: {result.total_cycles}")
        click.echo("By cycle length:")
        for length, count in sorted(result.by_length.items(), key=lambda item: int(item[0])):
            click.echo(f"- {length}: {count}")
        click.echo(f"2-node mutual dependencies: {len(result.two_node_cycles)}")
        for a, b in result.two_node_cycles:
            click.echo(f"- {a} <-> {b}")
        click.echo("Top participants:")
        for p in result.top_participants:
            click.echo(f"- {p.module}: {p.cycle_count}")
        return

    if as_json:
        _echo_json({"cycles": found})
        return

    click.echo("All cycles in dependencies are: ")
    for cycle in found:
        click.echo()
        click.echo(EDGE_SEPARATOR.join(cycle))


@cli.command()
@graph_options
@click.argument("target")
@click.option("--max-paths", default=1000, type=click.IntRange(min=0),
              help="Maximum dependency paths to search (0 = no limit)")
def why(config: AnalysisConfig, as_json: bool, target: str, max_paths: int):
    """Show why TARGET is included: every path from the main modules."""
    graph = _load(config)
    result = explain_dependency(graph, target, max_paths)

    if as_json:
        _echo_json(result)
        return
    if not result.found:
        click.echo(f"Dependency {target!r} not found in the dependency graph.")
        return

    click.echo(f"Why is {target} included?")
    click.echo("=" * 50)
    click.echo()
    click.echo(f"Directly depended on by ({len(result.direct_dependents)} modules):")
    for dep in result.direct_dependents:
        marker = "* " if dep in result.main_modules else "  "
        click.echo(f"  {marker}{dep}")
    click.echo()

    shown = result.paths[:WHY_TEXT_PATHS]
    click.echo(f"Dependency paths (showing {len(shown)} of {len(result.paths)}):")
    click.echo()
    for i, wp in enumerate(shown, start=1):
        prefix = f"  {i}. [DIRECT] " if wp.direct else f"  {i}. "
        click.echo(prefix + EDGE_SEPARATOR.join(wp.path))

    if result.truncated:
        click.echo()
        click.echo(f"  (search truncated at --max-paths={max_paths})")
    elif len(result.paths) > len(shown):
        click.echo()
        click.echo(f"  (showing first {WHY_TEXT_PATHS} in text output; use --json for the full set)")


@cli.command()
@graph_options
@click.option("--top", "top_mode", type=click.Choice(RANKING_MODES), help="Rank modules by degree")
@click.option("-n", "top_n", default=10, type=int, help="Number of modules to show with --top")
def graph(config: AnalysisConfig, as_json: bool, top_mode: str | None, top_n: int):
    """Show graph topology: degrees and depth of every module."""
    if top_mode and top_n <= 0:
        raise click.UsageError("-n must be > 0")

    dep_graph = _load(config)
    if not dep_graph.main_modules:
        raise click.ClickException("could not determine main module; set --main-module")
    nodes, edges = build_topology(dep_graph)
    rankings = build_rankings(nodes, top_mode, top_n) if top_mode else None

    if as_json:
        _echo_json({
            "main_modules": list(dep_graph.main_modules),
            "direct_dependencies": dep_graph.direct_deps,
            "transitive_dependencies": dep_graph.transitive_deps,
            "graph": dep_graph.graph,
            "edges": dep_graph.edges(),
            "nodes": [dataclasses.asdict(n) for n in nodes],
            "edge_objects": [dataclasses.asdict(e) for e in edges],
            "rankings": dataclasses.asdict(rankings) if rankings else None,
            "edge_count": len(edges),
        })
        return

    if rankings is None:
        click.echo(f"Modules: {len(nodes)}  Edges: {len(edges)}")
        for node in nodes:
            click.echo(f"  {node.module}  in={node.in_degree} out={node.out_degree} depth={node.depth}")
        return

    for title, ranked in (("in-degree", rankings.by_in_degree), ("out-degree", rankings.by_out_degree)):
        if ranked is None:
            continue
        click.echo(f"Top by {title} (N={len(ranked)})")
        click.echo(f"{'RANK':<6}{'MODULE':<60}{'IN':>6}{'OUT':>6}{'DEPTH':>7}  MAIN")
        for i, node in enumerate(ranked, start=1):
            click.echo(
                f"{i:<6}{node.module:<60}{node.in_degree:>6}{node.out_degree:>6}"
                f"{node.depth:>7}  {str(node.is_main_module).lower()}"
            )
        click.echo()


def _metrics_table(before: DiffStats, after: DiffStats, delta: DiffStats) -> None:
    click.echo("Metrics:")
    click.echo(f"  {'Metric':<18}{'Before':>8}{'After':>8}{'Delta':>8}")
    for label, field_name in (
        ("Direct Deps", "direct_deps"),
        ("Transitive Deps", "transitive_deps"),
        ("Total Deps", "total_deps"),
        ("Max Depth", "max_depth"),
    ):
        click.echo(
            f"  {label:<18}{getattr(before, field_name):>8}"
            f"{getattr(after, field_name):>8}{getattr(delta, field_name):>+8}"
        )
    click.echo()


def _print_diff(result: DiffResult, verbose: bool) -> None:
    click.echo(f"Dependency Diff: {result.base_ref}..{result.head_ref}")
    click.echo("=" * 50)
    click.echo()
    click.echo("Summary:")
    click.echo(
        f"  Module graph: +{len(result.added)} added, -{len(result.removed)} removed, "
        f"~{len(result.version_changes)} version changes"
    )
    if result.version_changes and not result.added and not result.removed:
        click.echo("    - Dependency set unchanged, but versions changed")
    if not result.has_changes:
        click.echo("    - No dependency changes detected")
    click.echo()

    _metrics_table(result.before, result.after, result.delta)

    for title, items, sign in (("Added", result.added, "+"), ("Removed", result.removed, "-")):
        click.echo(f"Dependencies {title} ({len(items)}):")
        if not items:
            click.echo("  (none)")
        for dep in items:
            click.echo(f"  {sign} {dep}")
        click.echo()

    if result.version_changes:
        click.echo(f"Version Changes ({len(result.version_changes)}):")
        for vc in result.version_changes:
            click.echo(f"  ~ {vc.module:<50} {vc.before} → {vc.after}")
        click.echo()

    if verbose:
        for title, edges, sign in (("Added", result.edges_added, "+"), ("Removed", result.edges_removed, "-")):
            click.echo(f"Edges {title} ({len(edges)}):")
            for edge in edges:
                click.echo(f"  {sign} {edge}")
            click.echo()


@cli.command()
@graph_options
@click.argument("base_ref", required=False)
@click.argument("head_ref", default="HEAD")
@click.option("--before-file", help="Module graph output for the base snapshot")
@click.option("--after-file", help="Module graph output for the head snapshot")
@click.option("--verbose", "-v", is_flag=True, help="Include edge-level changes")
@click.option("--reduced", is_flag=True, help="With --json, include the transitively reduced view")
def diff(
    config: AnalysisConfig,
    as_json: bool,
    base_ref: str | None,
    head_ref: str,
    before_file: str | None,
    after_file: str | None,
    verbose: bool,
    reduced: bool,
):
    """Compare dependencies between two git refs or two saved graphs."""
    use_files = before_file or after_file
    if use_files and not (before_file and after_file):
        raise click.UsageError("--before-file and --after-file must be given together")
    if not use_files and not base_ref:
        raise click.UsageError("Specify BASE_REF, or --before-file and --after-file")
    if not use_files and config.graph_file:
        raise click.UsageError("--graph-file cannot be combined with BASE_REF; git snapshots run the build tool")

    try:
        if use_files:
            result, before, after = run_file_diff(config, before_file, after_file)
        else:
            result, before, after = run_diff(config, base_ref, head_ref)
    except (GraphSourceError, ValueError) as e:
        raise click.ClickException(str(e))

    if as_json:
        payload = dataclasses.asdict(result)
        if reduced:
            payload["view"] = dataclasses.asdict(build_diff_view(result, before, after))
        _echo_json(payload)
        return
    _print_diff(result, verbose)


@cli.command()
@click.option("--port", "-p", default=8430, help="Port number")
@click.option("--host", default="127.0.0.1", help="Host address")
def serve(port: int, host: str):
    """Start the analysis web API."""
    try:
        import uvicorn
    except ImportError:
        raise click.ClickException(
            "uvicorn is required for the web API. "
            "Install with: pip install 'depstat[web]'"
        )

    from depstat.web import create_app

    click.echo(f"Starting depstat web API at http://{host}:{port}")
    uvicorn.run(create_app(), host=host, port=port, log_level="info")


if __name__ == "__main__":
    cli()
