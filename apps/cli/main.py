"""CLI application for modmap."""

import asyncio
from pathlib import Path

import typer
from rich.console import Console

from modmap.config import get_settings
from modmap.detect import find_workspace_roots
from modmap.graph import analysis_summary
from modmap.logging_config import setup_logging
from modmap.manifest import FileManifestSource
from modmap.models import BatchPolicy, DependencyGraph, ScanOptions
from modmap.registry import NpmRegistryClient
from modmap.scanner import DependencyScanner
from modmap.serialize import dumps

console = Console(stderr=True)


def resolve_roots(roots: list[str] | None, discover: bool) -> list[str]:
    """Turn command-line paths into workspace roots."""
    paths = roots or ["."]
    if not discover:
        return paths
    found: list[str] = []
    for path in paths:
        for root in find_workspace_roots(path):
            if root not in found:
                found.append(root)
    return found


def build_options(
    max_depth: int | None,
    dev: bool,
    peer: bool,
    optional: bool,
    check_versions: bool,
) -> ScanOptions:
    options = ScanOptions.from_settings(get_settings())
    if max_depth is not None:
        options.max_depth = max_depth
    options.include_dev_dependencies = options.include_dev_dependencies and dev
    options.include_peer_dependencies = options.include_peer_dependencies and peer
    options.include_optional_dependencies = options.include_optional_dependencies and optional
    options.enable_version_checking = options.enable_version_checking and check_versions
    return options


def run_scan(roots: list[str], options: ScanOptions) -> DependencyGraph:
    settings = get_settings()
    scanner = DependencyScanner(
        FileManifestSource(roots),
        registry=NpmRegistryClient.from_settings(settings),
        policy=BatchPolicy(batch_size=settings.batch_size, delay=settings.batch_delay),
    )
    return asyncio.run(scanner.scan_workspace(options))


def format_summary(summary: dict) -> list[tuple[str, str]]:
    """Lines of the analysis report with their rich styles."""
    lines = [
        (f"Total packages: {summary['total_packages']}", ""),
        (f"Total dependencies: {summary['total_dependencies']}", ""),
    ]
    if summary["outdated"]:
        lines.append((f"{summary['outdated']} outdated packages", "yellow"))
    if summary["conflicts"]:
        lines.append((f"{summary['conflicts']} version conflicts", "red"))
    if summary["vulnerable"]:
        lines.append((f"{summary['vulnerable']} vulnerable packages", "bold red"))
    if summary["all_up_to_date"]:
        lines.append(("All packages are up to date!", "green"))
    return lines


app = typer.Typer(
    name="modmap",
    help="modmap - Map npm dependencies, version conflicts and outdated packages",
    add_completion=False,
)

ROOTS_ARGUMENT = typer.Argument(None, help="Workspace roots containing package.json (default: .)")
DISCOVER_OPTION = typer.Option(False, "--discover", help="Also scan nested package.json directories")
DEPTH_OPTION = typer.Option(None, "--max-depth", "-d", help="Transitive walk depth")
DEV_OPTION = typer.Option(True, "--dev/--no-dev", help="Include devDependencies")
PEER_OPTION = typer.Option(True, "--peer/--no-peer", help="Include peerDependencies")
OPTIONAL_OPTION = typer.Option(True, "--optional/--no-optional", help="Include optionalDependencies")
CHECK_OPTION = typer.Option(True, "--check-versions/--no-check-versions", help="Query the registry for newer versions")
LOG_LEVEL_OPTION = typer.Option(None, "--log-level", help="Log level")


@app.command()
def graph(
    roots: list[str] | None = ROOTS_ARGUMENT,
    output: str | None = typer.Option(None, "--out", "-o", help="Output file (use '-' for stdout)"),
    discover: bool = DISCOVER_OPTION,
    max_depth: int | None = DEPTH_OPTION,
    dev: bool = DEV_OPTION,
    peer: bool = PEER_OPTION,
    optional: bool = OPTIONAL_OPTION,
    check_versions: bool = CHECK_OPTION,
    log_level: str | None = LOG_LEVEL_OPTION,
) -> None:
    """Scan workspaces and write the dependency graph as JSON."""
    settings = get_settings()
    setup_logging(log_level or settings.log_level, settings.log_format)

    try:
        options = build_options(max_depth, dev, peer, optional, check_versions)
        result = run_scan(resolve_roots(roots, discover), options)
        payload = dumps(result)

        if output and output != "-":
            Path(output).write_text(payload)
            console.print(
                f"Wrote graph with {result.metadata.total_packages} packages, "
                f"{result.metadata.total_dependencies} dependencies to {output}"
            )
        else:
            typer.echo(payload)

    except Exception as e:
        console.print(f"Error: {e}", style="red")
        raise typer.Exit(1)


@app.command()
def analyze(
    roots: list[str] | None = ROOTS_ARGUMENT,
    discover: bool = DISCOVER_OPTION,
    max_depth: int | None = typer.Option(5, "--max-depth", "-d", help="Transitive walk depth"),
    dev: bool = DEV_OPTION,
    peer: bool = PEER_OPTION,
    optional: bool = OPTIONAL_OPTION,
    check_versions: bool = CHECK_OPTION,
    log_level: str | None = LOG_LEVEL_OPTION,
) -> None:
    """Scan workspaces and report outdated packages and version conflicts."""
    settings = get_settings()
    setup_logging(log_level or settings.log_level, settings.log_format)

    try:
        options = build_options(max_depth, dev, peer, optional, check_versions)
        result = run_scan(resolve_roots(roots, discover), options)
    except Exception as e:
        console.print(f"Error: {e}", style="red")
        raise typer.Exit(1)

    out = Console()
    out.print("Analysis complete:")
    for line, style in format_summary(analysis_summary(result)):
        out.print(f"- {line}", style=style or None)

    # Non-zero exit lets CI fail on conflicts
    if result.metadata.conflicts:
        raise typer.Exit(2)


if __name__ == "__main__":
    app()
