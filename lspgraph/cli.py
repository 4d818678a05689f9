"""Typer-based CLI over the ``lsp`` command surface."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from . import __version__, config
from .config_manager import CONFIG_FILE, save_cache_config
from .tools import COMMAND_NAMES, handle_command

console = Console()

app = typer.Typer(
    help="LSP graph broker: cached code analysis, queries, and knowledge-graph sync.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

config_app = typer.Typer(help="Show and edit configuration.", no_args_is_help=True)
app.add_typer(config_app, name="config")


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        typer.echo(f"lspgraph v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log debug output to stderr."),
):
    """Query cached code analysis and push it to a knowledge graph."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


def _run(request: Dict[str, Any]) -> None:
    """Dispatch *request*, print the payload, and exit 1 on error."""
    response = handle_command(request)
    text = response["content"][0]["text"]
    if response.get("isError"):
        typer.echo(text, err=True)
        raise typer.Exit(code=1)
    typer.echo(text)


@app.command("analyze")
def analyze(project_root: str = typer.Argument(..., help="Path to the project root directory.")):
    """Summarize files, namespaces, and vars in a project's analysis."""
    _run({"command": "analyze", "project_root": project_root})


@app.command("definitions")
def definitions(
    project_root: str = typer.Argument(..., help="Path to the project root directory."),
    namespace: Optional[str] = typer.Option(None, "--namespace", "-n", help="Filter by namespace."),
):
    """List var definitions in the project or one namespace."""
    _run({"command": "definitions", "project_root": project_root, "namespace": namespace})


@app.command("calls")
def calls(
    project_root: str = typer.Argument(..., help="Path to the project root directory."),
    namespace: Optional[str] = typer.Option(None, "--namespace", "-n", help="Filter by caller namespace."),
    function: Optional[str] = typer.Option(None, "--function", "-f", help="Filter by caller function."),
):
    """List call-graph edges."""
    _run({"command": "calls", "project_root": project_root, "namespace": namespace, "function": function})


@app.command("ns-graph")
def ns_graph(project_root: str = typer.Argument(..., help="Path to the project root directory.")):
    """Show the namespace dependency graph."""
    _run({"command": "ns-graph", "project_root": project_root})


@app.command("callers")
def callers(
    project_root: str = typer.Argument(..., help="Path to the project root directory."),
    function: Optional[str] = typer.Option(None, "--function", "-f", help="Callee function name."),
    namespace: Optional[str] = typer.Option(None, "--namespace", "-n", help="Callee namespace."),
):
    """List call edges into a function."""
    _run({"command": "callers", "project_root": project_root, "function": function, "namespace": namespace})


@app.command("references")
def references(
    project_root: str = typer.Argument(..., help="Path to the project root directory."),
    function: Optional[str] = typer.Option(None, "--function", "-f", help="Callee function name."),
    namespace: Optional[str] = typer.Option(None, "--namespace", "-n", help="Callee namespace."),
):
    """List reference locations for a function."""
    _run({"command": "references", "project_root": project_root, "function": function, "namespace": namespace})


@app.command("sync")
def sync(
    project_root: str = typer.Argument(..., help="Path to the project root directory."),
    project_id: Optional[str] = typer.Option(None, "--project-id", help="Project identifier for graph sync."),
    scope: Optional[str] = typer.Option(None, "--scope", help="Scope for graph sync operations."),
):
    """Analyze a project and sync the results to the knowledge graph."""
    _run({"command": "sync", "project_root": project_root, "project_id": project_id, "scope": scope})


@app.command("status")
def status(as_json: bool = typer.Option(False, "--json", help="Print raw JSON instead of a table.")):
    """Show bridge availability and cached projects."""
    response = handle_command({"command": "status"})
    text = response["content"][0]["text"]
    if as_json or response.get("isError"):
        typer.echo(text)
        if response.get("isError"):
            raise typer.Exit(code=1)
        return

    payload = json.loads(text)
    cache = payload["cache"]
    bridge = "[green]available[/green]" if payload["bridge_available"] else "[yellow]unavailable[/yellow]"
    console.print(f"Graph bridge: {bridge}")
    console.print(f"Cache dir: {cache['cache_dir']}")

    if not cache["projects"]:
        console.print("No cached projects.")
        return

    table = Table(title="Cached Projects", show_lines=False)
    table.add_column("Project", style="cyan")
    table.add_column("Status")
    table.add_column("Fresh")
    table.add_column("Timestamp", justify="right")
    table.add_column("Duration (ms)", justify="right")
    for project in cache["projects"]:
        table.add_row(
            project["project_id"],
            str(project["status"]),
            "yes" if project["fresh"] else "no",
            str(project["timestamp"]),
            str(project["duration_ms"]),
        )
    console.print(table)


@app.command("invoke")
def invoke(request: str = typer.Argument(..., help="Raw JSON request, e.g. '{\"command\": \"status\"}'.")):
    """Send a raw tool request and print the response text."""
    try:
        payload = json.loads(request)
    except json.JSONDecodeError as exc:
        raise typer.BadParameter(f"Request is not valid JSON: {exc}")
    if not isinstance(payload, dict):
        raise typer.BadParameter("Request must be a JSON object.")
    _run(payload)


@app.command("commands")
def commands():
    """List available tool commands."""
    for name in COMMAND_NAMES:
        typer.echo(name)


@config_app.command("show")
def show_config():
    """Print effective configuration."""
    typer.echo(f"Config file:    {CONFIG_FILE}")
    typer.echo(f"Cache dir:      {config.cache_dir()}")
    typer.echo(f"Max age (ms):   {config.MAX_AGE_MS}")
    typer.echo(f"Memo TTL (ms):  {config.MEMO_TTL_MS}")
    typer.echo(f"Clock skew (ms): {config.CLOCK_SKEW_MS if config.CLOCK_SKEW_MS is not None else 'unbounded'}")
    typer.echo(f"Analyzer:       {config.ANALYZER or '(none)'}")
    for name, path in config.STORE_CAPABILITIES.items():
        typer.echo(f"Store {name}: {path or '(none)'}")


@config_app.command("set-cache")
def set_cache(
    max_age_ms: Optional[int] = typer.Option(None, min=0, help="Max snapshot age before it is stale."),
    memo_ttl_ms: Optional[int] = typer.Option(None, min=0, help="Request memo time-to-live."),
    clock_skew_ms: Optional[int] = typer.Option(None, min=0, help="Tolerated producer clock lead."),
):
    """Persist cache tunables to config.toml."""
    if max_age_ms is None and memo_ttl_ms is None and clock_skew_ms is None:
        raise typer.BadParameter("Pass at least one of --max-age-ms, --memo-ttl-ms, --clock-skew-ms.")
    if not save_cache_config(max_age_ms, memo_ttl_ms, clock_skew_ms):
        typer.echo("❌ Failed to write config (is the 'toml' package installed?)", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"✅ Saved cache settings to {CONFIG_FILE}")


if __name__ == "__main__":
    app()
