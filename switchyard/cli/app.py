"""Typer CLI for switchyard."""

from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel

from switchyard.config import SwitchyardConfig, resolve_config

console = Console()
app = typer.Typer(
    name="switchyard",
    help="Route queries to the right agent and run multi-agent research.",
    add_completion=False,
    no_args_is_help=True,
)


def _setup(
    cwd: str,
    *,
    model: str | None,
    verbose: bool,
    api_key: str | None = None,
) -> tuple[str, SwitchyardConfig]:
    """Load .env and .switchyard.yml, configure logging, apply CLI flags."""
    from dotenv import load_dotenv

    load_dotenv()

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )

    if api_key:
        for env_var in ["OPENAI_API_KEY", "ANTHROPIC_API_KEY", "GEMINI_API_KEY"]:
            if not os.environ.get(env_var):
                os.environ[env_var] = api_key

    resolved_cwd = str(Path(cwd).resolve())
    try:
        cfg = resolve_config(resolved_cwd, model_name=model, debug=True if verbose else None)
    except ValueError as e:
        console.print(f"[red]Invalid configuration: {escape(str(e))}[/red]")
        raise typer.Exit(code=2) from e
    return resolved_cwd, cfg


@app.command()
def classify(
    query: str = typer.Argument(..., help="Query to classify"),
    cwd: str = typer.Option(".", "--cwd", "-C", help="Project directory"),
    model: str | None = typer.Option(None, "--model", "-m", help="LLM model"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
    api_key: str | None = typer.Option(
        None, "--api-key", "-k", help="API key", envvar="LLM_API_KEY"
    ),
) -> None:
    """Classify a query and show where it would be routed.

    Examples:
        switchyard classify "hello"
        switchyard classify "delete the staging branch"
    """
    _, cfg = _setup(cwd, model=model, verbose=verbose, api_key=api_key)

    from switchyard.cli.runners import run_classify

    raise typer.Exit(code=asyncio.run(run_classify(query, cfg)))


@app.command()
def route(
    query: str = typer.Argument(..., help="Query to route and answer"),
    cwd: str = typer.Option(".", "--cwd", "-C", help="Project directory"),
    model: str | None = typer.Option(None, "--model", "-m", help="LLM model"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
    api_key: str | None = typer.Option(
        None, "--api-key", "-k", help="API key", envvar="LLM_API_KEY"
    ),
) -> None:
    """Classify a query, dispatch it to its handler and print the answer."""
    resolved_cwd, cfg = _setup(cwd, model=model, verbose=verbose, api_key=api_key)

    from switchyard.cli.runners import run_route

    raise typer.Exit(code=asyncio.run(run_route(query, cfg, resolved_cwd)))


@app.command()
def research(
    query: str = typer.Argument(..., help="Complex query to research"),
    cwd: str = typer.Option(".", "--cwd", "-C", help="Project directory"),
    model: str | None = typer.Option(None, "--model", "-m", help="LLM model"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
    api_key: str | None = typer.Option(
        None, "--api-key", "-k", help="API key", envvar="LLM_API_KEY"
    ),
) -> None:
    """Run multi-agent research on a query, skipping classification.

    Examples:
        switchyard research "compare the top three vector databases"
    """
    resolved_cwd, cfg = _setup(cwd, model=model, verbose=verbose, api_key=api_key)

    console.print(
        Panel(
            f"[bold cyan]switchyard research[/bold cyan]\n\n"
            f"[bold]{escape(query)}[/bold]\n\n"
            f"[dim]model={cfg.model_name}[/dim]",
            border_style="cyan",
        )
    )

    from switchyard.cli.runners import run_research

    raise typer.Exit(code=asyncio.run(run_research(query, cfg, resolved_cwd)))


@app.command()
def stats(
    cwd: str = typer.Option(".", "--cwd", "-C", help="Project directory"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Show routing statistics and classification confidence."""
    resolved_cwd, cfg = _setup(cwd, model=None, verbose=verbose)

    from switchyard.cli.runners import run_stats

    raise typer.Exit(code=run_stats(cfg, resolved_cwd))


@app.command()
def export(
    fmt: str = typer.Option("json", "--format", "-f", help="Export format: json or csv"),
    output: str | None = typer.Option(None, "--output", "-o", help="Write to file"),
    cwd: str = typer.Option(".", "--cwd", "-C", help="Project directory"),
) -> None:
    """Export the routing history as JSON or CSV."""
    resolved_cwd, cfg = _setup(cwd, model=None, verbose=False)

    from switchyard.cli.runners import run_export

    raise typer.Exit(code=run_export(cfg, resolved_cwd, fmt.lower(), output))
