"""Async runner functions for CLI commands (no Typer coupling)."""

from __future__ import annotations

import time
from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from switchyard.config import SwitchyardConfig
from switchyard.llm.factory import LLMProvider, create_provider
from switchyard.research.lead import LeadResearcher
from switchyard.research.observability import PerformanceMonitor
from switchyard.routing.classifier import hybrid_classify
from switchyard.routing.decision import determine_route_target
from switchyard.routing.monitoring import (
    RoutingMonitor,
    format_accuracy_metrics,
    format_enhanced_stats,
)
from switchyard.routing.router import RouterAgent
from switchyard.state import JsonFileStateStore
from switchyard.types import AgentContext, AgentResult

console = Console()

ROUTER_STATE_KEY = "router"
LEAD_STATE_KEY = "lead_researcher"


def _provider(cfg: SwitchyardConfig) -> LLMProvider:
    return create_provider(cfg.model_name, cfg.temperature)


def _build_lead(cfg: SwitchyardConfig, state_dir: Path, provider: LLMProvider) -> LeadResearcher:
    return LeadResearcher(
        provider,
        store=JsonFileStateStore(state_dir, LEAD_STATE_KEY),
        monitor=PerformanceMonitor(),
        max_history=cfg.max_research_history,
    )


def _render_result(result: AgentResult, elapsed: float) -> int:
    if not result.success:
        console.print(f"\n[bold red]✗ Failed:[/bold red] {escape(result.error or '')}")
        return 1

    body = escape(result.content) if result.content else "[dim](empty response)[/dim]"
    console.print(Panel(body, border_style="green"))
    info = [f"Duration: [bold]{elapsed:.1f}s[/bold]"]
    if "routed_to" in result.data:
        info.append(f"Routed to: [bold]{result.data['routed_to']}[/bold]")
    summary = result.data.get("summary")
    if isinstance(summary, dict):
        info.append(
            f"Subagents: [bold]{summary['success_count']}/{summary['subagent_count']}[/bold] ok"
        )
        info.append(f"Parallel efficiency: [bold]{summary['parallel_efficiency']:.2f}[/bold]")
    console.print("  ".join(info))

    for citation in result.data.get("citations", []):
        console.print(f"  [dim]• {escape(citation['source'])}[/dim]")
    return 0


async def run_classify(query: str, cfg: SwitchyardConfig) -> int:
    """Classify one query and print the decision without dispatching it."""
    try:
        classification = await hybrid_classify(query, _provider(cfg))
    except Exception as e:
        console.print(f"\n[red]Classification failed: {escape(str(e))}[/red]")
        return 1

    target = determine_route_target(classification)
    table = Table(show_header=False, box=None)
    table.add_column(style="dim")
    table.add_column(style="bold")
    table.add_row("type", classification.type.value)
    table.add_row("category", classification.category.value)
    table.add_row("complexity", classification.complexity.value)
    table.add_row("approval", "yes" if classification.requires_human_approval else "no")
    table.add_row("confidence", f"{classification.confidence:.2f}")
    if classification.effort_estimate is not None:
        table.add_row("effort", classification.effort_estimate.level.value)
    table.add_row("route", f"[cyan]{target.value}[/cyan]")
    console.print(table)
    if classification.reasoning:
        console.print(f"[dim]{escape(classification.reasoning)}[/dim]")
    return 0


async def run_route(query: str, cfg: SwitchyardConfig, cwd: str) -> int:
    state_dir = cfg.resolve_state_dir(cwd)
    provider = _provider(cfg)
    router = RouterAgent(
        provider,
        lead_researcher=_build_lead(cfg, state_dir, provider),
        store=JsonFileStateStore(state_dir, ROUTER_STATE_KEY),
        max_history=cfg.max_routing_history,
        debug=cfg.debug,
    )

    started_at = time.time()
    result = await router.route(query, AgentContext(platform="cli"))
    return _render_result(result, time.time() - started_at)


async def run_research(query: str, cfg: SwitchyardConfig, cwd: str) -> int:
    state_dir = cfg.resolve_state_dir(cwd)
    lead = _build_lead(cfg, state_dir, _provider(cfg))

    console.print("\n[bold blue]Planning…[/bold blue]")
    started_at = time.time()
    result = await lead.research(query, AgentContext(platform="cli"))

    plan = lead.get_current_plan()
    if plan is not None:
        console.print(f"[dim]Strategy: {escape(plan.strategy)}[/dim]")
        for task in plan.subagent_tasks:
            deps = f" ← {', '.join(task.depends_on)}" if task.depends_on else ""
            console.print(
                f"  [cyan]{escape(task.id)}[/cyan] ({task.type.value}){escape(deps)}: "
                f"{escape(task.objective[:80])}"
            )
    return _render_result(result, time.time() - started_at)


def _load_monitor(cfg: SwitchyardConfig, cwd: str) -> RoutingMonitor:
    store = JsonFileStateStore(cfg.resolve_state_dir(cwd), ROUTER_STATE_KEY)
    return RoutingMonitor(max_history=cfg.max_routing_history, store=store)


def run_stats(cfg: SwitchyardConfig, cwd: str) -> int:
    monitor = _load_monitor(cfg, cwd)
    if not len(monitor):
        console.print("[dim]No routing history yet.[/dim]")
        return 0
    console.print(format_enhanced_stats(monitor.enhanced_stats()))
    console.print()
    console.print(format_accuracy_metrics(monitor.accuracy_metrics()))
    return 0


def run_export(cfg: SwitchyardConfig, cwd: str, fmt: str, output: str | None) -> int:
    monitor = _load_monitor(cfg, cwd)
    if fmt == "json":
        text = monitor.export_json()
    elif fmt == "csv":
        text = monitor.export_csv()
    else:
        console.print(f"[red]Unknown export format: {escape(fmt)} (use json or csv)[/red]")
        return 1

    if output:
        Path(output).write_text(text + "\n", encoding="utf-8")
        console.print(f"[green]✓ Exported {len(monitor)} entries to {output}[/green]")
    else:
        print(text)
    return 0
