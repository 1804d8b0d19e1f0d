"""
cli.py – terminal front end

Run:
    ea-assistant research "Zero Trust Security" --vendor Zscaler --out reports/
    ea-assistant module market-analysis "Zero Trust Security"
    ea-assistant history
    ea-assistant status

Requires a .env file with at least OPENAI_API_KEY (see .env.example).
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table

from ea_assistant import history
from ea_assistant.config import get_settings
from ea_assistant.errors import AssistantError
from ea_assistant.handlers import run_module
from ea_assistant.orchestrator import ResearchOptions, ResearchRun, TechnologyResearchAgent
from ea_assistant.prompts import ANALYSIS_MODULES

console = Console()

STATUS_STYLE = {"success": "bold green", "failed": "bold red"}


# ─── Display helpers ─────────────────────────────────────────────────────────

def show_status() -> None:
    table = Table(box=box.ROUNDED, show_header=False, padding=(0, 1))
    for service, badge in get_settings().status_summary().items():
        table.add_row(service, badge)
    console.print(Panel(table, title="[bold]Service Status[/bold]", border_style="blue"))


def show_run(run: ResearchRun) -> None:
    console.print()
    console.rule(f"[bold blue]{run.technology} — run {run.run_id}[/bold blue]")

    steps = Table(box=box.SIMPLE, header_style="bold cyan", padding=(0, 1))
    steps.add_column("Module")
    steps.add_column("Status")
    steps.add_column("Time", justify="right")
    steps.add_column("Notes")
    for s in run.trace.steps:
        notes = "; ".join(s.decisions + s.warnings)
        steps.add_row(
            f"{s.icon} {s.module_name}",
            f"[{STATUS_STYLE.get(s.status, '')}]{s.status}[/]",
            f"{s.duration_ms:.0f} ms",
            notes,
        )
    console.print(Panel(steps, title="[bold]Modules[/bold]", border_style="magenta"))

    for slug, data in run.results.items():
        console.print(Panel(
            data.get("summary") or "[dim]No summary[/dim]",
            title=f"[bold]{ANALYSIS_MODULES[slug].label}[/bold]",
            border_style="cyan",
        ))


def write_artifacts(run: ResearchRun, out_dir: Path) -> None:
    out_dir.mkdir(parents=True, exist_ok=True)
    for artifact in run.artifacts:
        path = out_dir / artifact.name
        path.write_bytes(artifact.data)
        history.log_download(run.run_id, artifact)
        console.print(f"  [green]✓[/green] {path}  [dim]({artifact.size_kb} KB)[/dim]")


def show_history() -> None:
    entries = history.load_history()
    if not entries:
        console.print("[dim]No research history yet.[/dim]")
        return
    table = Table(box=box.ROUNDED, header_style="bold cyan")
    table.add_column("When")
    table.add_column("Technology")
    table.add_column("Modules")
    table.add_column("Failed")
    table.add_column("Artifacts", justify="right")
    for e in entries:
        table.add_row(
            str(e.get("timestamp", "")),
            str(e.get("technology", "")),
            ", ".join(e.get("modules", [])),
            ", ".join(e.get("failed", [])) or "—",
            str(e.get("artifacts", 0)),
        )
    console.print(table)


# ─── Commands ────────────────────────────────────────────────────────────────

def _research(args: argparse.Namespace) -> None:
    technology = args.technology or Prompt.ask("Technology to research")
    options = ResearchOptions(
        include_market   = not args.no_market,
        include_quadrant = not args.no_quadrant,
        include_maturity = not args.no_maturity,
        include_forecast = not args.no_forecast,
        vendor           = args.vendor,
    )
    with console.status("Researching...") as status:
        run = TechnologyResearchAgent().run(
            technology, options,
            progress=lambda message, pct: status.update(f"{message} ({pct}%)"),
        )
    show_run(run)
    if args.out:
        console.print()
        write_artifacts(run, Path(args.out))


def _module(args: argparse.Namespace) -> None:
    payload = run_module(ANALYSIS_MODULES[args.slug], args.technology, args.vendor)
    data = payload["data"]
    console.print(Panel(
        data["analysis"],
        title=f"[bold]{ANALYSIS_MODULES[args.slug].label} — {payload['technology']}[/bold]",
        subtitle=f"{payload['timing']['total_ms']} ms · {payload['timing']['status']}",
        border_style="cyan",
    ))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="ea-assistant", description="Enterprise Architecture Assistant")
    parser.add_argument("-v", "--verbose", action="store_true", help="log at INFO level")
    sub = parser.add_subparsers(dest="command", required=True)

    r = sub.add_parser("research", help="run the full technology research pipeline")
    r.add_argument("technology", nargs="?")
    r.add_argument("--vendor", help="also run the vendor-technology analysis for this vendor")
    r.add_argument("--out", help="directory to write the artifacts to")
    r.add_argument("--no-market", action="store_true")
    r.add_argument("--no-quadrant", action="store_true")
    r.add_argument("--no-maturity", action="store_true")
    r.add_argument("--no-forecast", action="store_true")
    r.set_defaults(func=_research)

    m = sub.add_parser("module", help="run a single analysis module")
    m.add_argument("slug", choices=sorted(ANALYSIS_MODULES))
    m.add_argument("technology")
    m.add_argument("--vendor")
    m.set_defaults(func=_module)

    sub.add_parser("history", help="list past research runs").set_defaults(func=lambda a: show_history())
    sub.add_parser("status", help="show which API keys are configured").set_defaults(func=lambda a: show_status())
    return parser


def main(argv: Optional[list[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING)

    try:
        args.func(args)

    except AssistantError as e:
        console.print(f"\n[bold red]Error:[/bold red] {e.message}")
        hint = getattr(e, "hint", "")
        if hint:
            console.print(f"[dim]{hint}[/dim]")
        sys.exit(1)

    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted.[/yellow]")
        sys.exit(0)


if __name__ == "__main__":
    main()
