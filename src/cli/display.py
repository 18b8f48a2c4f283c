"""
Rich rendering of analysis results and health reports.
"""

from typing import Any, Dict, Optional

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from src.decision.models import AnalysisResult, RecommendationAction


ACTION_COLORS = {
    RecommendationAction.STRONG_BUY: "bold green",
    RecommendationAction.BUY: "green",
    RecommendationAction.HOLD: "yellow",
    RecommendationAction.AVOID: "red",
    RecommendationAction.STRONG_AVOID: "bold red",
}

STATUS_COLORS = {
    "success": "green",
    "degraded": "yellow",
    "partial": "yellow",
    "healthy": "green",
    "unhealthy": "red",
}


class DisplayManager:
    """Manages CLI display operations using Rich"""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console(width=100)

    def show_analysis(self, result: AnalysisResult) -> None:
        status_color = STATUS_COLORS.get(result.status, "blue")
        header = (
            f"[bold]Status:[/bold] [{status_color}]{result.status}[/{status_color}]   "
            f"[bold]Reference:[/bold] {result.reference_currency}   "
            f"[bold]Model:[/bold] {result.model_id}"
        )
        self.console.print(Panel(header, title="Differential Analysis", box=box.ROUNDED))

        table = Table(box=box.SIMPLE_HEAVY)
        table.add_column("#", justify="right", style="dim")
        table.add_column("Asset", style="bold")
        table.add_column("Action")
        table.add_column("Margin", justify="right")
        table.add_column("Score", justify="right")
        table.add_column("Signal")

        for rec in result.recommendations:
            color = ACTION_COLORS.get(rec.action, "white")
            table.add_row(
                str(rec.rank),
                rec.asset,
                f"[{color}]{rec.action.label}[/{color}]",
                f"{rec.margin:+.2%}",
                f"{rec.movement_score:+.3f}",
                "[yellow]degraded[/yellow]" if rec.signal_degraded else "ok",
            )
        self.console.print(table)

        if result.errors:
            errors = Table(title="Per-asset errors", box=box.SIMPLE, title_style="bold red")
            errors.add_column("Asset", style="bold")
            errors.add_column("Reason")
            for asset, err in result.errors.items():
                errors.add_row(asset, err.reason)
            self.console.print(errors)

        for warning in result.warnings:
            self.console.print(f"[yellow]![/yellow] {warning}")

    def show_health(self, report: Dict[str, Any]) -> None:
        table = Table(title=f"Health: {report['status']}", box=box.SIMPLE)
        table.add_column("Component", style="bold")
        table.add_column("Status")
        table.add_column("Message")
        for name, component in report.get("components", {}).items():
            color = STATUS_COLORS.get(component["status"], "yellow")
            table.add_row(name, f"[{color}]{component['status']}[/{color}]", component.get("message", ""))
        self.console.print(table)

    def show_error(self, message: str) -> None:
        self.console.print(f"[bold red]Error:[/bold red] {message}")
