import json
import logging
from datetime import datetime
from typing import Any, Optional, Sequence

from rich.box import HEAVY, ROUNDED, SIMPLE
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from domainiq.domain.interfaces.user_interface import UserInterface
from domainiq.domain.models.analysis import AnalysisResult, Recommendation
from domainiq.domain.models.queue import QueueStats

logger = logging.getLogger(__name__)

RECOMMENDATION_STYLES = {
    Recommendation.STRONG_BUY: "bold green",
    Recommendation.BUY: "green",
    Recommendation.HOLD: "yellow",
    Recommendation.AVOID: "red",
}


def score_style(score: float) -> str:
    if score >= 80:
        return "bold green"
    if score >= 60:
        return "yellow"
    return "red"


def format_epoch(epoch: Optional[float]) -> str:
    if epoch is None:
        return "-"
    return datetime.fromtimestamp(epoch).strftime("%Y-%m-%d %H:%M:%S")


class ConsoleDisplay(UserInterface):
    """Concrete implementation of UserInterface using the rich library for console output.

    In JSON mode results and stats are written to stdout as plain JSON and
    messages go to stderr, so the output can be piped.
    """

    def __init__(self, json_output: bool = False, console: Optional[Console] = None):
        self.json_output = json_output
        self._console = console or Console()
        self._err_console = Console(stderr=True)

    @property
    def console(self) -> Console:
        """Get the Rich console instance for direct operations."""
        return self._console

    def _message_console(self) -> Console:
        return self._err_console if self.json_output else self._console

    def _print_json(self, data: Any) -> None:
        self.console.out(json.dumps(data, indent=2), highlight=False)

    def display_analysis(self, results: Sequence[AnalysisResult], **kwargs: Any) -> None:
        """Displays results as a score table, plus a details panel per result.

        Args:
            results: The analysis results, already in display order.
            **kwargs: Additional arguments including:
                - title: Table title (default: "Domain Analysis")
                - detailed: Whether to print the details panels (default: True)
        """
        if self.json_output:
            self._print_json([result.to_dict() for result in results])
            return

        title = kwargs.get("title", "Domain Analysis")
        detailed = kwargs.get("detailed", True)

        table = Table(title=title, show_header=True, box=ROUNDED, border_style="cyan", padding=(0, 1))
        table.add_column("#", style="cyan", justify="right")
        table.add_column("Domain", style="bold")
        table.add_column("Overall", justify="right")
        table.add_column("Brand", justify="right")
        table.add_column("Market", justify="right")
        table.add_column("Web3", justify="right")
        table.add_column("Rarity", justify="right")
        table.add_column("Recommendation")
        table.add_column("Source", style="dim")

        for index, result in enumerate(results, start=1):
            scores = result.scores
            recommendation = result.insights.recommendation
            table.add_row(
                str(index),
                result.domain,
                Text(f"{result.overall_score:.1f}", style=score_style(result.overall_score)),
                f"{scores.brandability:.0f}",
                f"{scores.market_potential:.0f}",
                f"{scores.web3_relevance:.0f}",
                f"{scores.rarity_score:.0f}",
                Text(recommendation.value, style=RECOMMENDATION_STYLES.get(recommendation, "white")),
                "fallback" if result.fallback_used else result.model,
            )
        self.console.print(table)

        if detailed:
            for result in results:
                self.console.print(self._details_panel(result))

    def _details_panel(self, result: AnalysisResult) -> Panel:
        body = Table(show_header=False, box=SIMPLE, padding=(0, 1))
        body.add_column("Field", style="cyan")
        body.add_column("Value", style="white")
        body.add_row("Model", f"{result.model} ({'AI' if result.ai_powered else 'heuristic'})")
        body.add_row("Confidence", f"{result.confidence:.0%}")
        body.add_row("Position", result.insights.market_position.value)
        body.add_row("Strengths", "\n".join(result.insights.strengths) or "-")
        body.add_row("Weaknesses", "\n".join(result.insights.weaknesses) or "-")
        if result.advanced is not None:
            advanced = result.advanced
            body.add_row("Comparables", f"${advanced.comparable_floor:,} - ${advanced.comparable_ceiling:,}")
            body.add_row("Liquidity", f"{advanced.liquidity_score:.0f}")
            body.add_row("Momentum", advanced.trend_momentum.value)
            if advanced.competitive_advantage:
                body.add_row("Advantage", advanced.competitive_advantage)
        return Panel(
            body,
            title=f"[bold white]{result.domain}[/bold white]",
            title_align="left",
            border_style="yellow" if result.fallback_used else "blue",
            box=ROUNDED,
            padding=(0, 1),
        )

    def display_stats(self, stats: QueueStats, **kwargs: Any) -> None:
        if self.json_output:
            self._print_json(stats.to_dict())
            return

        table = Table(title="Inference Queue", show_header=False, box=ROUNDED, border_style="cyan", padding=(0, 1))
        table.add_column("Metric", style="cyan")
        table.add_column("Value", style="white")
        table.add_row("Provider", stats.provider or "none (heuristics only)")
        table.add_row("Requests this window", f"{stats.requests_used}/{stats.per_window_limit}")
        table.add_row("Remaining", str(stats.remaining))
        table.add_row("Window resets at", format_epoch(stats.window_resets_at))
        quota_text = Text("EXHAUSTED", style="bold red") if stats.exhausted else Text("available", style="green")
        table.add_row("Quota", quota_text)
        if stats.exhausted:
            table.add_row("Locked out until", format_epoch(stats.exhausted_until))
        table.add_row("Next daily reset", format_epoch(stats.next_reset_at))
        table.add_row("Pending / in flight", f"{stats.pending} / {stats.in_flight}")
        table.add_row("Cached results", str(stats.cache_size))
        self.console.print(table)

    def display_error(self, error_message: str, **kwargs: Any) -> None:
        panel = Panel(
            Text(error_message, style="white"),
            title="[bold red]Error[/bold red]",
            border_style="red",
            box=HEAVY,
            padding=(0, 1)
        )
        self._message_console().print(panel)

    def display_info(self, info_message: str, **kwargs: Any) -> None:
        panel = Panel(
            Text(info_message, style="white"),
            title="[bold blue]Info[/bold blue]",
            border_style="blue",
            box=SIMPLE,
            padding=(0, 1)
        )
        self._message_console().print(panel)

    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        logger.debug(f"Display warning: {warning_message}")
        panel = Panel(
            Text(warning_message, style="white"),
            title="[bold yellow]Warning[/bold yellow]",
            border_style="yellow",
            box=HEAVY,
            padding=(0, 1)
        )
        self._message_console().print(panel)
