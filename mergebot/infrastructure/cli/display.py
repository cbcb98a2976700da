import logging
from datetime import datetime
from typing import Any, List, Optional

from rich.box import HEAVY, ROUNDED, SIMPLE
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from mergebot.domain.interfaces.user_interface import UserInterface
from mergebot.domain.models.common import MergeRequestStatus
from mergebot.domain.models.gitlab import MergeRequest, User

logger = logging.getLogger(__name__)

PIPELINE_STYLES = {
    "success": "green",
    "failed": "red",
    "canceled": "dim",
    "skipped": "dim",
    "running": "cyan",
    "pending": "yellow",
    "created": "yellow",
}


class ConsoleDisplay(UserInterface):
    """Concrete implementation of UserInterface using the rich library for console output."""

    def __init__(self, console: Optional[Console] = None):
        """Initializes the rich Console."""
        self._console = console or Console()

    @property
    def console(self) -> Console:
        """Get the Rich console instance for direct operations."""
        return self._console

    def display_error(self, error_message: str, **kwargs: Any) -> None:
        """Displays an error message in a distinct style.

        Args:
            error_message: The error message to display.
        """
        panel = Panel(
            Text(error_message, style="white"),
            title="[bold red]Error[/bold red]",
            border_style="red",
            box=HEAVY,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_info(self, info_message: str, **kwargs: Any) -> None:
        panel = Panel(
            Text(info_message, style="white"),
            title="[bold blue]Info[/bold blue]",
            border_style="blue",
            box=SIMPLE,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        logger.warning(f"Display warning: {warning_message}")
        panel = Panel(
            Text(warning_message, style="white"),
            title="[bold yellow]Warning[/bold yellow]",
            border_style="yellow",
            box=HEAVY,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_user(self, user: User) -> None:
        table = Table(show_header=False, box=ROUNDED, border_style="cyan", padding=(0, 1))
        table.add_column("Field", style="bold cyan")
        table.add_column("Value")
        table.add_row("ID", str(user.get("id", "?")))
        table.add_row("Name", str(user.get("name", "")))
        table.add_row("Email", str(user.get("email", "")))
        self.console.print(table)

    def display_merge_requests(self, merge_requests: List[MergeRequest]) -> None:
        """Displays merge requests as a table, one row per merge request.

        Args:
            merge_requests: Merge requests as returned by the API.
        """
        logger.debug(f"Displaying {len(merge_requests)} merge requests")
        if not merge_requests:
            self.display_info("No open merge requests are assigned to you.")
            return

        table = Table(show_header=True, box=ROUNDED, border_style="cyan", padding=(0, 1))
        table.add_column("Ref", style="bold cyan", no_wrap=True)
        table.add_column("Title", style="white")
        table.add_column("Branch", style="dim")
        table.add_column("Merge status")
        table.add_column("Conflicts", justify="center")

        for mr in merge_requests:
            title = str(mr.get("title", ""))
            if len(title) > 60:
                title = title[:57] + "..."
            conflicts = "[bold red]yes[/bold red]" if mr.get("has_conflicts") else "no"
            table.add_row(
                f"{mr.get('project_id')}!{mr.get('iid')}",
                title,
                f"{mr.get('source_branch', '?')} -> {mr.get('target_branch', '?')}",
                str(mr.get("merge_status", "")),
                conflicts,
            )
        self.console.print(table)

    def display_merge_request_status(self, status: MergeRequestStatus) -> None:
        pipeline = status.pipeline_status or "none"
        pipeline_style = PIPELINE_STYLES.get(pipeline, "white")
        approvals = "?" if status.approvals_left is None else str(status.approvals_left)
        timestamp = datetime.now().strftime("%H:%M:%S")

        table = Table(show_header=False, box=SIMPLE, padding=(0, 1))
        table.add_column("Field", style="bold")
        table.add_column("Value")
        table.add_row("State", status.state)
        table.add_row("Merge status", status.merge_status)
        table.add_row("Pipeline", f"[{pipeline_style}]{pipeline}[/{pipeline_style}]")
        table.add_row("Approvals left", approvals)
        if status.has_conflicts:
            table.add_row("Conflicts", "[bold red]yes[/bold red]")
        if status.web_url:
            table.add_row("URL", status.web_url)

        self.console.print(Panel(
            table,
            title=f"[bold cyan]{status.reference}[/bold cyan] {status.title}",
            subtitle=f"[dim]{timestamp}[/dim]",
            border_style="cyan",
            box=ROUNDED,
        ))
