"""Rich views for upcoming and completed deadlines."""

from datetime import date
from typing import Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..core.deadlines import DeadlineItem, Deadlines
from .utils import format_due, swatch


def _deadline_table(title: str, items: list[DeadlineItem], today: date) -> Table:
	table = Table(title=title)
	table.add_column("", justify="center")
	table.add_column("Name")
	table.add_column("Kind", style="dim")
	table.add_column("Milestone")
	table.add_column("Due")
	table.add_column("Date", style="dim")

	for item in items:
		table.add_row(
			swatch(item.color),
			f"[bold]{escape(item.name)}[/bold]" if item.kind == "milestone" else escape(item.name),
			item.kind,
			escape(item.milestone),
			format_due(item.due_date, today),
			item.due_date.isoformat(),
		)
	return table


def render_deadlines(
	deadlines: Deadlines,
	today: Optional[date] = None,
	console: Optional[Console] = None,
) -> None:
	"""Render upcoming deadlines (next 7 days) and completed topics."""
	console = console or Console()
	today = today or date.today()

	if deadlines.upcoming:
		console.print(_deadline_table("Upcoming Deadlines", deadlines.upcoming, today))
	else:
		console.print("[dim]No upcoming deadlines in the next 7 days.[/dim]")

	if deadlines.completed:
		console.print(_deadline_table("Completed Topics", deadlines.completed, today))
	else:
		console.print("[dim]No completed topics yet.[/dim]")
