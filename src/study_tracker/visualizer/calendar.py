"""Rich agenda view of a plan's calendar events."""

from typing import Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..core.calendar import events_by_day
from ..plans.models import Plan
from .utils import swatch


def render_calendar(plan: Plan, console: Optional[Console] = None) -> None:
	"""Render topics and milestones grouped by day."""
	console = console or Console()
	days = events_by_day(plan)

	if not days:
		console.print(f"[dim]Nothing scheduled in '{escape(plan.name)}'.[/dim]")
		return

	table = Table(title=f"Calendar: {escape(plan.name)}")
	table.add_column("Date", style="cyan")
	table.add_column("Events")

	for day, events in days.items():
		labels = []
		for event in events:
			title = escape(event.title)
			text = f"[bold]{title}[/bold]" if event.kind == "milestone" else title
			if event.completed:
				text = f"[strike]{text}[/strike]"
			labels.append(f"{swatch(event.color)} {text}")
		table.add_row(day.strftime("%a %Y-%m-%d"), "\n".join(labels))

	console.print(table)
