"""Rich views for plan progress visualization."""

from typing import Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.tree import Tree

from ..core.deadlines import UNASSIGNED
from ..core.progress import (
	compute_progress,
	milestone_progress,
	percent_complete,
	plan_summary_line,
	visible_segments,
)
from ..core.scope import topics_for_milestone, unassigned_topics
from ..plans.models import Plan, PlanSummary, Topic
from .utils import format_timestamp, segment_bar, swatch


def _topic_label(topic: Topic) -> str:
	box = "[green][x][/green]" if topic.completed else "[dim][ ][/dim]"
	return f"{box} {swatch(topic.color)} {escape(topic.text)} [dim]{topic.date.isoformat()}[/dim]"


def render_plan_progress(plan: Plan, console: Optional[Console] = None) -> None:
	"""Render a plan as a Rich Tree with milestones and their topics."""
	console = console or Console()

	done = len([t for t in plan.topics if t.completed])
	tree = Tree(
		f"[bold]{escape(plan.name)}[/bold]  "
		f"[dim]({done}/{len(plan.topics)} topics, {percent_complete(plan.topics):.0f}%)[/dim]"
	)

	for milestone in sorted(plan.milestones, key=lambda m: m.date):
		scoped = milestone_progress(plan.topics, milestone.id)
		bar = segment_bar(scoped, width=10) if scoped else "[dim]no topics[/dim]"
		branch = tree.add(
			f"{swatch(milestone.color, '◆')} [bold]{escape(milestone.text)}[/bold] "
			f"[dim]{milestone.date.isoformat()}[/dim]  {bar}"
		)
		for topic in topics_for_milestone(plan.topics, milestone.id):
			branch.add(_topic_label(topic))

	loose = unassigned_topics(plan.topics, plan.milestones)
	if loose:
		branch = tree.add(f"[bold]{UNASSIGNED}[/bold]")
		for topic in loose:
			branch.add(_topic_label(topic))

	console.print(tree)
	console.print(f"  {segment_bar(compute_progress(plan.topics))}")


def render_plan_summary(plan: Plan, console: Optional[Console] = None) -> None:
	"""Render a summary panel for a plan."""
	console = console or Console()

	lines = []
	lines.append(f"[bold]Name:[/bold] {escape(plan.name)}")
	lines.append(f"[bold]Owner:[/bold] {escape(plan.owner_id or '-')}")
	lines.append(f"[bold]Last edited:[/bold] {format_timestamp(plan.last_edited)}")
	lines.append("")
	lines.append(f"[bold]Contents:[/bold] {plan_summary_line(plan)}")
	lines.append(f"[bold]Progress:[/bold] {segment_bar(compute_progress(plan.topics))}")

	for s in visible_segments(compute_progress(plan.topics)):
		lines.append(f"  {swatch(s.color)} {s.percentage:.1f}%")

	if plan.notes:
		lines.append("")
		lines.append("[bold]Notes:[/bold]")
		lines.append(escape(plan.notes))

	console.print(Panel("\n".join(lines), title=f"Plan: {escape(plan.id)}", border_style="cyan"))


def render_plan_list(plans: list[PlanSummary], console: Optional[Console] = None) -> None:
	"""Render the plan menu as a table."""
	console = console or Console()

	if not plans:
		console.print("[dim]No plans yet. Create one with 'study-tracker new <name>'.[/dim]")
		return

	table = Table(title="Study Plans")
	table.add_column("ID", style="cyan")
	table.add_column("Name")
	table.add_column("Milestones", justify="right")
	table.add_column("Topics", justify="right")
	table.add_column("Done", justify="right")
	table.add_column("Last Edited")

	for p in plans:
		table.add_row(
			escape(p.id),
			escape(p.name),
			str(p.milestone_count),
			str(p.topic_count),
			f"{p.completed_count}/{p.topic_count}",
			format_timestamp(p.last_edited),
		)

	console.print(table)
