"""Shared utilities for visualizer views."""

from datetime import date, datetime
from typing import Optional

from ..core.progress import Segment, visible_segments


def format_due(due: date, today: Optional[date] = None) -> str:
	"""Format a due date relative to today. e.g. 'today', 'in 3d', '2d ago'."""
	today = today or date.today()
	days = (due - today).days
	if days == 0:
		return "today"
	if days == 1:
		return "tomorrow"
	if days > 0:
		return f"in {days}d"
	return f"{-days}d ago"


def format_timestamp(iso_str: str) -> str:
	"""Format an ISO timestamp as relative time (e.g. '2m ago') or absolute."""
	try:
		dt = datetime.fromisoformat(iso_str)
		delta = datetime.now() - dt
		total_secs = int(delta.total_seconds())

		if total_secs < 0:
			return iso_str[:19]
		if total_secs < 60:
			return f"{total_secs}s ago"
		if total_secs < 3600:
			return f"{total_secs // 60}m ago"
		if total_secs < 86400:
			return f"{total_secs // 3600}h ago"
		days = total_secs // 86400
		return f"{days}d ago"
	except (ValueError, TypeError):
		return str(iso_str)[:19]


def swatch(color: str, text: str = "●") -> str:
	"""Rich markup for a colored marker."""
	return f"[{color}]{text}[/]"


def segment_bar(segments: list[Segment], width: int = 30) -> str:
	"""Render progress segments as a horizontal bar of colored blocks."""
	cells = []
	for segment in visible_segments(segments):
		n = round(segment.percentage / 100 * width)
		if n:
			cells.append(swatch(segment.color, "█" * n))
	used = sum(round(s.percentage / 100 * width) for s in visible_segments(segments))
	rest = max(width - used, 0)
	if rest:
		cells.append(f"[dim]{'░' * rest}[/dim]")
	return "".join(cells)
