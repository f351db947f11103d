"""Calendar events for a plan: one all-day event per topic and milestone."""

from dataclasses import dataclass
from datetime import date

from ..plans.models import Plan


@dataclass
class CalendarEvent:
	title: str
	start: date
	color: str
	kind: str
	completed: bool = False
	all_day: bool = True

	def to_dict(self) -> dict:
		return {
			"title": self.title,
			"start": self.start.isoformat(),
			"allDay": self.all_day,
			"backgroundColor": self.color,
			"borderColor": self.color,
			"classNames": ["completed-event"] if self.completed else [],
		}


def calendar_events(plan: Plan) -> list[CalendarEvent]:
	"""Topics first, then milestones, each ordered as stored in the plan."""
	events = [
		CalendarEvent(title=t.text, start=t.date, color=t.color, kind="topic", completed=t.completed)
		for t in plan.topics
	]
	events.extend(
		CalendarEvent(title=m.text, start=m.date, color=m.color, kind="milestone")
		for m in plan.milestones
	)
	return events


def events_by_day(plan: Plan) -> dict[date, list[CalendarEvent]]:
	"""Events grouped by day, days in ascending order."""
	grouped: dict[date, list[CalendarEvent]] = {}
	for event in sorted(calendar_events(plan), key=lambda e: e.start):
		grouped.setdefault(event.start, []).append(event)
	return grouped
