"""
Deadline partitioning - upcoming and completed items of a plan.

Both lists are derived from the plan on every call; toggling a topic only
needs a recomputation.
"""

from dataclasses import asdict, dataclass, field
from datetime import date, datetime, timedelta
from typing import Optional, Union

from ..plans.models import Milestone, Plan, Topic

UNASSIGNED = "Unassigned"
WINDOW_DAYS = 7


@dataclass
class DeadlineItem:
	"""A milestone or topic as shown in the deadline lists."""
	id: str
	name: str
	due_date: date
	plan: str
	milestone: str
	kind: str
	color: str
	completed: Optional[bool] = None
	milestone_id: Optional[str] = None

	def to_dict(self) -> dict:
		data = asdict(self)
		data["due_date"] = self.due_date.isoformat()
		return data


@dataclass
class Deadlines:
	upcoming: list[DeadlineItem] = field(default_factory=list)
	completed: list[DeadlineItem] = field(default_factory=list)


def _today(now: Union[date, datetime, None]) -> date:
	if now is None:
		return date.today()
	if isinstance(now, datetime):
		return now.date()
	return now


def _milestone_item(plan: Plan, milestone: Milestone) -> DeadlineItem:
	return DeadlineItem(
		id=f"m-{milestone.id}",
		name=milestone.text,
		due_date=milestone.date,
		plan=plan.name,
		milestone=milestone.text,
		kind="milestone",
		color=milestone.color,
	)


def _topic_item(plan: Plan, topic: Topic) -> DeadlineItem:
	milestone = plan.get_milestone(topic.milestone_id)
	return DeadlineItem(
		id=f"t-{topic.id}",
		name=topic.text,
		due_date=topic.date,
		plan=plan.name,
		milestone=milestone.text if milestone else UNASSIGNED,
		kind="topic",
		color=topic.color,
		completed=topic.completed,
		milestone_id=topic.milestone_id,
	)


def compute_deadlines(plan: Plan, now: Union[date, datetime, None] = None) -> Deadlines:
	"""
	Split a plan into upcoming and completed items.

	Upcoming: milestones and incomplete topics due between today and
	today + 7 days, inclusive, soonest first. Completed: every completed
	topic, most recently due first.
	"""
	start = _today(now)
	end = start + timedelta(days=WINDOW_DAYS)

	upcoming = [_milestone_item(plan, m) for m in plan.milestones if start <= m.date <= end]
	upcoming.extend(
		_topic_item(plan, t)
		for t in plan.topics
		if not t.completed and start <= t.date <= end
	)

	completed = [_topic_item(plan, t) for t in plan.topics if t.completed]

	return Deadlines(
		upcoming=sorted(upcoming, key=lambda item: item.due_date),
		completed=sorted(completed, key=lambda item: item.due_date, reverse=True),
	)
