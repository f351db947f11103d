"""
Progress aggregation - colored ring/bar segments for completed topics.

Each segment is the share of *all* topics that are completed and carry a
given color, so segments sum to at most 100 and the remainder stands for
the topics still open.
"""

from dataclasses import dataclass
from typing import Iterable

from ..plans.models import Plan, Topic
from .scope import topics_for_milestone

NEUTRAL_COLOR = "#e0e0e0"


@dataclass(frozen=True)
class Segment:
	"""One colored slice of a progress ring."""
	color: str
	percentage: float

	def to_dict(self) -> dict:
		return {"color": self.color, "percentage": self.percentage}


NO_PROGRESS = (Segment(NEUTRAL_COLOR, 100.0),)


def compute_progress(topics: Iterable[Topic]) -> list[Segment]:
	"""
	Group completed topics by color as a percentage of the total topic count.

	Returns the single neutral segment when there are no topics or none is
	completed.
	"""
	topics = list(topics)
	completed = [t for t in topics if t.completed]
	if not completed:
		return list(NO_PROGRESS)

	counts: dict[str, int] = {}
	for topic in completed:
		counts[topic.color] = counts.get(topic.color, 0) + 1

	total = len(topics)
	return [Segment(color, count / total * 100) for color, count in counts.items()]


def milestone_progress(topics: Iterable[Topic], milestone_id: str) -> list[Segment]:
	"""Progress over one milestone's topics; empty when the milestone has none."""
	scoped = topics_for_milestone(topics, milestone_id)
	if not scoped:
		return []
	return compute_progress(scoped)


def is_empty_progress(segments: list[Segment]) -> bool:
	return not segments or (len(segments) == 1 and segments[0].color == NEUTRAL_COLOR)


def visible_segments(segments: list[Segment]) -> list[Segment]:
	"""Segments a renderer should actually draw (no sentinel, no zero-width)."""
	if is_empty_progress(segments):
		return []
	return [s for s in segments if s.color != NEUTRAL_COLOR and s.percentage > 0]


def percent_complete(topics: Iterable[Topic]) -> float:
	topics = list(topics)
	if not topics:
		return 0.0
	return round(len([t for t in topics if t.completed]) / len(topics) * 100, 1)


def plan_summary_line(plan: Plan) -> str:
	return f"{len(plan.milestones)} milestones, {len(plan.topics)} topics."
