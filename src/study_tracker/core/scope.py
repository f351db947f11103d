"""Milestone-scoped and unassigned views over a plan's flat topic list."""

import logging
from typing import Iterable, Optional

from ..plans.models import Milestone, Topic, normalize_id

logger = logging.getLogger(__name__)


def topics_for_milestone(topics: Iterable[Topic], milestone_id: Optional[str]) -> list[Topic]:
	"""Topics whose milestone reference equals ``milestone_id``."""
	milestone_id = normalize_id(milestone_id)
	if milestone_id is None:
		return []
	return [t for t in topics if t.milestone_id == milestone_id]


def dangling_topics(topics: Iterable[Topic], milestones: Iterable[Milestone]) -> list[Topic]:
	"""Topics pointing at a milestone that is not in ``milestones``."""
	known = {m.id for m in milestones}
	dangling = [t for t in topics if t.milestone_id is not None and t.milestone_id not in known]
	for topic in dangling:
		logger.warning(
			f"Topic {topic.id} references missing milestone {topic.milestone_id}; showing as unassigned"
		)
	return dangling


def unassigned_topics(
	topics: Iterable[Topic],
	milestones: Optional[Iterable[Milestone]] = None,
) -> list[Topic]:
	"""
	Topics with no milestone reference.

	When ``milestones`` is given, topics whose reference no longer resolves
	are included as well.
	"""
	topics = list(topics)
	loose = [t for t in topics if t.milestone_id is None]
	if milestones is None:
		return loose

	dangling = {t.id for t in dangling_topics(topics, milestones)}
	if not dangling:
		return loose
	return [t for t in topics if t.milestone_id is None or t.id in dangling]
