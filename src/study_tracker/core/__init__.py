"""Derived views over a plan: progress, scope, deadlines, calendar, suggestions."""

from .calendar import CalendarEvent, calendar_events
from .deadlines import UNASSIGNED, DeadlineItem, Deadlines, compute_deadlines
from .progress import NEUTRAL_COLOR, Segment, compute_progress, milestone_progress
from .scope import dangling_topics, topics_for_milestone, unassigned_topics
from .suggestions import NO_SUGGESTIONS, filter_suggestions

__all__ = [
	"CalendarEvent",
	"calendar_events",
	"DeadlineItem",
	"Deadlines",
	"UNASSIGNED",
	"compute_deadlines",
	"NEUTRAL_COLOR",
	"Segment",
	"compute_progress",
	"milestone_progress",
	"dangling_topics",
	"topics_for_milestone",
	"unassigned_topics",
	"NO_SUGGESTIONS",
	"filter_suggestions",
]
