"""Plans module - plan, topic and milestone models and storage."""

from .models import (
	Milestone,
	MilestoneInput,
	MilestonePatch,
	Plan,
	PlanPatch,
	PlanSummary,
	Topic,
	TopicInput,
	TopicPatch,
)
from .store import PlanStore

__all__ = [
	"Plan",
	"PlanSummary",
	"PlanPatch",
	"Topic",
	"TopicInput",
	"TopicPatch",
	"Milestone",
	"MilestoneInput",
	"MilestonePatch",
	"PlanStore",
]
