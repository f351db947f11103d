"""
Plan Models - Pydantic schemas for study plans.

A plan owns its milestones (dated goals) and topics (dated, completable
units of study). Topics may point at a milestone of the same plan through
``milestone_id``; the reference is weak and becomes ``None`` when the
milestone is deleted.

Identifiers are canonical strings. Values arriving as numbers from a
transport boundary are coerced here so nothing downstream compares ids
of different types.
"""

import datetime as dt
from typing import Any, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..errors import ValidationFailure

DEFAULT_TOPIC_COLOR = "#f1c40f"
DEFAULT_MILESTONE_COLOR = "#9b59b6"


def _now() -> str:
	return dt.datetime.now().isoformat()


def normalize_id(value: Any) -> Optional[str]:
	"""Coerce an identifier to its canonical string form ('' and None mean no id)."""
	if value is None:
		return None
	if isinstance(value, bool):
		raise ValueError("identifier must be a string or number")
	text = str(value).strip()
	return text or None


def parse_date(value: Any) -> Any:
	"""Accept full ISO timestamps ('2024-06-15T00:00:00.000Z') where a date is expected."""
	if isinstance(value, dt.datetime):
		return value.date()
	if isinstance(value, str) and "T" in value:
		return value.split("T", 1)[0]
	return value


def require_text(value: Optional[str]) -> Optional[str]:
	if value is None:
		return None
	value = value.strip()
	if not value:
		raise ValueError("must not be blank")
	return value


class _Model(BaseModel):
	model_config = ConfigDict(populate_by_name=True)


class Milestone(_Model):
	"""A dated goal that can group topics."""
	id: str = Field(description="Unique milestone identifier")
	text: str = Field(description="Display text")
	date: dt.date
	color: str = Field(default=DEFAULT_MILESTONE_COLOR)
	expanded: bool = Field(default=False, exclude=True, description="UI-only, never persisted")

	@field_validator("id", mode="before")
	@classmethod
	def coerce_id(cls, v: Any) -> Optional[str]:
		return normalize_id(v)

	@field_validator("date", mode="before")
	@classmethod
	def coerce_date(cls, v: Any) -> Any:
		return parse_date(v)


class Topic(_Model):
	"""A dated, completable unit of study."""
	id: str = Field(description="Unique topic identifier")
	text: str = Field(description="Display text")
	date: dt.date
	color: str = Field(default=DEFAULT_TOPIC_COLOR)
	milestone_id: Optional[str] = Field(default=None, alias="milestoneId")
	completed: bool = Field(default=False)
	notes: str = Field(default="")

	@field_validator("id", "milestone_id", mode="before")
	@classmethod
	def coerce_ids(cls, v: Any) -> Optional[str]:
		return normalize_id(v)

	@field_validator("date", mode="before")
	@classmethod
	def coerce_date(cls, v: Any) -> Any:
		return parse_date(v)


class PlanSummary(_Model):
	"""Listing form of a plan."""
	id: str
	name: str
	owner_id: Optional[str] = Field(default=None, alias="userId")
	last_edited: str = Field(default_factory=_now, alias="lastEdited")
	topic_count: int = Field(default=0, alias="topicCount")
	milestone_count: int = Field(default=0, alias="milestoneCount")
	completed_count: int = Field(default=0, alias="completedCount")


class Plan(_Model):
	"""
	A study plan with its milestones, topics and notes.

	Deleting a plan removes its children; deleting a milestone only
	unassigns the topics that referenced it.
	"""
	id: str = Field(description="Unique plan identifier")
	name: str
	owner_id: Optional[str] = Field(default=None, alias="userId")
	topics: list[Topic] = Field(default_factory=list)
	milestones: list[Milestone] = Field(default_factory=list)
	notes: str = Field(default="")

	# Timestamps
	created_at: str = Field(default_factory=_now, alias="createdAt")
	last_edited: str = Field(default_factory=_now, alias="lastEdited")

	@field_validator("id", "owner_id", mode="before")
	@classmethod
	def coerce_ids(cls, v: Any) -> Optional[str]:
		return normalize_id(v)

	def get_topic(self, topic_id: Any) -> Optional[Topic]:
		topic_id = normalize_id(topic_id)
		return next((t for t in self.topics if t.id == topic_id), None)

	def get_milestone(self, milestone_id: Any) -> Optional[Milestone]:
		milestone_id = normalize_id(milestone_id)
		if milestone_id is None:
			return None
		return next((m for m in self.milestones if m.id == milestone_id), None)

	def summary(self) -> PlanSummary:
		return PlanSummary(
			id=self.id,
			name=self.name,
			owner_id=self.owner_id,
			last_edited=self.last_edited,
			topic_count=len(self.topics),
			milestone_count=len(self.milestones),
			completed_count=len([t for t in self.topics if t.completed]),
		)

	def to_markdown(self) -> str:
		"""Convert plan to markdown format."""
		lines = [
			f"# {self.name}",
			"",
			f"**Last edited:** {self.last_edited}",
			"",
		]

		def topic_line(topic: Topic) -> str:
			box = "[x]" if topic.completed else "[ ]"
			return f"- {box} {topic.text} ({topic.date.isoformat()})"

		for milestone in sorted(self.milestones, key=lambda m: m.date):
			lines.append(f"## {milestone.text} ({milestone.date.isoformat()})")
			for topic in self.topics:
				if topic.milestone_id == milestone.id:
					lines.append(topic_line(topic))
			lines.append("")

		milestone_ids = {m.id for m in self.milestones}
		loose = [t for t in self.topics if t.milestone_id not in milestone_ids]
		if loose:
			lines.append("## Unassigned")
			lines.extend(topic_line(t) for t in loose)
			lines.append("")

		if self.notes:
			lines.append("## Notes")
			lines.append(self.notes)
			lines.append("")

		return "\n".join(lines)


class TopicInput(_Model):
	"""Fields for a new topic."""
	text: str
	date: dt.date
	color: str = Field(default=DEFAULT_TOPIC_COLOR)
	milestone_id: Optional[str] = Field(default=None, alias="milestoneId")
	completed: bool = Field(default=False)
	notes: str = Field(default="")

	@field_validator("text")
	@classmethod
	def check_text(cls, v: str) -> str:
		return require_text(v)

	@field_validator("milestone_id", mode="before")
	@classmethod
	def coerce_milestone(cls, v: Any) -> Optional[str]:
		return normalize_id(v)

	@field_validator("date", mode="before")
	@classmethod
	def coerce_date(cls, v: Any) -> Any:
		return parse_date(v)


class TopicPatch(_Model):
	"""Partial topic update; only fields that were set are applied."""
	text: Optional[str] = None
	date: Optional[dt.date] = None
	color: Optional[str] = None
	milestone_id: Optional[str] = Field(default=None, alias="milestoneId")
	completed: Optional[bool] = None
	notes: Optional[str] = None

	@field_validator("text")
	@classmethod
	def check_text(cls, v: Optional[str]) -> Optional[str]:
		return require_text(v)

	@field_validator("milestone_id", mode="before")
	@classmethod
	def coerce_milestone(cls, v: Any) -> Optional[str]:
		return normalize_id(v)

	@field_validator("date", mode="before")
	@classmethod
	def coerce_date(cls, v: Any) -> Any:
		return parse_date(v)


class MilestoneInput(_Model):
	"""Fields for a new milestone."""
	text: str
	date: dt.date
	color: str = Field(default=DEFAULT_MILESTONE_COLOR)

	@field_validator("text")
	@classmethod
	def check_text(cls, v: str) -> str:
		return require_text(v)

	@field_validator("date", mode="before")
	@classmethod
	def coerce_date(cls, v: Any) -> Any:
		return parse_date(v)


class MilestonePatch(_Model):
	"""Partial milestone update."""
	text: Optional[str] = None
	date: Optional[dt.date] = None
	color: Optional[str] = None

	@field_validator("text")
	@classmethod
	def check_text(cls, v: Optional[str]) -> Optional[str]:
		return require_text(v)

	@field_validator("date", mode="before")
	@classmethod
	def coerce_date(cls, v: Any) -> Any:
		return parse_date(v)


class PlanPatch(_Model):
	"""Partial plan update (rename, notes, ownership)."""
	name: Optional[str] = None
	notes: Optional[str] = None
	owner_id: Optional[str] = Field(default=None, alias="userId")

	@field_validator("name")
	@classmethod
	def check_name(cls, v: Optional[str]) -> Optional[str]:
		return require_text(v)

	@field_validator("owner_id", mode="before")
	@classmethod
	def coerce_owner(cls, v: Any) -> Optional[str]:
		return normalize_id(v)


M = TypeVar("M", bound=BaseModel)


def parse_input(model: type[M], data: Any) -> M:
	"""Validate raw input into ``model``, raising ValidationFailure on bad data."""
	if isinstance(data, model):
		return data
	try:
		return model.model_validate(data)
	except ValidationError as e:
		problems = "; ".join(
			f"{'.'.join(str(p) for p in err['loc']) or 'body'}: {err['msg']}"
			for err in e.errors()
		)
		raise ValidationFailure(f"Invalid {model.__name__}: {problems}") from e
