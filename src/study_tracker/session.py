"""
Plan sessions - the in-memory state behind the plan views.

PlanSession holds the one open plan. Every mutation is validated locally,
applied to the in-memory plan right away, persisted through the data
service and followed by a full reload of the plan, so local edits never
drift from what the service stored.

PlanMenu holds the list of plan summaries shown before a plan is opened.
AppState ties both to the current owner.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from itertools import count
from typing import Awaitable, Callable, Optional, TypeVar, Union

from .core.calendar import CalendarEvent, calendar_events
from .core.deadlines import Deadlines, compute_deadlines
from .core.progress import NO_PROGRESS, Segment, compute_progress, milestone_progress, plan_summary_line
from .core.scope import topics_for_milestone, unassigned_topics
from .core.suggestions import filter_suggestions, real_suggestions
from .errors import (
	MilestoneNotFoundError,
	NotFound,
	PersistFailure,
	ReloadFailure,
	SessionError,
	StudyTrackerError,
	SuggestionServiceFailure,
	TopicNotFoundError,
	TransportFailure,
	ValidationFailure,
)
from .plans.models import (
	Milestone,
	MilestoneInput,
	MilestonePatch,
	Plan,
	PlanPatch,
	PlanSummary,
	Topic,
	TopicInput,
	TopicPatch,
	parse_input,
)
from .service import DataService

logger = logging.getLogger(__name__)

T = TypeVar("T")

_pending_ids = count(1)


def _pending_id() -> str:
	return f"pending-{next(_pending_ids)}"


class SessionState(str, Enum):
	"""Lifecycle of the open plan."""
	UNLOADED = "unloaded"
	LOADING = "loading"
	LOADED = "loaded"
	LOAD_FAILED = "load_failed"


class PlanSession:
	"""
	Holds exactly one open plan, or none.

	Usage:
		session = PlanSession(service)
		await session.load(plan_id)
		await session.add_topic({"text": "Limits", "date": "2024-06-15"})
		session.deadlines(now=date.today()).upcoming
	"""

	def __init__(self, service: DataService):
		self.service = service
		self.plan: Optional[Plan] = None
		self.state = SessionState.UNLOADED
		self.error: Optional[StudyTrackerError] = None
		self.suggestion_error: Optional[str] = None
		self._ticket = 0

	# -- lifecycle --

	async def load(self, plan_id: str) -> Optional[Plan]:
		"""
		Replace the open plan with ``plan_id`` from the data service.

		A newer load (or a close) supersedes this one; its result is then
		discarded and None is returned.

		Raises:
			NotFound: The plan does not exist (state becomes LOAD_FAILED)
			TransportFailure: The service is unreachable (state becomes LOAD_FAILED)
		"""
		self._ticket += 1
		ticket = self._ticket
		self.state = SessionState.LOADING
		self.error = None

		try:
			plan = await self.service.get_plan(plan_id)
		except (NotFound, TransportFailure) as e:
			if ticket != self._ticket:
				return None
			logger.error(f"Error loading plan {plan_id}: {e}")
			self.plan = None
			self.state = SessionState.LOAD_FAILED
			self.error = e
			raise

		if ticket != self._ticket:
			logger.debug(f"Discarding superseded load of plan {plan_id}")
			return None

		self._apply(plan)
		return plan

	def close(self) -> None:
		"""Drop the open plan; any in-flight load is abandoned."""
		self._ticket += 1
		self.plan = None
		self.state = SessionState.UNLOADED
		self.error = None
		self.suggestion_error = None

	@property
	def is_loaded(self) -> bool:
		return self.state == SessionState.LOADED and self.plan is not None

	def _apply(self, plan: Plan) -> None:
		# Keep UI-only expansion flags across reloads of the same plan
		if self.plan is not None and self.plan.id == plan.id:
			expanded = {m.id for m in self.plan.milestones if m.expanded}
			for milestone in plan.milestones:
				milestone.expanded = milestone.id in expanded
		self.plan = plan
		self.state = SessionState.LOADED

	async def reload(self) -> Plan:
		"""
		Re-fetch the open plan. On failure the current plan is kept.

		Raises:
			ReloadFailure: The plan could not be fetched
		"""
		plan = self._require_plan()
		ticket = self._ticket
		try:
			fresh = await self.service.get_plan(plan.id)
		except (NotFound, TransportFailure) as e:
			logger.error(f"Error reloading plan {plan.id}: {e}")
			raise ReloadFailure(f"Could not reload plan {plan.id}: {e}") from e

		if ticket == self._ticket and self.plan is not None and self.plan.id == fresh.id:
			self._apply(fresh)
		return self.plan

	def _require_plan(self) -> Plan:
		if not self.is_loaded:
			raise SessionError("No plan is open")
		return self.plan

	async def _mutate(
		self,
		operation: str,
		apply: Callable[[Plan], None],
		persist: Callable[[], Awaitable[T]],
	) -> T:
		"""Apply a change locally, persist it, then reload the plan."""
		plan = self._require_plan()
		snapshot = plan.model_copy(deep=True)

		apply(plan)
		plan.last_edited = datetime.now().isoformat()

		try:
			result = await persist()
		except (NotFound, ValidationFailure):
			# Nothing was stored; undo the local edit
			if self.plan is plan:
				self.plan = snapshot
			raise
		except TransportFailure as e:
			logger.error(f"{operation} failed: {e}")
			raise PersistFailure(operation, e) from e

		await self.reload()
		return result

	def _check_milestone_ref(self, plan: Plan, milestone_id: Optional[str]) -> Optional[Milestone]:
		if milestone_id is None:
			return None
		milestone = plan.get_milestone(milestone_id)
		if not milestone:
			raise ValidationFailure(f"Milestone {milestone_id} is not part of plan {plan.id}")
		return milestone

	# -- topics --

	async def add_topic(self, data: Union[TopicInput, dict]) -> Topic:
		"""Create a topic. Topics under a milestone take the milestone's color."""
		plan = self._require_plan()
		topic_in = parse_input(TopicInput, data)
		milestone = self._check_milestone_ref(plan, topic_in.milestone_id)
		if milestone:
			topic_in = topic_in.model_copy(update={"color": milestone.color})

		def apply(p: Plan) -> None:
			p.topics.append(Topic(id=_pending_id(), **topic_in.model_dump()))

		return await self._mutate(
			"Adding topic",
			apply,
			lambda: self.service.create_topic(plan.id, topic_in),
		)

	async def edit_topic(self, topic_id: str, changes: Union[TopicPatch, dict]) -> Topic:
		plan = self._require_plan()
		patch = parse_input(TopicPatch, changes)
		if not plan.get_topic(topic_id):
			raise TopicNotFoundError(topic_id)
		updates = patch.model_dump(exclude_unset=True)
		if updates.get("milestone_id"):
			self._check_milestone_ref(plan, updates["milestone_id"])

		def apply(p: Plan) -> None:
			topic = p.get_topic(topic_id)
			for key, value in updates.items():
				if value is not None or key == "milestone_id":
					setattr(topic, key, value)

		return await self._mutate(
			"Editing topic",
			apply,
			lambda: self.service.update_topic(plan.id, topic_id, patch),
		)

	async def toggle_topic(self, topic_id: str) -> Topic:
		"""Flip a topic's completed flag."""
		plan = self._require_plan()
		topic = plan.get_topic(topic_id)
		if not topic:
			raise TopicNotFoundError(topic_id)
		return await self.edit_topic(topic_id, TopicPatch(completed=not topic.completed))

	async def delete_topic(self, topic_id: str) -> None:
		plan = self._require_plan()
		topic = plan.get_topic(topic_id)
		if not topic:
			raise TopicNotFoundError(topic_id)

		def apply(p: Plan) -> None:
			p.topics = [t for t in p.topics if t.id != topic.id]

		await self._mutate(
			"Deleting topic",
			apply,
			lambda: self.service.delete_topic(plan.id, topic.id),
		)

	# -- milestones --

	async def add_milestone(self, data: Union[MilestoneInput, dict]) -> Milestone:
		plan = self._require_plan()
		milestone_in = parse_input(MilestoneInput, data)

		def apply(p: Plan) -> None:
			p.milestones.append(Milestone(id=_pending_id(), **milestone_in.model_dump()))

		return await self._mutate(
			"Adding milestone",
			apply,
			lambda: self.service.create_milestone(plan.id, milestone_in),
		)

	async def edit_milestone(self, milestone_id: str, changes: Union[MilestonePatch, dict]) -> Milestone:
		plan = self._require_plan()
		patch = parse_input(MilestonePatch, changes)
		if not plan.get_milestone(milestone_id):
			raise MilestoneNotFoundError(milestone_id)
		updates = {k: v for k, v in patch.model_dump(exclude_unset=True).items() if v is not None}

		def apply(p: Plan) -> None:
			milestone = p.get_milestone(milestone_id)
			for key, value in updates.items():
				setattr(milestone, key, value)

		return await self._mutate(
			"Editing milestone",
			apply,
			lambda: self.service.update_milestone(plan.id, milestone_id, patch),
		)

	async def delete_milestone(self, milestone_id: str) -> None:
		"""Delete a milestone; its topics become unassigned."""
		plan = self._require_plan()
		milestone = plan.get_milestone(milestone_id)
		if not milestone:
			raise MilestoneNotFoundError(milestone_id)

		def apply(p: Plan) -> None:
			for topic in p.topics:
				if topic.milestone_id == milestone.id:
					topic.milestone_id = None
			p.milestones = [m for m in p.milestones if m.id != milestone.id]

		await self._mutate(
			"Deleting milestone",
			apply,
			lambda: self.service.delete_milestone(plan.id, milestone.id),
		)

	def toggle_milestone_expanded(self, milestone_id: str) -> bool:
		"""Flip the UI-only expanded flag; nothing is persisted."""
		plan = self._require_plan()
		milestone = plan.get_milestone(milestone_id)
		if not milestone:
			raise MilestoneNotFoundError(milestone_id)
		milestone.expanded = not milestone.expanded
		return milestone.expanded

	# -- plan fields --

	async def rename(self, name: str) -> Plan:
		plan = self._require_plan()
		patch = parse_input(PlanPatch, {"name": name})
		if patch.name == plan.name:
			return plan

		def apply(p: Plan) -> None:
			p.name = patch.name

		return await self._mutate(
			"Renaming plan",
			apply,
			lambda: self.service.update_plan(plan.id, patch),
		)

	async def update_notes(self, notes: str) -> Plan:
		plan = self._require_plan()
		patch = parse_input(PlanPatch, {"notes": notes})

		def apply(p: Plan) -> None:
			p.notes = patch.notes

		return await self._mutate(
			"Saving notes",
			apply,
			lambda: self.service.update_plan(plan.id, patch),
		)

	# -- suggestions --

	async def suggest_topics(self, milestone_id: str) -> list[str]:
		"""
		Ask the suggestion service for new topics under a milestone.

		Names already used by the milestone's topics are dropped. Returns
		``[NO_SUGGESTIONS]`` when nothing new came back, and ``[]`` with
		``suggestion_error`` set when the service failed.
		"""
		plan = self._require_plan()
		milestone = plan.get_milestone(milestone_id)
		if not milestone:
			raise MilestoneNotFoundError(milestone_id)

		self.suggestion_error = None
		try:
			raw = await self.service.suggest_topics(milestone.text)
		except SuggestionServiceFailure as e:
			logger.error(f"Error fetching suggestions for milestone {milestone.id}: {e}")
			self.suggestion_error = str(e)
			return []

		existing = [t.text for t in topics_for_milestone(plan.topics, milestone.id)]
		return filter_suggestions(raw, existing)

	async def add_suggested_topics(self, milestone_id: str, names: list[str]) -> list[Topic]:
		"""Create one topic per selected suggestion, dated and colored like the milestone."""
		plan = self._require_plan()
		milestone = plan.get_milestone(milestone_id)
		if not milestone:
			raise MilestoneNotFoundError(milestone_id)

		inputs = [
			parse_input(TopicInput, {
				"text": name,
				"date": milestone.date,
				"color": milestone.color,
				"milestone_id": milestone.id,
			})
			for name in real_suggestions(names)
		]
		if not inputs:
			return []

		def apply(p: Plan) -> None:
			p.topics.extend(Topic(id=_pending_id(), **t.model_dump()) for t in inputs)

		async def persist() -> list[Topic]:
			return [await self.service.create_topic(plan.id, t) for t in inputs]

		return await self._mutate("Adding suggested topics", apply, persist)

	# -- derived views --

	@property
	def progress(self) -> list[Segment]:
		if not self.plan:
			return list(NO_PROGRESS)
		return compute_progress(self.plan.topics)

	@property
	def unassigned(self) -> list[Topic]:
		if not self.plan:
			return []
		return unassigned_topics(self.plan.topics, self.plan.milestones)

	def topics_for_milestone(self, milestone_id: str) -> list[Topic]:
		if not self.plan:
			return []
		return topics_for_milestone(self.plan.topics, milestone_id)

	def milestone_progress(self, milestone_id: str) -> list[Segment]:
		if not self.plan:
			return []
		return milestone_progress(self.plan.topics, milestone_id)

	def deadlines(self, now: Union[date, datetime, None] = None) -> Deadlines:
		if not self.plan:
			return Deadlines()
		return compute_deadlines(self.plan, now)

	def calendar_events(self) -> list[CalendarEvent]:
		if not self.plan:
			return []
		return calendar_events(self.plan)


@dataclass
class PlanDetails:
	"""Expanded view of one plan in the menu."""
	plan_id: str
	summary: str
	segments: list[Segment]


class PlanMenu:
	"""
	The list of plans shown before a plan is opened.

	Reads fall back to the last known list when the service is unreachable;
	writes propagate their errors.
	"""

	def __init__(self, service: DataService):
		self.service = service
		self.plans: list[PlanSummary] = []
		self.expanded_plan_id: Optional[str] = None
		self.details: Optional[PlanDetails] = None
		self.error: Optional[str] = None

	async def refresh(self, owner_id: Optional[str] = None) -> list[PlanSummary]:
		try:
			if owner_id:
				await self._claim_unowned(owner_id)
			self.plans = await self.service.list_plans(owner_id)
			self.error = None
			logger.info(f"Loaded {len(self.plans)} plans for owner {owner_id}")
		except TransportFailure as e:
			logger.error(f"Error fetching plans: {e}")
			self.error = str(e)
		return self.plans

	async def _claim_unowned(self, owner_id: str) -> None:
		"""Assign plans that have no owner to ``owner_id`` (one-time migration)."""
		unowned = await self.service.list_unowned_plans()
		if unowned:
			logger.info(f"Found {len(unowned)} unowned plans - assigning to {owner_id}")
		for summary in unowned:
			try:
				await self.service.update_plan(summary.id, PlanPatch(owner_id=owner_id))
			except StudyTrackerError as e:
				logger.error(f"Error claiming plan {summary.id}: {e}")

	async def create_plan(self, name: str, owner_id: Optional[str] = None) -> Plan:
		patch = parse_input(PlanPatch, {"name": name})
		plan = await self.service.create_plan(patch.name, owner_id)
		await self.refresh(owner_id)
		return plan

	async def delete_plan(self, plan_id: str, owner_id: Optional[str] = None) -> None:
		await self.service.delete_plan(plan_id)
		if self.expanded_plan_id == plan_id:
			self.collapse()
		await self.refresh(owner_id)

	def collapse(self) -> None:
		self.expanded_plan_id = None
		self.details = None

	async def toggle_details(self, plan_id: str) -> Optional[PlanDetails]:
		"""Expand one plan's summary and progress, or collapse it if already expanded."""
		if self.expanded_plan_id == plan_id:
			self.collapse()
			return None

		try:
			plan = await self.service.get_plan(plan_id)
		except (NotFound, TransportFailure) as e:
			logger.error(f"Error fetching plan details for {plan_id}: {e}")
			self.error = str(e)
			return None

		self.expanded_plan_id = plan_id
		self.details = PlanDetails(
			plan_id=plan.id,
			summary=plan_summary_line(plan),
			segments=compute_progress(plan.topics),
		)
		return self.details


@dataclass
class AppState:
	"""
	Composition root: the current owner, the plan menu and the open plan.

	Usage:
		app = AppState(service, owner_id="ana")
		await app.menu.refresh(app.owner_id)
		await app.open_plan(plan_id)
		await app.go_to_menu()
	"""
	service: DataService
	owner_id: Optional[str] = None
	menu: PlanMenu = field(init=False)
	session: PlanSession = field(init=False)

	def __post_init__(self) -> None:
		self.menu = PlanMenu(self.service)
		self.session = PlanSession(self.service)

	async def open_plan(self, plan_id: str) -> Optional[Plan]:
		return await self.session.load(plan_id)

	async def create_and_open(self, name: str) -> Optional[Plan]:
		plan = await self.menu.create_plan(name, self.owner_id)
		return await self.open_plan(plan.id)

	async def go_to_menu(self) -> list[PlanSummary]:
		self.session.close()
		self.menu.collapse()
		return await self.menu.refresh(self.owner_id)
