"""
Plan Store - SQLite-backed plan document storage.

Features:
- CRUD operations for plans
- Topic and milestone add/edit/delete scoped to a plan
- Cascade-null of topic references when a milestone is deleted
- Listing by owner
"""

import asyncio
import logging
import uuid
from datetime import datetime
from pathlib import Path
from typing import Optional

import aiosqlite

from ..errors import MilestoneNotFoundError, PlanNotFoundError, TopicNotFoundError
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
	normalize_id,
)

logger = logging.getLogger(__name__)


def new_id() -> str:
	return str(uuid.uuid4())[:12]


class PlanStore:
	"""
	SQLite-backed plan storage. Each plan is stored as one JSON document.

	Usage:
		store = PlanStore("data/plans.db")
		await store.init()

		plan = await store.create_plan("Finals", owner_id="ana")
		topic = await store.create_topic(plan.id, TopicInput(text="Limits", date="2024-06-15"))
		await store.delete_milestone(plan.id, milestone_id)
	"""

	def __init__(self, db_path: str):
		"""Initialize the plan store."""
		self.db_path = Path(db_path)
		self.db_path.parent.mkdir(parents=True, exist_ok=True)
		self._db: Optional[aiosqlite.Connection] = None
		self._init_lock = asyncio.Lock()
		self._write_lock = asyncio.Lock()

	async def init(self):
		"""Initialize the database schema."""
		self._db = await aiosqlite.connect(str(self.db_path))
		self._db.row_factory = aiosqlite.Row

		await self._db.execute("""
			CREATE TABLE IF NOT EXISTS plans (
				id TEXT PRIMARY KEY,
				owner_id TEXT,
				name TEXT NOT NULL,
				data TEXT NOT NULL,
				created_at TEXT NOT NULL,
				last_edited TEXT NOT NULL
			)
		""")

		await self._db.execute("""
			CREATE INDEX IF NOT EXISTS idx_plans_owner ON plans(owner_id)
		""")

		await self._db.commit()
		logger.info(f"Plan store initialized: {self.db_path}")

	async def close(self):
		"""Close the database connection."""
		if self._db:
			await self._db.close()
			self._db = None

	async def _conn(self) -> aiosqlite.Connection:
		async with self._init_lock:
			if not self._db:
				await self.init()
		return self._db

	# Mutations hold _write_lock from _load through _save.

	async def _load(self, plan_id: str) -> Plan:
		plan = await self.get_plan(plan_id)
		if not plan:
			raise PlanNotFoundError(plan_id)
		return plan

	async def _save(self, plan: Plan) -> Plan:
		db = await self._conn()
		plan.last_edited = datetime.now().isoformat()
		await db.execute(
			"""
			UPDATE plans SET owner_id = ?, name = ?, data = ?, last_edited = ?
			WHERE id = ?
			""",
			(
				plan.owner_id,
				plan.name,
				plan.model_dump_json(),
				plan.last_edited,
				plan.id,
			)
		)
		await db.commit()
		return plan

	# -- plans --

	async def create_plan(self, name: str, owner_id: Optional[str] = None) -> Plan:
		"""
		Create a new, empty plan.

		Args:
			name: Plan name
			owner_id: Owning user, if any

		Returns:
			The stored Plan
		"""
		db = await self._conn()

		plan = Plan(id=new_id(), name=name, owner_id=owner_id)
		plan.last_edited = plan.created_at

		await db.execute(
			"""
			INSERT INTO plans (id, owner_id, name, data, created_at, last_edited)
			VALUES (?, ?, ?, ?, ?, ?)
			""",
			(
				plan.id,
				plan.owner_id,
				plan.name,
				plan.model_dump_json(),
				plan.created_at,
				plan.last_edited,
			)
		)

		await db.commit()
		logger.info(f"Created plan {plan.id} ({name!r}) for owner {owner_id}")

		return plan

	async def get_plan(self, plan_id: str) -> Optional[Plan]:
		"""
		Get a plan by ID.

		Returns:
			Plan object or None if not found
		"""
		db = await self._conn()

		async with db.execute(
			"SELECT data FROM plans WHERE id = ?",
			(normalize_id(plan_id),)
		) as cursor:
			row = await cursor.fetchone()

		if not row:
			return None

		return Plan.model_validate_json(row["data"])

	async def list_plans(self, owner_id: Optional[str] = None, unowned: bool = False) -> list[PlanSummary]:
		"""
		List plan summaries, most recently edited first.

		Args:
			owner_id: Only plans owned by this user (None lists every plan)
			unowned: Only plans that have no owner
		"""
		db = await self._conn()

		if unowned:
			query = "SELECT data FROM plans WHERE owner_id IS NULL"
			params: tuple = ()
		elif owner_id is not None:
			query = "SELECT data FROM plans WHERE owner_id = ?"
			params = (owner_id,)
		else:
			query = "SELECT data FROM plans"
			params = ()

		async with db.execute(f"{query} ORDER BY last_edited DESC", params) as cursor:
			rows = await cursor.fetchall()

		return [Plan.model_validate_json(row["data"]).summary() for row in rows]

	async def update_plan(self, plan_id: str, patch: PlanPatch) -> Plan:
		"""
		Rename a plan, replace its notes or change its owner.

		Raises:
			PlanNotFoundError: If plan not found
		"""
		async with self._write_lock:
			plan = await self._load(plan_id)

			for key, value in patch.model_dump(exclude_unset=True).items():
				if value is None and key != "owner_id":
					continue
				setattr(plan, key, value)

			plan = await self._save(plan)
		logger.info(f"Updated plan {plan.id}")
		return plan

	async def delete_plan(self, plan_id: str):
		"""
		Delete a plan with all its topics and milestones.

		Raises:
			PlanNotFoundError: If plan not found
		"""
		db = await self._conn()

		async with self._write_lock:
			cursor = await db.execute("DELETE FROM plans WHERE id = ?", (normalize_id(plan_id),))
			await db.commit()
		if cursor.rowcount == 0:
			raise PlanNotFoundError(plan_id)
		logger.info(f"Deleted plan {plan_id}")

	# -- topics --

	async def create_topic(self, plan_id: str, data: TopicInput) -> Topic:
		"""Add a topic to a plan."""
		async with self._write_lock:
			plan = await self._load(plan_id)

			if data.milestone_id and not plan.get_milestone(data.milestone_id):
				raise MilestoneNotFoundError(data.milestone_id)

			topic = Topic(id=new_id(), **data.model_dump())
			plan.topics.append(topic)
			await self._save(plan)

		logger.info(f"Created topic {topic.id} in plan {plan.id}")
		return topic

	async def update_topic(self, plan_id: str, topic_id: str, patch: TopicPatch) -> Topic:
		"""Apply a partial update to a topic."""
		async with self._write_lock:
			plan = await self._load(plan_id)
			topic = plan.get_topic(topic_id)
			if not topic:
				raise TopicNotFoundError(topic_id)

			changes = patch.model_dump(exclude_unset=True)
			milestone_id = changes.get("milestone_id")
			if milestone_id and not plan.get_milestone(milestone_id):
				raise MilestoneNotFoundError(milestone_id)

			for key, value in changes.items():
				if value is None and key != "milestone_id":
					continue
				setattr(topic, key, value)

			await self._save(plan)
		return topic

	async def delete_topic(self, plan_id: str, topic_id: str):
		"""Remove a topic from a plan."""
		async with self._write_lock:
			plan = await self._load(plan_id)
			topic = plan.get_topic(topic_id)
			if not topic:
				raise TopicNotFoundError(topic_id)

			plan.topics.remove(topic)
			await self._save(plan)
		logger.info(f"Deleted topic {topic.id} from plan {plan.id}")

	# -- milestones --

	async def create_milestone(self, plan_id: str, data: MilestoneInput) -> Milestone:
		"""Add a milestone to a plan."""
		async with self._write_lock:
			plan = await self._load(plan_id)

			milestone = Milestone(id=new_id(), **data.model_dump())
			plan.milestones.append(milestone)
			await self._save(plan)

		logger.info(f"Created milestone {milestone.id} in plan {plan.id}")
		return milestone

	async def update_milestone(self, plan_id: str, milestone_id: str, patch: MilestonePatch) -> Milestone:
		"""Apply a partial update to a milestone."""
		async with self._write_lock:
			plan = await self._load(plan_id)
			milestone = plan.get_milestone(milestone_id)
			if not milestone:
				raise MilestoneNotFoundError(milestone_id)

			for key, value in patch.model_dump(exclude_unset=True).items():
				if value is not None:
					setattr(milestone, key, value)

			await self._save(plan)
		return milestone

	async def delete_milestone(self, plan_id: str, milestone_id: str) -> list[str]:
		"""
		Remove a milestone and unassign every topic that referenced it.

		Returns:
			IDs of the topics that were unassigned
		"""
		async with self._write_lock:
			plan = await self._load(plan_id)
			milestone = plan.get_milestone(milestone_id)
			if not milestone:
				raise MilestoneNotFoundError(milestone_id)

			unassigned = []
			for topic in plan.topics:
				if topic.milestone_id == milestone.id:
					topic.milestone_id = None
					unassigned.append(topic.id)

			plan.milestones.remove(milestone)
			await self._save(plan)

		logger.info(
			f"Deleted milestone {milestone.id} from plan {plan.id}, unassigned {len(unassigned)} topics"
		)
		return unassigned


# Global store instance
_store: Optional[PlanStore] = None


async def get_plan_store(db_path: str = "") -> PlanStore:
	"""Get or create the global plan store."""
	global _store
	if _store is None:
		if not db_path:
			from ..config import get_config
			db_path = str(get_config().db_path)
		_store = PlanStore(db_path)
		await _store.init()
	return _store
