"""
Data services - the boundary between plan sessions and plan storage.

Two implementations share one interface:
- LocalDataService talks to a PlanStore in-process
- HttpDataService talks to the REST API over HTTP (aiohttp)

Both raise the errors from ``study_tracker.errors`` so callers never see
transport-specific exceptions.
"""

import asyncio
import logging
from typing import Any, Awaitable, Optional, TypeVar

import aiohttp
import aiosqlite

from .errors import (
	MilestoneNotFoundError,
	NotFound,
	PlanNotFoundError,
	SuggestionServiceFailure,
	TopicNotFoundError,
	TransportFailure,
	ValidationFailure,
)
from .core.suggestions import Suggester
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
)
from .plans.store import PlanStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


class DataService:
	"""Abstract data service for plans, topics, milestones and suggestions."""

	async def list_plans(self, owner_id: Optional[str] = None) -> list[PlanSummary]:
		raise NotImplementedError

	async def list_unowned_plans(self) -> list[PlanSummary]:
		raise NotImplementedError

	async def get_plan(self, plan_id: str) -> Plan:
		raise NotImplementedError

	async def create_plan(self, name: str, owner_id: Optional[str] = None) -> Plan:
		raise NotImplementedError

	async def update_plan(self, plan_id: str, patch: PlanPatch) -> Plan:
		raise NotImplementedError

	async def delete_plan(self, plan_id: str) -> None:
		raise NotImplementedError

	async def create_topic(self, plan_id: str, topic: TopicInput) -> Topic:
		raise NotImplementedError

	async def update_topic(self, plan_id: str, topic_id: str, patch: TopicPatch) -> Topic:
		raise NotImplementedError

	async def delete_topic(self, plan_id: str, topic_id: str) -> None:
		raise NotImplementedError

	async def create_milestone(self, plan_id: str, milestone: MilestoneInput) -> Milestone:
		raise NotImplementedError

	async def update_milestone(self, plan_id: str, milestone_id: str, patch: MilestonePatch) -> Milestone:
		raise NotImplementedError

	async def delete_milestone(self, plan_id: str, milestone_id: str) -> None:
		raise NotImplementedError

	async def suggest_topics(self, milestone_text: str) -> list[str]:
		raise NotImplementedError

	async def close(self) -> None:
		pass


class LocalDataService(DataService):
	"""
	In-process data service over a PlanStore.

	Usage:
		store = PlanStore(str(config.db_path))
		service = LocalDataService(store, suggester=get_suggester(config))
		plan = await service.get_plan(plan_id)
	"""

	def __init__(self, store: PlanStore, suggester: Optional[Suggester] = None):
		self.store = store
		self.suggester = suggester

	async def _guard(self, call: Awaitable[T]) -> T:
		try:
			return await call
		except aiosqlite.Error as e:
			logger.error(f"Plan store error: {e}")
			raise TransportFailure(f"Plan store unavailable: {e}") from e

	async def list_plans(self, owner_id: Optional[str] = None) -> list[PlanSummary]:
		return await self._guard(self.store.list_plans(owner_id))

	async def list_unowned_plans(self) -> list[PlanSummary]:
		return await self._guard(self.store.list_plans(unowned=True))

	async def get_plan(self, plan_id: str) -> Plan:
		plan = await self._guard(self.store.get_plan(plan_id))
		if not plan:
			raise PlanNotFoundError(plan_id)
		return plan

	async def create_plan(self, name: str, owner_id: Optional[str] = None) -> Plan:
		return await self._guard(self.store.create_plan(name, owner_id))

	async def update_plan(self, plan_id: str, patch: PlanPatch) -> Plan:
		return await self._guard(self.store.update_plan(plan_id, patch))

	async def delete_plan(self, plan_id: str) -> None:
		await self._guard(self.store.delete_plan(plan_id))

	async def create_topic(self, plan_id: str, topic: TopicInput) -> Topic:
		return await self._guard(self.store.create_topic(plan_id, topic))

	async def update_topic(self, plan_id: str, topic_id: str, patch: TopicPatch) -> Topic:
		return await self._guard(self.store.update_topic(plan_id, topic_id, patch))

	async def delete_topic(self, plan_id: str, topic_id: str) -> None:
		await self._guard(self.store.delete_topic(plan_id, topic_id))

	async def create_milestone(self, plan_id: str, milestone: MilestoneInput) -> Milestone:
		return await self._guard(self.store.create_milestone(plan_id, milestone))

	async def update_milestone(self, plan_id: str, milestone_id: str, patch: MilestonePatch) -> Milestone:
		return await self._guard(self.store.update_milestone(plan_id, milestone_id, patch))

	async def delete_milestone(self, plan_id: str, milestone_id: str) -> None:
		await self._guard(self.store.delete_milestone(plan_id, milestone_id))

	async def suggest_topics(self, milestone_text: str) -> list[str]:
		if self.suggester is None:
			raise SuggestionServiceFailure("No suggestion service configured")
		return await self.suggester.suggest(milestone_text)

	async def close(self) -> None:
		await self.store.close()


def _not_found(message: str, fallback_id: str) -> NotFound:
	# Bodies look like "Topic not found: <id>"
	kinds = {
		"Topic": TopicNotFoundError,
		"Milestone": MilestoneNotFoundError,
	}
	kind, _, item_id = message.partition(" not found: ")
	error_cls = kinds.get(kind, PlanNotFoundError)
	return error_cls(item_id or fallback_id)


class HttpDataService(DataService):
	"""
	Data service backed by the study-tracker REST API.

	Usage:
		service = HttpDataService("http://localhost:3000", timeout=10)
		plans = await service.list_plans("ana")
		await service.close()
	"""

	def __init__(self, base_url: str, timeout: float = 10.0, session: Optional[aiohttp.ClientSession] = None):
		self.base_url = base_url.rstrip("/")
		self.timeout = timeout
		self._session = session

	def _get_session(self) -> aiohttp.ClientSession:
		if self._session is None or self._session.closed:
			self._session = aiohttp.ClientSession(
				timeout=aiohttp.ClientTimeout(total=self.timeout),
				headers={"Cache-Control": "no-cache"},
			)
		return self._session

	async def close(self) -> None:
		if self._session and not self._session.closed:
			await self._session.close()

	async def _request(
		self,
		method: str,
		path: str,
		json: Any = None,
		params: Optional[dict] = None,
		item_id: str = "",
	) -> Any:
		url = f"{self.base_url}{path}"
		try:
			async with self._get_session().request(method, url, json=json, params=params) as response:
				if response.status == 204:
					return None
				if response.status < 400:
					return await response.json()

				try:
					body = await response.json()
					message = body.get("error", "") if isinstance(body, dict) else str(body)
				except (aiohttp.ContentTypeError, ValueError):
					message = await response.text()
		except (aiohttp.ClientError, asyncio.TimeoutError) as e:
			logger.error(f"{method} {url} failed: {e}")
			raise TransportFailure(f"Could not reach {self.base_url}: {e}") from e

		if response.status == 404:
			raise _not_found(message, item_id)
		if response.status in (400, 422):
			raise ValidationFailure(message or f"{method} {path} rejected")
		logger.error(f"{method} {url} returned {response.status}: {message}")
		raise TransportFailure(f"{method} {path} failed with {response.status}: {message}")

	@staticmethod
	def _body(model, partial: bool = False) -> dict:
		return model.model_dump(mode="json", by_alias=True, exclude_unset=partial)

	async def list_plans(self, owner_id: Optional[str] = None) -> list[PlanSummary]:
		params = {"userId": owner_id} if owner_id is not None else None
		data = await self._request("GET", "/api/plans", params=params)
		return [PlanSummary.model_validate(p) for p in data]

	async def list_unowned_plans(self) -> list[PlanSummary]:
		data = await self._request("GET", "/api/plans", params={"unowned": "1"})
		return [PlanSummary.model_validate(p) for p in data]

	async def get_plan(self, plan_id: str) -> Plan:
		data = await self._request("GET", f"/api/plans/{plan_id}", item_id=plan_id)
		return Plan.model_validate(data)

	async def create_plan(self, name: str, owner_id: Optional[str] = None) -> Plan:
		data = await self._request("POST", "/api/plans", json={"name": name, "userId": owner_id})
		return Plan.model_validate(data)

	async def update_plan(self, plan_id: str, patch: PlanPatch) -> Plan:
		data = await self._request("PUT", f"/api/plans/{plan_id}", json=self._body(patch, partial=True), item_id=plan_id)
		return Plan.model_validate(data)

	async def delete_plan(self, plan_id: str) -> None:
		await self._request("DELETE", f"/api/plans/{plan_id}", item_id=plan_id)

	async def create_topic(self, plan_id: str, topic: TopicInput) -> Topic:
		data = await self._request(
			"POST", f"/api/plans/{plan_id}/topics", json=self._body(topic), item_id=plan_id
		)
		return Topic.model_validate(data)

	async def update_topic(self, plan_id: str, topic_id: str, patch: TopicPatch) -> Topic:
		data = await self._request(
			"PUT", f"/api/plans/{plan_id}/topics/{topic_id}", json=self._body(patch, partial=True), item_id=topic_id
		)
		return Topic.model_validate(data)

	async def delete_topic(self, plan_id: str, topic_id: str) -> None:
		await self._request("DELETE", f"/api/plans/{plan_id}/topics/{topic_id}", item_id=topic_id)

	async def create_milestone(self, plan_id: str, milestone: MilestoneInput) -> Milestone:
		data = await self._request(
			"POST", f"/api/plans/{plan_id}/milestones", json=self._body(milestone), item_id=plan_id
		)
		return Milestone.model_validate(data)

	async def update_milestone(self, plan_id: str, milestone_id: str, patch: MilestonePatch) -> Milestone:
		data = await self._request(
			"PUT",
			f"/api/plans/{plan_id}/milestones/{milestone_id}",
			json=self._body(patch, partial=True),
			item_id=milestone_id,
		)
		return Milestone.model_validate(data)

	async def delete_milestone(self, plan_id: str, milestone_id: str) -> None:
		await self._request(
			"DELETE", f"/api/plans/{plan_id}/milestones/{milestone_id}", item_id=milestone_id
		)

	async def suggest_topics(self, milestone_text: str) -> list[str]:
		try:
			return await self._request("POST", "/api/suggestions", json={"milestone": milestone_text})
		except ValidationFailure as e:
			raise SuggestionServiceFailure(str(e), misconfigured=True) from e
		except TransportFailure as e:
			raise SuggestionServiceFailure(str(e)) from e
