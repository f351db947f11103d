"""Plan management tools."""

import json
from datetime import date

from mcp.server.fastmcp import FastMCP

from ..config import Config
from ..core.deadlines import compute_deadlines
from ..core.progress import compute_progress, percent_complete
from ..core.scope import unassigned_topics
from ..core.suggestions import get_suggester
from ..errors import StudyTrackerError
from ..plans.store import get_plan_store
from ..service import LocalDataService
from ..session import PlanSession


def register_plan_tools(mcp: FastMCP, config: Config) -> None:
	"""Register plan management tools."""

	async def open_session(plan_id: str) -> PlanSession:
		store = await get_plan_store(str(config.db_path))
		session = PlanSession(LocalDataService(store, get_suggester(config)))
		await session.load(plan_id)
		return session

	@mcp.tool()
	async def list_plans(owner: str = "") -> str:
		"""
		List study plans, most recently edited first.

		Args:
			owner: Only plans of this user (empty = all plans)
		"""
		store = await get_plan_store(str(config.db_path))
		plans = await store.list_plans(owner or None)
		return json.dumps([p.model_dump(mode="json") for p in plans], indent=2)

	@mcp.tool()
	async def get_plan_overview(plan_id: str) -> str:
		"""
		Get a plan with its progress segments and upcoming/completed deadlines.

		Args:
			plan_id: The plan ID
		"""
		store = await get_plan_store(str(config.db_path))
		plan = await store.get_plan(plan_id)

		if not plan:
			return json.dumps({"error": f"Plan not found: {plan_id}"})

		deadlines = compute_deadlines(plan, date.today())
		return json.dumps({
			"plan": plan.model_dump(mode="json"),
			"progress": [s.to_dict() for s in compute_progress(plan.topics)],
			"percent_complete": percent_complete(plan.topics),
			"unassigned": [t.id for t in unassigned_topics(plan.topics, plan.milestones)],
			"upcoming": [i.to_dict() for i in deadlines.upcoming],
			"completed": [i.to_dict() for i in deadlines.completed],
			"markdown": plan.to_markdown(),
		}, indent=2)

	@mcp.tool()
	async def add_topic(
		plan_id: str,
		text: str,
		due_date: str,
		milestone_id: str = "",
		color: str = "",
	) -> str:
		"""
		Add a study topic to a plan.

		Args:
			plan_id: Plan ID
			text: Topic name
			due_date: Due date (YYYY-MM-DD)
			milestone_id: Optional milestone to file the topic under
			color: Optional hex color (ignored when a milestone is given)
		"""
		data = {"text": text, "date": due_date, "milestone_id": milestone_id or None}
		if color:
			data["color"] = color
		try:
			session = await open_session(plan_id)
			topic = await session.add_topic(data)
		except StudyTrackerError as e:
			return json.dumps({"error": str(e)})

		return json.dumps({"success": True, "topic": topic.model_dump(mode="json")}, indent=2)

	@mcp.tool()
	async def set_topic_completed(plan_id: str, topic_id: str, completed: bool = True) -> str:
		"""
		Mark a topic as completed or open.

		Args:
			plan_id: Plan ID
			topic_id: Topic ID
			completed: New completed flag
		"""
		try:
			session = await open_session(plan_id)
			topic = await session.edit_topic(topic_id, {"completed": completed})
		except StudyTrackerError as e:
			return json.dumps({"error": str(e)})

		return json.dumps({
			"success": True,
			"topic": topic.model_dump(mode="json"),
			"progress": [s.to_dict() for s in session.progress],
		}, indent=2)

	@mcp.tool()
	async def add_milestone(plan_id: str, text: str, due_date: str, color: str = "") -> str:
		"""
		Add a milestone to a plan.

		Args:
			plan_id: Plan ID
			text: Milestone name
			due_date: Due date (YYYY-MM-DD)
			color: Optional hex color
		"""
		data = {"text": text, "date": due_date}
		if color:
			data["color"] = color
		try:
			session = await open_session(plan_id)
			milestone = await session.add_milestone(data)
		except StudyTrackerError as e:
			return json.dumps({"error": str(e)})

		return json.dumps({"success": True, "milestone": milestone.model_dump(mode="json")}, indent=2)

	@mcp.tool()
	async def delete_milestone(plan_id: str, milestone_id: str) -> str:
		"""
		Delete a milestone. Its topics are kept and become unassigned.

		Args:
			plan_id: Plan ID
			milestone_id: Milestone ID
		"""
		try:
			session = await open_session(plan_id)
			await session.delete_milestone(milestone_id)
		except StudyTrackerError as e:
			return json.dumps({"error": str(e)})

		return json.dumps({
			"success": True,
			"unassigned": [t.id for t in session.unassigned],
		}, indent=2)

	@mcp.tool()
	async def suggest_topics(plan_id: str, milestone_id: str) -> str:
		"""
		Suggest new study topics for a milestone.

		Args:
			plan_id: Plan ID
			milestone_id: Milestone ID
		"""
		try:
			session = await open_session(plan_id)
			suggestions = await session.suggest_topics(milestone_id)
		except StudyTrackerError as e:
			return json.dumps({"error": str(e)})

		if session.suggestion_error:
			return json.dumps({"suggestions": [], "error": session.suggestion_error})
		return json.dumps({"suggestions": suggestions}, indent=2)
