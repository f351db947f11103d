"""Starlette app with route assembly."""

from __future__ import annotations

import logging
import secrets
import time
from contextlib import asynccontextmanager

from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.routing import Route

from ..core.suggestions import Suggester, get_suggester
from ..plans.store import PlanStore
from .api import (
	EXCEPTION_HANDLERS,
	api_create_milestone,
	api_create_plan,
	api_create_topic,
	api_delete_milestone,
	api_delete_plan,
	api_delete_topic,
	api_get_plan,
	api_list_milestones,
	api_list_plans,
	api_list_topics,
	api_session,
	api_suggestions,
	api_update_milestone,
	api_update_plan,
	api_update_topic,
)

logger = logging.getLogger(__name__)

_DEFAULT = object()


def build_app(db_path: str = "", suggester: Suggester | None | object = _DEFAULT) -> Starlette:
	"""Build and return the Starlette ASGI app."""
	if not db_path:
		from ..config import get_config
		db_path = str(get_config().db_path)
	if suggester is _DEFAULT:
		suggester = get_suggester()

	store = PlanStore(db_path)

	@asynccontextmanager
	async def lifespan(app: Starlette):
		await store.init()
		try:
			yield
		finally:
			await store.close()

	routes = [
		Route("/api/plans", api_list_plans, methods=["GET"]),
		Route("/api/plans", api_create_plan, methods=["POST"]),
		Route("/api/plans/{plan_id}", api_get_plan, methods=["GET"]),
		Route("/api/plans/{plan_id}", api_update_plan, methods=["PUT"]),
		Route("/api/plans/{plan_id}", api_delete_plan, methods=["DELETE"]),
		Route("/api/plans/{plan_id}/topics", api_list_topics, methods=["GET"]),
		Route("/api/plans/{plan_id}/topics", api_create_topic, methods=["POST"]),
		Route("/api/plans/{plan_id}/topics/{topic_id}", api_update_topic, methods=["PUT"]),
		Route("/api/plans/{plan_id}/topics/{topic_id}", api_delete_topic, methods=["DELETE"]),
		Route("/api/plans/{plan_id}/milestones", api_list_milestones, methods=["GET"]),
		Route("/api/plans/{plan_id}/milestones", api_create_milestone, methods=["POST"]),
		Route("/api/plans/{plan_id}/milestones/{milestone_id}", api_update_milestone, methods=["PUT"]),
		Route("/api/plans/{plan_id}/milestones/{milestone_id}", api_delete_milestone, methods=["DELETE"]),
		Route("/api/suggestions", api_suggestions, methods=["POST"]),
		Route("/api/session", api_session, methods=["GET"]),
	]

	app = Starlette(
		routes=routes,
		middleware=[Middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])],
		exception_handlers=EXCEPTION_HANDLERS,
		lifespan=lifespan,
	)
	app.state.store = store
	app.state.suggester = suggester
	app.state.session_token = f"{int(time.time() * 1000)}{secrets.token_hex(5)}"
	logger.info(f"Session token: {app.state.session_token}")
	return app
