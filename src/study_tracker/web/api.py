"""JSON API endpoints for plans, topics, milestones and suggestions."""

from __future__ import annotations

import json
import logging
from typing import Any

import aiosqlite
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from ..core.suggestions import Suggester
from ..errors import NotFound, PlanNotFoundError, SuggestionServiceFailure, TransportFailure, ValidationFailure
from ..plans.models import (
	MilestoneInput,
	MilestonePatch,
	PlanPatch,
	TopicInput,
	TopicPatch,
	parse_input,
)
from ..plans.store import PlanStore

logger = logging.getLogger(__name__)


def get_store(request: Request) -> PlanStore:
	"""Get the PlanStore from app state."""
	return request.app.state.store


def get_suggester(request: Request) -> Suggester | None:
	return request.app.state.suggester


def _dump(model) -> dict:
	return model.model_dump(mode="json", by_alias=True)


async def _read_json(request: Request) -> dict:
	try:
		body = await request.json()
	except (json.JSONDecodeError, UnicodeDecodeError):
		raise ValidationFailure("Request body must be valid JSON")
	if not isinstance(body, dict):
		raise ValidationFailure("Request body must be a JSON object")
	return body


# -- error handlers --

async def not_found_handler(request: Request, exc: Exception) -> JSONResponse:
	return JSONResponse({"error": str(exc)}, status_code=404)


async def validation_handler(request: Request, exc: Exception) -> JSONResponse:
	return JSONResponse({"error": str(exc)}, status_code=400)


async def transport_handler(request: Request, exc: Exception) -> JSONResponse:
	logger.error(f"{request.method} {request.url.path} failed: {exc}")
	return JSONResponse({"error": str(exc)}, status_code=503)


async def storage_handler(request: Request, exc: Exception) -> JSONResponse:
	logger.error(f"Plan store error on {request.method} {request.url.path}: {exc}")
	return JSONResponse({"error": f"Plan store unavailable: {exc}"}, status_code=503)


# -- plans --

async def api_list_plans(request: Request) -> JSONResponse:
	"""Plan summaries, optionally only those of one owner or only unowned ones."""
	store = get_store(request)
	owner_id = request.query_params.get("userId")
	unowned = request.query_params.get("unowned") in ("1", "true")
	plans = await store.list_plans(owner_id=owner_id, unowned=unowned)
	return JSONResponse([_dump(p) for p in plans])


async def api_create_plan(request: Request) -> JSONResponse:
	body = await _read_json(request)
	patch = parse_input(PlanPatch, {"name": body.get("name"), "userId": body.get("userId")})
	if patch.name is None:
		raise ValidationFailure("Plan name is required")
	plan = await get_store(request).create_plan(patch.name, patch.owner_id)
	return JSONResponse(_dump(plan), status_code=201)


async def api_get_plan(request: Request) -> JSONResponse:
	plan = await _require_plan(request)
	return JSONResponse(_dump(plan))


async def api_update_plan(request: Request) -> JSONResponse:
	patch = parse_input(PlanPatch, await _read_json(request))
	plan = await get_store(request).update_plan(request.path_params["plan_id"], patch)
	return JSONResponse(_dump(plan))


async def api_delete_plan(request: Request) -> Response:
	await get_store(request).delete_plan(request.path_params["plan_id"])
	return Response(status_code=204)


# -- topics --

async def api_list_topics(request: Request) -> JSONResponse:
	plan = await _require_plan(request)
	return JSONResponse([_dump(t) for t in plan.topics])


async def api_create_topic(request: Request) -> JSONResponse:
	data = parse_input(TopicInput, await _read_json(request))
	topic = await get_store(request).create_topic(request.path_params["plan_id"], data)
	return JSONResponse(_dump(topic), status_code=201)


async def api_update_topic(request: Request) -> JSONResponse:
	patch = parse_input(TopicPatch, await _read_json(request))
	topic = await get_store(request).update_topic(
		request.path_params["plan_id"], request.path_params["topic_id"], patch
	)
	return JSONResponse(_dump(topic))


async def api_delete_topic(request: Request) -> Response:
	await get_store(request).delete_topic(request.path_params["plan_id"], request.path_params["topic_id"])
	return Response(status_code=204)


# -- milestones --

async def api_list_milestones(request: Request) -> JSONResponse:
	plan = await _require_plan(request)
	return JSONResponse([_dump(m) for m in plan.milestones])


async def api_create_milestone(request: Request) -> JSONResponse:
	data = parse_input(MilestoneInput, await _read_json(request))
	milestone = await get_store(request).create_milestone(request.path_params["plan_id"], data)
	return JSONResponse(_dump(milestone), status_code=201)


async def api_update_milestone(request: Request) -> JSONResponse:
	patch = parse_input(MilestonePatch, await _read_json(request))
	milestone = await get_store(request).update_milestone(
		request.path_params["plan_id"], request.path_params["milestone_id"], patch
	)
	return JSONResponse(_dump(milestone))


async def api_delete_milestone(request: Request) -> Response:
	"""Delete a milestone; topics that referenced it become unassigned."""
	await get_store(request).delete_milestone(
		request.path_params["plan_id"], request.path_params["milestone_id"]
	)
	return Response(status_code=204)


# -- suggestions & session --

async def api_suggestions(request: Request) -> JSONResponse:
	"""Topic names generated for a milestone's text."""
	body = await _read_json(request)
	milestone = str(body.get("milestone") or "").strip()
	if not milestone:
		raise ValidationFailure("milestone is required")

	suggester = get_suggester(request)
	if suggester is None:
		return JSONResponse({"error": "Suggestion service is not configured"}, status_code=400)

	try:
		suggestions: list[Any] = await suggester.suggest(milestone)
	except SuggestionServiceFailure as e:
		logger.error(f"Error fetching suggestions: {e}")
		status = 400 if e.misconfigured else 502
		return JSONResponse({"error": str(e)}, status_code=status)
	return JSONResponse(suggestions)


async def api_session(request: Request) -> JSONResponse:
	"""Token identifying this server instance; changes on every restart."""
	return JSONResponse({"sessionToken": request.app.state.session_token})


async def _require_plan(request: Request):
	plan_id = request.path_params["plan_id"]
	plan = await get_store(request).get_plan(plan_id)
	if not plan:
		raise PlanNotFoundError(plan_id)
	return plan


EXCEPTION_HANDLERS = {
	NotFound: not_found_handler,
	ValidationFailure: validation_handler,
	TransportFailure: transport_handler,
	aiosqlite.Error: storage_handler,
}
