"""Tests for the plan menu and application state."""

from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from study_tracker.core.progress import NEUTRAL_COLOR, Segment
from study_tracker.errors import PlanNotFoundError, TransportFailure, ValidationFailure
from study_tracker.plans.models import TopicInput
from study_tracker.plans.store import PlanStore
from study_tracker.service import LocalDataService
from study_tracker.session import AppState, PlanMenu, SessionState


@pytest.fixture
async def service(tmp_path: Path):
	svc = LocalDataService(PlanStore(str(tmp_path / "plans.db")))
	yield svc
	await svc.close()


class TestPlanMenu:
	"""Listing, creating and expanding plans."""

	@pytest.mark.asyncio
	async def test_refresh_lists_owner_plans(self, service):
		await service.create_plan("Ana's plan", owner_id="ana")
		await service.create_plan("Bob's plan", owner_id="bob")

		menu = PlanMenu(service)
		plans = await menu.refresh("ana")

		assert [p.name for p in plans] == ["Ana's plan"]
		assert menu.error is None

	@pytest.mark.asyncio
	async def test_refresh_claims_unowned_plans(self, service):
		orphan = await service.create_plan("Old plan")

		menu = PlanMenu(service)
		plans = await menu.refresh("ana")

		assert [p.id for p in plans] == [orphan.id]
		assert (await service.get_plan(orphan.id)).owner_id == "ana"
		assert await service.list_unowned_plans() == []

	@pytest.mark.asyncio
	async def test_claim_failure_does_not_block_listing(self, service):
		await service.create_plan("Old plan")
		mine = await service.create_plan("Mine", owner_id="ana")

		menu = PlanMenu(service)
		with patch.object(service, "update_plan", AsyncMock(side_effect=PlanNotFoundError("x"))):
			plans = await menu.refresh("ana")

		assert [p.id for p in plans] == [mine.id]

	@pytest.mark.asyncio
	async def test_refresh_failure_keeps_last_list(self, service):
		await service.create_plan("Finals", owner_id="ana")
		menu = PlanMenu(service)
		await menu.refresh("ana")

		with patch.object(service, "list_plans", AsyncMock(side_effect=TransportFailure("offline"))):
			plans = await menu.refresh("ana")

		assert [p.name for p in plans] == ["Finals"]
		assert menu.error == "offline"

	@pytest.mark.asyncio
	async def test_create_plan(self, service):
		menu = PlanMenu(service)
		plan = await menu.create_plan("  Finals  ", owner_id="ana")

		assert plan.name == "Finals"
		assert [p.id for p in menu.plans] == [plan.id]

	@pytest.mark.asyncio
	async def test_create_plan_requires_name(self, service):
		menu = PlanMenu(service)
		with pytest.raises(ValidationFailure):
			await menu.create_plan("   ", owner_id="ana")
		assert await service.list_plans() == []

	@pytest.mark.asyncio
	async def test_delete_plan_collapses_details(self, service):
		plan = await service.create_plan("Finals", owner_id="ana")
		menu = PlanMenu(service)
		await menu.toggle_details(plan.id)

		await menu.delete_plan(plan.id, owner_id="ana")

		assert menu.plans == []
		assert menu.expanded_plan_id is None
		assert menu.details is None

	@pytest.mark.asyncio
	async def test_toggle_details(self, service):
		plan = await service.create_plan("Finals", owner_id="ana")
		await service.create_topic(plan.id, TopicInput(text="Limits", date="2024-06-15", completed=True))
		await service.create_topic(plan.id, TopicInput(text="Series", date="2024-06-16"))

		menu = PlanMenu(service)
		details = await menu.toggle_details(plan.id)

		assert details.summary == "0 milestones, 2 topics."
		assert details.segments == [Segment("#f1c40f", 50.0)]
		assert menu.expanded_plan_id == plan.id

		assert await menu.toggle_details(plan.id) is None
		assert menu.expanded_plan_id is None

	@pytest.mark.asyncio
	async def test_toggle_details_of_empty_plan(self, service):
		plan = await service.create_plan("Empty")
		details = await PlanMenu(service).toggle_details(plan.id)
		assert details.segments == [Segment(NEUTRAL_COLOR, 100.0)]

	@pytest.mark.asyncio
	async def test_toggle_details_missing_plan(self, service):
		menu = PlanMenu(service)
		assert await menu.toggle_details("nope") is None
		assert "nope" in menu.error


class TestAppState:
	"""Moving between the menu and an open plan."""

	@pytest.mark.asyncio
	async def test_create_and_open(self, service):
		app = AppState(service, owner_id="ana")

		plan = await app.create_and_open("Finals")

		assert app.session.plan.id == plan.id
		assert app.session.state == SessionState.LOADED
		assert [p.id for p in app.menu.plans] == [plan.id]

	@pytest.mark.asyncio
	async def test_go_to_menu_closes_plan(self, service):
		app = AppState(service, owner_id="ana")
		plan = await app.create_and_open("Finals")
		await app.session.add_topic({"text": "Limits", "date": "2024-06-15"})

		plans = await app.go_to_menu()

		assert app.session.plan is None
		assert app.session.state == SessionState.UNLOADED
		assert plans[0].id == plan.id
		assert plans[0].topic_count == 1

	@pytest.mark.asyncio
	async def test_open_missing_plan(self, service):
		app = AppState(service, owner_id="ana")
		with pytest.raises(PlanNotFoundError):
			await app.open_plan("nope")
		assert app.session.state == SessionState.LOAD_FAILED
