"""Tests for the REST API endpoints."""

from pathlib import Path
from unittest.mock import AsyncMock, patch

import aiosqlite
import pytest

from study_tracker.core.suggestions import Suggester
from study_tracker.errors import SuggestionServiceFailure

try:
	from starlette.testclient import TestClient

	from study_tracker.web.app import build_app

	HAS_WEB = True
except ImportError:
	HAS_WEB = False

pytestmark = pytest.mark.skipif(not HAS_WEB, reason="web extras not installed")


class FakeSuggester(Suggester):
	def __init__(self, result=None, error=None):
		self.result = result or []
		self.error = error

	async def suggest(self, milestone_text: str) -> list[str]:
		if self.error:
			raise self.error
		return self.result


@pytest.fixture
def client(tmp_path: Path):
	"""Test client over an empty plan database."""
	app = build_app(db_path=str(tmp_path / "plans.db"), suggester=FakeSuggester(["Limits", "Series"]))
	with TestClient(app) as c:
		yield c


@pytest.fixture
def plan(client) -> dict:
	resp = client.post("/api/plans", json={"name": "Finals", "userId": "ana"})
	assert resp.status_code == 201
	return resp.json()


def test_create_and_get_plan(client, plan):
	assert plan["name"] == "Finals"
	assert plan["userId"] == "ana"
	assert plan["topics"] == []

	resp = client.get(f"/api/plans/{plan['id']}")
	assert resp.status_code == 200
	assert resp.json()["id"] == plan["id"]


def test_create_plan_requires_name(client):
	resp = client.post("/api/plans", json={"userId": "ana"})
	assert resp.status_code == 400
	assert "name" in resp.json()["error"]


def test_invalid_json_body(client):
	resp = client.post("/api/plans", content=b"{not json", headers={"content-type": "application/json"})
	assert resp.status_code == 400


def test_list_plans_by_owner(client, plan):
	client.post("/api/plans", json={"name": "Bob's", "userId": "bob"})
	client.post("/api/plans", json={"name": "Orphan"})

	resp = client.get("/api/plans", params={"userId": "ana"})
	assert [p["id"] for p in resp.json()] == [plan["id"]]
	assert resp.json()[0]["topicCount"] == 0

	resp = client.get("/api/plans", params={"unowned": "1"})
	assert [p["name"] for p in resp.json()] == ["Orphan"]

	assert len(client.get("/api/plans").json()) == 3


def test_get_missing_plan(client):
	resp = client.get("/api/plans/nope")
	assert resp.status_code == 404
	assert resp.json() == {"error": "Plan not found: nope"}


def test_update_plan(client, plan):
	resp = client.put(f"/api/plans/{plan['id']}", json={"name": "Finals 2024", "notes": "Ch. 1-4"})
	assert resp.status_code == 200
	assert resp.json()["name"] == "Finals 2024"
	assert resp.json()["notes"] == "Ch. 1-4"
	assert resp.json()["userId"] == "ana"


def test_delete_plan(client, plan):
	resp = client.delete(f"/api/plans/{plan['id']}")
	assert resp.status_code == 204
	assert client.get(f"/api/plans/{plan['id']}").status_code == 404
	assert client.delete(f"/api/plans/{plan['id']}").status_code == 404


def test_topic_crud(client, plan):
	base = f"/api/plans/{plan['id']}/topics"

	resp = client.post(base, json={"text": "Limits", "date": "2024-06-15T00:00:00.000Z"})
	assert resp.status_code == 201
	topic = resp.json()
	assert topic["date"] == "2024-06-15"
	assert topic["completed"] is False
	assert topic["milestoneId"] is None

	resp = client.put(f"{base}/{topic['id']}", json={"completed": True})
	assert resp.status_code == 200
	assert resp.json()["completed"] is True
	assert resp.json()["text"] == "Limits"

	assert [t["id"] for t in client.get(base).json()] == [topic["id"]]

	assert client.delete(f"{base}/{topic['id']}").status_code == 204
	assert client.get(base).json() == []


def test_topic_validation(client, plan):
	resp = client.post(f"/api/plans/{plan['id']}/topics", json={"text": "", "date": "2024-06-15"})
	assert resp.status_code == 400

	resp = client.post(f"/api/plans/{plan['id']}/topics", json={"text": "Limits"})
	assert resp.status_code == 400


def test_topic_unknown_milestone(client, plan):
	resp = client.post(
		f"/api/plans/{plan['id']}/topics",
		json={"text": "Limits", "date": "2024-06-15", "milestoneId": "nope"},
	)
	assert resp.status_code == 404
	assert resp.json()["error"] == "Milestone not found: nope"


def test_update_missing_topic(client, plan):
	resp = client.put(f"/api/plans/{plan['id']}/topics/nope", json={"completed": True})
	assert resp.status_code == 404
	assert resp.json()["error"] == "Topic not found: nope"


def test_delete_milestone_unassigns_topics(client, plan):
	base = f"/api/plans/{plan['id']}"
	milestone = client.post(f"{base}/milestones", json={"text": "Midterm", "date": "2024-06-20"}).json()
	for text in ("Limits", "Series"):
		client.post(
			f"{base}/topics",
			json={"text": text, "date": "2024-06-15", "milestoneId": milestone["id"]},
		)

	resp = client.delete(f"{base}/milestones/{milestone['id']}")
	assert resp.status_code == 204

	fetched = client.get(base).json()
	assert fetched["milestones"] == []
	assert [t["milestoneId"] for t in fetched["topics"]] == [None, None]


def test_update_milestone(client, plan):
	base = f"/api/plans/{plan['id']}/milestones"
	milestone = client.post(base, json={"text": "Midterm", "date": "2024-06-20"}).json()
	assert milestone["color"] == "#9b59b6"
	assert "expanded" not in milestone

	resp = client.put(f"{base}/{milestone['id']}", json={"color": "#000000"})
	assert resp.status_code == 200
	assert resp.json()["color"] == "#000000"
	assert resp.json()["text"] == "Midterm"
	assert len(client.get(base).json()) == 1


def test_suggestions(client):
	resp = client.post("/api/suggestions", json={"milestone": "Midterm: Calculus"})
	assert resp.status_code == 200
	assert resp.json() == ["Limits", "Series"]


def test_suggestions_require_milestone(client):
	resp = client.post("/api/suggestions", json={"milestone": "  "})
	assert resp.status_code == 400


def test_suggestions_misconfigured(tmp_path: Path):
	error = SuggestionServiceFailure("API key is missing", misconfigured=True)
	app = build_app(db_path=str(tmp_path / "plans.db"), suggester=FakeSuggester(error=error))
	with TestClient(app) as c:
		resp = c.post("/api/suggestions", json={"milestone": "Midterm"})
	assert resp.status_code == 400
	assert resp.json()["error"] == "API key is missing"


def test_suggestions_upstream_failure(tmp_path: Path):
	app = build_app(
		db_path=str(tmp_path / "plans.db"),
		suggester=FakeSuggester(error=SuggestionServiceFailure("quota exceeded")),
	)
	with TestClient(app) as c:
		resp = c.post("/api/suggestions", json={"milestone": "Midterm"})
	assert resp.status_code == 502


def test_suggestions_not_configured(tmp_path: Path):
	app = build_app(db_path=str(tmp_path / "plans.db"), suggester=None)
	with TestClient(app) as c:
		resp = c.post("/api/suggestions", json={"milestone": "Midterm"})
	assert resp.status_code == 400


def test_session_token(client):
	token = client.get("/api/session").json()["sessionToken"]
	assert token
	assert client.get("/api/session").json()["sessionToken"] == token


def test_storage_error_is_503(client, plan):
	store = client.app.state.store
	with patch.object(store, "get_plan", AsyncMock(side_effect=aiosqlite.OperationalError("disk I/O error"))):
		resp = client.get(f"/api/plans/{plan['id']}")

	assert resp.status_code == 503
	assert resp.json() == {"error": "Plan store unavailable: disk I/O error"}
