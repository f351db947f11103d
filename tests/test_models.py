"""Tests for plan models and input validation."""

from datetime import date

import pytest

from study_tracker.errors import ValidationFailure
from study_tracker.plans.models import (
	DEFAULT_MILESTONE_COLOR,
	DEFAULT_TOPIC_COLOR,
	Milestone,
	Plan,
	PlanPatch,
	Topic,
	TopicInput,
	TopicPatch,
	normalize_id,
	parse_input,
)


def test_normalize_id():
	assert normalize_id(None) is None
	assert normalize_id("") is None
	assert normalize_id("  ") is None
	assert normalize_id(12) == "12"
	assert normalize_id(" abc ") == "abc"
	with pytest.raises(ValueError):
		normalize_id(True)


def test_topic_accepts_wire_format():
	topic = Topic.model_validate({
		"id": 5,
		"text": "Limits",
		"date": "2024-06-15T00:00:00.000Z",
		"milestoneId": 3,
		"completed": True,
	})
	assert topic.id == "5"
	assert topic.milestone_id == "3"
	assert topic.date == date(2024, 6, 15)
	assert topic.color == DEFAULT_TOPIC_COLOR


def test_topic_dump_by_alias():
	topic = Topic(id="t1", text="Limits", date=date(2024, 6, 15), milestone_id="m1")
	data = topic.model_dump(mode="json", by_alias=True)
	assert data["milestoneId"] == "m1"
	assert data["date"] == "2024-06-15"


def test_milestone_expanded_is_not_serialized():
	milestone = Milestone(id="m1", text="Midterm", date=date(2024, 6, 20), expanded=True)
	assert "expanded" not in milestone.model_dump()
	assert milestone.color == DEFAULT_MILESTONE_COLOR


def test_plan_lookups_normalize_ids():
	plan = Plan(
		id=1,
		name="Finals",
		topics=[Topic(id=10, text="Limits", date=date(2024, 6, 15))],
		milestones=[Milestone(id=20, text="Midterm", date=date(2024, 6, 20))],
	)
	assert plan.id == "1"
	assert plan.get_topic(10).text == "Limits"
	assert plan.get_milestone("20").text == "Midterm"
	assert plan.get_milestone(None) is None


def test_plan_summary_counts():
	plan = Plan(
		id="p1",
		name="Finals",
		owner_id="ana",
		topics=[
			Topic(id="1", text="A", date=date(2024, 6, 15), completed=True),
			Topic(id="2", text="B", date=date(2024, 6, 15)),
		],
		milestones=[Milestone(id="m1", text="Midterm", date=date(2024, 6, 20))],
	)
	summary = plan.summary()
	assert summary.topic_count == 2
	assert summary.milestone_count == 1
	assert summary.completed_count == 1
	assert summary.model_dump(by_alias=True)["userId"] == "ana"


def test_plan_to_markdown():
	plan = Plan(
		id="p1",
		name="Finals",
		notes="Bring a calculator",
		topics=[
			Topic(id="1", text="Limits", date=date(2024, 6, 15), milestone_id="m1", completed=True),
			Topic(id="2", text="Vectors", date=date(2024, 6, 16)),
		],
		milestones=[Milestone(id="m1", text="Midterm", date=date(2024, 6, 20))],
	)
	md = plan.to_markdown()

	assert md.startswith("# Finals")
	assert "## Midterm (2024-06-20)" in md
	assert "- [x] Limits (2024-06-15)" in md
	assert "## Unassigned" in md
	assert "- [ ] Vectors (2024-06-16)" in md
	assert "Bring a calculator" in md


def test_parse_input_rejects_blank_text():
	with pytest.raises(ValidationFailure, match="text"):
		parse_input(TopicInput, {"text": "   ", "date": "2024-06-15"})


def test_parse_input_rejects_bad_date():
	with pytest.raises(ValidationFailure, match="date"):
		parse_input(TopicInput, {"text": "Limits", "date": "someday"})


def test_parse_input_passes_models_through():
	patch = TopicPatch(completed=True)
	assert parse_input(TopicPatch, patch) is patch


def test_patch_tracks_set_fields():
	patch = parse_input(TopicPatch, {"milestoneId": None})
	assert patch.model_dump(exclude_unset=True) == {"milestone_id": None}


def test_plan_patch_rejects_blank_name():
	with pytest.raises(ValidationFailure):
		parse_input(PlanPatch, {"name": ""})
