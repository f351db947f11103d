"""Tests for visualizer Rich views."""

from datetime import date, datetime, timedelta
from pathlib import Path

from rich.console import Console

from study_tracker.core.deadlines import compute_deadlines
from study_tracker.core.progress import NEUTRAL_COLOR, Segment
from study_tracker.plans.models import Milestone, Plan, Topic
from study_tracker.visualizer.calendar import render_calendar
from study_tracker.visualizer.deadlines import render_deadlines
from study_tracker.visualizer.plan_progress import render_plan_list, render_plan_progress, render_plan_summary
from study_tracker.visualizer.utils import format_due, format_timestamp, segment_bar, swatch

# -- utils tests --


def test_format_due():
	today = date(2024, 6, 10)
	assert format_due(date(2024, 6, 10), today) == "today"
	assert format_due(date(2024, 6, 11), today) == "tomorrow"
	assert format_due(date(2024, 6, 15), today) == "in 5d"
	assert format_due(date(2024, 6, 8), today) == "2d ago"


def test_format_timestamp_recent():
	ts = (datetime.now() - timedelta(minutes=5)).isoformat()
	assert format_timestamp(ts) == "5m ago"


def test_format_timestamp_invalid():
	assert format_timestamp("not-a-date") == "not-a-date"


def test_swatch():
	assert swatch("#ff0000") == "[#ff0000]●[/]"


def test_segment_bar_empty_progress():
	bar = segment_bar([Segment(NEUTRAL_COLOR, 100.0)], width=10)
	assert bar == "[dim]░░░░░░░░░░[/dim]"


def test_segment_bar_partial():
	bar = segment_bar([Segment("#aa0000", 50.0), Segment("#00aa00", 20.0)], width=10)
	assert bar == "[#aa0000]█████[/][#00aa00]██[/][dim]░░░[/dim]"


# -- helpers --

def _render(tmp_path: Path, fn, *args, **kwargs) -> str:
	console = Console(file=open(tmp_path / "out.txt", "w"), force_terminal=True, width=120)
	fn(*args, console=console, **kwargs)
	console.file.close()
	return (tmp_path / "out.txt").read_text()


def _make_plan() -> Plan:
	return Plan(
		id="plan-123",
		name="Finals",
		owner_id="ana",
		notes="Bring a calculator",
		milestones=[
			Milestone(id="m1", text="Midterm", date=date(2024, 6, 14), color="#3498db"),
			Milestone(id="m2", text="Final exam", date=date(2024, 7, 1)),
		],
		topics=[
			Topic(id="t1", text="Limits", date=date(2024, 6, 12), milestone_id="m1", color="#3498db", completed=True),
			Topic(id="t2", text="Derivatives", date=date(2024, 6, 13), milestone_id="m1", color="#3498db"),
			Topic(id="t3", text="Vectors", date=date(2024, 6, 11)),
		],
	)


# -- plan views --

def test_render_plan_progress(tmp_path: Path):
	output = _render(tmp_path, render_plan_progress, _make_plan())
	assert "Finals" in output
	assert "1/3 topics" in output
	assert "Midterm" in output
	assert "Derivatives" in output
	assert "Unassigned" in output
	assert "Vectors" in output
	assert "no topics" in output


def test_render_plan_summary(tmp_path: Path):
	output = _render(tmp_path, render_plan_summary, _make_plan())
	assert "plan-123" in output
	assert "2 milestones, 3 topics." in output
	assert "33.3%" in output
	assert "Bring a calculator" in output


def test_render_plan_list(tmp_path: Path):
	output = _render(tmp_path, render_plan_list, [_make_plan().summary()])
	assert "Study Plans" in output
	assert "plan-123" in output
	assert "1/3" in output


def test_render_plan_list_empty(tmp_path: Path):
	output = _render(tmp_path, render_plan_list, [])
	assert "No plans yet" in output


# -- deadlines and calendar --

def test_render_deadlines(tmp_path: Path):
	today = date(2024, 6, 10)
	deadlines = compute_deadlines(_make_plan(), today)
	output = _render(tmp_path, render_deadlines, deadlines, today=today)
	assert "Upcoming Deadlines" in output
	assert "Derivatives" in output
	assert "in 3d" in output
	assert "Completed Topics" in output
	assert "Limits" in output


def test_render_deadlines_empty(tmp_path: Path):
	plan = Plan(id="p", name="Empty")
	output = _render(tmp_path, render_deadlines, compute_deadlines(plan, date(2024, 6, 10)))
	assert "No upcoming deadlines" in output
	assert "No completed topics" in output


def test_render_calendar(tmp_path: Path):
	output = _render(tmp_path, render_calendar, _make_plan())
	assert "Calendar: Finals" in output
	assert "2024-06-11" in output
	assert "Final exam" in output


def test_render_calendar_empty(tmp_path: Path):
	output = _render(tmp_path, render_calendar, Plan(id="p", name="Empty"))
	assert "Nothing scheduled" in output


# -- user text containing markup --

def _bracket_plan() -> Plan:
	return Plan(
		id="p-br",
		name="Finals [v2]",
		owner_id="[ana]",
		notes="See [/notes] folder",
		milestones=[Milestone(id="m1", text="Week [bold] 3", date=date(2024, 6, 14))],
		topics=[
			Topic(id="t1", text="Regex [/a-z]+ classes", date=date(2024, 6, 12), milestone_id="m1"),
			Topic(id="t2", text="Sets [red]", date=date(2024, 6, 11), completed=True),
		],
	)


def test_bracketed_text_renders_literally(tmp_path: Path):
	plan = _bracket_plan()
	today = date(2024, 6, 10)

	tree = _render(tmp_path, render_plan_progress, plan)
	assert "Regex [/a-z]+ classes" in tree
	assert "Week [bold] 3" in tree
	assert "Finals [v2]" in tree

	summary = _render(tmp_path, render_plan_summary, plan)
	assert "[ana]" in summary
	assert "See [/notes] folder" in summary

	listing = _render(tmp_path, render_plan_list, [plan.summary()])
	assert "Finals [v2]" in listing

	deadlines = _render(tmp_path, render_deadlines, compute_deadlines(plan, today), today=today)
	assert "Regex [/a-z]+ classes" in deadlines
	assert "Sets [red]" in deadlines
	assert "Week [bold] 3" in deadlines

	calendar = _render(tmp_path, render_calendar, plan)
	assert "Calendar: Finals [v2]" in calendar
	assert "Regex [/a-z]+ classes" in calendar
