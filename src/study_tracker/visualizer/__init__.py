"""Visualizer package - Rich terminal views for study plans."""

from .calendar import render_calendar
from .deadlines import render_deadlines
from .plan_progress import render_plan_list, render_plan_progress, render_plan_summary

__all__ = [
	"render_calendar",
	"render_deadlines",
	"render_plan_list",
	"render_plan_progress",
	"render_plan_summary",
]
