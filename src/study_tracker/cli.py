"""CLI for study-tracker: serve, mcp, doctor, and plan views."""

import argparse
import asyncio
import platform
import sys
from datetime import date
from importlib.metadata import version as pkg_version
from pathlib import Path
from typing import Awaitable, Callable, TypeVar

from .config import Config, load_config
from .errors import StudyTrackerError

T = TypeVar("T")


def _make_service(args: argparse.Namespace, config: Config):
	"""Local SQLite service by default, the REST API with --remote."""
	if getattr(args, "remote", False):
		from .service import HttpDataService
		return HttpDataService(config.api_url, timeout=config.request_timeout)

	from .core.suggestions import get_suggester
	from .plans.store import PlanStore
	from .service import LocalDataService
	return LocalDataService(PlanStore(str(config.db_path)), get_suggester(config))


def _run(args: argparse.Namespace, action: Callable[..., Awaitable[T]]) -> T:
	"""Run ``action(app_state)`` against a fresh data service, exiting on errors."""
	from .session import AppState

	config = load_config()

	async def runner() -> T:
		service = _make_service(args, config)
		try:
			return await action(AppState(service, owner_id=args.owner))
		finally:
			await service.close()

	try:
		return asyncio.run(runner())
	except StudyTrackerError as e:
		print(f"Error: {e}")
		sys.exit(1)


def cmd_serve(args: argparse.Namespace) -> None:
	"""Run the REST API server."""
	from .logging_config import setup_logging
	from .web import run_api_server

	config = load_config()
	setup_logging(log_dir=config.log_dir)
	run_api_server(port=args.port or config.port, db_path=str(config.db_path), host=args.host)


def cmd_mcp(args: argparse.Namespace) -> None:
	"""Run the MCP server (stdio transport)."""
	from .logging_config import setup_logging
	from .server import config, mcp

	setup_logging(log_dir=config.log_dir)
	mcp.run()


def cmd_plans(args: argparse.Namespace) -> None:
	"""List plans for the current owner."""
	from .visualizer import render_plan_list

	async def action(app):
		plans = await app.go_to_menu()
		return plans, app.menu.error

	plans, error = _run(args, action)
	if error:
		print(f"Could not refresh plans: {error}")
	render_plan_list(plans)


def cmd_new(args: argparse.Namespace) -> None:
	"""Create a plan."""
	plan = _run(args, lambda app: app.create_and_open(args.name))
	print(f"Created plan '{plan.name}' ({plan.id})")


def cmd_show(args: argparse.Namespace) -> None:
	"""Show a plan as a tree or summary panel."""
	from .visualizer import render_plan_progress, render_plan_summary

	plan = _run(args, lambda app: app.open_plan(args.plan_id))
	if args.summary:
		render_plan_summary(plan)
	else:
		render_plan_progress(plan)


def cmd_deadlines(args: argparse.Namespace) -> None:
	"""Show upcoming and completed deadlines of a plan."""
	from .visualizer import render_deadlines

	today = date.fromisoformat(args.today) if args.today else date.today()

	async def action(app):
		await app.open_plan(args.plan_id)
		return app.session.deadlines(today)

	render_deadlines(_run(args, action), today=today)


def cmd_calendar(args: argparse.Namespace) -> None:
	"""Show a plan's topics and milestones by day."""
	from .visualizer import render_calendar

	plan = _run(args, lambda app: app.open_plan(args.plan_id))
	render_calendar(plan)


def cmd_done(args: argparse.Namespace) -> None:
	"""Toggle a topic's completed flag."""

	async def action(app):
		await app.open_plan(args.plan_id)
		return await app.session.toggle_topic(args.topic_id)

	topic = _run(args, action)
	state = "completed" if topic.completed else "open"
	print(f"Topic '{topic.text}' is now {state}")


def cmd_suggest(args: argparse.Namespace) -> None:
	"""Suggest topics for a milestone, optionally adding them."""
	from .core.suggestions import real_suggestions

	async def action(app):
		await app.open_plan(args.plan_id)
		suggestions = await app.session.suggest_topics(args.milestone_id)
		added = []
		if args.add and suggestions:
			added = await app.session.add_suggested_topics(args.milestone_id, suggestions)
		return suggestions, added, app.session.suggestion_error

	suggestions, added, error = _run(args, action)
	if error:
		print(f"Error: {error}")
		sys.exit(1)
	for name in suggestions:
		print(f"  - {name}")
	if added:
		print(f"Added {len(added)} topics")
	elif args.add and not real_suggestions(suggestions):
		print("Nothing to add")


def _check_config_toml(config_dir: Path) -> tuple[str, str | None]:
	"""Validate config.toml. Returns (status, issue_or_none)."""
	import tomllib

	toml_path = config_dir / "config.toml"
	if not toml_path.exists():
		return "not found (optional)", None
	try:
		with open(toml_path, "rb") as f:
			tomllib.load(f)
		return "valid", None
	except tomllib.TOMLDecodeError as e:
		msg = f"config.toml parse error: {e}"
		return f"INVALID ({e})", msg


def _check_optional_extras() -> list[tuple[str, str]]:
	"""Check optional extras installation status.

	Returns list of (extra_name, status_string) tuples.
	"""
	extras = {
		"web": ["starlette", "uvicorn"],
	}
	results = []
	for extra_name, packages in extras.items():
		installed = []
		for pkg in packages:
			try:
				ver = pkg_version(pkg)
				installed.append(f"{pkg} {ver}")
			except Exception:
				pass
		if installed:
			results.append((extra_name, ", ".join(installed)))
		else:
			results.append((extra_name, f"NOT INSTALLED (pip install study-tracker[{extra_name}])"))
	return results


def cmd_doctor(args: argparse.Namespace) -> None:
	"""Health check - verify installation and configuration."""
	print("study-tracker doctor")
	print(f"{'=' * 40}")

	config = load_config()
	issues: list[str] = []

	py_ver = f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}"
	print(f"  Python:       {py_ver}")
	print(f"  Platform:     {platform.system()} {platform.machine()}")
	print()

	print("  Core deps:")
	core_deps = ["pydantic", "aiosqlite", "aiohttp", "platformdirs", "rich", "mcp", "google-genai"]
	for dep in core_deps:
		try:
			dep_ver = pkg_version(dep)
			print(f"    {dep:22s} {dep_ver}")
		except Exception:
			print(f"    {dep:22s} NOT INSTALLED")
			issues.append(f"{dep} package not installed")
	print()

	print("  Optional extras:")
	for extra_name, status in _check_optional_extras():
		print(f"    {extra_name:22s} {status}")
	print()

	print("  Config:")
	toml_status, toml_issue = _check_config_toml(config.config_dir)
	print(f"    config.toml:         {toml_status}")
	if toml_issue:
		issues.append(toml_issue)
	print(f"    Plans DB:            {config.db_path}")
	print(f"    API URL:             {config.api_url}")
	if config.gemini_api_key:
		print("    Gemini API key:      set")
	else:
		print("    Gemini API key:      MISSING")
		issues.append("GEMINI_API_KEY not set (topic suggestions disabled)")
	print()

	if issues:
		print(f"  {len(issues)} issue(s) found:")
		for issue in issues:
			print(f"    - {issue}")
		sys.exit(1)
	else:
		print("  All checks passed.")


def build_parser() -> argparse.ArgumentParser:
	parser = argparse.ArgumentParser(
		prog="study-tracker",
		description="Study plan tracker: milestones, topics, progress and deadlines",
	)
	parser.add_argument("--owner", type=str, default=None, help="User whose plans to work on")
	parser.add_argument("--remote", action="store_true", help="Talk to the REST API instead of the local DB")
	subparsers = parser.add_subparsers(dest="command")

	# serve
	serve_parser = subparsers.add_parser("serve", help="Run the REST API server")
	serve_parser.add_argument("--port", type=int, default=None, help="Server port (default: 3000)")
	serve_parser.add_argument("--host", type=str, default="127.0.0.1", help="Bind address")
	serve_parser.set_defaults(func=cmd_serve)

	# mcp
	mcp_parser = subparsers.add_parser("mcp", help="Run MCP server (stdio)")
	mcp_parser.set_defaults(func=cmd_mcp)

	# plans
	plans_parser = subparsers.add_parser("plans", help="List plans")
	plans_parser.set_defaults(func=cmd_plans)

	# new
	new_parser = subparsers.add_parser("new", help="Create a plan")
	new_parser.add_argument("name", help="Plan name")
	new_parser.set_defaults(func=cmd_new)

	# show
	show_parser = subparsers.add_parser("show", help="Show plan progress")
	show_parser.add_argument("plan_id", help="Plan ID")
	show_parser.add_argument("--summary", action="store_true", help="Show summary panel instead of tree")
	show_parser.set_defaults(func=cmd_show)

	# deadlines
	deadlines_parser = subparsers.add_parser("deadlines", help="Upcoming and completed deadlines")
	deadlines_parser.add_argument("plan_id", help="Plan ID")
	deadlines_parser.add_argument("--today", type=str, default=None, help="Reference date (YYYY-MM-DD)")
	deadlines_parser.set_defaults(func=cmd_deadlines)

	# calendar
	calendar_parser = subparsers.add_parser("calendar", help="Topics and milestones by day")
	calendar_parser.add_argument("plan_id", help="Plan ID")
	calendar_parser.set_defaults(func=cmd_calendar)

	# done
	done_parser = subparsers.add_parser("done", help="Toggle a topic's completed flag")
	done_parser.add_argument("plan_id", help="Plan ID")
	done_parser.add_argument("topic_id", help="Topic ID")
	done_parser.set_defaults(func=cmd_done)

	# suggest
	suggest_parser = subparsers.add_parser("suggest", help="Suggest topics for a milestone")
	suggest_parser.add_argument("plan_id", help="Plan ID")
	suggest_parser.add_argument("milestone_id", help="Milestone ID")
	suggest_parser.add_argument("--add", action="store_true", help="Add all suggestions as topics")
	suggest_parser.set_defaults(func=cmd_suggest)

	# doctor
	doctor_parser = subparsers.add_parser("doctor", help="Health check")
	doctor_parser.set_defaults(func=cmd_doctor)

	return parser


def main() -> None:
	"""CLI entry point."""
	parser = build_parser()
	args = parser.parse_args()

	if not args.command:
		parser.print_help()
		sys.exit(1)

	args.func(args)
