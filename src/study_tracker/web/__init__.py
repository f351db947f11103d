"""REST API for study-tracker plans."""

from __future__ import annotations


def create_app(db_path: str = "") -> object:
	"""Create the Starlette ASGI application."""
	from .app import build_app

	return build_app(db_path=db_path)


def run_api_server(port: int = 3000, db_path: str = "", host: str = "127.0.0.1") -> None:
	"""Run the REST API server."""
	try:
		import uvicorn
	except ImportError:
		raise SystemExit(
			"Web extras not installed. Install with: pip install -e '.[web]'"
		)

	app = create_app(db_path=db_path)

	print(f"Server running on http://localhost:{port}")
	print("Press Ctrl+C to stop.")
	uvicorn.run(app, host=host, port=port, log_level="warning")
