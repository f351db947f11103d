"""MCP tool registration."""

from mcp.server.fastmcp import FastMCP

from ..config import Config
from .plans import register_plan_tools


def register_all_tools(mcp: FastMCP, config: Config) -> None:
	"""Register all MCP tools."""
	register_plan_tools(mcp, config)
