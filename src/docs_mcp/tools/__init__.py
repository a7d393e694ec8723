"""MCP tool registration."""

from mcp.server.fastmcp import FastMCP

from ..config import Settings
from .search import register_search_tools


def register_all_tools(mcp: FastMCP, settings: Settings) -> None:
	"""Register the server's tools. docs-mcp exposes a single search tool."""
	register_search_tools(mcp, settings)
