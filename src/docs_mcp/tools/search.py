"""Documentation search tool."""

import logging

from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ToolError

from .. import search as search_engine
from ..config import Settings
from ..errors import SearchError

logger = logging.getLogger(__name__)


def register_search_tools(mcp: FastMCP, settings: Settings) -> None:
	"""Register the search tool under the configured name and description."""

	@mcp.tool(name=settings.tool_name, description=settings.tool_description)
	async def search_docs(query: str, page: int = 1) -> str:
		"""
		Search the documentation in the working directory.

		Args:
			query: Elasticsearch-style query string. Focus on keywords
				(e.g. "install AND guide", "configure OR setup", "api NOT internal").
			page: Optional page number for pagination of results. Default is 1.
		"""
		logger.info("Received request for tool: %s (query=%r, page=%s)", settings.tool_name, query, page)
		if not isinstance(query, str) or not query.strip():
			raise ToolError("Query is required in arguments")

		try:
			return await search_engine.search_docs(settings.working_dir, query)
		except SearchError as e:
			logger.error("Error executing %s: %s", settings.tool_name, e)
			raise ToolError(str(e)) from e
