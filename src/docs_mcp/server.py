"""docs-mcp MCP server."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from mcp.server.fastmcp import FastMCP

from .config import Settings
from .provisioning import ContentOrchestrator
from .tools import register_all_tools

logger = logging.getLogger(__name__)

SERVER_NAME = "docs-mcp"


def create_server(settings: Settings, orchestrator: ContentOrchestrator) -> FastMCP:
	"""Build the FastMCP server.

	Content must already be provisioned (``orchestrator.prepare_for_server``).
	The lifespan runs the first git update check before requests are served
	and cancels the update timer on shutdown.
	"""

	@asynccontextmanager
	async def lifespan(server: FastMCP) -> AsyncIterator[None]:
		await orchestrator.start_updates()
		try:
			yield
		finally:
			orchestrator.stop_updates()
			logger.info("Docs MCP server stopped")

	mcp = FastMCP(SERVER_NAME, lifespan=lifespan)
	register_all_tools(mcp, settings)
	return mcp
