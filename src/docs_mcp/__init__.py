"""docs-mcp: documentation search over MCP with managed, self-refreshing content."""

from importlib.metadata import PackageNotFoundError, version

try:
	__version__ = version("docs-mcp")
except PackageNotFoundError:
	__version__ = "0.0.0"
