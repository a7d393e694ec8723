"""docs-mcp test suite."""
