"""Tests for the probe search adapter."""

from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from docs_mcp.errors import SearchError
from docs_mcp.search import probe_binary, search_docs


@pytest.mark.asyncio
async def test_nonzero_exit_raises(tmp_path: Path):
	with patch("docs_mcp.search._run_probe", new=AsyncMock(return_value=("", "bad query", 2))):
		with pytest.raises(SearchError, match="bad query"):
			await search_docs(tmp_path, "((")


@pytest.mark.asyncio
async def test_custom_max_tokens(tmp_path: Path):
	with patch("docs_mcp.search._run_probe", new=AsyncMock(return_value=("ok", "", 0))) as run:
		assert await search_docs(tmp_path, "api", max_tokens=500) == "ok"
	assert run.await_args.args[0][:3] == ["search", "--max-tokens", "500"]


@pytest.mark.asyncio
async def test_missing_binary(tmp_path: Path, monkeypatch):
	monkeypatch.setenv("PROBE_PATH", str(tmp_path / "no-such-probe"))
	with pytest.raises(SearchError, match="not found"):
		await search_docs(tmp_path, "api")


def test_probe_path_override(monkeypatch):
	monkeypatch.setenv("PROBE_PATH", "/opt/probe/bin/probe")
	assert probe_binary() == "/opt/probe/bin/probe"
	monkeypatch.delenv("PROBE_PATH")
	assert probe_binary() == "probe"


@pytest.mark.asyncio
async def test_query_passed_after_option_terminator(tmp_path: Path):
	with patch("docs_mcp.search._run_probe", new=AsyncMock(return_value=("ok", "", 0))) as run:
		await search_docs(tmp_path, "-internal api")
	args = run.await_args.args[0]
	assert args[-3:] == ["--", "-internal api", str(tmp_path)]
