"""Shared pytest fixtures."""

import pytest


@pytest.fixture(autouse=True)
def _isolated_log_dir(tmp_path, monkeypatch):
	"""Keep file logging inside the test's tmp dir."""
	monkeypatch.setattr("docs_mcp.logging_config.default_log_dir", lambda: tmp_path / "logs")
