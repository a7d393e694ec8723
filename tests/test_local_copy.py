"""Tests for the local copy materializer."""

import logging
import shutil
from pathlib import Path, PurePosixPath
from unittest.mock import patch

import pytest

from docs_mcp.errors import LocalCopyError
from docs_mcp.local_copy import list_source_files, materialize_local_dir


def _tree(root: Path, files: dict[str, str]) -> Path:
	for name, content in files.items():
		path = root / name
		path.parent.mkdir(parents=True, exist_ok=True)
		path.write_text(content)
	return root


def _names(paths) -> list[str]:
	return sorted(str(p) for p in paths)


class TestListSourceFiles:
	def test_ignore_pattern_excludes_matches(self, tmp_path: Path):
		src = _tree(tmp_path / "mydocs", {"a.md": "a", "b.log": "b"})
		assert _names(list_source_files(src, ["*.log"])) == ["a.md"]

	def test_hidden_files_included(self, tmp_path: Path):
		src = _tree(tmp_path / "src", {".hidden.md": "h", "visible.md": "v", ".config/settings.md": "s"})
		assert _names(list_source_files(src, [])) == [".config/settings.md", ".hidden.md", "visible.md"]

	def test_directory_patterns_pruned(self, tmp_path: Path):
		src = _tree(tmp_path / "src", {
			"docs/index.md": "i",
			"node_modules/pkg/readme.md": "r",
			"docs/node_modules/x.md": "x",
			".git/config": "c",
		})
		assert _names(list_source_files(src, ["node_modules", ".git"])) == ["docs/index.md"]

	def test_root_gitignore_respected(self, tmp_path: Path):
		src = _tree(tmp_path / "src", {
			".gitignore": "secret.txt\ntmp/\n",
			"secret.txt": "s",
			"tmp/cache.md": "c",
			"guide.md": "g",
			"nested/secret.txt": "s",
		})
		assert _names(list_source_files(src, [])) == [".gitignore", "guide.md"]

	def test_nested_gitignore_scoped_to_its_directory(self, tmp_path: Path):
		src = _tree(tmp_path / "src", {
			"docs/.gitignore": "draft.md\n",
			"docs/draft.md": "d",
			"docs/final.md": "f",
			"draft.md": "root draft",
		})
		assert _names(list_source_files(src, [])) == ["docs/.gitignore", "docs/final.md", "draft.md"]

	def test_returns_posix_relative_paths(self, tmp_path: Path):
		src = _tree(tmp_path / "src", {"a/b/c.md": "c"})
		assert list_source_files(src, []) == [PurePosixPath("a/b/c.md")]


class TestMaterialize:
	@pytest.mark.asyncio
	async def test_copies_tree(self, tmp_path: Path):
		src = _tree(tmp_path / "mydocs", {"a.md": "alpha", "b.log": "log", "guide/setup.md": "setup"})
		data = tmp_path / "data"

		count = await materialize_local_dir(src, data, ["*.log"])

		assert count == 2
		assert (data / "a.md").read_text() == "alpha"
		assert (data / "guide" / "setup.md").read_text() == "setup"
		assert not (data / "b.log").exists()

	@pytest.mark.asyncio
	async def test_missing_source(self, tmp_path: Path):
		with pytest.raises(LocalCopyError):
			await materialize_local_dir(tmp_path / "missing", tmp_path / "data", [])

	@pytest.mark.asyncio
	async def test_mid_copy_failure_aborts(self, tmp_path: Path, caplog):
		src = _tree(tmp_path / "src", {"a.md": "a", "b.md": "b", "c.md": "c"})
		real_copy = shutil.copy2
		calls = []

		def flaky_copy(s, d, *args, **kwargs):
			calls.append(s)
			if len(calls) == 2:
				raise PermissionError("denied")
			return real_copy(s, d, *args, **kwargs)

		with caplog.at_level(logging.INFO, logger="docs_mcp.local_copy"):
			with patch("docs_mcp.local_copy.shutil.copy2", side_effect=flaky_copy):
				with pytest.raises(LocalCopyError):
					await materialize_local_dir(src, tmp_path / "data", [])

		assert len(calls) == 2
		assert not any("Successfully copied" in r.getMessage() for r in caplog.records)
