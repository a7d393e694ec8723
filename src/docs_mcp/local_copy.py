"""Local Copy Materializer - mirror a local directory into the working directory."""

import asyncio
import logging
import os
import shutil
from pathlib import Path, PurePosixPath
from typing import Iterable

import pathspec

from .errors import LocalCopyError

logger = logging.getLogger(__name__)

GITIGNORE = ".gitignore"


class IgnoreRules:
	"""Configured ignore patterns plus every .gitignore found while walking.

	Each .gitignore applies to paths relative to its own directory.
	"""

	def __init__(self, patterns: Iterable[str]):
		self._configured = pathspec.PathSpec.from_lines("gitwildmatch", sorted(patterns))
		self._gitignores: list[tuple[PurePosixPath, pathspec.PathSpec]] = []

	def load_gitignore(self, rel_dir: PurePosixPath, gitignore: Path) -> None:
		lines = gitignore.read_text(encoding="utf-8", errors="replace").splitlines()
		self._gitignores.append((rel_dir, pathspec.GitIgnoreSpec.from_lines(lines)))

	def matches(self, rel_path: PurePosixPath, is_dir: bool = False) -> bool:
		suffix = "/" if is_dir else ""
		if self._configured.match_file(f"{rel_path}{suffix}"):
			return True
		for base, spec in self._gitignores:
			if base != PurePosixPath(".") and base not in rel_path.parents:
				continue
			relative = rel_path.relative_to(base) if base != PurePosixPath(".") else rel_path
			if spec.match_file(f"{relative}{suffix}"):
				return True
		return False


def list_source_files(source: Path, ignore_patterns: Iterable[str]) -> list[PurePosixPath]:
	"""Enumerate files under ``source`` (hidden included) that survive the ignore rules."""
	rules = IgnoreRules(ignore_patterns)
	files: list[PurePosixPath] = []

	def _raise(error: OSError) -> None:
		raise error

	for dirpath, dirnames, filenames in os.walk(source, onerror=_raise):
		rel_dir = PurePosixPath(Path(dirpath).relative_to(source).as_posix())
		if GITIGNORE in filenames:
			rules.load_gitignore(rel_dir, Path(dirpath) / GITIGNORE)

		dirnames[:] = sorted(d for d in dirnames if not rules.matches(rel_dir / d, is_dir=True))
		for name in sorted(filenames):
			rel_path = rel_dir / name
			if not rules.matches(rel_path):
				files.append(rel_path)
	return files


async def materialize_local_dir(source: Path, target: Path, ignore_patterns: Iterable[str]) -> int:
	"""
	Copy ``source`` into ``target`` file by file.

	Any failure aborts the whole pass with LocalCopyError; partial content
	is never reported as a success.

	Returns:
		Number of files copied
	"""
	logger.info("Copying %s to %s...", source, target)
	if not source.is_dir():
		raise LocalCopyError(f"Include directory does not exist: {source}")

	try:
		files = await asyncio.to_thread(list_source_files, source, ignore_patterns)
		logger.info("Found %d files in %s (respecting .gitignore)", len(files), source)

		for rel_path in files:
			src = source / rel_path
			dst = target / rel_path
			await asyncio.to_thread(dst.parent.mkdir, parents=True, exist_ok=True)
			await asyncio.to_thread(shutil.copy2, src, dst)
	except OSError as e:
		raise LocalCopyError(f"Error copying {source}: {e}") from e

	logger.info("Successfully copied %d files to %s", len(files), target)
	return len(files)
