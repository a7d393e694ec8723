"""Working directory helpers."""

import shutil
from pathlib import Path


def empty_dir(path: Path) -> None:
	"""Create ``path`` if needed and remove everything inside it, keeping the directory."""
	path.mkdir(parents=True, exist_ok=True)
	for child in path.iterdir():
		if child.is_dir() and not child.is_symlink():
			shutil.rmtree(child)
		else:
			child.unlink()


def has_content(path: Path) -> bool:
	"""True when ``path`` is an existing directory with at least one entry."""
	if not path.is_dir():
		return False
	return any(path.iterdir())
