"""Post-build cleanup: drop binary/media files and anything too large to index."""

import asyncio
import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)

MAX_FILE_SIZE = 100 * 1024  # 100 KiB

FORBIDDEN_EXTENSIONS = frozenset({
	# Images
	".jpg", ".jpeg", ".png", ".gif", ".bmp", ".tiff", ".webp", ".svg", ".ico",
	# Video
	".mp4", ".mov", ".avi", ".wmv", ".mkv", ".flv", ".webm",
	# Audio
	".mp3", ".wav", ".ogg", ".aac", ".flac",
	# Archives
	".zip", ".tar", ".gz", ".bz2", ".rar", ".7z",
	# Documents
	".pdf", ".doc", ".docx", ".xls", ".xlsx", ".ppt", ".pptx",
	# Executables / libraries
	".exe", ".dll", ".so", ".dylib", ".app",
	# Other binaries
	".psd", ".ai", ".iso", ".dmg", ".pkg", ".deb", ".rpm",
})

SKIP_DIRS = frozenset({".git"})


def should_remove(path: Path, size: int) -> bool:
	return path.suffix.lower() in FORBIDDEN_EXTENSIONS or size > MAX_FILE_SIZE


def cleanup_dir(working_dir: Path) -> int:
	"""Remove oversized and binary files under ``working_dir``. Returns the count removed."""
	logger.info("Cleaning up data directory: %s...", working_dir)
	removed = 0
	for dirpath, dirnames, filenames in os.walk(working_dir):
		dirnames[:] = [d for d in dirnames if d not in SKIP_DIRS]
		for name in filenames:
			path = Path(dirpath) / name
			try:
				size = path.stat().st_size
				if should_remove(path, size):
					logger.debug("Removing: %s (Size: %d bytes, Ext: %s)", path, size, path.suffix.lower())
					path.unlink()
					removed += 1
			except FileNotFoundError:
				continue  # vanished mid-walk or dangling symlink
			except OSError as e:
				logger.warning("Could not process file %s during cleanup: %s", path, e)
	logger.info("Cleanup complete. Removed %d files.", removed)
	return removed


async def cleanup_working_dir(working_dir: Path) -> int:
	return await asyncio.to_thread(cleanup_dir, working_dir)
