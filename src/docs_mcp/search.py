"""Search adapter: runs the ``probe`` search engine over the working directory."""

import asyncio
import logging
import os
from pathlib import Path

from .errors import SearchError

logger = logging.getLogger(__name__)

DEFAULT_MAX_TOKENS = 10000


def probe_binary() -> str:
	return os.getenv("PROBE_PATH", "probe")


async def _run_probe(args: list[str]) -> tuple[str, str, int]:
	"""Run probe and return (stdout, stderr, returncode)."""
	try:
		proc = await asyncio.create_subprocess_exec(
			probe_binary(), *args,
			stdout=asyncio.subprocess.PIPE,
			stderr=asyncio.subprocess.PIPE,
		)
	except FileNotFoundError as e:
		raise SearchError(f"probe executable not found ({probe_binary()}). Install it or set PROBE_PATH.") from e
	stdout, stderr = await proc.communicate()
	return stdout.decode(errors="replace"), stderr.decode(errors="replace").strip(), proc.returncode or 0


async def search_docs(path: Path, query: str, max_tokens: int = DEFAULT_MAX_TOKENS) -> str:
	"""Search ``path`` for ``query`` and return probe's output verbatim."""
	logger.info("Executing search: path=%s query=%r maxTokens=%d", path, query, max_tokens)
	stdout, stderr, rc = await _run_probe(["search", "--max-tokens", str(max_tokens), "--", query, str(path)])
	if rc != 0:
		raise SearchError(f"Error executing docs search: {stderr or f'probe exited with code {rc}'}")
	return stdout
