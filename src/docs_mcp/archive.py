"""
Archive Fetcher - point-in-time repository snapshots without git history.

Downloads ``https://<host>/<owner>/<repo>/archive/<ref>.tar.gz`` and
extracts it into the working directory, dropping the single top-level
directory that archive services wrap content in.
"""

import asyncio
import logging
import re
import tarfile
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Iterator, Optional

import aiohttp

from .errors import (
	ArchiveDownloadError,
	ArchiveError,
	ArchiveExtractError,
	ArchiveNotFoundError,
	SourceUrlUnrecognizedError,
)
from .fsutil import empty_dir

logger = logging.getLogger(__name__)

DEFAULT_REF = "main"
FALLBACK_REF = "master"
CHUNK_SIZE = 64 * 1024

_REPO_URL = re.compile(r"^https://(?P<host>[^/\s]+)/(?P<owner>[^/\s]+)/(?P<repo>[^/\s]+?)(?:\.git)?/?$")


@dataclass(frozen=True)
class RepoCoordinates:
	"""Host, owner and name parsed from a repository URL."""
	host: str
	owner: str
	repo: str

	def archive_url(self, ref: str) -> str:
		return f"https://{self.host}/{self.owner}/{self.repo}/archive/{ref}.tar.gz"


def parse_repo_url(url: str) -> RepoCoordinates:
	"""Parse ``https://<host>/<owner>/<repo>[.git]``.

	Raises SourceUrlUnrecognizedError for anything else.
	"""
	match = _REPO_URL.match(url.strip())
	if not match:
		raise SourceUrlUnrecognizedError(f"Cannot determine archive URL from gitUrl: {url}")
	return RepoCoordinates(match["host"], match["owner"], match["repo"])


def _strip_top_level(name: str) -> str:
	parts = name.split("/", 1)
	return parts[1] if len(parts) == 2 else ""


def _stripped_members(tar: tarfile.TarFile) -> Iterator[tarfile.TarInfo]:
	for member in tar:
		stripped = _strip_top_level(member.name)
		if not stripped:
			continue
		member.name = stripped
		if member.islnk():
			member.linkname = _strip_top_level(member.linkname)
		yield member


def extract_archive(fileobj: IO[bytes], dest: Path) -> int:
	"""Extract a gzipped tarball into ``dest`` with one leading path component stripped.

	Returns the number of members extracted.
	"""
	count = 0
	try:
		with tarfile.open(fileobj=fileobj, mode="r:gz") as tar:
			for member in _stripped_members(tar):
				tar.extract(member, dest, filter="data")
				count += 1
	except (tarfile.TarError, OSError, EOFError) as e:
		raise ArchiveExtractError(f"Failed to extract archive into {dest}: {e}") from e
	return count


class ArchiveFetcher:
	"""
	Fetches a repository snapshot into a working directory.

	Usage:
		fetcher = ArchiveFetcher("https://github.com/acme/docs", Path("data"))
		ref = await fetcher.fetch("main")
	"""

	def __init__(
		self,
		git_url: str,
		working_dir: Path,
		session: Optional[aiohttp.ClientSession] = None,
	):
		self.git_url = git_url
		self.working_dir = working_dir
		self._session = session

	async def fetch(self, ref: str = DEFAULT_REF) -> str:
		"""
		Download and extract the archive for ``ref``.

		If ``ref`` is the default and the archive is not found, retries once
		with ``master``. Every other failure propagates.

		Returns:
			The ref that was extracted
		"""
		coords = parse_repo_url(self.git_url)
		ref = ref or DEFAULT_REF

		try:
			await self._download_and_extract(coords, ref)
			return ref
		except ArchiveNotFoundError:
			if ref != DEFAULT_REF:
				raise
			logger.warning("Download failed for ref '%s' (404). Retrying with '%s'...", ref, FALLBACK_REF)

		await self._download_and_extract(coords, FALLBACK_REF)
		return FALLBACK_REF

	async def _download_and_extract(self, coords: RepoCoordinates, ref: str) -> None:
		url = coords.archive_url(ref)
		logger.info("Downloading archive (%s) from %s to %s", ref, url, self.working_dir)
		await asyncio.to_thread(empty_dir, self.working_dir)

		try:
			if self._session is not None:
				count = await self._stream(self._session, url)
			else:
				async with aiohttp.ClientSession() as session:
					count = await self._stream(session, url)
		except ArchiveError:
			# A half-extracted tree must not look like content.
			await asyncio.to_thread(empty_dir, self.working_dir)
			raise

		logger.info("Extracted %d entries from archive (%s) into %s", count, ref, self.working_dir)

	async def _stream(self, session: aiohttp.ClientSession, url: str) -> int:
		try:
			async with session.get(url) as response:
				if response.status == 404:
					raise ArchiveNotFoundError(url)
				if not 200 <= response.status < 300:
					raise ArchiveDownloadError(url, status=response.status)

				with tempfile.TemporaryFile() as buffer:
					async for chunk in response.content.iter_chunked(CHUNK_SIZE):
						buffer.write(chunk)
					buffer.seek(0)
					return await asyncio.to_thread(extract_archive, buffer, self.working_dir)
		except aiohttp.ClientError as e:
			raise ArchiveDownloadError(url, reason=str(e)) from e
		except asyncio.TimeoutError as e:
			raise ArchiveDownloadError(url, reason="timed out") from e
		except OSError as e:
			raise ArchiveDownloadError(url, reason=str(e)) from e
