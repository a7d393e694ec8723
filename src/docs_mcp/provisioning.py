"""
Content Provisioning Orchestrator.

Decides how the working directory gets its content, once at build time
and once at server start:

    build:  empty dir -> clone | archive (-> clone fallback) | copy -> cleanup
    serve:  pre-built? -> done
            else clone/reuse (auto-update) | archive (fatal on failure) | copy | nothing

Only the server-start path may arm the recurring git update timer, and
only after acquisition has fully finished.
"""

import asyncio
import logging
from enum import Enum
from typing import Optional

from .archive import ArchiveFetcher
from .cleanup import cleanup_working_dir
from .config import GitRepo, LocalDir, Settings
from .errors import ArchiveError, GitError, LocalCopyError, ProvisioningError
from .fsutil import empty_dir, has_content
from .git_sync import GitSyncEngine, UpdateTimer
from .local_copy import materialize_local_dir

logger = logging.getLogger(__name__)


class ProvisioningOutcome(str, Enum):
	"""How the working directory was populated."""
	PREBUILT = "prebuilt"
	GIT_SYNC = "git_sync"
	ARCHIVE = "archive"
	LOCAL_COPY = "local_copy"
	EMPTY = "empty"


class ContentOrchestrator:
	"""Selects and runs one acquisition strategy for the configured content source."""

	def __init__(
		self,
		settings: Settings,
		fetcher: Optional[ArchiveFetcher] = None,
		engine: Optional[GitSyncEngine] = None,
	):
		self.settings = settings
		self.outcome: Optional[ProvisioningOutcome] = None
		self.timer: Optional[UpdateTimer] = None

		repo = settings.git_repo
		if repo is not None:
			self.fetcher = fetcher or ArchiveFetcher(repo.url, settings.working_dir)
			self.engine = engine or GitSyncEngine(
				repo.url,
				settings.working_dir,
				ref=repo.ref,
				interval_minutes=settings.auto_update_interval,
			)
		else:
			self.fetcher = fetcher
			self.engine = engine

	@property
	def working_dir(self):
		return self.settings.working_dir

	# ------------------------------------------------------------------
	# Build time
	# ------------------------------------------------------------------

	async def build(self) -> ProvisioningOutcome:
		"""
		Populate the working directory from scratch.

		The directory is always emptied first. An archive failure of any kind
		falls back to a shallow clone. Raises ProvisioningError when content
		cannot be obtained.
		"""
		source = self.settings.content_source
		await asyncio.to_thread(empty_dir, self.working_dir)

		try:
			if isinstance(source, GitRepo):
				outcome = await self._build_from_git(source)
			elif isinstance(source, LocalDir):
				await materialize_local_dir(source.path, self.working_dir, self.settings.ignore_patterns)
				outcome = ProvisioningOutcome.LOCAL_COPY
			else:
				logger.info("No includeDir or gitUrl specified. Created empty data directory.")
				outcome = ProvisioningOutcome.EMPTY
		except (GitError, LocalCopyError) as e:
			await self._discard_partial()
			raise ProvisioningError(str(e)) from e

		if self.settings.cleanup_enabled:
			await cleanup_working_dir(self.working_dir)
		else:
			logger.info("Build cleanup is disabled via configuration.")

		self.outcome = outcome
		return outcome

	async def _build_from_git(self, source: GitRepo) -> ProvisioningOutcome:
		if self.settings.auto_update_interval > 0:
			logger.info(
				"Auto-update enabled (interval: %d mins). Using git clone.",
				self.settings.auto_update_interval,
			)
			await self.engine.clone()
			return ProvisioningOutcome.GIT_SYNC

		logger.info("Auto-update disabled. Attempting to download tarball archive.")
		try:
			await self.fetcher.fetch(source.ref)
			return ProvisioningOutcome.ARCHIVE
		except ArchiveError as e:
			logger.error("Archive download failed: %s", e)
			logger.error("Falling back to git clone...")

		await asyncio.to_thread(empty_dir, self.working_dir)
		await self.engine.clone()
		return ProvisioningOutcome.GIT_SYNC

	# ------------------------------------------------------------------
	# Server start
	# ------------------------------------------------------------------

	async def prepare_for_server(self) -> ProvisioningOutcome:
		"""
		Make sure there is content to serve before the transport opens.

		Pre-built content wins unless a source setting was given at runtime.
		Any acquisition failure here is fatal (ProvisioningError); there is
		no clone fallback for archive failures at server start.
		"""
		self.outcome = await self._prepare()
		logger.info("Content provisioning outcome: %s", self.outcome.value)
		return self.outcome

	async def _prepare(self) -> ProvisioningOutcome:
		settings = self.settings
		source = settings.content_source

		if not settings.source_override and has_content(self.working_dir):
			logger.info("Using pre-built content in %s", self.working_dir)
			self.stop_updates()
			return ProvisioningOutcome.PREBUILT

		if isinstance(source, GitRepo):
			if settings.auto_update_interval > 0:
				return await self._prepare_git_sync()
			return await self._prepare_archive(source)

		if isinstance(source, LocalDir):
			if not settings.source_override:
				logger.warning(
					"includeDir %s is configured but %s has no content. "
					"Run 'docs-mcp build' to populate it. Starting with no content.",
					source.path, self.working_dir,
				)
				return ProvisioningOutcome.EMPTY
			await asyncio.to_thread(empty_dir, self.working_dir)
			try:
				await materialize_local_dir(source.path, self.working_dir, settings.ignore_patterns)
			except LocalCopyError as e:
				await self._discard_partial()
				raise ProvisioningError(str(e)) from e
			return ProvisioningOutcome.LOCAL_COPY

		logger.warning("No content source configured and no pre-built content found. Starting with no content.")
		return ProvisioningOutcome.EMPTY

	async def _prepare_git_sync(self) -> ProvisioningOutcome:
		if await self.engine.is_repo():
			if await self.engine.tracks_source():
				logger.info("Reusing existing repository in %s", self.working_dir)
				return ProvisioningOutcome.GIT_SYNC
			logger.info(
				"Repository in %s does not track %s (ref: %s). Cloning again.",
				self.working_dir, self.settings.git_repo.url, self.settings.git_repo.ref,
			)
		await asyncio.to_thread(empty_dir, self.working_dir)
		try:
			await self.engine.clone()
		except GitError as e:
			await self._discard_partial()
			raise ProvisioningError(f"Git clone failed: {e}") from e
		return ProvisioningOutcome.GIT_SYNC

	async def _prepare_archive(self, source: GitRepo) -> ProvisioningOutcome:
		try:
			await self.fetcher.fetch(source.ref)
		except ArchiveError as e:
			await self._discard_partial()
			raise ProvisioningError(f"Archive download failed at server start: {e}") from e
		return ProvisioningOutcome.ARCHIVE

	async def _discard_partial(self) -> None:
		"""Empty the working directory after a failed acquisition so it never passes as pre-built."""
		await asyncio.to_thread(empty_dir, self.working_dir)

	# ------------------------------------------------------------------
	# Update timer
	# ------------------------------------------------------------------

	async def start_updates(self) -> Optional[UpdateTimer]:
		"""Run the first update check and arm the recurring timer, when applicable."""
		if self.outcome != ProvisioningOutcome.GIT_SYNC or not self.settings.auto_update_enabled:
			return None
		self.timer = await self.engine.start()
		return self.timer

	def stop_updates(self) -> None:
		if self.timer is not None:
			self.timer.cancel()
			self.timer = None
		if self.engine is not None:
			self.engine.stop()
