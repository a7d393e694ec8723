"""
Git Sync Engine - shallow clone plus periodic fetch/pull.

The engine owns a single ``UpdateTimer``. Every update cycle re-arms it in
its ``finally`` block, so one failed check never ends the update loop, and
a new timer is only armed once the current cycle (including any pull) has
finished.
"""

import asyncio
import logging
from enum import Enum
from pathlib import Path
from typing import Awaitable, Callable, Optional

from .errors import GitError

logger = logging.getLogger(__name__)


class UpdateStatus(str, Enum):
	"""Outcome of one update cycle."""
	UPDATED = "updated"
	UP_TO_DATE = "up_to_date"
	NOT_A_REPO = "not_a_repo"
	FAILED = "failed"
	SKIPPED = "skipped"


async def _run_git(args: list[str], cwd: Path, timeout: Optional[float] = None) -> tuple[str, str, int]:
	"""Run a git command and return (stdout, stderr, returncode)."""
	try:
		proc = await asyncio.create_subprocess_exec(
			"git", *args,
			stdout=asyncio.subprocess.PIPE,
			stderr=asyncio.subprocess.PIPE,
			cwd=str(cwd),
		)
	except FileNotFoundError:
		return ("", "git executable not found", 127)
	try:
		stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
	except asyncio.TimeoutError:
		proc.kill()
		return ("", f"git {args[0]} timed out after {timeout}s", -1)
	return (
		stdout.decode(errors="replace").strip(),
		stderr.decode(errors="replace").strip(),
		proc.returncode or 0,
	)


async def _git_or_raise(args: list[str], cwd: Path) -> str:
	stdout, stderr, rc = await _run_git(args, cwd)
	if rc != 0:
		raise GitError(args, stderr, rc)
	return stdout


def _log_task_failure(task: asyncio.Task) -> None:
	if not task.cancelled() and task.exception() is not None:
		logger.error("Scheduled update check failed", exc_info=task.exception())


class UpdateTimer:
	"""
	Handle for the next scheduled update check.

	At most one check is pending at a time: arming replaces any previous
	handle. Cancelling drops the pending check; a cycle that is already
	running is disowned, not cancelled.
	"""

	def __init__(self) -> None:
		self._handle: Optional[asyncio.TimerHandle] = None
		self._task: Optional[asyncio.Task] = None
		self.delay: Optional[float] = None

	@property
	def armed(self) -> bool:
		return self._handle is not None

	def arm(self, delay: float, callback: Callable[[], Awaitable[object]]) -> None:
		self.cancel()
		loop = asyncio.get_running_loop()
		self.delay = delay
		self._handle = loop.call_later(delay, self._fire, callback)

	def _fire(self, callback: Callable[[], Awaitable[object]]) -> None:
		self._handle = None
		self._task = asyncio.ensure_future(callback())
		self._task.add_done_callback(_log_task_failure)

	def cancel(self) -> None:
		if self._handle is not None:
			self._handle.cancel()
			self._handle = None
		self._task = None


class GitSyncEngine:
	"""Owns a git checkout of ``git_url`` at ``ref`` inside ``working_dir``."""

	def __init__(
		self,
		git_url: str,
		working_dir: Path,
		ref: str = "main",
		interval_minutes: int = 0,
	):
		self.git_url = git_url
		self.working_dir = working_dir
		self.ref = ref
		self.interval_minutes = interval_minutes
		self.timer = UpdateTimer()
		self._in_progress = False
		self._stopped = False

	@property
	def interval_seconds(self) -> float:
		return self.interval_minutes * 60

	async def clone(self) -> None:
		"""Shallow-clone the repository into the (empty) working directory.

		Raises GitError on failure; callers decide whether that is fatal.
		"""
		logger.info("Cloning Git repository %s (ref: %s) to %s...", self.git_url, self.ref, self.working_dir)
		self.working_dir.mkdir(parents=True, exist_ok=True)
		await _git_or_raise(
			["clone", "--branch", self.ref, "--depth", "1", self.git_url, str(self.working_dir)],
			self.working_dir.parent,
		)
		logger.info("Successfully cloned repository to %s", self.working_dir)

	async def is_repo(self) -> bool:
		"""True when the working directory is the top level of a git work tree."""
		if not self.working_dir.is_dir():
			return False
		stdout, _, rc = await _run_git(["rev-parse", "--show-toplevel"], self.working_dir)
		if rc != 0 or not stdout:
			return False
		return Path(stdout).resolve() == self.working_dir.resolve()

	async def tracks_source(self) -> bool:
		"""True when origin is ``git_url`` and ``ref`` exists locally as a branch or tag."""
		stdout, _, rc = await _run_git(["remote", "get-url", "origin"], self.working_dir)
		if rc != 0 or stdout.rstrip("/") != self.git_url.rstrip("/"):
			return False
		for candidate in (f"refs/heads/{self.ref}", f"refs/tags/{self.ref}"):
			_, _, rc = await _run_git(["rev-parse", "--verify", "--quiet", candidate], self.working_dir)
			if rc == 0:
				return True
		return False

	async def head_commit(self) -> Optional[str]:
		stdout, _, rc = await _run_git(["rev-parse", "--short", "HEAD"], self.working_dir)
		return stdout if rc == 0 else None

	async def commits_behind(self) -> int:
		stdout = await _git_or_raise(
			["rev-list", "--count", f"HEAD..origin/{self.ref}"], self.working_dir,
		)
		return int(stdout or 0)

	async def check_for_updates(self) -> UpdateStatus:
		"""
		Run one update cycle: fetch, compare against ``origin/<ref>``, pull if behind.

		Git failures are logged, never raised. The next check is armed when
		the cycle finishes, whatever its outcome.
		"""
		if self._in_progress:
			logger.debug("Update check already in progress, skipping")
			return UpdateStatus.SKIPPED

		self._in_progress = True
		try:
			logger.info("Checking for documentation updates...")
			if not await self.is_repo():
				logger.warning("Data directory %s is not a Git repository. Skipping update.", self.working_dir)
				return UpdateStatus.NOT_A_REPO

			await _git_or_raise(["fetch", "origin"], self.working_dir)
			behind = await self.commits_behind()
			if behind > 0:
				logger.info("Local branch is %d commits behind origin/%s. Pulling updates...", behind, self.ref)
				await _git_or_raise(["pull", "--ff-only", "origin", self.ref], self.working_dir)
				logger.info("Documentation updated successfully.")
				return UpdateStatus.UPDATED

			logger.info("Documentation is up-to-date.")
			return UpdateStatus.UP_TO_DATE
		except (GitError, ValueError) as e:
			logger.error("Error checking for updates: %s", e)
			return UpdateStatus.FAILED
		finally:
			self._in_progress = False
			self._schedule_next()

	def _schedule_next(self) -> None:
		if self.interval_minutes > 0 and not self._stopped:
			self.timer.arm(self.interval_seconds, self.check_for_updates)
			logger.debug("Next update check in %d minutes", self.interval_minutes)

	async def start(self) -> UpdateTimer:
		"""Run the first update cycle now and return the recurring timer handle.

		The caller holds the handle and cancels it on shutdown.
		"""
		self._stopped = False
		await self.check_for_updates()
		return self.timer

	def stop(self) -> None:
		"""Cancel the pending check. A cycle already running finishes but does not re-arm."""
		self._stopped = True
		self.timer.cancel()
