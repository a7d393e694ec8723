"""Shared test fixtures and helpers for docs-mcp tests."""

import io
import subprocess
import tarfile
from pathlib import Path
from typing import Callable, Optional

from docs_mcp.config import Settings


def git(path: Path, *args: str) -> str:
	result = subprocess.run(["git", *args], cwd=str(path), capture_output=True, text=True, check=True)
	return result.stdout.strip()


def init_git_repo(path: Path, branch: str = "main") -> None:
	"""Create a real git repo on ``branch`` with an initial commit."""
	path.mkdir(parents=True, exist_ok=True)
	subprocess.run(["git", "init"], cwd=str(path), capture_output=True, check=True)
	subprocess.run(["git", "symbolic-ref", "HEAD", f"refs/heads/{branch}"], cwd=str(path), capture_output=True, check=True)
	subprocess.run(["git", "config", "user.email", "test@test.com"], cwd=str(path), capture_output=True)
	subprocess.run(["git", "config", "user.name", "Test"], cwd=str(path), capture_output=True)
	(path / "README.md").write_text("# Test\n")
	subprocess.run(["git", "add", "README.md"], cwd=str(path), capture_output=True, check=True)
	subprocess.run(["git", "commit", "-m", "init"], cwd=str(path), capture_output=True, check=True)


def commit_file(repo: Path, name: str, content: str) -> None:
	"""Write ``name`` in ``repo`` and commit it."""
	target = repo / name
	target.parent.mkdir(parents=True, exist_ok=True)
	target.write_text(content)
	git(repo, "add", name)
	git(repo, "commit", "-m", f"add {name}")


def make_settings(working_dir: Path, **kwargs) -> Settings:
	return Settings(working_dir=working_dir, content_source=kwargs.pop("content_source", None), **kwargs)


def capture_tools(settings: Settings, register_fn: Callable) -> dict:
	"""Register tools on a mock MCP and return {tool_name: (fn, description)}."""
	captured = {}

	class MockMCP:
		def tool(self, name: Optional[str] = None, description: Optional[str] = None):
			def decorator(fn):
				captured[name or fn.__name__] = (fn, description)
				return fn
			return decorator

	register_fn(MockMCP(), settings)
	return captured


def make_tarball(files: dict[str, str], top: str = "docs-main") -> bytes:
	"""Build a .tar.gz laid out the way archive services wrap repositories."""
	buf = io.BytesIO()
	with tarfile.open(fileobj=buf, mode="w:gz") as tar:
		top_info = tarfile.TarInfo(top)
		top_info.type = tarfile.DIRTYPE
		top_info.mode = 0o755
		tar.addfile(top_info)
		for name, content in files.items():
			data = content.encode()
			info = tarfile.TarInfo(f"{top}/{name}")
			info.size = len(data)
			info.mode = 0o644
			tar.addfile(info, io.BytesIO(data))
	return buf.getvalue()


class FakeContent:
	def __init__(self, body: bytes):
		self._body = body

	async def iter_chunked(self, n: int):
		for i in range(0, len(self._body), n):
			yield self._body[i:i + n]


class FakeResponse:
	def __init__(self, status: int = 200, body: bytes = b"", error: Optional[Exception] = None):
		self.status = status
		self.content = FakeContent(body)
		self._error = error

	async def __aenter__(self):
		if self._error is not None:
			raise self._error
		return self

	async def __aexit__(self, *exc):
		return False


class FakeSession:
	"""Stands in for aiohttp.ClientSession; answers by URL and records requests."""

	def __init__(self, responses: dict[str, FakeResponse]):
		self.responses = responses
		self.requested: list[str] = []

	def get(self, url: str) -> FakeResponse:
		self.requested.append(url)
		return self.responses.get(url, FakeResponse(status=404))
