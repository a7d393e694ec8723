"""Exception hierarchy for content provisioning and search."""


class DocsMcpError(Exception):
	"""Base class for all docs-mcp errors."""


class ConfigError(DocsMcpError):
	"""A config file could not be read or parsed."""


class ArchiveError(DocsMcpError):
	"""Archive snapshot could not be obtained."""


class SourceUrlUnrecognizedError(ArchiveError):
	"""Repository URL does not match https://<host>/<owner>/<repo>[.git]."""


class ArchiveDownloadError(ArchiveError):
	"""Archive download failed (transport error or non-2xx status)."""

	def __init__(self, url: str, status: int | None = None, reason: str = ""):
		self.url = url
		self.status = status
		detail = f"HTTP {status}" if status is not None else reason
		super().__init__(f"Failed to download {url}: {detail}")


class ArchiveNotFoundError(ArchiveDownloadError):
	"""Archive service answered 404 for the requested ref."""

	def __init__(self, url: str):
		super().__init__(url, status=404)


class ArchiveExtractError(ArchiveError):
	"""Downloaded archive could not be extracted."""


class GitError(DocsMcpError):
	"""A git command exited non-zero."""

	def __init__(self, args: list[str], stderr: str, returncode: int):
		self.git_args = args
		self.stderr = stderr
		self.returncode = returncode
		super().__init__(f"git {' '.join(args)} failed ({returncode}): {stderr}")


class LocalCopyError(DocsMcpError):
	"""Copying the local source directory failed part way through."""


class SearchError(DocsMcpError):
	"""The search engine could not be run or returned an error."""


class ProvisioningError(DocsMcpError):
	"""Content could not be provisioned; the process should exit."""
