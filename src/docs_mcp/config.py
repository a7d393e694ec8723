"""Settings resolution: defaults < config file < environment < command line."""

import argparse
import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Sequence, Union

from dotenv import load_dotenv

from .errors import ConfigError

logger = logging.getLogger(__name__)

APP_NAME = "docs-mcp"
APP_AUTHOR = "docs-mcp"

PACKAGE_DIR = Path(__file__).resolve().parent
CONFIG_FILENAME = "docs-mcp.config.json"
DEFAULT_CONFIG_PATH = PACKAGE_DIR / CONFIG_FILENAME
DEFAULT_DATA_DIR = PACKAGE_DIR / "data"

DEFAULT_GIT_REF = "main"
DEFAULT_TOOL_NAME = "search_docs"
DEFAULT_TOOL_DESCRIPTION = "Search documentation using the probe search engine."
DEFAULT_IGNORE_PATTERNS = ("node_modules", ".git", "dist", "build", "coverage")

# Layer keys use the camelCase names of the config file and CLI flags.
DEFAULTS: dict[str, Any] = {
	"includeDir": None,
	"gitUrl": None,
	"gitRef": DEFAULT_GIT_REF,
	"autoUpdateInterval": 0,
	"dataDir": str(DEFAULT_DATA_DIR),
	"toolName": DEFAULT_TOOL_NAME,
	"toolDescription": DEFAULT_TOOL_DESCRIPTION,
	"ignorePatterns": list(DEFAULT_IGNORE_PATTERNS),
	"enableBuildCleanup": True,
}

ENV_MAP = {
	"INCLUDE_DIR": "includeDir",
	"GIT_URL": "gitUrl",
	"GIT_REF": "gitRef",
	"AUTO_UPDATE_INTERVAL": "autoUpdateInterval",
	"DATA_DIR": "dataDir",
	"TOOL_NAME": "toolName",
	"TOOL_DESCRIPTION": "toolDescription",
}

CLI_KEYS = (
	"includeDir",
	"gitUrl",
	"gitRef",
	"autoUpdateInterval",
	"dataDir",
	"toolName",
	"toolDescription",
	"enableBuildCleanup",
)

# Setting any of these at runtime means "provision again", not "serve what was built".
SOURCE_OVERRIDE_KEYS = frozenset({"dataDir", "gitUrl", "includeDir"})


@dataclass(frozen=True)
class LocalDir:
	"""Static content copied from a local directory."""
	path: Path


@dataclass(frozen=True)
class GitRepo:
	"""Content taken from a remote Git repository at a ref."""
	url: str
	ref: str = DEFAULT_GIT_REF


ContentSource = Union[LocalDir, GitRepo, None]


@dataclass(frozen=True)
class Settings:
	"""Resolved, immutable runtime settings."""

	content_source: ContentSource
	working_dir: Path
	auto_update_interval: int = 0
	ignore_patterns: frozenset[str] = field(default_factory=lambda: frozenset(DEFAULT_IGNORE_PATTERNS))
	cleanup_enabled: bool = True
	tool_name: str = DEFAULT_TOOL_NAME
	tool_description: str = DEFAULT_TOOL_DESCRIPTION
	config_path: Path | None = None
	source_override: bool = False

	def __post_init__(self) -> None:
		if not self.working_dir.is_absolute():
			raise ValueError(f"working_dir must be absolute: {self.working_dir}")
		if self.auto_update_interval < 0:
			raise ValueError("auto_update_interval must be non-negative")

	@property
	def git_repo(self) -> GitRepo | None:
		return self.content_source if isinstance(self.content_source, GitRepo) else None

	@property
	def local_dir(self) -> LocalDir | None:
		return self.content_source if isinstance(self.content_source, LocalDir) else None

	@property
	def auto_update_enabled(self) -> bool:
		return self.git_repo is not None and self.auto_update_interval > 0


def build_arg_parser(parser: argparse.ArgumentParser | None = None) -> argparse.ArgumentParser:
	"""Add the config flags to ``parser`` (or a fresh one).

	Every flag defaults to ``None`` so that unset flags fall through to the
	lower layers.
	"""
	if parser is None:
		parser = argparse.ArgumentParser(add_help=False)
	parser.add_argument("--config", type=str, default=None, help="Path to a JSON config file")
	parser.add_argument("--includeDir", type=str, default=None, help="Local directory to serve")
	parser.add_argument("--gitUrl", type=str, default=None, help="Git repository URL to serve")
	parser.add_argument("--gitRef", type=str, default=None, help="Branch or tag (default: main)")
	parser.add_argument(
		"--autoUpdateInterval", type=str, default=None,
		help="Minutes between git update checks (0 disables)",
	)
	parser.add_argument("--dataDir", type=str, default=None, help="Working directory for content")
	parser.add_argument("--toolName", type=str, default=None, help="Name of the MCP search tool")
	parser.add_argument("--toolDescription", type=str, default=None, help="Description of the search tool")
	parser.add_argument(
		"--enableBuildCleanup", type=str, default=None,
		help="Remove large/binary files after build (true/false)",
	)
	parser.add_argument("--logLevel", type=str, default=None, help="DEBUG, INFO, WARNING or ERROR")
	return parser


def load_config_file(path: Path) -> dict[str, Any]:
	"""Read a JSON config file. Raises ConfigError if it is malformed."""
	try:
		with open(path, encoding="utf-8") as f:
			data = json.load(f)
	except (json.JSONDecodeError, UnicodeDecodeError) as e:
		raise ConfigError(f"Invalid JSON in {path}: {e}") from e
	except OSError as e:
		raise ConfigError(f"Cannot read {path}: {e}") from e

	if not isinstance(data, dict):
		raise ConfigError(f"{path} must contain a JSON object, got {type(data).__name__}")

	known = {k: v for k, v in data.items() if k in DEFAULTS}
	for key in data.keys() - known.keys():
		logger.debug("Ignoring unknown config key %r in %s", key, path)
	return known


def _file_layer(config_path: Path) -> tuple[dict[str, Any], Path | None]:
	if not config_path.exists():
		logger.info("No configuration file found at %s, using defaults", config_path)
		return {}, None
	try:
		layer = load_config_file(config_path)
	except ConfigError as e:
		logger.error("Error loading configuration, ignoring file: %s", e)
		return {}, None
	logger.info("Loaded configuration from %s", config_path)
	return layer, config_path


def _env_layer(environ: Mapping[str, str]) -> dict[str, Any]:
	return {key: environ[env] for env, key in ENV_MAP.items() if environ.get(env)}


def _cli_layer(args: argparse.Namespace | None) -> dict[str, Any]:
	if args is None:
		return {}
	layer = {}
	for key in CLI_KEYS:
		value = getattr(args, key, None)
		if value is not None and value != "":
			layer[key] = value
	return layer


def _parse_interval(value: Any) -> int:
	try:
		interval = int(value)
	except (TypeError, ValueError):
		logger.warning("Invalid autoUpdateInterval %r, disabling auto-update", value)
		return 0
	if interval < 0:
		logger.warning("Negative autoUpdateInterval %d, disabling auto-update", interval)
		return 0
	return interval


def _parse_bool(value: Any) -> bool:
	if isinstance(value, bool):
		return value
	return str(value).strip().lower() in ("true", "1", "yes")


def _absolute(value: Any, cwd: Path) -> Path:
	path = Path(os.path.expanduser(str(value)))
	return path if path.is_absolute() else (cwd / path).resolve()


def merge_layers(*layers: Mapping[str, Any]) -> dict[str, Any]:
	"""Merge layers left to right; later layers win key by key."""
	merged: dict[str, Any] = {}
	for layer in layers:
		merged.update(layer)
	return merged


def settings_from_layers(
	merged: Mapping[str, Any],
	cwd: Path,
	config_path: Path | None = None,
	source_override: bool = False,
) -> Settings:
	"""Build Settings from a fully merged layer dict.

	Source exclusivity is applied here, once, after all layers are merged.
	"""
	git_url = merged.get("gitUrl") or None
	include_dir = merged.get("includeDir") or None
	git_ref = merged.get("gitRef") or DEFAULT_GIT_REF

	source: ContentSource = None
	if git_url and include_dir:
		logger.warning("Both includeDir and gitUrl are specified. Using gitUrl.")
	if git_url:
		source = GitRepo(url=str(git_url), ref=str(git_ref))
	elif include_dir:
		source = LocalDir(path=_absolute(include_dir, cwd))
	else:
		logger.warning(
			"Neither includeDir nor gitUrl is specified. "
			"The data directory will be empty unless manually populated."
		)

	patterns = merged.get("ignorePatterns") or []
	if isinstance(patterns, str):
		patterns = [patterns]

	return Settings(
		content_source=source,
		working_dir=_absolute(merged.get("dataDir") or DEFAULT_DATA_DIR, cwd),
		auto_update_interval=_parse_interval(merged.get("autoUpdateInterval", 0)),
		ignore_patterns=frozenset(str(p) for p in patterns),
		cleanup_enabled=_parse_bool(merged.get("enableBuildCleanup", True)),
		tool_name=str(merged.get("toolName") or DEFAULT_TOOL_NAME),
		tool_description=str(merged.get("toolDescription") or DEFAULT_TOOL_DESCRIPTION),
		config_path=config_path,
		source_override=source_override,
	)


def resolve_settings(
	args: argparse.Namespace | None = None,
	environ: Mapping[str, str] | None = None,
	cwd: Path | None = None,
) -> Settings:
	"""Resolve Settings with precedence: CLI > env > config file > defaults."""
	if environ is None:
		load_dotenv()
		environ = os.environ
	cwd = cwd or Path.cwd()

	config_arg = getattr(args, "config", None) if args is not None else None
	config_path = _absolute(config_arg, cwd) if config_arg else DEFAULT_CONFIG_PATH

	file_layer, loaded_from = _file_layer(config_path)
	env_layer = _env_layer(environ)
	cli_layer = _cli_layer(args)

	override = bool(SOURCE_OVERRIDE_KEYS & (env_layer.keys() | cli_layer.keys()))
	merged = merge_layers(DEFAULTS, file_layer, env_layer, cli_layer)
	return settings_from_layers(merged, cwd, config_path=loaded_from, source_override=override)


def parse_settings(argv: Sequence[str] | None = None) -> Settings:
	"""Parse config flags from ``argv`` and resolve Settings."""
	args, _ = build_arg_parser().parse_known_args(argv)
	return resolve_settings(args)


def write_default_config(path: Path = DEFAULT_CONFIG_PATH) -> bool:
	"""Write a starter config file if none exists. Returns True if written."""
	if path.exists():
		return False
	starter = {
		"includeDir": None,
		"gitUrl": None,
		"gitRef": DEFAULT_GIT_REF,
		"autoUpdateInterval": 0,
		"enableBuildCleanup": True,
		"ignorePatterns": list(DEFAULT_IGNORE_PATTERNS),
	}
	path.parent.mkdir(parents=True, exist_ok=True)
	path.write_text(json.dumps(starter, indent=2) + "\n", encoding="utf-8")
	logger.info("Created default configuration file at %s", path)
	return True
