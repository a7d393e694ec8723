"""CLI for docs-mcp: build, serve, doctor, and status commands."""

import argparse
import asyncio
import logging
import platform
import shutil
import sys
from importlib.metadata import version as pkg_version
from pathlib import Path

from rich.console import Console
from rich.table import Table

from . import __version__
from .config import (
	DEFAULT_CONFIG_PATH,
	GitRepo,
	LocalDir,
	Settings,
	build_arg_parser,
	load_config_file,
	resolve_settings,
	write_default_config,
)
from .errors import ConfigError, ProvisioningError
from .fsutil import has_content
from .git_sync import GitSyncEngine
from .logging_config import setup_logging
from .provisioning import ContentOrchestrator
from .search import probe_binary

logger = logging.getLogger(__name__)

COMMANDS = ("build", "serve", "doctor", "status")
CORE_DEPS = ["mcp", "aiohttp", "pathspec", "platformdirs", "python-dotenv", "rich"]


def _describe_source(settings: Settings) -> str:
	source = settings.content_source
	if isinstance(source, GitRepo):
		return f"git {source.url} (ref: {source.ref})"
	if isinstance(source, LocalDir):
		return f"directory {source.path}"
	return "none"


def cmd_build(args: argparse.Namespace) -> None:
	"""Populate the working directory ahead of packaging or serving."""
	setup_logging(args.logLevel)
	print("Building docs-mcp package...")

	if args.config is None:
		write_default_config(DEFAULT_CONFIG_PATH)
	settings = resolve_settings(args)
	print(f"  Source:      {_describe_source(settings)}")
	print(f"  Data dir:    {settings.working_dir}")

	try:
		outcome = asyncio.run(ContentOrchestrator(settings).build())
	except ProvisioningError as e:
		print(f"Build failed: {e}", file=sys.stderr)
		sys.exit(1)

	print(f"Build process finished successfully! ({outcome.value})")


def cmd_serve(args: argparse.Namespace) -> None:
	"""Provision content, then run the MCP server (stdio transport)."""
	setup_logging(args.logLevel)
	settings = resolve_settings(args)

	logger.info("Starting Docs MCP server (version %s)...", __version__)
	logger.info("Using data directory: %s", settings.working_dir)
	logger.info("MCP Tool Name: %s", settings.tool_name)
	logger.info("MCP Tool Description: %s", settings.tool_description)
	logger.info("Content source: %s", _describe_source(settings))
	if settings.git_repo is not None:
		logger.info("Auto-update interval: %d minutes", settings.auto_update_interval)

	orchestrator = ContentOrchestrator(settings)
	try:
		asyncio.run(orchestrator.prepare_for_server())
	except ProvisioningError as e:
		logger.error("Error starting server: %s", e)
		sys.exit(1)

	from .server import create_server
	mcp = create_server(settings, orchestrator)
	try:
		mcp.run()
	except KeyboardInterrupt:
		logger.info("Interrupted, shutting down")


def _check_config_file(path: Path) -> tuple[str, str | None]:
	"""Validate the JSON config file. Returns (status, issue_or_none)."""
	if not path.exists():
		return "not found (optional)", None
	try:
		load_config_file(path)
		return "valid", None
	except ConfigError as e:
		return f"INVALID ({e})", f"config file unreadable: {e}"


def _check_binary(name: str) -> tuple[str, str | None]:
	found = shutil.which(name)
	if found:
		return found, None
	return "NOT FOUND", f"'{name}' not found on PATH"


def cmd_doctor(args: argparse.Namespace) -> None:
	"""Health check - verify installation and configuration."""
	setup_logging(args.logLevel or "WARNING", log_to_file=False)
	print("docs-mcp doctor")
	print(f"{'=' * 40}")
	issues: list[str] = []

	py_ver = f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}"
	print(f"  Python:       {py_ver}")
	print(f"  Platform:     {platform.system()} {platform.machine()}")
	print()

	print("  Core deps:")
	for dep in CORE_DEPS:
		try:
			print(f"    {dep:22s} {pkg_version(dep)}")
		except Exception:
			print(f"    {dep:22s} NOT INSTALLED")
			issues.append(f"{dep} package not installed")
	print()

	print("  Binaries:")
	for name in ("git", probe_binary()):
		status, issue = _check_binary(name)
		print(f"    {name:22s} {status}")
		if issue:
			issues.append(issue)
	print()

	config_path = Path(args.config).expanduser() if args.config else DEFAULT_CONFIG_PATH
	config_status, config_issue = _check_config_file(config_path)
	print(f"  Config:       {config_path}: {config_status}")
	if config_issue:
		issues.append(config_issue)

	settings = resolve_settings(args)
	state = "populated" if has_content(settings.working_dir) else "empty"
	print(f"  Data dir:     {settings.working_dir} ({state})")
	if isinstance(settings.content_source, LocalDir) and not settings.content_source.path.is_dir():
		issues.append(f"includeDir does not exist: {settings.content_source.path}")

	print()
	if issues:
		print(f"  {len(issues)} issue(s) found:")
		for issue in issues:
			print(f"    - {issue}")
		sys.exit(1)
	else:
		print("  All checks passed.")


async def _git_head(settings: Settings) -> str | None:
	repo = settings.git_repo
	if repo is None:
		return None
	engine = GitSyncEngine(repo.url, settings.working_dir, ref=repo.ref)
	if not await engine.is_repo():
		return None
	return await engine.head_commit()


def cmd_status(args: argparse.Namespace) -> None:
	"""Show resolved settings and working directory state."""
	setup_logging(args.logLevel or "WARNING", log_to_file=False)
	settings = resolve_settings(args)
	head = asyncio.run(_git_head(settings))

	table = Table(title="docs-mcp status")
	table.add_column("Setting", style="cyan")
	table.add_column("Value")
	table.add_row("Config file", str(settings.config_path or "(none)"))
	table.add_row("Content source", _describe_source(settings))
	table.add_row("Data dir", str(settings.working_dir))
	table.add_row("Data dir state", "populated" if has_content(settings.working_dir) else "empty")
	table.add_row("Git HEAD", head or "-")
	table.add_row("Auto-update", f"{settings.auto_update_interval} min" if settings.auto_update_enabled else "disabled")
	table.add_row("Runtime override", "yes" if settings.source_override else "no")
	table.add_row("Build cleanup", "enabled" if settings.cleanup_enabled else "disabled")
	table.add_row("Ignore patterns", ", ".join(sorted(settings.ignore_patterns)) or "-")
	table.add_row("Tool", f"{settings.tool_name}: {settings.tool_description}")
	Console().print(table)


def build_parser() -> argparse.ArgumentParser:
	parser = argparse.ArgumentParser(
		prog="docs-mcp",
		description="MCP documentation search server with managed content",
	)
	subparsers = parser.add_subparsers(dest="command")
	config_flags = build_arg_parser()

	build_p = subparsers.add_parser("build", parents=[config_flags], help="Populate the data directory")
	build_p.set_defaults(func=cmd_build)

	serve_p = subparsers.add_parser("serve", parents=[config_flags], help="Run MCP server (stdio)")
	serve_p.set_defaults(func=cmd_serve)

	doctor_p = subparsers.add_parser("doctor", parents=[config_flags], help="Health check")
	doctor_p.set_defaults(func=cmd_doctor)

	status_p = subparsers.add_parser("status", parents=[config_flags], help="Show resolved settings")
	status_p.set_defaults(func=cmd_status)
	return parser


def main(argv: list[str] | None = None) -> None:
	"""CLI entry point. Without a subcommand, ``serve`` runs."""
	argv = list(sys.argv[1:] if argv is None else argv)
	if not argv or argv[0] not in COMMANDS and argv[0] not in ("-h", "--help"):
		argv.insert(0, "serve")

	args = build_parser().parse_args(argv)
	args.func(args)
