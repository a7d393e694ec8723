"""Centralized logging configuration for docs-mcp."""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

import platformdirs

from .config import APP_AUTHOR, APP_NAME

LOGGER_NAME = "docs_mcp"


def default_log_dir() -> Path:
	return Path(platformdirs.user_log_dir(APP_NAME, APP_AUTHOR))


def setup_logging(
	level: str | None = None,
	log_dir: Path | None = None,
	log_to_file: bool = True,
) -> logging.Logger:
	"""
	Set up the package logger with a console and a rotating file handler.

	The console handler writes to stderr: stdout carries the MCP stdio stream.

	Args:
		level: Log level (DEBUG, INFO, WARNING, ERROR). Defaults to LOG_LEVEL or INFO.
		log_dir: Directory for the log file. Defaults to the platform log dir.
		log_to_file: Set False to skip the file handler.

	Returns:
		The configured package logger
	"""
	level = level or os.getenv("LOG_LEVEL", "INFO")
	log_level = getattr(logging, level.upper(), logging.INFO)

	logger = logging.getLogger(LOGGER_NAME)
	logger.setLevel(log_level)

	# Avoid duplicate handlers
	if logger.handlers:
		return logger

	detailed_formatter = logging.Formatter(
		"%(asctime)s [%(levelname)s] %(name)s:%(lineno)d - %(message)s",
		datefmt="%Y-%m-%d %H:%M:%S",
	)
	simple_formatter = logging.Formatter(
		"%(asctime)s [%(levelname)s] %(message)s",
		datefmt="%H:%M:%S",
	)

	console_handler = logging.StreamHandler(sys.stderr)
	console_handler.setLevel(log_level)
	console_handler.setFormatter(simple_formatter)
	logger.addHandler(console_handler)

	if log_to_file:
		log_path = log_dir or default_log_dir()
		try:
			log_path.mkdir(parents=True, exist_ok=True)
			file_handler = RotatingFileHandler(
				log_path / f"{APP_NAME}.log",
				maxBytes=5 * 1024 * 1024,  # 5 MB
				backupCount=3,
			)
		except OSError as e:
			logger.warning("File logging disabled, cannot open %s: %s", log_path, e)
		else:
			file_handler.setLevel(logging.DEBUG)  # File gets all logs
			file_handler.setFormatter(detailed_formatter)
			logger.addHandler(file_handler)

	return logger
