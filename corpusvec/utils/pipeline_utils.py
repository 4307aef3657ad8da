"""
Pipeline configuration and utility helpers.

This module centralizes common functionality used across the project:

- loading the pipeline configuration (config/pipeline.yaml)
- ensuring directories exist before writing artifacts
- constructing loggers that respect the logging section of the config

The vocabulary, vectorizer and matrix jobs all rely on these utilities.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, Optional

import yaml


DEFAULT_PIPELINE_CONFIG_PATH = "config/pipeline.yaml"

REQUIRED_SECTIONS = ("parallel", "vocabulary", "preprocessing")

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


# ---------------------------------------------------------------------------
# Config loading
# ---------------------------------------------------------------------------


def _load_yaml(path: str) -> Dict[str, Any]:
    """
    Load a YAML configuration file and return it as a dictionary.

    Raises
    ------
    FileNotFoundError
        If the YAML file does not exist.
    ValueError
        If the YAML file is empty or cannot be parsed into a mapping.
    """
    if not os.path.exists(path):
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        cfg = yaml.safe_load(f)

    if cfg is None or not isinstance(cfg, dict):
        raise ValueError(f"Config file is empty or invalid: {path}")

    return cfg


def load_pipeline_config(
    config_path: str = DEFAULT_PIPELINE_CONFIG_PATH,
) -> Dict[str, Any]:
    """
    Load and return the full pipeline configuration dictionary.

    Parameters
    ----------
    config_path : str
        Path to the pipeline YAML configuration file.

    Returns
    -------
    Dict[str, Any]
        Dictionary with at least the "parallel", "vocabulary" and
        "preprocessing" sections. Optional sections ("hashing", "tcm",
        "logging", "paths") are left to the code that reads them.

    Raises
    ------
    KeyError
        If a required section is missing.
    """
    cfg = _load_yaml(config_path)

    for section in REQUIRED_SECTIONS:
        if section not in cfg:
            raise KeyError(f'Missing "{section}" section in pipeline config: {config_path}')

    return cfg


def get_section(config: Optional[Dict[str, Any]], name: str) -> Dict[str, Any]:
    """Return a config section, treating a missing or null section as empty."""
    if not config:
        return {}
    return config.get(name, {}) or {}


# ---------------------------------------------------------------------------
# Filesystem utilities
# ---------------------------------------------------------------------------


def ensure_dir_exists(path: str) -> None:
    """
    Ensure that a directory exists (create it if necessary).

    Parameters
    ----------
    path : str
        Directory path.
    """
    if path and not os.path.exists(path):
        os.makedirs(path, exist_ok=True)


def resolve_artifacts_dir(
    artifacts_dir: Optional[str],
    config: Optional[Dict[str, Any]] = None,
) -> str:
    """Pick an explicit artifacts directory, else the configured one."""
    if artifacts_dir is not None:
        return artifacts_dir
    return get_section(config, "paths").get("artifacts_dir", "artifacts")


# ---------------------------------------------------------------------------
# Logging utilities
# ---------------------------------------------------------------------------


def _parse_log_level(level_str: str) -> int:
    """
    Convert a string log level into a logging module constant.

    Parameters
    ----------
    level_str : str
        One of: "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL" (case-insensitive).

    Returns
    -------
    int
        Corresponding logging level.
    """
    level_str = (level_str or "INFO").upper()
    return {
        "DEBUG": logging.DEBUG,
        "INFO": logging.INFO,
        "WARNING": logging.WARNING,
        "ERROR": logging.ERROR,
        "CRITICAL": logging.CRITICAL,
    }.get(level_str, logging.INFO)


def get_logger(
    name: str,
    config: Optional[Dict[str, Any]] = None,
    log_file_suffix: Optional[str] = None,
) -> logging.Logger:
    """
    Construct and return a logger that respects the logging section of
    the pipeline config.

    Without a config the logger writes INFO and above to the console
    only. File output is enabled by ``logging.to_file`` in the config.

    Parameters
    ----------
    name : str
        Logger name.
    config : Optional[Dict[str, Any]]
        Pipeline configuration.
    log_file_suffix : Optional[str]
        Optional suffix appended to the log file name (e.g., "vocab").

    Returns
    -------
    logging.Logger
        Configured logger instance.
    """
    logger = logging.getLogger(name)

    # If the logger already has handlers, assume it's already configured.
    if logger.handlers:
        return logger

    logging_cfg = get_section(config, "logging")
    paths_cfg = get_section(config, "paths")

    level = _parse_log_level(logging_cfg.get("level", "INFO"))
    logger.setLevel(level)

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if bool(logging_cfg.get("to_file", False)):
        logs_dir = paths_cfg.get("logs_dir", "logs")
        ensure_dir_exists(logs_dir)

        file_prefix = logging_cfg.get("file_prefix", "corpusvec")
        if log_file_suffix:
            filename = f"{file_prefix}_{log_file_suffix}.log"
        else:
            filename = f"{file_prefix}.log"

        file_handler = logging.FileHandler(os.path.join(logs_dir, filename), encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.propagate = False
    return logger
