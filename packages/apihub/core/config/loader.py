"""Loading of app configs, build configs and catalog fixtures from JSON or YAML."""

from __future__ import annotations

from collections.abc import Callable
import logging
import os
from pathlib import Path
from typing import Any

import yaml

from apihub.core.config.models import AppConfig
from apihub.core.manifests.models import BuildConfig
from apihub.core.utils.json import read_json
from apihub.core.utils.logging import configure_logging as _configure_logging

logger = logging.getLogger(__name__)

DEFAULT_APP_CONFIG_PATH = Path("config.json")
LOG_LEVEL_ENV = "APIHUB_LOG_LEVEL"


def _parse_json(path: Path) -> dict[str, Any]:
    try:
        return read_json(path)
    except ValueError as e:
        raise ValueError(f"Invalid JSON in {path}: {e}") from e


def _parse_yaml(path: Path) -> dict[str, Any]:
    try:
        content = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {path}: {e}") from e
    if content is None:
        return {}
    if not isinstance(content, dict):
        raise ValueError(f"Expected mapping in {path}, got {type(content).__name__}")
    return content


_PARSERS: dict[str, Callable[[Path], dict[str, Any]]] = {
    "json": _parse_json,
    "yaml": _parse_yaml,
}
_SUFFIX_FORMATS = {".json": "json", ".yaml": "yaml", ".yml": "yaml"}


def detect_format(file_path: Path | str) -> str:
    """Config format from the file suffix.

    Raises:
        ValueError: For anything but ``.json``, ``.yaml`` and ``.yml``

    Example:
        >>> detect_format("catalog.yml")
        'yaml'
    """
    suffix = Path(file_path).suffix.lower()
    try:
        return _SUFFIX_FORMATS[suffix]
    except KeyError:
        raise ValueError(f"Unsupported config format: {suffix}") from None


def load_config(path: str | Path) -> dict[str, Any]:
    """Read a JSON or YAML file holding a single mapping.

    An empty YAML file reads as ``{}``.

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: Unsupported suffix or content that is not a mapping
    """
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Config file does not exist: {path}")
    return _PARSERS[detect_format(path)](path)


def load_app_config(path: str | Path | None = None) -> AppConfig:
    """Validated app config; defaults when the file is absent.

    ``APIHUB_LOG_LEVEL`` takes precedence over the configured log level.

    Raises:
        ValueError: Unreadable file
        ValidationError: Invalid values
    """
    path = Path(path) if path is not None else DEFAULT_APP_CONFIG_PATH
    if path.is_file():
        config = AppConfig.model_validate(load_config(path))
    else:
        logger.debug("No app config at %s, using defaults", path)
        config = AppConfig()

    env_level = os.getenv(LOG_LEVEL_ENV)
    if env_level:
        logging_config = config.logging.model_copy(update={"level": env_level.upper()})
        config = config.model_copy(update={"logging": logging_config})
    return config


def load_build_config(path: str | Path) -> BuildConfig:
    """Build config a build was started with.

    Example:
        >>> [f.file_id for f in load_build_config("build-config.json").files]
        ['api.yaml']
    """
    return BuildConfig.model_validate(load_config(path))


def configure_logging(config: AppConfig) -> None:
    """Apply the logging section of ``config``."""
    _configure_logging(
        level=config.logging.level,
        format_string=config.logging.format,
        filename=config.logging.filename,
        structured=config.logging.structured,
    )
