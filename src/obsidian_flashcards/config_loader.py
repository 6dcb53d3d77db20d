"""Config loader utilities (split from config.py)."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError as PydanticValidationError

from .config_settings import Config
from .error_codes import ErrorCode
from .exceptions import ConfigurationError
from .utils.logging import get_logger

CONFIG_ENV_VAR = "FLASHCARDS_CONFIG"
ENV_PREFIX = "FLASHCARDS_"

_config: Config | None = None


def _find_config_file(config_path: Path | None) -> Path | None:
    logger = get_logger(__name__)

    candidate_paths: list[Path] = []
    if config_path:
        candidate_paths.append(config_path.expanduser())
    else:
        env_path = os.getenv(CONFIG_ENV_VAR)
        if env_path:
            candidate_paths.append(Path(env_path).expanduser())
        candidate_paths.append(Path.cwd() / "config.yaml")

    for candidate in candidate_paths:
        if candidate.exists():
            logger.info("config_file_found", config_path=str(candidate))
            return candidate

    if config_path:
        msg = f"Config file not found: {config_path}"
        raise ConfigurationError(
            msg,
            suggestion="Pass an existing file with --config",
            error_code=ErrorCode.CFG_PATH_INVALID.value,
        )

    logger.debug(
        "config_file_not_found", searched_paths=[str(p) for p in candidate_paths]
    )
    return None


def _read_yaml(path: Path) -> dict[str, Any]:
    logger = get_logger(__name__)
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.error(
            "config_yaml_load_error",
            config_path=str(path),
            error=str(e),
            error_type=type(e).__name__,
        )
        msg = f"Failed to parse config file: {path}"
        raise ConfigurationError(
            msg,
            suggestion=(
                "Check YAML syntax (indentation, colons, quotes). "
                f"Original error: {e}"
            ),
            error_code=ErrorCode.CFG_INVALID.value,
        ) from e

    if not isinstance(data, dict):
        msg = f"Config file must contain a mapping: {path}"
        raise ConfigurationError(msg, error_code=ErrorCode.CFG_INVALID.value)

    logger.debug("config_yaml_loaded", config_path=str(path), keys_count=len(data))
    return data


def load_config(config_path: Path | None = None, *, validate_paths: bool = True) -> Config:
    """Load configuration from config.yaml, .env and the environment.

    Environment variables (``FLASHCARDS_*``) override values from the YAML
    file.

    Args:
        config_path: Explicit config file; otherwise ``$FLASHCARDS_CONFIG``
            and ``./config.yaml`` are tried
        validate_paths: Check that the vault directories exist

    Raises:
        ConfigurationError: If the file is malformed or values are invalid
    """
    logger = get_logger(__name__)

    resolved_path = _find_config_file(config_path)
    yaml_data = _read_yaml(resolved_path) if resolved_path else {}

    # Init kwargs beat environment in pydantic-settings, so drop YAML keys
    # the environment already sets.
    config_kwargs = {
        key: value
        for key, value in yaml_data.items()
        if f"{ENV_PREFIX}{key}".upper() not in os.environ
    }

    # Relative vault paths in the file are relative to the file itself
    vault_raw = config_kwargs.get("vault_path")
    if resolved_path and isinstance(vault_raw, str) and vault_raw:
        vault = Path(vault_raw).expanduser()
        if not vault.is_absolute():
            config_kwargs["vault_path"] = resolved_path.parent / vault

    try:
        config = Config(**config_kwargs)
    except PydanticValidationError as e:
        logger.error(
            "config_validation_error",
            error=str(e),
            config_path=str(resolved_path) if resolved_path else None,
        )
        msg = "Invalid configuration"
        raise ConfigurationError(
            msg,
            suggestion=str(e),
            error_code=ErrorCode.CFG_INVALID.value,
        ) from e

    if validate_paths:
        config.validate_paths()

    logger.info(
        "config_loaded",
        vault_path=str(config.vault_path),
        root_deck=config.root_deck,
        anki_connect_url=config.anki_connect_url,
    )
    return config


def get_config() -> Config:
    """Get singleton config instance."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def set_config(config: Config) -> None:
    """Set singleton config instance (for testing)."""
    global _config
    _config = config


def reset_config() -> None:
    """Reset global config instance (for testing only)."""
    global _config
    _config = None


__all__ = ["Config", "get_config", "load_config", "reset_config", "set_config"]
