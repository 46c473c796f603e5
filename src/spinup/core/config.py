"""
Configuration persistence for spinup.

Handles discovering, reading and writing the YAML file that declares the
available targets. When the default location has no file yet, a starter
configuration is written there so the first run works out of the box.

Default location: $XDG_CONFIG_HOME/spinup/config.yaml
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from .errors import ConfigError
from .models import Dependency, InternalTarget, SpinupConfig, SupportedLanguage

logger = logging.getLogger(__name__)

CONFIG_FILE = "config.yaml"
CONFIG_ENV_VAR = "SPINUP_CONFIG"


# =============================================================================
# Path helpers
# =============================================================================


def get_default_config_path() -> Path:
    """Get the config path used when none is given explicitly."""
    if env_path := os.environ.get(CONFIG_ENV_VAR):
        return Path(env_path).expanduser()
    config_home = os.environ.get("XDG_CONFIG_HOME")
    base = Path(config_home) if config_home else Path.home() / ".config"
    return base / "spinup" / CONFIG_FILE


def create_default_config() -> SpinupConfig:
    """Create the starter configuration with one node and one elixir target."""
    return SpinupConfig(
        default_target="node",
        targets={
            "node": InternalTarget(
                language=SupportedLanguage.NODE,
                deps=[Dependency(name="axios", version="0.20.0")],
            ),
            "elixir": InternalTarget(
                language=SupportedLanguage.ELIXIR,
                deps=[
                    Dependency(name="httpoison", version="1.7"),
                    Dependency(name="jason", version="1.2"),
                    Dependency(name="nimble_csv", version="1.1"),
                    Dependency(name="floki", version="0.29"),
                ],
            ),
        },
    )


# =============================================================================
# Loading
# =============================================================================


def parse_config(data: Any, source: str = "<config>") -> SpinupConfig:
    """Validate raw YAML data into a SpinupConfig.

    Args:
        data: Parsed YAML document
        source: Description of where the data came from, used in errors

    Raises:
        ConfigError: If the data does not match the config schema
    """
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a mapping at the top of {source}")
    try:
        return SpinupConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid config in {source}: {e}") from e


def load_config(path: Path | None = None, *, write_default: bool = True) -> SpinupConfig:
    """Load the spinup configuration.

    Args:
        path: Explicit config file. Must exist when given.
        write_default: When no explicit path is given and the default file is
            missing, write the starter config there and return it.

    Returns:
        SpinupConfig instance.

    Raises:
        ConfigError: If the file is missing, not valid YAML or not a valid config.
    """
    if path is not None:
        config_path = path.expanduser()
        if not config_path.exists():
            raise ConfigError(f"Config file not found: {config_path}")
    else:
        config_path = get_default_config_path()
        if not config_path.exists():
            if not write_default:
                raise ConfigError(f"Config file not found: {config_path}")
            logger.info("No config at %s, writing the default config", config_path)
            config = create_default_config()
            save_config(config_path, config)
            return config

    try:
        content = config_path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Failed to read {config_path}: {e}") from e

    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e

    if not data:
        raise ConfigError(f"Empty config file: {config_path}")

    logger.debug("Loaded config from %s", config_path)
    return parse_config(data, source=str(config_path))


def save_config(path: Path, config: SpinupConfig) -> Path:
    """Save a configuration as YAML.

    Args:
        path: Destination file; parent directories are created.
        config: Configuration to write.

    Returns:
        Path to the saved file.

    Raises:
        ConfigError: If the file cannot be written.
    """
    data = config.model_dump(mode="json")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(
            yaml.dump(
                data,
                default_flow_style=False,
                sort_keys=False,
                allow_unicode=True,
            ),
            encoding="utf-8",
        )
    except OSError as e:
        raise ConfigError(f"Failed to write config to {path}: {e}") from e

    logger.info("Saved config to %s", path)
    return path
