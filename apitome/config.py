"""Configuration for the APItome client.

Settings come from built-in defaults, then a config file, then environment
variables. The project file ``./.apitome-config.toml`` is used when present;
otherwise the global ``~/.apitome-config.toml``. Example::

    [api]
    base-url = "https://apitome.example.com"
    query-timeout = 180

    [chat]
    max-history-messages = 10
    rate-limit-cooldown = 3600

    [store]
    path = "~/.apitome/apitome.db"
"""

import logging
import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".apitome-config.toml"
ENV_API_BASE_URL = "APITOME_API_BASE_URL"
ENV_STORE = "APITOME_STORE"


@dataclass
class Settings:
    """Client settings.

    Attributes:
        api_base_url: Backend root URL.
        query_timeout: Hard limit for a streamed answer, in seconds.
        request_timeout: Timeout for ingestion calls, in seconds.
        health_timeout: Timeout for the health probe, in seconds.
        max_history_messages: Earlier messages sent as conversation context.
        max_input_length: Longest question accepted, in characters.
        rate_limit_cooldown: Cooldown after a rate-limit response, in seconds.
        store_path: Durable store location; discovered when unset.
    """

    api_base_url: str = "http://localhost:8000"
    query_timeout: float = 180.0
    request_timeout: float = 180.0
    health_timeout: float = 5.0
    max_history_messages: int = 10
    max_input_length: int = 3000
    rate_limit_cooldown: int = 3600
    store_path: Optional[str] = None


# (section, key) in the TOML file -> Settings attribute
_TOML_FIELDS = {
    ("api", "base-url"): "api_base_url",
    ("api", "query-timeout"): "query_timeout",
    ("api", "request-timeout"): "request_timeout",
    ("api", "health-timeout"): "health_timeout",
    ("chat", "max-history-messages"): "max_history_messages",
    ("chat", "max-input-length"): "max_input_length",
    ("chat", "rate-limit-cooldown"): "rate_limit_cooldown",
    ("store", "path"): "store_path",
}


def find_config_file(start_dir: Optional[Path] = None) -> Optional[Path]:
    """Return the config file to use, project first, then global."""
    project_config = (start_dir or Path.cwd()) / CONFIG_FILENAME
    if project_config.exists():
        return project_config

    global_config = Path.home() / CONFIG_FILENAME
    if global_config.exists():
        return global_config

    return None


def read_config_file(path: Path) -> Dict[str, Any]:
    """Parse a TOML config file.

    Raises:
        ValueError: If the file is not valid TOML.
    """
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        logger.error(f"Failed to parse {path}: {e}")
        raise ValueError(f"Failed to parse {path}: {e}") from e


def load_settings(
    config_path: Optional[Path] = None,
    start_dir: Optional[Path] = None,
    environ: Optional[Dict[str, str]] = None,
) -> Settings:
    """Build settings from defaults, a config file and the environment.

    Args:
        config_path: Explicit config file; skips discovery.
        start_dir: Directory searched for a project config file.
        environ: Environment mapping, ``os.environ`` by default.

    Returns:
        The resolved settings.
    """
    settings = Settings()
    environ = os.environ if environ is None else environ

    path = config_path or find_config_file(start_dir)
    if path is not None:
        config = read_config_file(path)
        for (section, key), attr in _TOML_FIELDS.items():
            if section in config and key in config[section]:
                default = getattr(settings, attr)
                value = config[section][key]
                if isinstance(default, (int, float)) and not isinstance(default, bool):
                    value = type(default)(value)
                setattr(settings, attr, value)
        logger.debug(f"Using config file {path}")

    if environ.get(ENV_API_BASE_URL):
        settings.api_base_url = environ[ENV_API_BASE_URL]
    if environ.get(ENV_STORE):
        settings.store_path = environ[ENV_STORE]

    return settings
