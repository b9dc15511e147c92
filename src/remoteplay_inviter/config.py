""" config.py

Settings and the small amount of state the client keeps on disk.

AppSettings are read from the environment once at startup (a .env file in the working directory is loaded first, see app.py). They are immutable afterwards.

ConfigStore owns the config directory:
    endpoint.toml   optional. url = "wss://..." points the client at a different relay.
    config.toml     uuid = "...". A random client id, generated on first run and reused after that. The relay uses it to recognise the same client across restarts.
"""
from __future__ import annotations

import logging
import os
import tomllib
import uuid
from pathlib import Path
from typing import Any, Dict, Mapping, NamedTuple, Optional

import tomli_w

from .errors import ConfigError
from .relay.relay_classes import RelaySettings

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT_URL = "ws://localhost:8000"
DEFAULT_CONFIG_DIR = Path.home() / ".remoteplay-inviter"
ENDPOINT_CONFIG_FILE = "endpoint.toml"
CONFIG_FILE = "config.toml"

_TRUE_VALUES = ("1", "true", "yes", "on")
_FALSE_VALUES = ("0", "false", "no", "off", "")


class AppSettings(NamedTuple):
    endpoint_url: str
    log_level: str
    config_dir: Path
    steam_controller: Optional[str]  # "module:attribute" of the SteamController implementation.
    steam_poll_interval: float
    relay: RelaySettings

    @staticmethod
    def load_from_env(environ: Optional[Mapping[str, str]] = None) -> AppSettings:
        """Raises ConfigError when a value is present but malformed."""
        env = environ if environ is not None else os.environ
        defaults = RelaySettings()

        relay = RelaySettings(
            connect_timeout=_positive_float(env, "REMOTEPLAY_CONNECT_TIMEOUT", defaults.connect_timeout),
            idle_timeout=_positive_float(env, "REMOTEPLAY_IDLE_TIMEOUT", defaults.idle_timeout),
            backoff_initial=_positive_int(env, "REMOTEPLAY_BACKOFF_INITIAL", defaults.backoff_initial),
            backoff_max=_positive_int(env, "REMOTEPLAY_BACKOFF_MAX", defaults.backoff_max),
            reset_backoff_on_close=_flag(env, "REMOTEPLAY_RESET_BACKOFF_ON_CLOSE", defaults.reset_backoff_on_close),
            stop_on_rejection=_flag(env, "REMOTEPLAY_STOP_ON_REJECTION", defaults.stop_on_rejection),
        )
        if relay.backoff_max < relay.backoff_initial:
            raise ConfigError("REMOTEPLAY_BACKOFF_MAX must not be smaller than REMOTEPLAY_BACKOFF_INITIAL")

        config_dir = env.get("REMOTEPLAY_CONFIG_DIR")
        return AppSettings(
            endpoint_url=env.get("ENDPOINT_URL") or DEFAULT_ENDPOINT_URL,
            log_level=env.get("LOG_LEVEL", "WARNING"),
            config_dir=Path(config_dir).expanduser() if config_dir else DEFAULT_CONFIG_DIR,
            steam_controller=env.get("REMOTEPLAY_STEAM_CONTROLLER") or None,
            steam_poll_interval=_positive_float(env, "REMOTEPLAY_STEAM_POLL_INTERVAL", 0.1),
            relay=relay,
        )


def _positive_float(env: Mapping[str, str], key: str, default: float) -> float:
    raw = env.get(key)
    if raw is None or raw == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ConfigError(f"{key} must be a number, got {raw!r}") from None
    if value <= 0:
        raise ConfigError(f"{key} must be greater than zero, got {raw!r}")
    return value


def _positive_int(env: Mapping[str, str], key: str, default: int) -> int:
    raw = env.get(key)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigError(f"{key} must be a whole number, got {raw!r}") from None
    if value < 1:
        raise ConfigError(f"{key} must be at least 1, got {raw!r}")
    return value


def _flag(env: Mapping[str, str], key: str, default: bool) -> bool:
    raw = env.get(key)
    if raw is None:
        return default
    lowered = raw.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ConfigError(f"{key} must be a boolean (1/0, true/false), got {raw!r}")


class ConfigStore:
    """Reads and writes the files in the config directory. Every failure is raised as ConfigError."""

    def __init__(self, config_dir: Path):
        self._config_dir: Path = config_dir

    @property
    def config_dir(self) -> Path:
        return self._config_dir

    def read_endpoint_override(self) -> Optional[str]:
        data = self._read_toml(self._config_dir / ENDPOINT_CONFIG_FILE)
        if data is None:
            return None

        url = data.get("url")
        if not isinstance(url, str) or not url.strip():
            raise ConfigError(f"{ENDPOINT_CONFIG_FILE} must contain a non-empty 'url' string")
        return url.strip()

    def read_or_create_client_id(self) -> str:
        path = self._config_dir / CONFIG_FILE
        data = self._read_toml(path)
        if data is None:
            data = {}

        client_id = data.get("uuid")
        if isinstance(client_id, str) and client_id:
            return client_id
        if client_id is not None:
            raise ConfigError(f"{CONFIG_FILE} has an invalid 'uuid' value")

        data["uuid"] = str(uuid.uuid4())
        self._write_toml(path, data)
        logger.info("Generated a new client id in %s", path)
        return data["uuid"]

    @staticmethod
    def _read_toml(path: Path) -> Optional[Dict[str, Any]]:
        try:
            with path.open("rb") as file:
                return tomllib.load(file)
        except FileNotFoundError:
            return None
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Failed to parse {path}: {e}") from e
        except OSError as e:
            raise ConfigError(f"Failed to read {path}: {e}") from e

    @staticmethod
    def _write_toml(path: Path, data: Dict[str, Any]):
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with path.open("wb") as file:
                tomli_w.dump(data, file)
        except OSError as e:
            raise ConfigError(f"Failed to write {path}: {e}") from e
