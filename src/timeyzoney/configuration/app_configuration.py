from __future__ import annotations
from pathlib import Path
import fcntl
import os
from typing import Any, Dict
import yaml

from timeyzoney.util.logger import get_logger

logger = get_logger("app_configuration")


CONFIG_PATH = Path("./config/app_config.yml").resolve()

DEFAULT_DATABASE_PATH = "./data/timezone.db"
DEFAULT_SHARD_TIMEOUT_SECONDS = 30.0


def _section(data: Dict[str, Any], name: str) -> Dict[str, Any]:
    value = data.get(name, {})
    return value if isinstance(value, dict) else {}


def _optional_int(value: Any) -> int | None:
    if value in (None, ""):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        logger.warning("[APP CONFIGURATION] Ignoring non-integer value %r", value)
        return None


class AppConfig:
    """File-lock based accessor around the YAML application configuration.

    The class caches the contents of ``./config/app_config.yml`` and exposes
    typed shortcuts for the values the bot needs. Environment variables
    (usually loaded from ``.env``) take precedence over the file for the
    audit destinations, mirroring how the token is supplied.
    """

    def __init__(self, config_path: Path) -> None:
        self.config_path = config_path
        self._data: Dict[str, Any] = {}
        self.reload()

    # --------------------------
    # Private helpers
    # --------------------------
    def load_from_disk(self) -> Dict[str, Any]:
        try:
            with self.config_path.open("r", encoding="utf-8") as f:
                fcntl.flock(f.fileno(), fcntl.LOCK_SH)
                try:
                    data = yaml.safe_load(f)
                finally:
                    fcntl.flock(f.fileno(), fcntl.LOCK_UN)
        except FileNotFoundError:
            logger.warning("[APP CONFIGURATION] Config file %s not found, using defaults.", self.config_path)
            return {}
        except Exception as exc:
            logger.error("[APP CONFIGURATION] Failed to load config %s: %s", self.config_path, exc)
            return {}

        if not isinstance(data, dict):
            if data is not None:
                logger.error("[APP CONFIGURATION] Config %s is not a mapping; ignoring it.", self.config_path)
            return {}
        return data

    # --------------------------
    # Public API
    # --------------------------
    def reload(self) -> Dict[str, Any]:
        """Re-read the YAML file, replace the in-memory cache and return it."""
        self._data = self.load_from_disk()
        return self._data

    @property
    def data(self) -> Dict[str, Any]:
        """The cached configuration mapping. Callers should not mutate it."""
        return self._data

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    # --------------------------
    # High-level shortcuts
    # --------------------------
    @property
    def database_path(self) -> Path:
        value = _section(self._data, "database").get("path") or DEFAULT_DATABASE_PATH
        return Path(str(value)).resolve()

    @property
    def log_channel_id(self) -> int | None:
        """Channel receiving audit events (``DISCORD_LOG_CHANNEL`` wins over the file)."""
        return _optional_int(os.getenv("DISCORD_LOG_CHANNEL") or _section(self._data, "audit").get("log_channel_id"))

    @property
    def error_channel_id(self) -> int | None:
        """Channel receiving error events; falls back to the log channel."""
        value = os.getenv("DISCORD_ERROR_CHANNEL") or _section(self._data, "audit").get("error_channel_id")
        return _optional_int(value) or self.log_channel_id

    @property
    def logger_webhook_url(self) -> str | None:
        """Webhook used when no channel can be reached through the gateway."""
        value = os.getenv("DISCORD_LOGGER_WEBHOOK") or _section(self._data, "audit").get("webhook_url")
        return str(value) if value else None

    @property
    def dst_scheduler_enabled(self) -> bool:
        """Whether this process is the DST sweep coordinator.

        Exactly one process of a deployment should have this set; there is
        no election between processes.
        """
        return bool(_section(self._data, "dst_scheduler").get("enabled", True))

    @property
    def allow_overlapping_sweeps(self) -> bool:
        return bool(_section(self._data, "dst_scheduler").get("allow_overlapping_sweeps", False))

    @property
    def shard_timeout_seconds(self) -> float:
        """Deadline for one shard to answer a nickname fan-out request."""
        value = _section(self._data, "fanout").get("shard_timeout_seconds", DEFAULT_SHARD_TIMEOUT_SECONDS)
        try:
            timeout = float(value)
        except (TypeError, ValueError):
            return DEFAULT_SHARD_TIMEOUT_SECONDS
        return timeout if timeout > 0 else DEFAULT_SHARD_TIMEOUT_SECONDS

    @property
    def shard_count(self) -> int | None:
        return _optional_int(_section(self._data, "sharding").get("shard_count"))


# Shared application-wide configuration instance
app_config = AppConfig(CONFIG_PATH)
