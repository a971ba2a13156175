"""
galib.config — Configuration singleton and settings resolution.

Provides thread-safe lazy loading of an optional config.json, environment
variable overrides, and the resolved accelerator/DNS settings used by the
entry-point scripts.

Has no dependency on the other galib modules.
"""

import json
import logging
import os
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

ROOT_STATE_DIR = "/var/lib/aws-global-accelerator-script"
USER_STATE_DIRNAME = ".aws-global-accelerator-script"

# Global Accelerator is a global service whose API lives in us-west-2
GA_API_REGION = "us-west-2"

DEFAULTS: Dict[str, Any] = {
    "retry_attempts": 3,
    "ip_address_type": "IPV4",
    "protocol": "TCP",
    "port": 22,
    "health_check_port": 80,
    "health_check_path": "/health",
    "health_check_protocol": "TCP",
    "dns_record_ttl": 300,
}

# config key -> environment variable
ENV_OVERRIDES: Dict[str, str] = {
    "retry_attempts": "RETRY_ATTEMPTS",
    "ip_address_type": "GA_IP_ADDRESS_TYPE",
    "protocol": "GA_PROTOCOL",
    "port": "GA_PORT",
    "health_check_port": "GA_HEALTH_CHECK_PORT",
    "health_check_path": "GA_HEALTH_CHECK_PATH",
    "health_check_protocol": "GA_HEALTH_CHECK_PROTOCOL",
    "dns_record_ttl": "DNS_RECORD_TTL",
    "state_dir": "GA_STATE_DIR",
}

_INT_KEYS = {"retry_attempts", "port", "health_check_port", "dns_record_ttl"}

# ---------------------------------------------------------------------------
# Module-level state (config singleton)
# ---------------------------------------------------------------------------

CONFIG_DATA: Dict[str, Any] = {}
_CONFIG_LOADED: bool = False
_CONFIG_LOCK: threading.Lock = threading.Lock()


# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------


def default_state_dir() -> Path:
    """Return the per-privilege state directory (root vs regular user)."""
    if hasattr(os, "geteuid") and os.geteuid() == 0:
        return Path(ROOT_STATE_DIR)
    return Path.home() / USER_STATE_DIRNAME


def get_state_dir() -> Path:
    """
    Resolve the directory holding state files and the log file.

    GA_STATE_DIR wins over the config file's ``state_dir``; both fall back to
    the per-privilege default. Loads the config on first use.
    """
    env_dir = os.environ.get("GA_STATE_DIR")
    if env_dir:
        return Path(env_dir).expanduser()

    cfg_dir = get_config().get("state_dir")
    if cfg_dir:
        return Path(cfg_dir).expanduser()

    return default_state_dir()


def _config_path() -> Path:
    """
    Return the path of config.json: GA_CONFIG_FILE, else inside GA_STATE_DIR or
    the default state dir. Never consults the config's own ``state_dir``.
    """
    env_path = os.environ.get("GA_CONFIG_FILE")
    if env_path:
        return Path(env_path).expanduser()
    env_dir = os.environ.get("GA_STATE_DIR")
    base_dir = Path(env_dir).expanduser() if env_dir else default_state_dir()
    return base_dir / "config.json"


# ---------------------------------------------------------------------------
# Config loading
# ---------------------------------------------------------------------------


def load_config() -> Dict[str, Any]:
    """
    Load configuration from config.json if present.

    A missing file is normal (defaults and environment apply). An unreadable
    file is logged and ignored.

    Returns:
        dict: Parsed configuration data
    """
    global CONFIG_DATA

    config_file = _config_path()
    if not config_file.exists():
        logger.debug("No config file at %s, using defaults", config_file)
        CONFIG_DATA = {}
        return CONFIG_DATA

    try:
        with open(config_file, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError("top-level JSON value must be an object")
        CONFIG_DATA = data
        logger.debug("Configuration loaded from %s", config_file)
    except (OSError, ValueError) as e:
        logger.error("Error loading configuration from %s: %s", config_file, e)
        CONFIG_DATA = {}

    return CONFIG_DATA


def get_config() -> Dict[str, Any]:
    """
    Lazy-load configuration. First call loads from disk; subsequent calls return cached values.
    Thread-safe: uses _CONFIG_LOCK to prevent concurrent initialization.
    """
    global _CONFIG_LOADED, CONFIG_DATA
    with _CONFIG_LOCK:
        if not _CONFIG_LOADED:
            CONFIG_DATA = load_config()
            _CONFIG_LOADED = True
    return CONFIG_DATA


def reset_config() -> None:
    """Forget the cached configuration so the next access reloads it."""
    global _CONFIG_LOADED, CONFIG_DATA
    with _CONFIG_LOCK:
        _CONFIG_LOADED = False
        CONFIG_DATA = {}


# ---------------------------------------------------------------------------
# Config value accessors
# ---------------------------------------------------------------------------


def config_value(key: str, default: Any = None, section: Optional[str] = None) -> Any:
    """
    Get a value from the configuration file.

    Args:
        key: Configuration key
        default: Default value if key is not found
        section: Optional section in the configuration

    Returns:
        The configuration value or default
    """
    cfg = get_config()
    if not cfg:
        return default

    if section:
        section_data = cfg.get(section)
        if isinstance(section_data, dict) and key in section_data:
            return section_data[key]
        return default

    return cfg.get(key, default)


def setting(key: str, override: Any = None) -> Any:
    """
    Resolve a setting by precedence: explicit override > environment > config file > default.

    Integer settings are coerced; a non-numeric value raises ValueError so the
    caller can report it as a usage error.
    """
    if override is not None:
        value = override
    else:
        env_name = ENV_OVERRIDES.get(key)
        env_value = os.environ.get(env_name) if env_name else None
        if env_value:
            value = env_value
        else:
            value = config_value(key, default=DEFAULTS.get(key))

    if key in _INT_KEYS and value is not None:
        try:
            return int(value)
        except (TypeError, ValueError):
            raise ValueError(f"Setting '{key}' must be an integer, got {value!r}")
    return value


# ---------------------------------------------------------------------------
# Resolved settings
# ---------------------------------------------------------------------------


@dataclass
class AcceleratorSettings:
    """Listener and endpoint-group parameters for one accelerator."""

    ip_address_type: str = DEFAULTS["ip_address_type"]
    protocol: str = DEFAULTS["protocol"]
    port: int = DEFAULTS["port"]
    health_check_port: int = DEFAULTS["health_check_port"]
    health_check_path: str = DEFAULTS["health_check_path"]
    health_check_protocol: str = DEFAULTS["health_check_protocol"]

    @classmethod
    def resolve(cls, **overrides: Any) -> "AcceleratorSettings":
        """Build settings from CLI overrides, environment and config file."""
        values = {}
        for field_name in cls.__dataclass_fields__:
            value = setting(field_name, overrides.get(field_name))
            if isinstance(value, str) and field_name != "health_check_path":
                value = value.upper()
            values[field_name] = value
        return cls(**values)
