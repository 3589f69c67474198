"""Configuration management for Timecard."""

import json
import os
from pathlib import Path
from typing import Any, Dict, Optional

from .time_utils import BASELINE_COMPLETED_MINUTES, TARGET_HOURS

DEFAULT_CONFIG = {
    "api_key": "",  # nosec B105 - identity provider web API key
    "project_id": "",
    "email": "",
    "target_hours": TARGET_HOURS,
    "baseline_minutes": BASELINE_COMPLETED_MINUTES,
    "tick_interval": 1.0,  # 1 second
    "poll_interval": 5.0,
    "request_timeout": 30,
    "verbose_logging": True,
    "seed_on_first_use": True,
    "report_dir": "",
}

INT_KEYS = ["target_hours", "baseline_minutes", "request_timeout"]
FLOAT_KEYS = ["tick_interval", "poll_interval"]
BOOL_KEYS = ["verbose_logging", "seed_on_first_use"]


class Config:
    """Configuration manager for Timecard."""

    def __init__(self, config_dir: Optional[str] = None):
        """Initialize configuration manager.

        Args:
            config_dir: Custom configuration directory path
        """
        if config_dir:
            self.config_dir = Path(config_dir)
        else:
            self.config_dir = get_default_config_dir()

        self.config_file = self.config_dir / "settings.json"
        self.config_dir.mkdir(parents=True, exist_ok=True)

        self._config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from file or create default."""
        if self.config_file.exists():
            try:
                with open(self.config_file, "r", encoding="utf-8") as f:
                    config = json.load(f)
                # Merge with defaults to ensure all keys exist
                merged_config = DEFAULT_CONFIG.copy()
                merged_config.update(config)
                return merged_config
            except (json.JSONDecodeError, IOError) as e:
                print(f"Warning: Could not load config file: {e}")
                print("Using default configuration.")

        return DEFAULT_CONFIG.copy()

    def save(self) -> None:
        """Save current configuration to file."""
        try:
            with open(self.config_file, "w", encoding="utf-8") as f:
                json.dump(self._config, f, indent=2, ensure_ascii=False)
        except IOError as e:
            print(f"Warning: Could not save config file: {e}")

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value.

        Args:
            key: Configuration key
            default: Default value if key not found

        Returns:
            Configuration value
        """
        return self._config.get(key, default)

    def set(self, key: str, value: Any) -> None:
        """Set configuration value."""
        self._config[key] = value

    def update(self, config_dict: Dict[str, Any]) -> None:
        """Update multiple configuration values."""
        self._config.update(config_dict)

    def reset_to_defaults(self) -> None:
        """Reset configuration to default values."""
        self._config = DEFAULT_CONFIG.copy()

    def get_all(self) -> Dict[str, Any]:
        """Get all configuration values."""
        return self._config.copy()

    @property
    def is_configured(self) -> bool:
        """True when both backend connection values are present."""
        return bool(self.api_key and self.project_id)

    @property
    def api_key(self) -> str:
        return self.get("api_key", "")

    @property
    def project_id(self) -> str:
        return self.get("project_id", "")

    @property
    def target_hours(self) -> int:
        return self.get("target_hours", TARGET_HOURS)

    @property
    def baseline_minutes(self) -> int:
        return self.get("baseline_minutes", BASELINE_COMPLETED_MINUTES)

    @property
    def tick_interval(self) -> float:
        return self.get("tick_interval", 1.0)

    @property
    def poll_interval(self) -> float:
        return self.get("poll_interval", 5.0)

    @property
    def request_timeout(self) -> int:
        return self.get("request_timeout", 30)

    @property
    def verbose_logging(self) -> bool:
        return self.get("verbose_logging", True)

    @verbose_logging.setter
    def verbose_logging(self, value: bool) -> None:
        self.set("verbose_logging", value)

    @property
    def report_dir(self) -> Path:
        """Directory exported reports are written to."""
        report_dir = self.get("report_dir")
        if report_dir:
            return Path(report_dir)
        return Path.cwd()


def load_config_from_env() -> Dict[str, Any]:
    """Load configuration from environment variables.

    Returns:
        Configuration dictionary from environment
    """
    env_config: Dict[str, Any] = {}

    env_mappings = {
        "TIMECARD_API_KEY": "api_key",  # nosec B105
        "TIMECARD_PROJECT_ID": "project_id",
        "TIMECARD_EMAIL": "email",
        "TIMECARD_TARGET_HOURS": "target_hours",
        "TIMECARD_BASELINE_MINUTES": "baseline_minutes",
        "TIMECARD_TICK_INTERVAL": "tick_interval",
        "TIMECARD_POLL_INTERVAL": "poll_interval",
        "TIMECARD_REQUEST_TIMEOUT": "request_timeout",
        "TIMECARD_VERBOSE": "verbose_logging",
        "TIMECARD_SEED": "seed_on_first_use",
        "TIMECARD_REPORT_DIR": "report_dir",
    }

    for env_var, config_key in env_mappings.items():
        value = os.getenv(env_var)
        if value is None:
            continue
        if config_key in INT_KEYS:
            try:
                env_config[config_key] = int(value)
            except ValueError:
                print(f"Warning: Invalid integer value for {env_var}: {value}")
        elif config_key in FLOAT_KEYS:
            try:
                env_config[config_key] = float(value)
            except ValueError:
                print(f"Warning: Invalid number value for {env_var}: {value}")
        elif config_key in BOOL_KEYS:
            env_config[config_key] = value.lower() in ("true", "1", "yes", "on")
        else:
            env_config[config_key] = value

    return env_config


def get_default_config_dir() -> Path:
    """Get the default configuration directory for the current user."""
    xdg = os.getenv("XDG_CONFIG_HOME")
    base = Path(xdg) if xdg else Path.home() / ".config"
    return base / "timecard"


# Global config instance
_global_config: Optional[Config] = None


def get_config() -> Config:
    """Get global configuration instance.

    Returns:
        Global Config instance
    """
    global _global_config
    if _global_config is None:
        _global_config = Config()
        # Apply environment variable overrides
        env_config = load_config_from_env()
        if env_config:
            _global_config.update(env_config)
    return _global_config


def reload_config() -> Config:
    """Reload configuration from file."""
    global _global_config
    _global_config = None
    return get_config()
