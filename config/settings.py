"""
Configuration management for the media plan engine.
Handles planning defaults, history limits, export settings and logging level.
"""

import logging
import os
import streamlit as st
from dotenv import load_dotenv
from typing import Optional
from dataclasses import dataclass, field

from models.data_models import Timegrain, WeekStartDay

logger = logging.getLogger(__name__)


@dataclass
class AppConfig:
    """Application configuration settings."""
    default_week_start_day: WeekStartDay = WeekStartDay.MONDAY
    history_capacity: int = 20
    default_timegrain: Timegrain = Timegrain.WEEK
    money_precision: int = 2
    default_currency: str = "USD"
    average_order_value: float = 120.0
    log_level: str = "INFO"
    max_file_size_mb: int = 10
    supported_file_formats: list = field(default_factory=lambda: ['.json'])


class ConfigManager:
    """Manages application configuration and settings."""

    def __init__(self, env_file: Optional[str] = None):
        self._config: Optional[AppConfig] = None
        self._env_file = env_file

    def load_config(self) -> AppConfig:
        """Load configuration from Streamlit secrets, then environment, then defaults."""
        if self._config is not None:
            return self._config

        load_dotenv(self._env_file)

        self._config = AppConfig(
            default_week_start_day=self._get_week_start_setting("DEFAULT_WEEK_START_DAY", WeekStartDay.MONDAY),
            history_capacity=max(1, self._get_int_setting("HISTORY_CAPACITY", 20)),
            default_timegrain=self._get_timegrain_setting("DEFAULT_TIMEGRAIN", Timegrain.WEEK),
            money_precision=self._get_int_setting("MONEY_PRECISION", 2),
            default_currency=self._get_setting("DEFAULT_CURRENCY", "USD"),
            average_order_value=self._get_float_setting("AVERAGE_ORDER_VALUE", 120.0),
            log_level=self._get_setting("LOG_LEVEL", "INFO").upper(),
            max_file_size_mb=self._get_int_setting("MAX_FILE_SIZE_MB", 10)
        )

        level = getattr(logging, self._config.log_level, None)
        if isinstance(level, int):
            logging.getLogger().setLevel(level)
        else:
            logger.warning(f"Unknown LOG_LEVEL {self._config.log_level!r}; keeping current level")
        return self._config

    def reload(self) -> AppConfig:
        self._config = None
        return self.load_config()

    def _get_secret_or_env(self, key: str) -> Optional[str]:
        """Get value from Streamlit secrets or environment variables."""
        # Try Streamlit secrets first
        try:
            if hasattr(st, 'secrets') and key in st.secrets:
                return str(st.secrets[key])
        except Exception as e:
            # No secrets.toml outside a Streamlit deployment
            logger.debug(f"Streamlit secrets unavailable for {key}: {str(e)}")

        # Fall back to environment variables
        return os.getenv(key)

    def _get_setting(self, key: str, default: str) -> str:
        """Get string setting with default value."""
        value = self._get_secret_or_env(key)
        return value if value is not None else default

    def _get_int_setting(self, key: str, default: int) -> int:
        """Get integer setting with default value."""
        value = self._get_secret_or_env(key)
        if value is not None:
            try:
                return int(value)
            except ValueError:
                logger.warning(f"Ignoring non-integer {key}={value!r}")
        return default

    def _get_float_setting(self, key: str, default: float) -> float:
        value = self._get_secret_or_env(key)
        if value is not None:
            try:
                return float(value)
            except ValueError:
                logger.warning(f"Ignoring non-numeric {key}={value!r}")
        return default

    def _get_week_start_setting(self, key: str, default: WeekStartDay) -> WeekStartDay:
        value = self._get_secret_or_env(key)
        if value is not None:
            for day in WeekStartDay:
                if day.value.lower() == value.strip().lower():
                    return day
            logger.warning(f"Unknown week start {value!r}; using {default.value}")
        return default

    def _get_timegrain_setting(self, key: str, default: Timegrain) -> Timegrain:
        value = self._get_secret_or_env(key)
        if value is not None:
            for grain in Timegrain:
                if grain.value.lower() == value.strip().lower():
                    return grain
            logger.warning(f"Unknown timegrain {value!r}; using {default.value}")
        return default

    def get_history_capacity(self) -> int:
        """Get undo/redo history capacity."""
        return self.load_config().history_capacity

    def get_average_order_value(self) -> float:
        return self.load_config().average_order_value

    def is_valid_file_format(self, filename: str) -> bool:
        """Check if file format is supported."""
        config = self.load_config()
        return any(filename.lower().endswith(fmt) for fmt in config.supported_file_formats)

    def get_max_file_size_bytes(self) -> int:
        """Get maximum file size in bytes."""
        config = self.load_config()
        return config.max_file_size_mb * 1024 * 1024


# Global configuration manager instance
config_manager = ConfigManager()
