"""
Tests for configuration loading.
"""

import pytest

from config.settings import AppConfig, ConfigManager
from models.data_models import Timegrain, WeekStartDay

SETTING_KEYS = [
    "DEFAULT_WEEK_START_DAY",
    "HISTORY_CAPACITY",
    "DEFAULT_TIMEGRAIN",
    "MONEY_PRECISION",
    "DEFAULT_CURRENCY",
    "AVERAGE_ORDER_VALUE",
    "LOG_LEVEL",
    "MAX_FILE_SIZE_MB",
]


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """Clear settings from the environment; values loaded from a .env file are undone on teardown."""
    for key in SETTING_KEYS:
        monkeypatch.setenv(key, "")
        monkeypatch.delenv(key)
    return tmp_path


def make_manager(directory):
    return ConfigManager(env_file=str(directory / "missing.env"))


class TestConfigManager:
    """Test cases for ConfigManager class."""

    def test_defaults(self, clean_env):
        config = make_manager(clean_env).load_config()

        assert config == AppConfig()
        assert config.history_capacity == 20
        assert config.default_week_start_day == WeekStartDay.MONDAY

    def test_environment_overrides(self, clean_env, monkeypatch):
        monkeypatch.setenv("HISTORY_CAPACITY", "5")
        monkeypatch.setenv("DEFAULT_WEEK_START_DAY", "sunday")
        monkeypatch.setenv("DEFAULT_TIMEGRAIN", "Month")
        monkeypatch.setenv("AVERAGE_ORDER_VALUE", "95.5")
        manager = make_manager(clean_env)

        assert manager.get_history_capacity() == 5
        assert manager.load_config().default_week_start_day == WeekStartDay.SUNDAY
        assert manager.load_config().default_timegrain == Timegrain.MONTH
        assert manager.get_average_order_value() == 95.5

    @pytest.mark.parametrize("raw,expected", [("abc", 20), ("0", 1), ("-4", 1), ("3", 3)])
    def test_history_capacity_values(self, clean_env, monkeypatch, raw, expected):
        monkeypatch.setenv("HISTORY_CAPACITY", raw)

        assert make_manager(clean_env).get_history_capacity() == expected

    def test_unknown_week_start_falls_back_to_monday(self, clean_env, monkeypatch):
        monkeypatch.setenv("DEFAULT_WEEK_START_DAY", "Wednesday")

        assert make_manager(clean_env).load_config().default_week_start_day == WeekStartDay.MONDAY

    def test_unknown_log_level_does_not_raise(self, clean_env, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "verbose")

        assert make_manager(clean_env).load_config().log_level == "VERBOSE"

    def test_env_file_is_read(self, clean_env):
        env_file = clean_env / ".env"
        env_file.write_text("DEFAULT_CURRENCY=AUD\nMONEY_PRECISION=0\n")

        config = ConfigManager(env_file=str(env_file)).load_config()

        assert config.default_currency == "AUD"
        assert config.money_precision == 0

    def test_config_is_cached_until_reload(self, clean_env, monkeypatch):
        manager = make_manager(clean_env)
        assert manager.get_history_capacity() == 20

        monkeypatch.setenv("HISTORY_CAPACITY", "7")
        assert manager.get_history_capacity() == 20
        assert manager.reload().history_capacity == 7

    def test_file_checks(self, clean_env):
        manager = make_manager(clean_env)

        assert manager.is_valid_file_format("plan.json")
        assert manager.is_valid_file_format("PLAN.JSON")
        assert not manager.is_valid_file_format("plan.xlsx")
        assert manager.get_max_file_size_bytes() == 10 * 1024 * 1024
