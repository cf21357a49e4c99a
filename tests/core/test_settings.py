"""
Tests for ForkSettings construction and validation.
"""

import pytest

from multifork.config import Config
from multifork.settings import (
    DEFAULT_RESERVE_TIMEOUT,
    DEFAULT_SECONDS_PER_FORK,
    ForkSettings,
)


@pytest.mark.unit
class TestForkSettingsDefaults:
    """Test default values."""

    def test_defaults(self):
        settings = ForkSettings()
        assert settings.seconds_per_fork == DEFAULT_SECONDS_PER_FORK == 60.0
        assert settings.jobs_per_fork is None
        assert settings.memory_threshold is None
        assert settings.amortize is True
        assert settings.reserve_timeout == DEFAULT_RESERVE_TIMEOUT
        assert settings.run_at_exit_hooks is False
        assert not settings.count_mode

    def test_count_mode(self):
        assert ForkSettings(jobs_per_fork=3).count_mode

    def test_frozen(self):
        with pytest.raises(AttributeError):
            ForkSettings().jobs_per_fork = 3  # type: ignore[misc]


@pytest.mark.unit
class TestForkSettingsFromMapping:
    """Test validation of raw values."""

    def test_empty_mapping_gives_defaults(self, lg):
        assert ForkSettings.from_mapping({}, lg=lg) == ForkSettings()

    def test_full_mapping(self, lg):
        settings = ForkSettings.from_mapping(
            {
                "seconds_per_fork": "2m",
                "jobs_per_fork": "25",
                "memory_threshold": "512MB",
                "amortize": "yes",
                "reserve_timeout": 0.5,
                "run_at_exit_hooks": True,
            },
            lg=lg,
        )
        assert settings.seconds_per_fork == 120.0
        assert settings.jobs_per_fork == 25
        assert settings.memory_threshold == 512 * 1024**2
        assert settings.amortize is True
        assert settings.reserve_timeout == 0.5
        assert settings.run_at_exit_hooks is True

    def test_minutes_per_fork(self, lg):
        assert ForkSettings.from_mapping({"minutes_per_fork": 2}, lg=lg).seconds_per_fork == 120

    def test_seconds_take_precedence_over_minutes(self, lg):
        settings = ForkSettings.from_mapping(
            {"seconds_per_fork": 30, "minutes_per_fork": 5}, lg=lg
        )
        assert settings.seconds_per_fork == 30

    @pytest.mark.parametrize("value", ["-5", "abc", -1])
    def test_invalid_duration_falls_back(self, lg, log_stream, value):
        settings = ForkSettings.from_mapping({"seconds_per_fork": value}, lg=lg)
        assert settings.seconds_per_fork == DEFAULT_SECONDS_PER_FORK
        assert "ignoring" in log_stream.getvalue()

    @pytest.mark.parametrize("value", [0, "0", -3, "2.5", "lots"])
    def test_invalid_job_count_uses_time_budget(self, lg, value):
        settings = ForkSettings.from_mapping({"jobs_per_fork": value}, lg=lg)
        assert settings.jobs_per_fork is None
        assert not settings.count_mode

    def test_float_job_count_with_integral_value(self, lg):
        assert ForkSettings.from_mapping({"jobs_per_fork": 4.0}, lg=lg).jobs_per_fork == 4

    @pytest.mark.parametrize("value", [None, "", 0, "0", -1, "-1024", "12 parsecs", False])
    def test_memory_threshold_disabled(self, lg, value):
        """Test unset, zero, negative and invalid ceilings disable memory checks."""
        assert ForkSettings.from_mapping({"memory_threshold": value}, lg=lg).memory_threshold is None

    @pytest.mark.parametrize(
        "value,expected", [(1048576, 1048576), ("1048576", 1048576), ("1GB", 1024**3)]
    )
    def test_memory_threshold(self, lg, value, expected):
        assert ForkSettings.from_mapping({"memory_threshold": value}, lg=lg).memory_threshold == expected

    @pytest.mark.parametrize("value,expected", [("false", False), ("0", False), (0, False), ("on", True)])
    def test_amortize(self, lg, value, expected):
        assert ForkSettings.from_mapping({"amortize": value}, lg=lg).amortize is expected


@pytest.mark.unit
class TestForkSettingsFromConfig:
    """Test reading a Config section."""

    def test_from_config(self, lg, sample_config_dict):
        config = Config(data=sample_config_dict, enable_env_overrides=False)
        settings = ForkSettings.from_config(config, lg=lg)
        assert settings.jobs_per_fork == 25
        assert settings.memory_threshold == 256 * 1024**2
        assert settings.reserve_timeout == 2.0

    def test_missing_section(self, lg):
        config = Config(data={"worker": {}}, enable_env_overrides=False)
        assert ForkSettings.from_config(config, lg=lg) == ForkSettings()

    def test_custom_section(self, lg):
        config = Config(data={"workers": {"mail": {"jobs_per_fork": 7}}}, enable_env_overrides=False)
        assert ForkSettings.from_config(config, section="workers.mail", lg=lg).jobs_per_fork == 7

    def test_plain_dict(self, lg):
        assert ForkSettings.from_config({"fork": {"jobs_per_fork": 2}}, lg=lg).jobs_per_fork == 2


@pytest.mark.unit
class TestForkSettingsFromEnv:
    """Test the classic environment variables."""

    def test_empty_environment(self, lg):
        assert ForkSettings.from_env({}, lg=lg) == ForkSettings()

    def test_variables(self, lg):
        settings = ForkSettings.from_env(
            {"JOBS_PER_FORK": "100", "MINUTES_PER_FORK": "3", "MEMORY_THRESHOLD": "2048"},
            lg=lg,
        )
        assert settings.jobs_per_fork == 100
        assert settings.seconds_per_fork == 180
        assert settings.memory_threshold == 2048

    def test_seconds_per_fork(self, lg):
        assert ForkSettings.from_env({"SECONDS_PER_FORK": "90"}, lg=lg).seconds_per_fork == 90

    def test_disable_flag_presence(self, lg):
        """Test any value of the disable variable turns amortization off."""
        assert ForkSettings.from_env({"DISABLE_MULTI_JOBS_PER_FORK": ""}, lg=lg).amortize is False

    def test_negative_memory_threshold_disables(self, lg):
        assert ForkSettings.from_env({"MEMORY_THRESHOLD": "-1"}, lg=lg).memory_threshold is None

    def test_resque_memory_threshold_in_kilobytes(self, lg):
        settings = ForkSettings.from_env({"RESQUE_MEM_THRESHOLD": "204800"}, lg=lg)
        assert settings.memory_threshold == 200 * 1024 * 1024

    def test_resque_memory_threshold_with_units(self, lg):
        settings = ForkSettings.from_env({"RESQUE_MEM_THRESHOLD": "1GB"}, lg=lg)
        assert settings.memory_threshold == 1024**3

    def test_memory_threshold_preferred_over_resque_name(self, lg):
        settings = ForkSettings.from_env(
            {"MEMORY_THRESHOLD": "64MB", "RESQUE_MEM_THRESHOLD": "1"}, lg=lg
        )
        assert settings.memory_threshold == 64 * 1024 * 1024

    def test_resque_memory_threshold_zero_disables(self, lg):
        assert ForkSettings.from_env({"RESQUE_MEM_THRESHOLD": "0"}, lg=lg).memory_threshold is None
