"""
Unit tests for carbonbox.config.base module.
"""

from __future__ import annotations

import pytest

from carbonbox.config import RunConfig, ValidationError
from carbonbox.exceptions import ConfigError


class TestRunConfig:
    """Tests for RunConfig dataclass."""

    def test_defaults(self):
        config = RunConfig(start=1745, end=2100)
        assert config.name == "default"
        assert config.do_spinup is False
        assert config.max_spinup == 2000

    def test_end_greater_than_start_validation(self):
        """RunConfig raises ValidationError when end <= start."""
        with pytest.raises(ValidationError, match=r"end .* must be greater than start"):
            RunConfig(start=2100, end=1850)

    def test_end_equal_to_start_validation(self):
        with pytest.raises(ValidationError, match=r"end .* must be greater than start"):
            RunConfig(start=2000, end=2000)

    def test_max_spinup_positive(self):
        with pytest.raises(ValidationError, match="max_spinup must be positive"):
            RunConfig(start=1745, end=2100, max_spinup=0)

    def test_is_a_config_error(self):
        """ValidationError is a ConfigError like every other config failure."""
        with pytest.raises(ConfigError):
            RunConfig(start=2000, end=1990)


class TestFromDict:
    """Tests for building a RunConfig from a [run] table."""

    def test_from_dict(self):
        config = RunConfig.from_dict(
            {"name": "rcp45", "start": 1745, "end": 2300, "do_spinup": True}
        )
        assert config == RunConfig(start=1745, end=2300, name="rcp45", do_spinup=True)

    def test_missing_keys(self):
        with pytest.raises(ValidationError, match="missing required keys: end"):
            RunConfig.from_dict({"start": 1745})

    def test_unknown_key(self):
        with pytest.raises(ValidationError, match=r"Invalid \[run\] table"):
            RunConfig.from_dict({"start": 1745, "end": 2100, "stop": 2200})
