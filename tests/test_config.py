"""Tests for daemon configuration."""

import pytest

from servitor.config import DaemonConfig


class TestDaemonConfig:
    """Test configuration validation."""

    def test_explicit_values(self):
        """Explicit values override environment defaults."""
        cfg = DaemonConfig(log_level="DEBUG", sleep=2.0, pid_file="/tmp/x.pid", tick=0.5)

        assert cfg.sleep == 2.0
        assert cfg.pid_file == "/tmp/x.pid"
        assert cfg.tick == 0.5

    def test_negative_sleep_rejected(self):
        """Negative sleep is invalid."""
        with pytest.raises(ValueError):
            DaemonConfig(sleep=-1.0)

    @pytest.mark.parametrize("field", ["sleep", "tick"])
    def test_nan_rejected(self, field):
        """NaN durations are invalid."""
        with pytest.raises(ValueError):
            DaemonConfig(**{field: float("nan")})

    def test_zero_tick_rejected(self):
        """The sleep granularity must be positive."""
        with pytest.raises(ValueError):
            DaemonConfig(tick=0)

    def test_frozen(self):
        """Configuration is immutable."""
        cfg = DaemonConfig()

        with pytest.raises(AttributeError):
            cfg.sleep = 1.0
