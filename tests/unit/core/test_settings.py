"""Unit tests for configuration management."""

from pathlib import Path

from redis_tics.core.config import Settings


class TestSettings:
    """Test Settings defaults and environment overrides."""

    def test_defaults(self, monkeypatch):
        """Test the documented defaults."""
        monkeypatch.delenv("REDIS_TICS_LOG_LEVEL", raising=False)
        s = Settings(_env_file=None)

        assert s.log_level == "INFO"
        assert s.monitor_read_timeout == 1.0
        assert s.monitor_retry_delay == 0.1
        assert s.analysis_default_sample_size == 1000
        assert s.client_idle_threshold_seconds == 300
        assert s.mostly_idle_ratio == 0.95
        assert s.high_idle_min_clients == 5
        assert s.keys_warning_threshold == 1000
        assert s.keys_critical_threshold == 10000
        assert s.large_key_threshold_bytes == 1024 * 1024
        assert s.master_key is None

    def test_env_prefix(self, monkeypatch):
        """Test that REDIS_TICS_ variables override fields."""
        monkeypatch.setenv("REDIS_TICS_MONITOR_READ_TIMEOUT", "0.5")
        monkeypatch.setenv("REDIS_TICS_KEYS_CRITICAL_THRESHOLD", "50000")
        monkeypatch.setenv("REDIS_TICS_CONFIG_DIR", "/tmp/tics")

        s = Settings(_env_file=None)

        assert s.monitor_read_timeout == 0.5
        assert s.keys_critical_threshold == 50000
        assert s.config_dir == Path("/tmp/tics")

    def test_empty_env_ignored(self, monkeypatch):
        """Test that empty variables fall back to defaults."""
        monkeypatch.setenv("REDIS_TICS_LOG_LEVEL", "")
        assert Settings(_env_file=None).log_level == "INFO"

    def test_derived_paths(self, tmp_path):
        """Test the files kept under config_dir."""
        s = Settings(_env_file=None, config_dir=tmp_path)

        assert s.servers_file == tmp_path / "servers.json"
        assert s.key_file == tmp_path / ".key"

    def test_master_key_is_secret(self, monkeypatch):
        """Test that the master key is not exposed in repr."""
        monkeypatch.setenv("REDIS_TICS_MASTER_KEY", "c2VjcmV0")
        s = Settings(_env_file=None)

        assert s.master_key.get_secret_value() == "c2VjcmV0"
        assert "c2VjcmV0" not in repr(s)
