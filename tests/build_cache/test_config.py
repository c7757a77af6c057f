"""Tests for cache client configuration loading."""

import pytest

from build_cache.config import (
    CacheClientConfig,
    get_config,
    get_default_config_path,
    load_config,
    load_config_from_dict,
    reset_config,
    set_config,
)
from build_cache.errors import ConfigurationError


class TestDefaults:
    def test_defaults(self):
        config = load_config_from_dict({})

        assert config.download.segment_timeout_mins is None
        assert config.http_retry.max_attempts == 2
        assert config.http_retry.delay_seconds == 5.0
        assert config.logging.level == "INFO"
        assert config.logging.log_dir == ""
        assert config.logging.json_format is True

    def test_null_sections_use_defaults(self):
        config = load_config_from_dict({"download": None, "logging": None})
        assert config.download.segment_timeout_mins is None
        assert config.logging.level == "INFO"


class TestEnvironmentOverrides:
    """Environment variables win over file values."""

    def test_segment_timeout_from_env(self, monkeypatch):
        monkeypatch.setenv("SEGMENT_DOWNLOAD_TIMEOUT_MINS", "15")
        config = load_config_from_dict({"download": {"segment_timeout_mins": 2}})
        assert config.download.segment_timeout_mins == 15

    def test_empty_env_value_ignored(self, monkeypatch):
        monkeypatch.setenv("SEGMENT_DOWNLOAD_TIMEOUT_MINS", "")
        config = load_config_from_dict({"download": {"segment_timeout_mins": 2}})
        assert config.download.segment_timeout_mins == 2

    @pytest.mark.parametrize("value", ["abc", "0", "-3", "1.5"])
    def test_invalid_segment_timeout(self, monkeypatch, value):
        monkeypatch.setenv("SEGMENT_DOWNLOAD_TIMEOUT_MINS", value)
        with pytest.raises(ConfigurationError):
            load_config_from_dict({})

    def test_logging_from_env(self, monkeypatch, tmp_path):
        monkeypatch.setenv("BUILD_CACHE_LOG_LEVEL", "debug")
        monkeypatch.setenv("BUILD_CACHE_LOG_DIR", str(tmp_path))

        config = load_config_from_dict({"logging": {"level": "WARNING"}})

        assert config.logging.level == "DEBUG"
        assert config.logging.log_dir == str(tmp_path)


class TestLoadConfig:
    def test_missing_file_uses_defaults(self, tmp_path):
        config = load_config(tmp_path / "missing.yaml")
        assert isinstance(config, CacheClientConfig)
        assert config.http_retry.max_attempts == 2

    def test_yaml_file(self, tmp_path):
        config_file = tmp_path / "build-cache.yaml"
        config_file.write_text(
            "download:\n"
            "  segment_timeout_mins: 20\n"
            "http_retry:\n"
            "  max_attempts: 4\n"
            "  delay_seconds: 0.5\n"
            "logging:\n"
            "  json_format: false\n"
        )

        config = load_config(config_file)

        assert config.download.segment_timeout_mins == 20
        assert config.http_retry.max_attempts == 4
        assert config.http_retry.delay_seconds == 0.5
        assert config.logging.json_format is False

    def test_overrides_merge_over_file(self, tmp_path):
        config_file = tmp_path / "build-cache.yaml"
        config_file.write_text("http_retry:\n  max_attempts: 4\n  delay_seconds: 1\n")

        config = load_config(config_file, overrides={"http_retry": {"max_attempts": 6}})

        assert config.http_retry.max_attempts == 6
        assert config.http_retry.delay_seconds == 1.0

    def test_empty_file(self, tmp_path):
        config_file = tmp_path / "build-cache.yaml"
        config_file.write_text("")
        assert load_config(config_file).download.segment_timeout_mins is None

    def test_invalid_yaml(self, tmp_path):
        config_file = tmp_path / "build-cache.yaml"
        config_file.write_text("download: [unclosed\n")

        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            load_config(config_file)

    def test_non_mapping_yaml(self, tmp_path):
        config_file = tmp_path / "build-cache.yaml"
        config_file.write_text("- just\n- a list\n")

        with pytest.raises(ConfigurationError, match="must contain a mapping"):
            load_config(config_file)

    def test_unknown_key(self):
        with pytest.raises(ConfigurationError, match="Unknown configuration key"):
            load_config_from_dict({"download": {"segment_timeout": 5}})

    def test_invalid_retry_attempts(self):
        with pytest.raises(ConfigurationError):
            load_config_from_dict({"http_retry": {"max_attempts": 0}})

    def test_default_path_from_env(self, monkeypatch, tmp_path):
        monkeypatch.setenv("BUILD_CACHE_CONFIG", str(tmp_path / "custom.yaml"))
        assert get_default_config_path() == tmp_path / "custom.yaml"

    def test_default_path_without_env(self, monkeypatch):
        monkeypatch.delenv("BUILD_CACHE_CONFIG", raising=False)
        assert get_default_config_path().name == "build-cache.yaml"


class TestConfigSingleton:
    def test_get_config_loads_from_default_path(self, monkeypatch, tmp_path):
        config_file = tmp_path / "from-env.yaml"
        config_file.write_text("http_retry:\n  max_attempts: 7\n")
        monkeypatch.setenv("BUILD_CACHE_CONFIG", str(config_file))
        reset_config()

        assert get_config().http_retry.max_attempts == 7

    def test_get_config_is_cached(self):
        reset_config()
        assert get_config() is get_config()

    def test_set_config(self):
        config = load_config_from_dict({"http_retry": {"max_attempts": 9}})
        set_config(config)
        assert get_config() is config
