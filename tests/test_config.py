"""Unit tests for configuration module with Pydantic v2 validation."""

import os
from unittest.mock import patch

import pytest

from risk_engine.config import (
    ChannelConfig,
    EngineConfig,
    FraudMatrixConfig,
    SchedulerConfig,
    get_default_config,
    load_config,
    save_config,
)


class TestFraudMatrixConfig:
    """Tests for fraud matrix configuration validation."""

    def test_default_values(self):
        """Test default matching thresholds."""
        config = FraudMatrixConfig()
        assert config.similarity_threshold == 0.8
        assert config.amount_tolerance == 0.1
        assert config.time_window_seconds == 3600
        assert config.match_increment == 0.3

    def test_similarity_threshold_range(self):
        """Test similarity threshold must be between 0 and 1."""
        with pytest.raises(ValueError):
            FraudMatrixConfig(similarity_threshold=1.5)
        with pytest.raises(ValueError):
            FraudMatrixConfig(similarity_threshold=-0.1)

    def test_block_size_minimum(self):
        """Test block size must be at least 1."""
        with pytest.raises(ValueError):
            FraudMatrixConfig(block_size=0)


class TestSchedulerConfig:
    """Tests for scheduler configuration validation."""

    def test_default_values(self):
        """Test default batching and skip threshold."""
        config = SchedulerConfig()
        assert config.batch_size == 250
        assert config.min_transactions == 100
        assert config.high_risk_threshold == 0.7

    def test_batch_size_minimum(self):
        """Test batch size must be positive."""
        with pytest.raises(ValueError):
            SchedulerConfig(batch_size=0)


class TestChannelConfig:
    """Tests for offload channel configuration."""

    def test_default_values(self):
        config = ChannelConfig()
        assert config.request_timeout == 30.0
        assert config.offload_threshold == 1000

    def test_timeout_must_be_positive(self):
        with pytest.raises(ValueError):
            ChannelConfig(request_timeout=0)


class TestEngineConfig:
    """Tests for main configuration class."""

    def test_default_config(self):
        """Test default configuration is valid."""
        config = get_default_config()
        assert config.time_series.window_days == 7
        assert config.clustering.bucket_size == 100.0
        assert config.logging.format == "text"

    def test_extra_fields_forbidden(self):
        """Test unknown fields are rejected."""
        with pytest.raises(ValueError):
            EngineConfig.model_validate({"unknown_field": "value"})

    def test_invalid_log_level(self):
        """Test log level must be a known level name."""
        with pytest.raises(ValueError):
            EngineConfig.model_validate({"logging": {"level": "VERBOSE"}})


class TestLoadConfig:
    """Tests for config loading functionality."""

    def test_load_nonexistent_file(self):
        """Test loading with nonexistent file returns defaults."""
        config = load_config("/nonexistent/path.yaml")
        assert config.scheduler.batch_size == 250

    def test_load_yaml_file(self, tmp_path):
        """Test values are read from a YAML file."""
        path = tmp_path / "engine.yaml"
        path.write_text("scheduler:\n  batch_size: 10\nclustering:\n  bucket_size: 50\n")

        config = load_config(str(path))
        assert config.scheduler.batch_size == 10
        assert config.clustering.bucket_size == 50.0
        assert config.scheduler.min_transactions == 100

    def test_invalid_yaml_values(self, tmp_path):
        """Test invalid values in the file raise ValueError."""
        path = tmp_path / "engine.yaml"
        path.write_text("scheduler:\n  batch_size: -5\n")

        with pytest.raises(ValueError, match="Invalid configuration"):
            load_config(str(path))

    def test_save_and_reload(self, tmp_path):
        """Test a saved configuration loads back unchanged."""
        config = EngineConfig(scheduler=SchedulerConfig(batch_size=42))
        path = tmp_path / "nested" / "saved.yaml"

        save_config(config, str(path))
        assert load_config(str(path)) == config

    def test_env_override_batch_size(self):
        """Test environment variable override for batch size."""
        with patch.dict(os.environ, {"RISK_BATCH_SIZE": "500"}):
            config = load_config("/nonexistent/path.yaml")
            assert config.scheduler.batch_size == 500

    def test_env_override_similarity_threshold(self):
        """Test environment variable override for merchant similarity threshold."""
        with patch.dict(os.environ, {"RISK_SIMILARITY_THRESHOLD": "0.9"}):
            config = load_config("/nonexistent/path.yaml")
            assert config.fraud_matrix.similarity_threshold == 0.9

    def test_env_override_log_level(self):
        """Test environment variable override for log level."""
        with patch.dict(os.environ, {"RISK_LOG_LEVEL": "DEBUG"}):
            config = load_config("/nonexistent/path.yaml")
            assert config.logging.level == "DEBUG"

    def test_env_override_is_validated(self):
        """Test out-of-range environment values are rejected."""
        with patch.dict(os.environ, {"RISK_REQUEST_TIMEOUT": "-1"}):
            with pytest.raises(ValueError):
                load_config("/nonexistent/path.yaml")
