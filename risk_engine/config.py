"""Configuration Management Module.

Provides typed configuration for the risk engine with support for YAML
files, environment variable overrides, and validation.

Uses Pydantic v2 for configuration validation.
"""

import os
from pathlib import Path
from typing import Literal, Optional

import yaml
from pydantic import BaseModel, Field


class FraudMatrixConfig(BaseModel):
    """Configuration for the pairwise fraud score matrix."""

    similarity_threshold: float = Field(
        default=0.8, ge=0.0, le=1.0, description="Merchant name similarity above which a pair matches"
    )
    amount_tolerance: float = Field(
        default=0.1, gt=0.0, le=1.0, description="Max relative amount difference for a match"
    )
    time_window_seconds: float = Field(
        default=3600.0, gt=0.0, description="Max time difference for a match"
    )
    match_increment: float = Field(
        default=0.3, gt=0.0, description="Score added per matching peer"
    )
    block_size: int = Field(
        default=512, ge=1, description="Rows compared per vectorised block"
    )


class TimeSeriesConfig(BaseModel):
    """Configuration for daily aggregation."""

    window_days: int = Field(
        default=7, ge=1, description="Number of present days in the trailing moving average"
    )


class ClusteringConfig(BaseModel):
    """Configuration for behaviour clustering."""

    bucket_size: float = Field(
        default=100.0, gt=0.0, description="Width of an average-spend bucket"
    )


class SchedulerConfig(BaseModel):
    """Configuration for the incremental analytics scheduler."""

    batch_size: int = Field(default=250, ge=1, description="Transactions per batch")
    min_transactions: int = Field(
        default=100, ge=0, description="Datasets smaller than this are skipped"
    )
    high_risk_threshold: float = Field(
        default=0.7, ge=0.0, description="Risk factor above which a transaction counts as high risk"
    )


class ChannelConfig(BaseModel):
    """Configuration for the offload channel."""

    request_timeout: float = Field(
        default=30.0, gt=0.0, description="Seconds before a pending request is rejected"
    )
    offload_threshold: int = Field(
        default=1000, ge=0, description="Dataset size from which callers should offload"
    )
    timeout_per_thousand: float = Field(
        default=5.0, ge=0.0, description="Extra seconds of timeout per 1000 transactions in a request"
    )


class LoggingConfig(BaseModel):
    """Configuration for logging."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Log level"
    )
    format: Literal["json", "text"] = Field(default="text", description="Log format")
    log_file: Optional[str] = Field(default=None, description="Log file path")


class DataConfig(BaseModel):
    """Configuration for synthetic data generation and dataset files."""

    num_records: int = Field(
        default=1000, ge=1, description="Number of transactions to generate"
    )
    seed: int = Field(default=42, description="Random seed")
    locale: str = Field(default="en_US", description="Faker locale for data generation")
    num_users: int = Field(default=200, ge=1, description="Distinct users in generated data")
    input_path: str = Field(
        default="data/transactions.csv", description="Input dataset path"
    )
    output_path: str = Field(
        default="data/risk_report.json", description="Assessment report path"
    )


class EngineConfig(BaseModel):
    """Main configuration for the risk engine."""

    fraud_matrix: FraudMatrixConfig = Field(default_factory=FraudMatrixConfig)
    time_series: TimeSeriesConfig = Field(default_factory=TimeSeriesConfig)
    clustering: ClusteringConfig = Field(default_factory=ClusteringConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    channel: ChannelConfig = Field(default_factory=ChannelConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    data: DataConfig = Field(default_factory=DataConfig)

    model_config = {"extra": "forbid"}


# Environment variable -> (section, field, type)
_ENV_OVERRIDES = {
    "RISK_SIMILARITY_THRESHOLD": ("fraud_matrix", "similarity_threshold", float),
    "RISK_AMOUNT_TOLERANCE": ("fraud_matrix", "amount_tolerance", float),
    "RISK_TIME_WINDOW_SECONDS": ("fraud_matrix", "time_window_seconds", float),
    "RISK_BLOCK_SIZE": ("fraud_matrix", "block_size", int),
    "RISK_WINDOW_DAYS": ("time_series", "window_days", int),
    "RISK_BUCKET_SIZE": ("clustering", "bucket_size", float),
    "RISK_BATCH_SIZE": ("scheduler", "batch_size", int),
    "RISK_MIN_TRANSACTIONS": ("scheduler", "min_transactions", int),
    "RISK_REQUEST_TIMEOUT": ("channel", "request_timeout", float),
    "RISK_OFFLOAD_THRESHOLD": ("channel", "offload_threshold", int),
    "RISK_TIMEOUT_PER_THOUSAND": ("channel", "timeout_per_thousand", float),
    "RISK_LOG_LEVEL": ("logging", "level", str),
    "RISK_LOG_FILE": ("logging", "log_file", str),
    "RISK_DATA_SEED": ("data", "seed", int),
    "RISK_DATA_RECORDS": ("data", "num_records", int),
}


def _apply_env_overrides(config: EngineConfig) -> EngineConfig:
    """Apply ``RISK_*`` environment variable overrides to configuration."""
    config_dict = config.model_dump()

    for env_var, (section, field, cast) in _ENV_OVERRIDES.items():
        value = os.getenv(env_var)
        if value:
            config_dict[section][field] = cast(value)

    return EngineConfig.model_validate(config_dict)


def load_config(config_path: Optional[str] = None) -> EngineConfig:
    """Load configuration from YAML file with environment variable overrides.

    Args:
        config_path: Path to YAML config file. If None, uses
                    config/default.yaml when it exists, else defaults.

    Returns:
        Validated EngineConfig object.

    Raises:
        ValueError: If configuration is invalid.
    """
    config_dict: dict = {}

    path = Path(config_path) if config_path else Path("config/default.yaml")

    if path.exists():
        with open(path, "r") as f:
            config_dict = yaml.safe_load(f) or {}

    try:
        config = EngineConfig.model_validate(config_dict)
    except Exception as e:
        raise ValueError(f"Invalid configuration: {e}") from e

    return _apply_env_overrides(config)


def save_config(config: EngineConfig, config_path: str) -> None:
    """Save configuration to YAML file.

    Args:
        config: Configuration to save.
        config_path: Path to save YAML file.
    """
    path = Path(config_path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "w") as f:
        yaml.dump(config.model_dump(), f, default_flow_style=False, sort_keys=False)


def get_default_config() -> EngineConfig:
    """Get default configuration.

    Returns:
        EngineConfig with default values.
    """
    return EngineConfig()
