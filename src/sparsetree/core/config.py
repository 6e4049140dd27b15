import os
from typing import Literal, Optional
from pydantic import BaseModel, Field, field_validator


class SparseTreeConfig(BaseModel):
    """Base configuration for sparsetree components.

    This model loads configuration from environment variables and defaults.
    """
    # Hashing Configuration
    hasher: Literal["blake2b", "sha256"] = Field(
        default="blake2b",
        description="Hash function used for leaves and branches"
    )
    blake2b_personalization: str = Field(
        default="ckb-default-hash",
        description="BLAKE2b personalization string (at most 16 bytes)"
    )

    # Logging Configuration
    log_level: str = Field(
        default="INFO",
        description="Log level used by the CLI"
    )

    # Benchmark Workload Configuration
    bench_seed: Optional[int] = Field(
        default=None,
        description="Seed for the workload generator (random if unset)"
    )
    bench_subkey_count: int = Field(
        default=150,
        description="Number of subkeys to generate before deduplication"
    )
    bench_random_key_count: int = Field(
        default=2000,
        description="Number of uniformly random keys"
    )
    bench_clustered_key_count: int = Field(
        default=2000,
        description="Number of keys sharing the 0x8100 prefix"
    )
    bench_multi_prefix_key_count: int = Field(
        default=2000,
        description="Number of keys under the 0x8101..0x8103 prefixes"
    )

    @field_validator('blake2b_personalization')
    def validate_personalization(cls, value):
        """Validate the personalization fits BLAKE2b's parameter block."""
        if len(value.encode()) > 16:
            raise ValueError("BLAKE2b personalization must be at most 16 bytes")
        return value

    @field_validator('log_level')
    def validate_log_level(cls, value):
        """Validate the log level is a standard level name."""
        value = value.upper()
        if value not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {value}")
        return value

    @field_validator(
        'bench_subkey_count',
        'bench_random_key_count',
        'bench_clustered_key_count',
        'bench_multi_prefix_key_count',
    )
    def validate_counts(cls, value):
        """Validate key counts are non-negative."""
        if value < 0:
            raise ValueError("Key counts cannot be negative")
        return value

    model_config = {
        "validate_assignment": True,
    }


def load_config_from_env() -> SparseTreeConfig:
    """Load configuration from environment variables.

    Returns:
        SparseTreeConfig: Configuration instance with values from environment
    """
    # Create a dict of settings from environment variables
    env_settings = {}

    # Map environment variables to config fields
    env_mappings = {
        "SPARSETREE_HASHER": "hasher",
        "SPARSETREE_BLAKE2B_PERSONALIZATION": "blake2b_personalization",
        "SPARSETREE_LOG_LEVEL": "log_level",
        "SPARSETREE_BENCH_SEED": "bench_seed",
        "SPARSETREE_BENCH_SUBKEY_COUNT": "bench_subkey_count",
        "SPARSETREE_BENCH_RANDOM_KEY_COUNT": "bench_random_key_count",
        "SPARSETREE_BENCH_CLUSTERED_KEY_COUNT": "bench_clustered_key_count",
        "SPARSETREE_BENCH_MULTI_PREFIX_KEY_COUNT": "bench_multi_prefix_key_count",
    }

    # Get values from environment
    for env_var, field_name in env_mappings.items():
        if env_var in os.environ:
            value = os.environ[env_var]

            # Handle type conversions
            if field_name.startswith("bench_"):
                value = int(value)

            env_settings[field_name] = value

    # Create config with environment settings
    return SparseTreeConfig(**env_settings)
