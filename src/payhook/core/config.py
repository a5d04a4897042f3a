"""Configuration types with environment variable support.

PipelineConfig is what the verification pipeline consumes. PayhookSettings
reads the same values from PAYHOOK_-prefixed environment variables or a
config file and builds a PipelineConfig from them.
Example: PAYHOOK_MAX_AGE_SECONDS=300 rejects events older than five minutes.
"""

from __future__ import annotations

import tomllib
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from payhook.core.logging import configure_logging

DEFAULT_IDEMPOTENCY_TTL = 600
DEFAULT_STORE_TIMEOUT = 5.0


def load_config_from_file(path: str | Path) -> dict[str, Any]:
    """Load configuration from a YAML or TOML file.

    Args:
        path: Path to the configuration file (.yaml, .yml, or .toml)

    Returns:
        Configuration dictionary

    Raises:
        FileNotFoundError: If the config file doesn't exist
        ValueError: If the config file has encoding errors, invalid syntax, or unsupported format
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        content = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise ValueError(f"Config file encoding error in {path}: {e}") from e

    try:
        if path.suffix in (".yaml", ".yml"):
            return yaml.safe_load(content) or {}
        elif path.suffix == ".toml":
            return tomllib.loads(content)
        else:
            raise ValueError(f"Unsupported config format: {path.suffix}")
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {path}: {e}") from e
    except tomllib.TOMLDecodeError as e:
        raise ValueError(f"Invalid TOML in {path}: {e}") from e


def flatten_config(config: dict[str, Any], prefix: str = "") -> dict[str, Any]:
    result: dict[str, Any] = {}
    for key, value in config.items():
        full_key = f"{prefix}_{key}" if prefix else key
        if isinstance(value, dict):
            result.update(flatten_config(value, full_key))
        else:
            result[full_key] = value
    return result


class ProviderConfig(BaseModel):
    """Secret material for one provider."""

    secret: str = Field(
        repr=False,
        description="Paystack secret key, or the Flutterwave secret hash.",
    )
    signature_header: str | None = Field(
        default=None,
        description="Override for the header carrying the signature.",
    )


class PipelineConfig(BaseModel):
    """Configuration for the verification pipeline.

    A provider without a ProviderConfig is never detected, even when its
    signature header is present.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    paystack: ProviderConfig | None = None
    flutterwave: ProviderConfig | None = None
    idempotency_store: Any = Field(
        default=None,
        exclude=True,
        description="Object implementing record_if_absent(key, ttl_seconds).",
    )
    idempotency_ttl: int = Field(
        default=DEFAULT_IDEMPOTENCY_TTL,
        gt=0,
        description="Seconds an event id is remembered.",
    )
    max_age_seconds: float | None = Field(
        default=None,
        gt=0,
        description="Reject events whose timestamp is older than this. None disables.",
    )
    store_timeout: float | None = Field(
        default=DEFAULT_STORE_TIMEOUT,
        gt=0,
        description="Timeout for awaitable idempotency store calls. None waits indefinitely.",
    )
    parse_json: bool = Field(
        default=True,
        description="Parse verified bodies as JSON instead of returning raw text.",
    )

    def provider_config(self, name: str) -> ProviderConfig | None:
        """Get the configuration for a provider by name."""
        value = getattr(self, name, None)
        return value if isinstance(value, ProviderConfig) else None


class PayhookSettings(BaseSettings):
    """Settings read from the environment.

    All settings can be overridden via environment variables:
    - PAYHOOK_PAYSTACK_SECRET: Paystack secret key
    - PAYHOOK_FLUTTERWAVE_SECRET_HASH: Flutterwave secret hash
    - PAYHOOK_MAX_AGE_SECONDS: Freshness threshold
    - PAYHOOK_IDEMPOTENCY_TTL: Seconds an event id is remembered
    - etc.
    """

    model_config = SettingsConfigDict(
        env_prefix="PAYHOOK_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    paystack_secret: str | None = Field(
        default=None,
        repr=False,
        description="Paystack secret key (sk_...).",
    )
    paystack_signature_header: str | None = Field(
        default=None,
        description="Override for the Paystack signature header.",
    )
    flutterwave_secret_hash: str | None = Field(
        default=None,
        repr=False,
        description="Flutterwave secret hash configured in the dashboard.",
    )
    flutterwave_signature_header: str | None = Field(
        default=None,
        description="Override for the Flutterwave verif-hash header.",
    )
    idempotency_ttl: int = Field(
        default=DEFAULT_IDEMPOTENCY_TTL,
        gt=0,
        description="Seconds an event id is remembered.",
    )
    max_age_seconds: float | None = Field(
        default=None,
        gt=0,
        description="Freshness threshold in seconds.",
    )
    store_timeout: float | None = Field(
        default=DEFAULT_STORE_TIMEOUT,
        gt=0,
        description="Timeout for idempotency store calls in seconds.",
    )
    parse_json: bool = Field(
        default=True,
        description="Parse verified bodies as JSON.",
    )
    log_level: str = Field(
        default="info",
        description="Log level (debug, info, warning, error).",
    )

    @classmethod
    def from_file(cls, path: str | Path) -> PayhookSettings:
        """Build settings from a YAML or TOML file.

        Nested sections are flattened, so ``paystack: {secret: ...}``
        becomes ``paystack_secret``.
        """
        return cls(**flatten_config(load_config_from_file(path)))

    def apply_log_level(self) -> None:
        """Apply log_level to structlog."""
        configure_logging(self.log_level)

    def to_pipeline_config(self, store: Any = None) -> PipelineConfig:
        """Build a PipelineConfig, optionally attaching an idempotency store."""
        paystack = None
        if self.paystack_secret:
            paystack = ProviderConfig(
                secret=self.paystack_secret,
                signature_header=self.paystack_signature_header,
            )

        flutterwave = None
        if self.flutterwave_secret_hash:
            flutterwave = ProviderConfig(
                secret=self.flutterwave_secret_hash,
                signature_header=self.flutterwave_signature_header,
            )

        return PipelineConfig(
            paystack=paystack,
            flutterwave=flutterwave,
            idempotency_store=store,
            idempotency_ttl=self.idempotency_ttl,
            max_age_seconds=self.max_age_seconds,
            store_timeout=self.store_timeout,
            parse_json=self.parse_json,
        )


_settings: PayhookSettings | None = None


def get_settings() -> PayhookSettings:
    """Get the global settings instance.

    The instance is created once and cached for the lifetime of the process.
    To reload settings (e.g., in tests), call clear_settings() first.
    """
    global _settings
    if _settings is None:
        _settings = PayhookSettings()
    return _settings


def clear_settings() -> None:
    """Clear the cached settings so the next get_settings() re-reads the environment."""
    global _settings
    _settings = None
