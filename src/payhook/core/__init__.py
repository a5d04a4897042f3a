"""Configuration and logging for payhook."""

from payhook.core.config import (
    PayhookSettings,
    PipelineConfig,
    ProviderConfig,
    clear_settings,
    get_settings,
    load_config_from_file,
)
from payhook.core.logging import configure_logging

__all__ = [
    "PayhookSettings",
    "PipelineConfig",
    "ProviderConfig",
    "clear_settings",
    "configure_logging",
    "get_settings",
    "load_config_from_file",
]
