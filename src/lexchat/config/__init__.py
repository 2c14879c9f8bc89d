"""Configuration loading and validation."""

from lexchat.config.loader import load_config
from lexchat.config.schema import (
    APIConfig,
    LexchatConfig,
    LoggingConfig,
    ModelsConfig,
    ProviderConfig,
    TodoConfig,
    ToolsConfig,
)

__all__ = [
    "APIConfig",
    "LexchatConfig",
    "LoggingConfig",
    "ModelsConfig",
    "ProviderConfig",
    "TodoConfig",
    "ToolsConfig",
    "load_config",
]
