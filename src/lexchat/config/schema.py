"""Pydantic models for lexchat configuration."""

from __future__ import annotations

from pydantic import BaseModel, Field


class ProviderConfig(BaseModel):
    """Connection settings for the Anthropic API."""

    api_key: str | None = None
    api_key_env: str | None = "ANTHROPIC_API_KEY"
    base_url: str | None = None


class ModelsConfig(BaseModel):
    """Which models serve the chat stream and the tool handlers."""

    chat_model: str = "claude-sonnet-4-5-20250929"
    chat_max_tokens: int = 1000
    chat_temperature: float = 0.7
    tool_model: str = "claude-sonnet-4-5-20250929"
    tool_max_tokens: int = 4000


class RetrySettings(BaseModel):
    """Backoff for tool-handler model calls."""

    max_retries: int = 2
    base_delay: float = 1.0
    max_delay: float = 30.0


class ToolsConfig(BaseModel):
    """Stream interception and tool dispatch settings."""

    max_call_chars: int = Field(default=16_384, gt=0)
    follow_up_rounds: int = Field(default=1, ge=0)
    retry: RetrySettings = Field(default_factory=RetrySettings)


class TodoConfig(BaseModel):
    """Backing file of the todo_manager tool."""

    path: str = "~/.local/share/lexchat/todos.json"


class APIConfig(BaseModel):
    """HTTP server settings."""

    host: str = "127.0.0.1"
    port: int = 8080
    cors_origins: list[str] = Field(default_factory=lambda: ["http://localhost:3000"])


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    file: str = ""
    structured: bool = False


class LexchatConfig(BaseModel):
    """Top-level configuration for lexchat."""

    provider: ProviderConfig = Field(default_factory=ProviderConfig)
    models: ModelsConfig = Field(default_factory=ModelsConfig)
    tools: ToolsConfig = Field(default_factory=ToolsConfig)
    todo: TodoConfig = Field(default_factory=TodoConfig)
    api: APIConfig = Field(default_factory=APIConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
