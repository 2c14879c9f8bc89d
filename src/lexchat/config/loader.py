"""Configuration loading for the lexchat server and CLI.

Sources, lowest priority first:

    1. Pydantic defaults
    2. ``./lexchat.toml`` in the working directory
    3. The file named by ``$LEXCHAT_CONFIG``
    4. An explicit ``path`` (the CLI's ``--config``)
    5. ``overrides`` passed by the caller

Tables merge key by key, so a later file only needs the settings it
changes. After validation, a missing ``provider.api_key`` is read from the
env var named by ``provider.api_key_env``.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any

from lexchat.core.errors import ConfigError

from .schema import LexchatConfig

PROJECT_FILE = "lexchat.toml"
CONFIG_ENV = "LEXCHAT_CONFIG"


def _config_files(path: str | Path | None) -> list[Path]:
    """Existing config files in merge order.

    Raises:
        ConfigError: If ``$LEXCHAT_CONFIG`` or ``path`` names a missing file.
    """
    files = [p for p in (Path.cwd() / PROJECT_FILE,) if p.is_file()]

    for label, candidate in ((CONFIG_ENV, os.environ.get(CONFIG_ENV)), ("path", path)):
        if not candidate:
            continue
        p = Path(candidate)
        if not p.is_file():
            if label == CONFIG_ENV:
                msg = f"{CONFIG_ENV} points to non-existent file: {candidate}"
            else:
                msg = f"Config file not found: {candidate}"
            raise ConfigError(msg)
        files.append(p)

    return files


def _read_toml(path: Path) -> dict[str, Any]:
    try:
        return tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as e:
        msg = f"Invalid TOML in {path}: {e}"
        raise ConfigError(msg) from e
    except (OSError, UnicodeDecodeError) as e:
        msg = f"Cannot read config file {path}: {e}"
        raise ConfigError(msg) from e


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Merge ``override`` into a copy of ``base``; nested tables merge too."""
    out = dict(base)
    for key, value in override.items():
        current = out.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            out[key] = _deep_merge(current, value)
        else:
            out[key] = value
    return out


def load_config(
    path: str | Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> LexchatConfig:
    """Build the effective configuration.

    Raises:
        ConfigError: On a missing named file, invalid TOML, or a value the
            schema rejects.
    """
    data: dict[str, Any] = {}
    for config_file in _config_files(path):
        data = _deep_merge(data, _read_toml(config_file))
    data = _deep_merge(data, overrides or {})

    try:
        config = LexchatConfig.model_validate(data)
    except ValueError as e:
        msg = f"Configuration validation failed: {e}"
        raise ConfigError(msg) from e

    provider = config.provider
    if provider.api_key is None and provider.api_key_env:
        provider.api_key = os.environ.get(provider.api_key_env)
    return config
