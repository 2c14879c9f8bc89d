"""lexchat - streaming legal-assistant chat proxy with in-band tool calls."""

__version__ = "0.3.0"
