"""HTTP API: chat streaming, tool catalog, health."""
