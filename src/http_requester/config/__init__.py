"""Configuration models and environment settings."""

from .settings import (
    DEFAULT_REQUEST_TIMEOUT,
    AgentOptions,
    RequesterConfig,
    RequesterSettings,
)

__all__ = [
    "DEFAULT_REQUEST_TIMEOUT",
    "AgentOptions",
    "RequesterConfig",
    "RequesterSettings",
]
