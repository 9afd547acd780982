"""Configuration: environment settings, Redis and SocketIO setup."""

from .settings import AppConfig, LimitsConfig, StorageConfig, TokenConfig

__all__ = ["AppConfig", "LimitsConfig", "StorageConfig", "TokenConfig"]
