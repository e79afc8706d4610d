"""Configuration for the plugin host."""

from .provider import ConfigProvider, EnvConfigProvider, ModuleConfig, ServerConfig

__all__ = ["ConfigProvider", "EnvConfigProvider", "ModuleConfig", "ServerConfig"]
