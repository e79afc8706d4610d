#!/usr/bin/env python3
"""
Pulumi Plugin - Main Entry Point

This is the thin orchestration layer that:
1. Loads configuration
2. Configures logging
3. Builds the module and runs the plugin server

All business logic is in the modules.
"""

import logging
from typing import Optional

from fastapi import FastAPI

from pulumi_plugin.config.provider import ConfigProvider, EnvConfigProvider
from pulumi_plugin.logging_config import configure_logging
from pulumi_plugin.modules.server import PluginServer
from pulumi_plugin.modules.stack import PulumiModule

logger = logging.getLogger(__name__)


def build_server(config_provider: Optional[ConfigProvider] = None) -> PluginServer:
    """Wire the Pulumi module into a plugin server from configuration."""
    config_provider = config_provider or EnvConfigProvider()
    module = PulumiModule(config_provider.get_module_config())
    return PluginServer(module, config_provider.get_server_config())


def create_app(config_provider: Optional[ConfigProvider] = None) -> FastAPI:
    """Application factory, usable as ``uvicorn --factory pulumi_plugin.main:create_app``."""
    return build_server(config_provider).create_app()


def main() -> None:
    """Main entry point."""
    config_provider = EnvConfigProvider()
    server_config = config_provider.get_server_config()
    configure_logging(server_config.log_level)

    server = build_server(config_provider)
    logger.info(f"Starting Pulumi plugin on {server_config.host}:{server_config.port}")
    server.run()


if __name__ == "__main__":
    main()
