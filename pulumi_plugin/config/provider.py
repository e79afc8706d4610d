"""Configuration provider following Black Box Design principles."""
import os
from dataclasses import dataclass
from typing import Optional, Protocol


DEFAULT_PORT = 50051


@dataclass
class ServerConfig:
    """Plugin server configuration."""
    host: str
    port: int
    ws_path: str
    log_level: str
    debug: bool


@dataclass
class ModuleConfig:
    """Configuration for the Pulumi module."""
    docker_binary: str
    pulumi_binary: str
    state_file_name: str
    command_timeout: Optional[int]


class ConfigProvider(Protocol):
    """Protocol for configuration providers."""

    def get_server_config(self) -> ServerConfig:
        """Get server configuration."""
        ...

    def get_module_config(self) -> ModuleConfig:
        """Get module configuration."""
        ...


def _parse_int(name: str, value: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {value!r}") from None


class EnvConfigProvider:
    """Environment-based configuration provider."""

    def __init__(self, environ: Optional[dict] = None):
        self._env = os.environ if environ is None else environ

    def _get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self._env.get(key, default)

    def get_server_config(self) -> ServerConfig:
        """Get server configuration from environment variables."""
        # PORT is what the orchestrator sets; API_PORT kept for local runs
        port_env = self._get("PORT") or self._get("API_PORT") or str(DEFAULT_PORT)
        port = _parse_int("PORT", port_env)
        if not 0 < port < 65536:
            raise ValueError(f"PORT must be between 1 and 65535, got {port}")

        return ServerConfig(
            host=self._get("HOST", "0.0.0.0"),
            port=port,
            ws_path=self._get("WS_PATH", "/ws"),
            log_level=self._get("LOG_LEVEL", "INFO").upper(),
            debug=self._get("DEBUG", "false").lower() == "true",
        )

    def get_module_config(self) -> ModuleConfig:
        """Get Pulumi module configuration from environment variables."""
        timeout_env = self._get("COMMAND_TIMEOUT")

        return ModuleConfig(
            docker_binary=self._get("DOCKER_BINARY", "docker"),
            pulumi_binary=self._get("PULUMI_BINARY", "pulumi"),
            state_file_name=self._get("STATE_FILE_NAME", "pulumi-state.json"),
            command_timeout=_parse_int("COMMAND_TIMEOUT", timeout_env) if timeout_env else None,
        )
