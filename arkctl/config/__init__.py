"""
Config Module - Black Box Interface

Purpose: Resolve deploy flags and tool settings into immutable config
Interface: resolve_deploy_config(), EnvConfigProvider
Hidden: Config file format, environment parsing
"""

from .provider import (
    DEFAULT_PORT,
    MAVEN_BUILD_ARGS,
    ConfigProvider,
    DeployConfig,
    EnvConfigProvider,
    ToolConfig,
    resolve_deploy_config,
)

__all__ = [
    "DEFAULT_PORT",
    "MAVEN_BUILD_ARGS",
    "ConfigProvider",
    "DeployConfig",
    "EnvConfigProvider",
    "ToolConfig",
    "resolve_deploy_config",
]
