"""Configuration provider following Black Box Design principles."""
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Protocol

import yaml

logger = logging.getLogger("arkctl.config")

DEFAULT_PORT = 1238
MIN_PORT = 1
MAX_PORT = 65535
DEFAULT_POD_BUNDLE_DIR = "/tmp"
DEFAULT_CONFIG_PATH = "~/.arkctl.yaml"

MAVEN_BUILD_ARGS = ("clean", "package", "-Dmaven.test.skip=true")


@dataclass(frozen=True)
class ToolConfig:
    """External tools and timeouts."""
    mvn: str = "mvn"
    kubectl: str = "kubectl"
    http_timeout: float = 30.0
    kill_grace: float = 5.0
    pod_bundle_dir: str = DEFAULT_POD_BUNDLE_DIR


@dataclass(frozen=True)
class DeployConfig:
    """Resolved deploy flags; built once and never mutated."""
    build_dir: Optional[str]
    bundle: Optional[str]
    pod: str
    port: int
    do_local_build: bool
    tools: ToolConfig = field(default_factory=ToolConfig)

    @property
    def targets_pod(self) -> bool:
        return bool(self.pod)


def resolve_deploy_config(
    build: Optional[str] = None,
    bundle: Optional[str] = None,
    pod: Optional[str] = None,
    port: int = DEFAULT_PORT,
    tools: Optional[ToolConfig] = None,
    cwd: Optional[str] = None,
) -> DeployConfig:
    """
    Apply the deploy flag rules.

    A bundle means nothing is built. With neither bundle nor build dir,
    the current directory is built.

    Raises:
        ValueError: port outside 1-65535
    """
    if not MIN_PORT <= port <= MAX_PORT:
        raise ValueError(f"port must be between {MIN_PORT} and {MAX_PORT}, got {port}")

    do_local_build = not bundle
    build_dir = build or None
    if do_local_build and not build_dir:
        build_dir = cwd or os.getcwd()

    return DeployConfig(
        build_dir=build_dir,
        bundle=bundle or None,
        pod=pod or "",
        port=port,
        do_local_build=do_local_build,
        tools=tools or ToolConfig(),
    )


class ConfigProvider(Protocol):
    """Protocol for configuration providers."""

    def get_tool_config(self) -> ToolConfig:
        """Get external tool configuration."""
        ...

    def get_log_level(self) -> str:
        """Get the logging level name."""
        ...


class EnvConfigProvider:
    """
    Environment-based configuration provider.

    Values come from an optional YAML file (ARKCTL_CONFIG, default
    ~/.arkctl.yaml) and are overridden by environment variables.
    """

    def __init__(self, environ: Optional[Dict[str, str]] = None):
        self.environ = os.environ if environ is None else environ
        self._file_config = self._load_file()

    def _load_file(self) -> Dict[str, Any]:
        path = Path(self.environ.get("ARKCTL_CONFIG", DEFAULT_CONFIG_PATH)).expanduser()
        if not path.is_file():
            return {}
        try:
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"Ignoring unreadable config file {path}: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Ignoring config file {path}: expected a mapping")
            return {}
        logger.debug(f"Loaded config file {path}")
        return data

    def _lookup(self, env_key: str, file_key: str, default: Any) -> Any:
        if env_key in self.environ:
            return self.environ[env_key]
        return self._file_config.get(file_key, default)

    def get_tool_config(self) -> ToolConfig:
        """Get external tool configuration from file and environment."""
        defaults = ToolConfig()
        try:
            http_timeout = float(self._lookup("ARKCTL_HTTP_TIMEOUT", "http_timeout", defaults.http_timeout))
            kill_grace = float(self._lookup("ARKCTL_KILL_GRACE", "kill_grace", defaults.kill_grace))
        except (TypeError, ValueError) as e:
            raise ValueError(f"ARKCTL_HTTP_TIMEOUT and ARKCTL_KILL_GRACE must be numbers: {e}") from e

        return ToolConfig(
            mvn=str(self._lookup("ARKCTL_MVN", "mvn", defaults.mvn)),
            kubectl=str(self._lookup("ARKCTL_KUBECTL", "kubectl", defaults.kubectl)),
            http_timeout=http_timeout,
            kill_grace=kill_grace,
            pod_bundle_dir=str(self._lookup("ARKCTL_POD_BUNDLE_DIR", "pod_bundle_dir", defaults.pod_bundle_dir)),
        )

    def get_log_level(self) -> str:
        """Get the logging level from file and environment."""
        return str(self._lookup("ARKCTL_LOG_LEVEL", "log_level", "INFO")).upper()
