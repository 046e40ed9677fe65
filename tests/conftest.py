"""
Shared pytest fixtures for arkctl tests.

This module provides common fixtures including:
- CommandMocker: Fake external commands (mvn, kubectl) with canned output
- FakeArkService: In-memory module runtime that records calls
- Bundle builders for *-ark-biz.jar files
"""

import os
import sys
import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Pattern, Tuple, Union

import pytest

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from arkctl.modules.api import BuildError, LaunchError, ServiceError
from arkctl.modules.context import ExecutionContext


# =============================================================================
# Command Mocking Infrastructure
# =============================================================================

@dataclass
class CommandResponse:
    """Represents a mocked external command outcome."""
    lines: List[str] = field(default_factory=list)
    returncode: int = 0
    launch_error: Optional[str] = None
    side_effect: Optional[Callable[["FakeCommand"], None]] = None


@dataclass
class CommandCall:
    """Record of a command built during testing."""
    argv: List[str]
    work_dir: Optional[str]
    full_command_str: str
    matched_pattern: Optional[str] = None


class FakeCommand:
    """Stands in for arkctl.modules.executor.Command."""

    def __init__(self, response: CommandResponse, argv: List[str], work_dir: Optional[str]):
        self.response = response
        self.argv = argv
        self.work_dir = work_dir
        self.started = False
        self._returncode: Optional[int] = None

    async def start(self) -> None:
        if self.response.launch_error:
            raise LaunchError(self.response.launch_error)
        if self.response.side_effect:
            self.response.side_effect(self)
        self.started = True

    async def output(self):
        for line in self.response.lines:
            yield line

    async def wait(self) -> Optional[BuildError]:
        self._returncode = self.response.returncode
        return self.exit_error()

    def exit_error(self) -> Optional[BuildError]:
        if self.response.returncode != 0:
            return BuildError(f"{self.argv[0]} exited with status {self.response.returncode}", self.response.returncode)
        return None

    @property
    def returncode(self) -> Optional[int]:
        return self._returncode


class CommandMocker:
    """
    Fake external commands with pattern-matched responses.

    Pass mocker.factory wherever a command factory is accepted.

    Usage:
        def test_build(command_mocker):
            command_mocker.register("mvn clean", CommandResponse(lines=["BUILD SUCCESS"]))
            stage = BuildStage(config, command_factory=command_mocker.factory)
            ...
            assert command_mocker.was_called_with("mvn clean package")
    """

    def __init__(self):
        self._responses: List[Tuple[Union[str, Pattern], CommandResponse, int]] = []
        self._call_history: List[CommandCall] = []
        self._default_response = CommandResponse(
            lines=["Error: mock not configured for this command"],
            returncode=1,
        )
        self.commands: List[FakeCommand] = []

    def register(
        self,
        pattern: Union[str, Pattern],
        response: CommandResponse,
        priority: int = 0,
    ) -> "CommandMocker":
        """Register a response for commands matching the pattern."""
        self._responses.append((pattern, response, priority))
        self._responses.sort(key=lambda x: x[2], reverse=True)
        return self

    def factory(self, ctx, work_dir, program, *args, **kwargs) -> FakeCommand:
        argv = [program] + list(args)
        cmd_str = " ".join(argv)

        matched_pattern = None
        response = self._default_response
        for pattern, resp, _ in self._responses:
            if isinstance(pattern, str):
                if pattern in cmd_str:
                    matched_pattern = pattern
                    response = resp
                    break
            elif pattern.search(cmd_str):
                matched_pattern = pattern.pattern
                response = resp
                break

        self._call_history.append(CommandCall(
            argv=argv,
            work_dir=work_dir,
            full_command_str=cmd_str,
            matched_pattern=matched_pattern,
        ))
        command = FakeCommand(response, argv, work_dir)
        self.commands.append(command)
        return command

    @property
    def calls(self) -> List[CommandCall]:
        return self._call_history

    @property
    def call_count(self) -> int:
        return len(self._call_history)

    def was_called_with(self, pattern: str) -> bool:
        return any(pattern in call.full_command_str for call in self._call_history)


@pytest.fixture
def command_mocker():
    """Fresh CommandMocker; unmatched commands exit 1."""
    return CommandMocker()


# =============================================================================
# Module Runtime Fake
# =============================================================================

class FakeArkService:
    """Records install/uninstall calls; fails on the named operation."""

    def __init__(self, fail_on: Optional[str] = None):
        self.fail_on = fail_on
        self.calls: List[Tuple[str, object]] = []

    async def install_biz(self, ctx, request) -> None:
        self.calls.append(("install", request))
        if self.fail_on == "install":
            raise ServiceError("install rejected by arklet: FAILED: biz already installed")

    async def uninstall_biz(self, ctx, request) -> None:
        self.calls.append(("uninstall", request))
        if self.fail_on == "uninstall":
            raise ServiceError("request to http://127.0.0.1:1238/uninstallBiz failed: connection refused")

    @property
    def operations(self) -> List[str]:
        return [name for name, _ in self.calls]


@pytest.fixture
def ark_service():
    return FakeArkService()


@pytest.fixture
def ctx():
    return ExecutionContext()


# =============================================================================
# Bundle Builders
# =============================================================================

def write_bundle(
    path: Path,
    biz_name: Optional[str] = "app",
    biz_version: Optional[str] = "1.0",
    extra_manifest: str = "",
) -> Path:
    """Write a minimal biz jar with the given manifest attributes."""
    path.parent.mkdir(parents=True, exist_ok=True)
    lines = ["Manifest-Version: 1.0"]
    if biz_name is not None:
        lines.append(f"Ark-Biz-Name: {biz_name}")
    if biz_version is not None:
        lines.append(f"Ark-Biz-Version: {biz_version}")
    manifest = "\r\n".join(lines) + "\r\n" + extra_manifest + "\r\n"
    with zipfile.ZipFile(path, "w") as jar:
        jar.writestr("META-INF/MANIFEST.MF", manifest)
        jar.writestr("com/example/App.class", b"\xca\xfe\xba\xbe")
    return path


@pytest.fixture
def make_bundle(tmp_path):
    """Factory fixture: make_bundle("target/app-1.0-ark-biz.jar", biz_name=..., ...)."""
    def _make(relative: str = "target/app-1.0-ark-biz.jar", **kwargs) -> Path:
        return write_bundle(tmp_path / relative, **kwargs)
    return _make


# =============================================================================
# Test Markers Configuration
# =============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "subprocess: Tests that spawn real child processes"
    )
    config.addinivalue_line(
        "markers", "command_mock: Tests using mocked external commands"
    )
