"""Module runtime interfaces following Black Box Design principles."""
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from .models import InstallBizRequest, UninstallBizRequest

if TYPE_CHECKING:
    from arkctl.modules.context import ExecutionContext


@runtime_checkable
class ModuleRuntimeService(Protocol):
    """Protocol for the ark container runtime - allows swappable implementations."""

    async def install_biz(self, ctx: "ExecutionContext", request: InstallBizRequest) -> None:
        """
        Install a biz into the target container.

        Raises:
            ServiceError: transport failure or the container refused the biz
        """
        ...

    async def uninstall_biz(self, ctx: "ExecutionContext", request: UninstallBizRequest) -> None:
        """
        Uninstall a biz from the target container.

        Raises:
            ServiceError: transport failure or the container refused the request
        """
        ...
