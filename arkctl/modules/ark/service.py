"""
Ark container runtime service.

Install and uninstall a biz in a container chosen by its runtime target:
- LocalTarget: HTTP straight to the arklet on 127.0.0.1:<port>
- K8sTarget: kubectl cp the bundle into the pod when it is a local file,
  then kubectl exec curl against the arklet inside the pod
"""

import json
import logging
import os
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional

import httpx

from arkctl.config import ToolConfig
from arkctl.modules.api import (
    ArkletResponse,
    BizModel,
    InstallBizRequest,
    K8sTarget,
    LaunchError,
    LocalTarget,
    ServiceError,
    UninstallBizRequest,
)
from arkctl.modules.bundle import url_to_path
from arkctl.modules.executor import Command, run_to_completion

from .arklet import (
    INSTALL_ENDPOINT,
    UNINSTALL_ENDPOINT,
    ArkletClient,
    arklet_url,
    check_response,
    parse_arklet_response,
)

if TYPE_CHECKING:
    from arkctl.modules.context import ExecutionContext

logger = logging.getLogger("arkctl.ark")

CommandFactory = Callable[..., Command]


class ArkService:
    """ModuleRuntimeService backed by the arklet API."""

    def __init__(
        self,
        tools: Optional[ToolConfig] = None,
        command_factory: CommandFactory = Command,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.tools = tools or ToolConfig()
        self.command_factory = command_factory
        self.transport = transport

    async def install_biz(self, ctx: "ExecutionContext", request: InstallBizRequest) -> None:
        target = request.target
        if isinstance(target, LocalTarget):
            response = await self._local_client(target).install_biz(request.biz_model)
        else:
            biz_model = await self._copy_bundle_into_pod(ctx, target, request.biz_model)
            response = await self._exec_arklet(
                ctx, target, INSTALL_ENDPOINT, biz_model.to_arklet_payload()
            )
        check_response(response, "install biz")

    async def uninstall_biz(self, ctx: "ExecutionContext", request: UninstallBizRequest) -> None:
        target = request.target
        if isinstance(target, LocalTarget):
            response = await self._local_client(target).uninstall_biz(request.biz_model)
        else:
            response = await self._exec_arklet(
                ctx,
                target,
                UNINSTALL_ENDPOINT,
                request.biz_model.to_arklet_payload(include_url=False),
            )
        check_response(response, "uninstall biz", allow_missing=True)

    def _local_client(self, target: LocalTarget) -> ArkletClient:
        return ArkletClient(
            f"http://127.0.0.1:{target.port}",
            timeout=self.tools.http_timeout,
            transport=self.transport,
        )

    async def _copy_bundle_into_pod(
        self, ctx: "ExecutionContext", target: K8sTarget, biz_model: BizModel
    ) -> BizModel:
        """Copy a file:// bundle into the pod; remote URLs are fetched by the pod itself."""
        if not biz_model.biz_url.startswith("file://"):
            return biz_model

        namespace, name = target.split_coordinate()
        local_path = url_to_path(biz_model.biz_url)
        remote_path = f"{self.tools.pod_bundle_dir.rstrip('/')}/{os.path.basename(local_path)}"

        ctx.logger.info(
            "copying bundle into pod.",
            extra={"fields": {"pod": target.coordinate, "path": remote_path}},
        )
        await self._kubectl(ctx, "cp", str(local_path), f"{namespace}/{name}:{remote_path}")
        return biz_model.model_copy(update={"biz_url": f"file://{remote_path}"})

    async def _exec_arklet(
        self,
        ctx: "ExecutionContext",
        target: K8sTarget,
        endpoint: str,
        payload: Dict[str, Any],
    ) -> ArkletResponse:
        namespace, name = target.split_coordinate()
        output = await self._kubectl(
            ctx,
            "exec", "-n", namespace, name, "--",
            "curl", "-s", "-X", "POST",
            "-H", "Content-Type: application/json",
            arklet_url(target.port, endpoint),
            "-d", json.dumps(payload),
        )
        return parse_arklet_response("\n".join(output), f"pod {target.coordinate}")

    async def _kubectl(self, ctx: "ExecutionContext", *args: str) -> List[str]:
        """Run kubectl to completion and return its output lines."""
        logger.debug(f"kubectl {args[0]} against pod")
        command = self.command_factory(
            ctx, None, self.tools.kubectl, *args, kill_grace=self.tools.kill_grace
        )
        lines: List[str] = []
        try:
            error = await run_to_completion(command, lines.append)
        except LaunchError as e:
            raise ServiceError(f"kubectl unavailable: {e}") from e
        if error is not None:
            tail = "\n".join(lines[-5:]) or "<no output>"
            raise ServiceError(f"kubectl {args[0]} failed ({error}): {tail}") from error
        return lines


def build_service(tools: Optional[ToolConfig] = None) -> ArkService:
    """Create the runtime service used by the deploy pipeline."""
    return ArkService(tools=tools)
