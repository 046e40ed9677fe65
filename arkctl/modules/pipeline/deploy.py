"""
Deploy orchestration.

1. build the biz bundle
2. parse the biz model for further usage
3. uninstall the biz in the target ark container to prevent conflict
4. install the biz in the target ark container
"""

import logging
from typing import Callable, Optional

from arkctl.config import DeployConfig
from arkctl.modules.api import ModuleRuntimeService
from arkctl.modules.ark import build_service, select_runtime_target
from arkctl.modules.context import ContextKey, ExecutionContext
from arkctl.modules.executor import Command

from .driver import Pipeline, PipelineResult
from .stages import default_stages


def generate_context(
    config: DeployConfig,
    service: Optional[ModuleRuntimeService] = None,
    logger: Optional[logging.Logger] = None,
) -> ExecutionContext:
    """Seed a fresh context with the runtime service and runtime target."""
    ctx = ExecutionContext(logger=logger)
    ctx.put(ContextKey.ARK_SERVICE, service or build_service(config.tools))
    ctx.put(ContextKey.RUNTIME_TARGET, select_runtime_target(config.port, config.pod))
    return ctx


def build_deploy_pipeline(
    config: DeployConfig,
    command_factory: Optional[Callable[..., Command]] = None,
) -> Pipeline:
    return Pipeline(default_stages(config, command_factory=command_factory))


async def deploy(
    config: DeployConfig,
    ctx: Optional[ExecutionContext] = None,
    command_factory: Optional[Callable[..., Command]] = None,
) -> PipelineResult:
    """Run the whole deploy pipeline."""
    ctx = ctx or generate_context(config)
    pipeline = build_deploy_pipeline(config, command_factory=command_factory)
    return await pipeline.run(ctx)
