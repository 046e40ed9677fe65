"""
Deploy stages.

1. BuildStage: build the bundle with maven (no-op when a bundle was given)
2. ResolveStage: locate and parse the bundle into a BizModel
3. UninstallStage: remove the biz from the target container
4. InstallStage: install the biz into the target container

Each stage catches its own DeployError, logs it and returns False.
"""

from typing import Callable, Optional

from rich.console import Console

from arkctl.config import MAVEN_BUILD_ARGS, DeployConfig
from arkctl.modules.api import (
    DeployError,
    InstallBizRequest,
    LaunchError,
    UninstallBizRequest,
)
from arkctl.modules.bundle import parse_biz_model, resolve_bundle_url
from arkctl.modules.context import ContextKey, ExecutionContext
from arkctl.modules.executor import Command, run_to_completion

console = Console(highlight=False)


def console_sink(line: str) -> None:
    console.out(line, highlight=False)


class BuildStage:
    """Run `mvn clean package` in the build directory."""

    name = "build"

    def __init__(
        self,
        config: DeployConfig,
        command_factory: Callable[..., Command] = Command,
        sink: Callable[[str], None] = console_sink,
    ):
        self.config = config
        self.command_factory = command_factory
        self.sink = sink

    async def run(self, ctx: ExecutionContext) -> bool:
        logger = ctx.logger
        if not self.config.do_local_build:
            logger.info("build bundle skipped!")
            return True

        mvn = self.command_factory(
            ctx,
            self.config.build_dir,
            self.config.tools.mvn,
            *MAVEN_BUILD_ARGS,
            kill_grace=self.config.tools.kill_grace,
        )
        logger.info("start to build bundle.", extra={"fields": {"dir": self.config.build_dir}})

        try:
            error = await run_to_completion(mvn, self.sink)
        except LaunchError as e:
            logger.error("build bundle failed!", extra={"fields": {"error": e}})
            return False

        if error is not None:
            logger.error("build bundle failed!", extra={"fields": {"error": error}})
            return False

        logger.info("build bundle success!")
        return True


class ResolveStage:
    """Find the bundle and store its BizModel in the context."""

    name = "resolve"

    def __init__(self, config: DeployConfig):
        self.config = config

    async def run(self, ctx: ExecutionContext) -> bool:
        logger = ctx.logger
        try:
            bundle_url = resolve_bundle_url(self.config.bundle, self.config.build_dir)
        except DeployError as e:
            logger.error("can not find pre built biz bundle in build dir!", extra={"fields": {"error": e}})
            return False

        try:
            biz_model = await parse_biz_model(bundle_url, timeout=self.config.tools.http_timeout)
        except DeployError as e:
            logger.error("parse biz model failed!", extra={"fields": {"error": e}})
            return False

        logger.info(
            "parse biz model success.",
            extra={"fields": {"bizName": biz_model.biz_name, "bizVersion": biz_model.biz_version, "bizUrl": biz_model.biz_url}},
        )
        ctx.put(ContextKey.BIZ_MODEL, biz_model)
        return True


class _ArkOperationStage:
    """Shared body of the install and uninstall stages."""

    name = ""
    verb = ""

    async def call(self, ctx: ExecutionContext) -> None:
        raise NotImplementedError

    async def run(self, ctx: ExecutionContext) -> bool:
        logger = ctx.logger
        biz_model = ctx.biz_model
        target = ctx.runtime_target

        logger.info(
            f"start to {self.verb} bundle.",
            extra={
                "fields": {
                    "port": target.port,
                    "bizName": biz_model.biz_name,
                    "bizVersion": biz_model.biz_version,
                    "runType": target.run_type.value,
                }
            },
        )
        try:
            await self.call(ctx)
        except DeployError as e:
            logger.error(f"{self.verb} biz failed!", extra={"fields": {"error": e}})
            return False

        logger.info(f"{self.verb} biz success!")
        return True


class UninstallStage(_ArkOperationStage):
    """Uninstall the biz so the install does not conflict."""

    name = "uninstall"
    verb = "uninstall"

    async def call(self, ctx: ExecutionContext) -> None:
        await ctx.ark_service.uninstall_biz(
            ctx, UninstallBizRequest(biz_model=ctx.biz_model, target=ctx.runtime_target)
        )


class InstallStage(_ArkOperationStage):
    """Install the biz into the target container."""

    name = "install"
    verb = "install"

    async def call(self, ctx: ExecutionContext) -> None:
        await ctx.ark_service.install_biz(
            ctx, InstallBizRequest(biz_model=ctx.biz_model, target=ctx.runtime_target)
        )


def default_stages(config: DeployConfig, command_factory: Optional[Callable[..., Command]] = None):
    """The deploy stages in execution order."""
    return [
        BuildStage(config, command_factory=command_factory or Command),
        ResolveStage(config),
        UninstallStage(),
        InstallStage(),
    ]
