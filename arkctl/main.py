#!/usr/bin/env python3
"""
arkctl - Main Entry Point

This is the thin orchestration layer that:
1. Parses command line flags
2. Loads configuration
3. Runs the deploy pipeline and maps its outcome to an exit code

All business logic is in the modules, following black box principles.
"""

import argparse
import asyncio
import logging
import signal
import sys
from dataclasses import replace
from typing import List, Optional

from rich.console import Console

from arkctl import __version__
from arkctl.config import (
    DEFAULT_PORT,
    ConfigProvider,
    DeployConfig,
    EnvConfigProvider,
    resolve_deploy_config,
)
from arkctl.logging_config import configure_logging
from arkctl.modules.pipeline import PipelineResult, deploy, generate_context

logger = logging.getLogger("arkctl.main")

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CANCELLED = 130

DEPLOY_EXAMPLES = """
Scenario 0: build the project in the current directory and deploy it to a local ark container:
    arkctl deploy

Scenario 1: build a project and deploy it to a local ark container:
    arkctl deploy --build path/to/project --port 1238

Scenario 2: deploy a pre-built bundle to a local ark container:
    arkctl deploy --bundle path/to/app-ark-biz.jar --port 1238

Scenario 3: deploy a bundle to an ark container running in a Kubernetes pod
(kubectl with exec permission on the pod is required):
    arkctl deploy --bundle path/or/url/to/bundle --pod namespace/name --port 1238
"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="arkctl",
        description="Deploy biz modules to running ark containers.",
    )
    parser.add_argument("--version", action="version", version=f"arkctl {__version__}")
    subparsers = parser.add_subparsers(dest="command", required=True)

    deploy_parser = subparsers.add_parser(
        "deploy",
        help="deploy your biz module to running containers",
        description="Quickly deploy your biz module to running containers. Intended for the local dev phase.",
        epilog=DEPLOY_EXAMPLES,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    deploy_parser.add_argument(
        "--build",
        help="Build the project at the given directory, then deploy it. Defaults to the current directory.",
    )
    deploy_parser.add_argument(
        "--bundle",
        help="Deploy a pre-built bundle (path or URL) instead of building.",
    )
    deploy_parser.add_argument(
        "--pod",
        default="",
        help="Deploy to the ark container in pod <namespace>/<name> instead of a local process.",
    )
    deploy_parser.add_argument(
        "--port",
        type=int,
        default=DEFAULT_PORT,
        help=f"Port of the ark container (default: {DEFAULT_PORT}).",
    )
    deploy_parser.add_argument(
        "--pod-bundle-dir",
        help="Directory inside the pod a local bundle is copied to (default: /tmp).",
    )
    deploy_parser.add_argument("--log-level", help="Logging level (DEBUG, INFO, WARNING, ERROR).")
    return parser


def config_from_args(args: argparse.Namespace, provider: ConfigProvider) -> DeployConfig:
    """Turn parsed flags into an immutable DeployConfig."""
    tools = provider.get_tool_config()
    if args.pod_bundle_dir:
        tools = replace(tools, pod_bundle_dir=args.pod_bundle_dir)
    return resolve_deploy_config(
        build=args.build,
        bundle=args.bundle,
        pod=args.pod,
        port=args.port,
        tools=tools,
    )


async def run_deploy(config: DeployConfig) -> PipelineResult:
    """Run the pipeline with SIGINT/SIGTERM wired to the cancellation token."""
    ctx = generate_context(config)
    loop = asyncio.get_running_loop()
    installed = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, ctx.cancel)
            installed.append(sig)
        except (NotImplementedError, RuntimeError):
            logger.debug(f"Signal handler for {sig.name} unavailable on this platform")
    try:
        return await deploy(config, ctx=ctx)
    finally:
        for sig in installed:
            loop.remove_signal_handler(sig)


def exit_code_for(result: PipelineResult) -> int:
    if result.succeeded:
        return EXIT_OK
    if result.cancelled:
        return EXIT_CANCELLED
    return EXIT_FAILED


def main(argv: Optional[List[str]] = None, provider: Optional[ConfigProvider] = None) -> int:
    args = build_parser().parse_args(argv)
    provider = provider or EnvConfigProvider()
    configure_logging((args.log_level or provider.get_log_level()).upper())

    try:
        config = config_from_args(args, provider)
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        return EXIT_FAILED

    console = Console(stderr=True)
    try:
        result = asyncio.run(run_deploy(config))
    except KeyboardInterrupt:
        console.print("[yellow]deploy interrupted[/yellow]")
        return EXIT_CANCELLED

    # Failing stages have already logged why; only success gets a status line
    code = exit_code_for(result)
    if code == EXIT_OK:
        console.print("[green]deploy succeeded[/green]")
    return code


def cli() -> None:
    sys.exit(main())


if __name__ == "__main__":
    cli()
