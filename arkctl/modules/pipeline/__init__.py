"""
Pipeline Module - Black Box Interface

Purpose: Compose and run the deploy stages
Interface: Pipeline.run(), deploy(), generate_context(), build_deploy_pipeline()
Hidden: Stage implementations, console forwarding of build output

Stages own diagnostics; the driver owns control flow.
"""

from .deploy import build_deploy_pipeline, deploy, generate_context
from .driver import Pipeline, PipelineResult, PipelineState, Stage
from .stages import BuildStage, InstallStage, ResolveStage, UninstallStage, default_stages

__all__ = [
    "BuildStage",
    "InstallStage",
    "Pipeline",
    "PipelineResult",
    "PipelineState",
    "ResolveStage",
    "Stage",
    "UninstallStage",
    "build_deploy_pipeline",
    "default_stages",
    "deploy",
    "generate_context",
]
