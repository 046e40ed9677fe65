"""
API Module - Black Box Interface

Purpose: Shared contracts between deploy stages and the ark container
Interface: data models, error taxonomy, ModuleRuntimeService protocol
Hidden: Nothing - this module holds no behavior of its own

Every other module depends on this one; it depends on none of them.
"""

from .errors import (
    BuildError,
    CancelledBuildError,
    ContextWiringError,
    DeployError,
    LaunchError,
    ParseError,
    ResolutionError,
    ServiceError,
)
from .interfaces import ModuleRuntimeService
from .models import (
    ArkletResponse,
    ArkletResult,
    ArkletResultCode,
    BizModel,
    BizRequest,
    InstallBizRequest,
    K8sTarget,
    LocalTarget,
    RunType,
    RuntimeTarget,
    UninstallBizRequest,
)

__all__ = [
    "ArkletResponse",
    "ArkletResult",
    "ArkletResultCode",
    "BizModel",
    "BizRequest",
    "InstallBizRequest",
    "UninstallBizRequest",
    "K8sTarget",
    "LocalTarget",
    "RunType",
    "RuntimeTarget",
    "ModuleRuntimeService",
    "DeployError",
    "LaunchError",
    "BuildError",
    "CancelledBuildError",
    "ResolutionError",
    "ParseError",
    "ServiceError",
    "ContextWiringError",
]
