"""
Ark Module - Black Box Interface

Purpose: Install and uninstall biz modules in running ark containers
Interface: select_runtime_target(), ArkService.install_biz(), ArkService.uninstall_biz()
Hidden: arklet HTTP protocol, kubectl cp/exec for pods

The pipeline only sees the ModuleRuntimeService protocol; the target
decides whether calls go over local HTTP or through the pod.
"""

from .arklet import ArkletClient, check_response, parse_arklet_response
from .service import ArkService, build_service
from .target import select_runtime_target

__all__ = [
    "ArkletClient",
    "ArkService",
    "build_service",
    "check_response",
    "parse_arklet_response",
    "select_runtime_target",
]
