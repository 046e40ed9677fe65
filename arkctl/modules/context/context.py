"""
Execution context shared by every deploy stage.

The context carries a closed set of well-known values, a logger and a
cancellation token. Each key is written once by the stage that produces it
and read by later stages. Asking for a key that was never written, or that
holds the wrong type, means the pipeline is wired wrong and raises
ContextWiringError instead of a DeployError.
"""

import asyncio
import logging
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Type, Union

from arkctl.modules.api import (
    BizModel,
    ContextWiringError,
    K8sTarget,
    LocalTarget,
    ModuleRuntimeService,
)

logger = logging.getLogger("arkctl.context")


class ContextKey(str, Enum):
    """Well-known execution context keys."""

    ARK_SERVICE = "ark.Service"
    BIZ_MODEL = "ark.BizModel"
    RUNTIME_TARGET = "ark.ContainerRuntimeInfo"


_KEY_TYPES: Dict[ContextKey, Tuple[Type, ...]] = {
    ContextKey.ARK_SERVICE: (ModuleRuntimeService,),
    ContextKey.BIZ_MODEL: (BizModel,),
    ContextKey.RUNTIME_TARGET: (LocalTarget, K8sTarget),
}


class ExecutionContext:
    """Typed key/value carrier plus logger and cancellation token."""

    def __init__(
        self,
        logger: Optional[logging.Logger] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ):
        self._values: Dict[ContextKey, Any] = {}
        self.logger = logger or logging.getLogger("arkctl.deploy")
        self._cancel_event = cancel_event or asyncio.Event()

    def put(self, key: ContextKey, value: Any) -> None:
        """Store a value; each key may be written exactly once."""
        key = ContextKey(key)
        if key in self._values:
            raise ContextWiringError(f"context key {key.value} already written")
        expected = _KEY_TYPES[key]
        if not isinstance(value, expected):
            raise ContextWiringError(
                f"context key {key.value} expects {_type_names(expected)}, "
                f"got {type(value).__name__}"
            )
        self._values[key] = value

    def get(self, key: ContextKey) -> Any:
        """Fetch a value written by an earlier stage."""
        key = ContextKey(key)
        if key not in self._values:
            raise ContextWiringError(f"context key {key.value} was never written")
        value = self._values[key]
        expected = _KEY_TYPES[key]
        if not isinstance(value, expected):
            raise ContextWiringError(
                f"context key {key.value} holds {type(value).__name__}, "
                f"expected {_type_names(expected)}"
            )
        return value

    def has(self, key: ContextKey) -> bool:
        return ContextKey(key) in self._values

    @property
    def ark_service(self) -> ModuleRuntimeService:
        return self.get(ContextKey.ARK_SERVICE)

    @property
    def biz_model(self) -> BizModel:
        return self.get(ContextKey.BIZ_MODEL)

    @property
    def runtime_target(self) -> Union[LocalTarget, K8sTarget]:
        return self.get(ContextKey.RUNTIME_TARGET)

    # Cancellation

    def cancel(self) -> None:
        """Fire the cancellation token. Idempotent."""
        if not self._cancel_event.is_set():
            logger.debug("cancellation requested")
        self._cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    async def wait_cancelled(self) -> None:
        """Suspend until the cancellation token fires."""
        await self._cancel_event.wait()


def _type_names(types: Tuple[Type, ...]) -> str:
    return " | ".join(t.__name__ for t in types)
