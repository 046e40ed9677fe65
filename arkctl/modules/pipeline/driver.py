"""
Pipeline driver.

Runs stages strictly in order against one execution context and stops at
the first stage that reports failure. Stages log their own diagnostics;
the driver only looks at the boolean.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Protocol, Sequence, runtime_checkable

from arkctl.modules.context import ExecutionContext

logger = logging.getLogger("arkctl.pipeline")


@runtime_checkable
class Stage(Protocol):
    """One unit of work in the deploy pipeline."""

    name: str

    async def run(self, ctx: ExecutionContext) -> bool:
        """Do the work; return False to stop the pipeline."""
        ...


class PipelineState(str, Enum):
    """States of a pipeline run."""

    PENDING = "pending"
    SUCCEEDED = "succeeded"
    ABORTED = "aborted"


@dataclass
class PipelineResult:
    """Outcome of a pipeline run."""
    state: PipelineState
    completed: List[str] = field(default_factory=list)
    failed_index: Optional[int] = None
    failed_stage: Optional[str] = None
    cancelled: bool = False

    @property
    def succeeded(self) -> bool:
        return self.state == PipelineState.SUCCEEDED


class Pipeline:
    """Ordered, fail-fast sequence of stages. Runs at most once."""

    def __init__(self, stages: Sequence[Stage]):
        self.stages: List[Stage] = list(stages)
        self.state = PipelineState.PENDING
        self.current: int = 0

    async def run(self, ctx: ExecutionContext) -> PipelineResult:
        if self.state != PipelineState.PENDING or self.current != 0:
            raise RuntimeError("pipeline has already run")

        completed: List[str] = []
        for index, stage in enumerate(self.stages):
            self.current = index
            if ctx.cancelled:
                logger.warning(f"Deploy cancelled before stage {stage.name}")
                return self._abort(index, stage, completed, cancelled=True)

            logger.debug(f"Entering stage {index}: {stage.name}")
            if not await stage.run(ctx):
                return self._abort(index, stage, completed, cancelled=ctx.cancelled)
            completed.append(stage.name)

        self.current = len(self.stages)
        self.state = PipelineState.SUCCEEDED
        return PipelineResult(state=self.state, completed=completed)

    def _abort(
        self, index: int, stage: Stage, completed: List[str], cancelled: bool
    ) -> PipelineResult:
        self.state = PipelineState.ABORTED
        return PipelineResult(
            state=self.state,
            completed=completed,
            failed_index=index,
            failed_stage=stage.name,
            cancelled=cancelled,
        )
