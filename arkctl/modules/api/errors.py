"""
Error taxonomy for the deploy pipeline.

Every DeployError is terminal to the pipeline: the stage that hits it logs
the cause and reports failure, and the driver stops. ContextWiringError is
not part of that family; it signals a pipeline wiring bug.
"""

from typing import Optional


class DeployError(Exception):
    """Base class for failures a deploy stage reports to the user."""


class LaunchError(DeployError):
    """The external command could not be spawned."""


class BuildError(DeployError):
    """The external command ran but exited non-zero or was killed."""

    def __init__(self, message: str, returncode: Optional[int] = None):
        super().__init__(message)
        self.returncode = returncode


class CancelledBuildError(BuildError):
    """The external command was killed because the deploy was cancelled."""


class ResolutionError(DeployError):
    """No biz bundle could be located."""


class ParseError(DeployError):
    """The biz bundle exists but its manifest could not be read."""


class ServiceError(DeployError):
    """An install or uninstall call against the ark container failed."""


class ContextWiringError(RuntimeError):
    """A stage asked the execution context for a key it cannot provide."""
