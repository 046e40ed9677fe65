"""
arkctl shared data models.

These models define the structure of all data passed between
the deploy stages and the ark container.
"""

from enum import Enum
from typing import Annotated, Any, Dict, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

from .errors import ServiceError

# Enums


class RunType(str, Enum):
    """Where the target ark container runs."""

    LOCAL = "local"
    K8S = "k8s"


class ArkletResultCode(str, Enum):
    """Result codes reported by the arklet HTTP API."""

    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
    NOT_FOUND_BIZ = "NOT_FOUND_BIZ"


# Module descriptor


class BizModel(BaseModel):
    """A deployable biz module, parsed from its bundle manifest."""

    model_config = ConfigDict(frozen=True)

    biz_name: str = Field(..., min_length=1, description="Ark-Biz-Name from the manifest")
    biz_version: str = Field(..., min_length=1, description="Ark-Biz-Version from the manifest")
    biz_url: str = Field(..., description="Canonical locator of the bundle")

    def to_arklet_payload(self, include_url: bool = True) -> Dict[str, str]:
        """Render the body the arklet install/uninstall endpoints expect."""
        payload = {"bizName": self.biz_name, "bizVersion": self.biz_version}
        if include_url:
            payload["bizUrl"] = self.biz_url
        return payload


# Runtime targets


class LocalTarget(BaseModel):
    """Ark container running as a process on this host."""

    model_config = ConfigDict(frozen=True)

    run_type: Literal[RunType.LOCAL] = RunType.LOCAL
    port: int = Field(..., ge=1, le=65535)


class K8sTarget(BaseModel):
    """Ark container running inside a Kubernetes pod."""

    model_config = ConfigDict(frozen=True)

    run_type: Literal[RunType.K8S] = RunType.K8S
    coordinate: str = Field(..., description="<namespace>/<name> of the pod")
    port: int = Field(..., ge=1, le=65535)

    def split_coordinate(self) -> Tuple[str, str]:
        """Return (namespace, name); a malformed coordinate is a ServiceError."""
        parts = self.coordinate.split("/")
        if len(parts) != 2 or not all(parts):
            raise ServiceError(
                f"invalid pod coordinate {self.coordinate!r}, expected <namespace>/<name>"
            )
        return parts[0], parts[1]

    @property
    def namespace(self) -> str:
        return self.split_coordinate()[0]

    @property
    def name(self) -> str:
        return self.split_coordinate()[1]


RuntimeTarget = Annotated[Union[LocalTarget, K8sTarget], Field(discriminator="run_type")]


# Requests to the module runtime


class BizRequest(BaseModel):
    """Install or uninstall request for one biz in one container."""

    model_config = ConfigDict(frozen=True)

    biz_model: BizModel
    target: RuntimeTarget


class InstallBizRequest(BizRequest):
    """Install the biz into the target container."""


class UninstallBizRequest(BizRequest):
    """Uninstall the biz from the target container."""


# Responses from the arklet API


class ArkletResult(BaseModel):
    """Operation-level result nested inside an arklet response."""

    model_config = ConfigDict(extra="ignore")

    code: Optional[str] = None
    message: Optional[str] = None


class ArkletResponse(BaseModel):
    """Envelope returned by every arklet endpoint."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    code: str
    message: Optional[str] = None
    data: Optional[ArkletResult] = None
    error_stack_trace: Optional[str] = Field(None, alias="errorStackTrace")

    @property
    def succeeded(self) -> bool:
        return self.code == ArkletResultCode.SUCCESS.value

    @property
    def biz_not_found(self) -> bool:
        return self.data is not None and self.data.code == ArkletResultCode.NOT_FOUND_BIZ.value

    def describe(self) -> str:
        """Human-readable reason for a failed response."""
        reason = self.message or (self.data.message if self.data else None)
        if self.data and self.data.code:
            return f"{self.code}/{self.data.code}: {reason or 'no message'}"
        return f"{self.code}: {reason or 'no message'}"

    @classmethod
    def from_payload(cls, payload: Any) -> "ArkletResponse":
        return cls.model_validate(payload)
