"""Wire contracts for the code generation/deployment service."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict


class DeploymentStatus(str, Enum):
    DEPLOYING = "deploying"
    DEPLOYED = "deployed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not DeploymentStatus.DEPLOYING


class GenerateRequest(BaseModel):
    prompt: str


class GenerateResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    project_id: str
    generated_code: str


class DeployRequest(BaseModel):
    project_id: str
    generated_code: str


class DeployResponse(BaseModel):
    """Deploy acknowledgement.

    `status` is kept as a plain string: the service may answer with values
    outside `DeploymentStatus` (e.g. "accepted") and the poller is the source
    of truth for the outcome anyway.
    """

    model_config = ConfigDict(extra="ignore")

    project_id: str
    status: str
    public_url: str | None = None
    sandbox_id: str | None = None


class ProjectStatusResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    project_id: str
    status: DeploymentStatus
    public_url: str | None = None
    sandbox_id: str | None = None
    error_message: str | None = None


class ErrorBody(BaseModel):
    """Error payload returned by the service on non-2xx responses."""

    model_config = ConfigDict(extra="ignore")

    # FastAPI validation errors send a list here
    detail: Any = None
