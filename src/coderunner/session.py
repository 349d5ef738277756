"""Project session state.

A `ProjectSession` is an immutable snapshot. The controller swaps in a new
snapshot on every transition, so the field combinations below are checked
once per transition and an invalid one (for example `DEPLOYED` without a
`public_url`) can never be observed.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, model_validator


class SessionStatus(str, Enum):
    IDLE = "idle"
    GENERATING = "generating"
    GENERATED = "generated"
    DEPLOYING = "deploying"
    DEPLOYED = "deployed"
    FAILED = "failed"


HAS_CODE = frozenset(
    {
        SessionStatus.GENERATED,
        SessionStatus.DEPLOYING,
        SessionStatus.DEPLOYED,
        SessionStatus.FAILED,
    }
)


class SessionKey(BaseModel):
    """Identity of one logical session.

    `epoch` distinguishes sessions even if the service reissues a project id.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    epoch: int


class ProjectSession(BaseModel):
    model_config = ConfigDict(frozen=True)

    epoch: int = 0
    id: str | None = None
    prompt: str = ""
    generated_code: str = ""
    status: SessionStatus = SessionStatus.IDLE
    public_url: str | None = None
    sandbox_id: str | None = None
    error_message: str | None = None

    @model_validator(mode="after")
    def check_invariants(self) -> "ProjectSession":
        deployed = self.status is SessionStatus.DEPLOYED
        if deployed != (self.public_url is not None):
            raise ValueError("public_url must be set exactly when status is deployed")
        if self.sandbox_id is not None and not deployed:
            raise ValueError("sandbox_id is only set when status is deployed")

        failed = self.status is SessionStatus.FAILED
        if failed != (self.error_message is not None):
            raise ValueError("error_message must be set exactly when status is failed")

        if (self.status in HAS_CODE) != bool(self.generated_code):
            raise ValueError(f"generated_code presence does not match status {self.status.value}")
        if self.status in HAS_CODE and not self.id:
            raise ValueError(f"status {self.status.value} requires a project id")
        if self.status in (SessionStatus.IDLE, SessionStatus.GENERATING) and self.id is not None:
            raise ValueError(f"status {self.status.value} cannot carry a project id")
        return self

    @property
    def key(self) -> SessionKey | None:
        if self.id is None:
            return None
        return SessionKey(id=self.id, epoch=self.epoch)

    # === Transitions ===

    @classmethod
    def idle(cls, epoch: int = 0) -> "ProjectSession":
        return cls(epoch=epoch)

    @classmethod
    def generating(cls, prompt: str, epoch: int) -> "ProjectSession":
        return cls(epoch=epoch, prompt=prompt, status=SessionStatus.GENERATING)

    def generated(self, project_id: str, generated_code: str) -> "ProjectSession":
        return ProjectSession(
            epoch=self.epoch,
            id=project_id,
            prompt=self.prompt,
            generated_code=generated_code,
            status=SessionStatus.GENERATED,
        )

    def deploying(self) -> "ProjectSession":
        return self._with_status(SessionStatus.DEPLOYING)

    def deployed(self, public_url: str, sandbox_id: str | None) -> "ProjectSession":
        return self._with_status(
            SessionStatus.DEPLOYED, public_url=public_url, sandbox_id=sandbox_id
        )

    def failed(self, error_message: str) -> "ProjectSession":
        return self._with_status(SessionStatus.FAILED, error_message=error_message)

    def _with_status(self, status: SessionStatus, **fields) -> "ProjectSession":
        return ProjectSession(
            epoch=self.epoch,
            id=self.id,
            prompt=self.prompt,
            generated_code=self.generated_code,
            status=status,
            **fields,
        )
