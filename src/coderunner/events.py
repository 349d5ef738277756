"""Events emitted by the orchestration controller for presentation layers."""

from collections.abc import Callable
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict

from coderunner.session import ProjectSession


class NotificationLevel(str, Enum):
    SUCCESS = "success"
    INFO = "info"
    ERROR = "error"


class NotificationKind(str, Enum):
    GENERATE = "generate"
    DEPLOY_INITIATION = "deploy_initiation"
    DEPLOYMENT = "deployment"
    CLEANUP = "cleanup"


class StateChanged(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["state_changed"] = "state_changed"
    session: ProjectSession


class Notification(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["notification"] = "notification"
    level: NotificationLevel
    kind: NotificationKind
    message: str
    project_id: str | None = None


ControllerEvent = StateChanged | Notification
Listener = Callable[[ControllerEvent], None]
