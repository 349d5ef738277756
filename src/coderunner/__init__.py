from coderunner.controller import OrchestrationController
from coderunner.session import ProjectSession, SessionStatus

__all__ = ["OrchestrationController", "ProjectSession", "SessionStatus"]
