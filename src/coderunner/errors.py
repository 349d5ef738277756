"""Error taxonomy for the code runner client.

`ValidationError` and `InvalidStateError` are raised before any network
activity. `RemoteError` and `TransportError` come from the HTTP client.
`DeploymentFailure` describes a sandbox that reported `failed`.
"""


class CodeRunnerError(Exception):
    """Base class for all code runner errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(CodeRunnerError):
    """Command input rejected (e.g. blank prompt)."""


class InvalidStateError(CodeRunnerError):
    """Command issued in a state that does not allow it."""


class RemoteError(CodeRunnerError):
    """Remote service answered with a non-success status."""

    def __init__(self, message: str, status_code: int | None = None, detail: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail


class TransportError(CodeRunnerError):
    """Remote call could not complete (connection, timeout, malformed body)."""


class DeploymentFailure(CodeRunnerError):
    """Sandbox deployment finished with status `failed`."""

    def __init__(self, message: str, project_id: str | None = None):
        super().__init__(message)
        self.project_id = project_id
