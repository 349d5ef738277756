"""Test helpers shared across modules."""

import asyncio
from collections.abc import Callable

from coderunner.contracts import DeploymentStatus, ProjectStatusResponse


def status_response(
    status: str,
    project_id: str = "p1",
    public_url: str | None = None,
    sandbox_id: str | None = None,
    error_message: str | None = None,
) -> ProjectStatusResponse:
    return ProjectStatusResponse(
        project_id=project_id,
        status=DeploymentStatus(status),
        public_url=public_url,
        sandbox_id=sandbox_id,
        error_message=error_message,
    )


async def wait_for(predicate: Callable[[], bool], attempts: int = 200) -> None:
    """Yield to the event loop until `predicate` holds."""
    for _ in range(attempts):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition not reached")
