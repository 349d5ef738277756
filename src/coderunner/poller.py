"""Deployment status poller.

Fixed-rate polling: the first fetch happens one full interval after `start`,
then once per interval until a terminal status is delivered or the handle is
cancelled. A fetch error never stops the loop.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable

from pydantic import BaseModel, ConfigDict

from coderunner.client import RemoteServiceClient
from coderunner.contracts import DeploymentStatus, ProjectStatusResponse
from coderunner.errors import CodeRunnerError
from coderunner.logging import get_logger
from coderunner.session import SessionKey

logger = get_logger(__name__)


class StatusResult(BaseModel):
    """One status observation, tagged with the session it was fetched for."""

    model_config = ConfigDict(frozen=True)

    session: SessionKey
    response: ProjectStatusResponse

    @property
    def status(self) -> DeploymentStatus:
        return self.response.status

    @property
    def is_terminal(self) -> bool:
        return self.response.status.is_terminal


ResultCallback = Callable[[StatusResult], None]
ErrorCallback = Callable[[SessionKey, CodeRunnerError], None]


class PollHandle:
    """Cancellable handle for one polling loop bound to one session."""

    def __init__(self, session: SessionKey):
        self.session = session
        self.task: asyncio.Task | None = None
        self._closed = False
        self.fetches = 0

    @property
    def active(self) -> bool:
        """True until the loop is cancelled or delivers a terminal result."""
        return not self._closed

    def cancel(self) -> None:
        """Stop the loop. No result is delivered after this returns."""
        self._closed = True
        if self.task is not None and not self.task.done():
            if self.task is not asyncio.current_task():
                self.task.cancel()

    def _close(self) -> None:
        self._closed = True


class StatusPoller:
    """Owns at most one polling loop at a time."""

    def __init__(self, client: RemoteServiceClient):
        self._client = client
        self._handle: PollHandle | None = None

    @property
    def handle(self) -> PollHandle | None:
        return self._handle

    @property
    def active(self) -> bool:
        return self._handle is not None and self._handle.active

    def start(
        self,
        session: SessionKey,
        interval: float,
        on_result: ResultCallback,
        on_error: ErrorCallback,
    ) -> PollHandle:
        """Start polling for `session`, cancelling any previous loop first."""
        self.stop()

        handle = PollHandle(session)
        handle.task = asyncio.create_task(
            self._run(handle, interval, on_result, on_error),
            name=f"status-poller:{session.id}:{session.epoch}",
        )
        handle.task.add_done_callback(_log_crash)
        self._handle = handle
        logger.info("poller_started", project_id=session.id, interval=interval)
        return handle

    def stop(self) -> None:
        """Cancel the current loop, if any."""
        handle, self._handle = self._handle, None
        if handle is not None and handle.active:
            handle.cancel()
            logger.info("poller_stopped", project_id=handle.session.id, fetches=handle.fetches)

    async def _run(
        self,
        handle: PollHandle,
        interval: float,
        on_result: ResultCallback,
        on_error: ErrorCallback,
    ) -> None:
        # TODO: add a max-attempts/overall deadline once the service documents
        # how long a sandbox may legitimately stay in "deploying".
        project_id = handle.session.id
        while handle.active:
            await asyncio.sleep(interval)
            if not handle.active:
                return

            handle.fetches += 1
            try:
                response = await self._client.fetch_status(project_id)
            except CodeRunnerError as e:
                if not handle.active:
                    return
                logger.warning(
                    "poll_fetch_failed",
                    project_id=project_id,
                    attempt=handle.fetches,
                    error=e.message,
                    error_type=type(e).__name__,
                )
                on_error(handle.session, e)
                continue

            if not handle.active:
                return

            result = StatusResult(session=handle.session, response=response)
            logger.debug(
                "poll_result",
                project_id=project_id,
                attempt=handle.fetches,
                status=result.status.value,
            )
            if result.is_terminal:
                handle._close()
                if self._handle is handle:
                    self._handle = None
            on_result(result)


def _log_crash(task: asyncio.Task) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error(
            "poller_crashed",
            task=task.get_name(),
            error=str(exc),
            error_type=type(exc).__name__,
            exc_info=exc,
        )
