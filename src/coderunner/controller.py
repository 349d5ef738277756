"""Orchestration state machine for generate → deploy → poll → cleanup.

The controller owns the single `ProjectSession`. Every remote call is made
with the session identity captured before the call; when the call returns,
its outcome is applied only if that identity is still current. The same guard
protects poller results, so a `cleanup()` or a fresh `generate()` racing an
in-flight request can never be overwritten by the stale response.
"""

from __future__ import annotations

import asyncio

from coderunner.client import GENERATE_FAILED, RemoteServiceClient
from coderunner.config import Settings, get_settings
from coderunner.contracts import DeploymentStatus
from coderunner.errors import (
    CodeRunnerError,
    DeploymentFailure,
    InvalidStateError,
    RemoteError,
    ValidationError,
)
from coderunner.events import (
    ControllerEvent,
    Listener,
    Notification,
    NotificationKind,
    NotificationLevel,
    StateChanged,
)
from coderunner.logging import bind_session, clear_session, get_logger
from coderunner.poller import StatusPoller, StatusResult
from coderunner.session import ProjectSession, SessionKey, SessionStatus

logger = get_logger(__name__)

BUSY = frozenset({SessionStatus.GENERATING, SessionStatus.DEPLOYING})

DEPLOYMENT_FAILED = "Deployment failed"
MISSING_PUBLIC_URL = "Deployment finished without a public URL"


class OrchestrationController:
    """Drives one project session through generation, deployment and cleanup."""

    def __init__(
        self,
        client: RemoteServiceClient | None = None,
        *,
        poll_interval: float | None = None,
        settings: Settings | None = None,
    ):
        settings = settings or get_settings()
        self._client = client or RemoteServiceClient(settings)
        self._poll_interval = poll_interval if poll_interval is not None else settings.poll_interval
        self._poller = StatusPoller(self._client)
        self._epoch = 0
        self._session = ProjectSession.idle()
        self._listeners: list[Listener] = []
        self._settled = asyncio.Event()
        self._settled.set()

    # === Read-only surface ===

    @property
    def session(self) -> ProjectSession:
        return self._session

    @property
    def status(self) -> SessionStatus:
        return self._session.status

    @property
    def poller(self) -> StatusPoller:
        return self._poller

    @property
    def is_polling(self) -> bool:
        return self._poller.active

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    async def wait_until_settled(self) -> ProjectSession:
        """Wait until the session is neither generating nor deploying."""
        while self._session.status in BUSY:
            await self._settled.wait()
        return self._session

    # === Commands ===

    async def generate(self, prompt: str) -> ProjectSession:
        """Start a fresh session from `prompt`.

        Raises:
            ValidationError: prompt is empty or whitespace only.
        """
        if not prompt or not prompt.strip():
            raise ValidationError("Please enter a prompt")

        self._poller.stop()
        self._epoch += 1
        epoch = self._epoch
        clear_session()
        self._transition(ProjectSession.generating(prompt, epoch))
        logger.info("generate_started", epoch=epoch, prompt_length=len(prompt))

        try:
            response = await self._client.generate(prompt)
            if not response.project_id or not response.generated_code:
                raise RemoteError(GENERATE_FAILED)
        except CodeRunnerError as e:
            if not self._is_generating(epoch):
                logger.info("stale_generate_failure_dropped", epoch=epoch, error=e.message)
                return self._session
            logger.warning(
                "generate_failed", epoch=epoch, error=e.message, error_type=type(e).__name__
            )
            self._transition(ProjectSession.idle(epoch))
            self._notify(NotificationLevel.ERROR, NotificationKind.GENERATE, e.message)
            return self._session

        if not self._is_generating(epoch):
            logger.info(
                "stale_generate_response_dropped", epoch=epoch, project_id=response.project_id
            )
            return self._session

        bind_session(response.project_id)
        self._transition(self._session.generated(response.project_id, response.generated_code))
        logger.info("generate_succeeded", code_length=len(response.generated_code))
        self._notify(
            NotificationLevel.SUCCESS, NotificationKind.GENERATE, "Code generated successfully!"
        )
        return self._session

    async def deploy(self) -> ProjectSession:
        """Deploy the generated code and start polling its status.

        Raises:
            InvalidStateError: no generated code, or a deployment is already
                underway or finished for this session.
        """
        session = self._session
        if session.status is not SessionStatus.GENERATED:
            if session.status in (SessionStatus.IDLE, SessionStatus.GENERATING):
                raise InvalidStateError("No code to deploy")
            raise InvalidStateError(f"Cannot deploy while session is {session.status.value}")

        key = session.key
        self._transition(session.deploying())
        # Poll before the deploy response arrives so a slow response cannot
        # leave the session deploying with nothing watching it.
        self._poller.start(key, self._poll_interval, self._on_poll_result, self._on_poll_error)
        logger.info("deploy_started", interval=self._poll_interval)

        try:
            response = await self._client.deploy(key.id, session.generated_code)
        except CodeRunnerError as e:
            if not self._is_deploying(key):
                logger.info("stale_deploy_failure_dropped", project_id=key.id, error=e.message)
                return self._session
            logger.warning(
                "deploy_initiation_failed",
                project_id=key.id,
                error=e.message,
                error_type=type(e).__name__,
            )
            self._poller.stop()
            clear_session()
            self._transition(ProjectSession.idle(key.epoch))
            self._notify(
                NotificationLevel.ERROR,
                NotificationKind.DEPLOY_INITIATION,
                e.message,
                project_id=key.id,
            )
            return self._session

        if self._is_deploying(key):
            logger.info("deploy_accepted", remote_status=response.status)
            self._notify(
                NotificationLevel.INFO,
                NotificationKind.DEPLOY_INITIATION,
                "Deployment started",
                project_id=key.id,
            )
        return self._session

    async def cleanup(self) -> None:
        """Tear down the current session locally and remotely.

        The local reset happens before the remote delete is awaited; a failed
        delete is reported but never raised.
        """
        session = self._session
        if session.id is None:
            logger.debug("cleanup_noop", status=session.status.value)
            return

        project_id = session.id
        self._poller.stop()
        clear_session()
        self._transition(ProjectSession.idle(session.epoch))
        logger.info("cleanup_started", project_id=project_id)

        try:
            await self._client.delete(project_id)
        except CodeRunnerError as e:
            logger.warning(
                "cleanup_delete_failed",
                project_id=project_id,
                error=e.message,
                error_type=type(e).__name__,
            )
            self._notify(
                NotificationLevel.ERROR, NotificationKind.CLEANUP, e.message, project_id=project_id
            )
            return

        logger.info("cleanup_succeeded", project_id=project_id)
        self._notify(
            NotificationLevel.SUCCESS,
            NotificationKind.CLEANUP,
            "Project cleaned up successfully!",
            project_id=project_id,
        )

    async def aclose(self) -> None:
        self._poller.stop()
        await self._client.close()

    async def __aenter__(self) -> "OrchestrationController":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    # === Poller callbacks ===

    def _on_poll_result(self, result: StatusResult) -> None:
        if not self._is_deploying(result.session):
            logger.info(
                "stale_poll_result_dropped",
                result_project_id=result.session.id,
                result_epoch=result.session.epoch,
                status=result.status.value,
            )
            return

        response = result.response
        if result.status is DeploymentStatus.DEPLOYING:
            return

        self._poller.stop()
        if result.status is DeploymentStatus.DEPLOYED and response.public_url:
            self._transition(self._session.deployed(response.public_url, response.sandbox_id))
            logger.info(
                "deployment_succeeded",
                public_url=response.public_url,
                sandbox_id=response.sandbox_id,
            )
            self._notify(
                NotificationLevel.SUCCESS,
                NotificationKind.DEPLOYMENT,
                "Code deployed successfully!",
                project_id=result.session.id,
            )
            return

        if result.status is DeploymentStatus.DEPLOYED:
            failure = DeploymentFailure(MISSING_PUBLIC_URL, project_id=result.session.id)
        else:
            failure = DeploymentFailure(
                response.error_message or DEPLOYMENT_FAILED, project_id=result.session.id
            )
        self._transition(self._session.failed(failure.message))
        logger.warning("deployment_failed", error=failure.message)
        self._notify(
            NotificationLevel.ERROR,
            NotificationKind.DEPLOYMENT,
            failure.message,
            project_id=failure.project_id,
        )

    def _on_poll_error(self, session: SessionKey, error: CodeRunnerError) -> None:
        # Transient; the poller keeps going.
        logger.debug(
            "poll_error_ignored",
            result_project_id=session.id,
            current=self._is_deploying(session),
            error_type=type(error).__name__,
        )

    # === Internals ===

    def _is_generating(self, epoch: int) -> bool:
        return self._session.epoch == epoch and self._session.status is SessionStatus.GENERATING

    def _is_deploying(self, key: SessionKey) -> bool:
        return self._session.key == key and self._session.status is SessionStatus.DEPLOYING

    def _transition(self, session: ProjectSession) -> None:
        previous = self._session.status
        self._session = session
        if session.status in BUSY:
            self._settled.clear()
        else:
            self._settled.set()
        logger.debug("state_changed", previous=previous.value, current=session.status.value)
        self._emit(StateChanged(session=session))

    def _notify(
        self,
        level: NotificationLevel,
        kind: NotificationKind,
        message: str,
        project_id: str | None = None,
    ) -> None:
        self._emit(
            Notification(
                level=level,
                kind=kind,
                message=message,
                project_id=project_id or self._session.id,
            )
        )

    def _emit(self, event: ControllerEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("listener_failed", event_type=event.type)
