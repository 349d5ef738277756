"""HTTP client for the code generation/deployment service."""

from __future__ import annotations

from typing import TypeVar
from urllib.parse import quote

import httpx
from pydantic import BaseModel
from pydantic import ValidationError as SchemaError

from coderunner.config import Settings, get_settings
from coderunner.contracts import (
    DeployRequest,
    DeployResponse,
    ErrorBody,
    GenerateRequest,
    GenerateResponse,
    ProjectStatusResponse,
)
from coderunner.errors import RemoteError, TransportError
from coderunner.logging import get_logger

logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

GENERATE_FAILED = "Failed to generate code"
DEPLOY_FAILED = "Failed to deploy code"
STATUS_FAILED = "Failed to fetch deployment status"
DELETE_FAILED = "Failed to cleanup project"


def _error_detail(resp: httpx.Response) -> str | None:
    """Extract `detail` from an error body, if it is a usable string."""
    try:
        body = ErrorBody.model_validate(resp.json())
    except (ValueError, SchemaError):
        return None
    if isinstance(body.detail, str) and body.detail.strip():
        return body.detail
    return None


def _project_path(project_id: str, *suffix: str) -> str:
    # Ids are opaque; "/", "?" and "#" must not change the endpoint
    return "/".join(["/projects", quote(project_id, safe=""), *suffix])


class RemoteServiceClient:
    """Client for the four remote operations the orchestration core needs.

    Non-2xx responses raise `RemoteError` carrying the server `detail` verbatim
    when present. Anything that prevents a response from arriving raises
    `TransportError`.
    """

    def __init__(self, settings: Settings | None = None) -> None:
        settings = settings or get_settings()
        self.base_url = settings.api_url.rstrip("/")
        self.timeout = settings.request_timeout
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                follow_redirects=True,
                timeout=self.timeout,
            )
        return self._client

    async def _request(
        self, method: str, path: str, fallback: str, **kwargs
    ) -> httpx.Response:
        client = await self._get_client()
        try:
            resp = await client.request(method, path, **kwargs)
        except httpx.RequestError as e:
            logger.warning(
                "remote_transport_error",
                method=method,
                path=path,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise TransportError(fallback) from e

        if resp.is_error:
            detail = _error_detail(resp)
            logger.warning(
                "remote_error_response",
                method=method,
                path=path,
                status_code=resp.status_code,
                detail=detail,
            )
            raise RemoteError(detail or fallback, status_code=resp.status_code, detail=detail)
        return resp

    @staticmethod
    def _parse(resp: httpx.Response, model: type[ModelT], fallback: str) -> ModelT:
        try:
            return model.model_validate(resp.json())
        except (ValueError, SchemaError) as e:
            logger.error(
                "remote_response_malformed",
                model=model.__name__,
                body_preview=resp.text[:200],
            )
            raise RemoteError(fallback, status_code=resp.status_code) from e

    async def generate(self, prompt: str) -> GenerateResponse:
        payload = GenerateRequest(prompt=prompt).model_dump()
        resp = await self._request("POST", "/generate-code", GENERATE_FAILED, json=payload)
        return self._parse(resp, GenerateResponse, GENERATE_FAILED)

    async def deploy(self, project_id: str, generated_code: str) -> DeployResponse:
        payload = DeployRequest(project_id=project_id, generated_code=generated_code).model_dump()
        resp = await self._request("POST", "/deploy-code", DEPLOY_FAILED, json=payload)
        return self._parse(resp, DeployResponse, DEPLOY_FAILED)

    async def fetch_status(self, project_id: str) -> ProjectStatusResponse:
        resp = await self._request("GET", _project_path(project_id, "status"), STATUS_FAILED)
        return self._parse(resp, ProjectStatusResponse, STATUS_FAILED)

    async def delete(self, project_id: str) -> None:
        await self._request("DELETE", _project_path(project_id), DELETE_FAILED)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


def get_client() -> RemoteServiceClient:
    return RemoteServiceClient(get_settings())
