"""Client for the pipeline backend REST API."""

import asyncio
import json
import logging
from collections.abc import Mapping
from typing import TypeVar
from urllib.parse import quote

import aiohttp
import pydantic
from pydantic import BaseModel

from cicdlab.pipeline_monitor.errors import (
    NetworkError,
    NotFoundError,
    PipelineClientError,
    ServerError,
    ValidationError,
)
from cicdlab.pipeline_monitor.models.client_config import ClientConfig
from cicdlab.pipeline_monitor.models.execution import (
    CommitInfo,
    ExecutionId,
    ExecutionRecord,
    TestResult,
    TriggerRequest,
)

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

UNEXPECTED_PAYLOAD = "Unexpected response payload"


class ExecutionClient:
    """Request/response wrapper over the pipeline backend.

    No operation retries; callers decide whether to try again later.
    """

    def __init__(self, config: ClientConfig | None = None) -> None:
        """Initialize client with configuration."""
        self.config = config or ClientConfig()
        self.base_url = self.config.base_url.rstrip("/")

    async def trigger_execution(self, request: TriggerRequest) -> ExecutionRecord:
        """Start a new pipeline execution.

        Args:
            request: Who triggers the build and what to build

        Returns:
            The created execution, including its assigned ID

        Raises:
            ValidationError: If a required field is empty (no request is sent)
            NetworkError: If the backend is unreachable
            ServerError: If the backend rejects the request or answers with
                a payload that is not an execution

        """
        missing = request.missing_fields()
        if missing:
            raise ValidationError(missing)

        payload = request.model_dump(by_alias=True, exclude_none=True)
        status, data = await self._request("POST", "/trigger", json_body=payload)
        execution = _parse_one(ExecutionRecord, status, data)
        logger.info(f"Triggered execution {execution.id} for {request.student_name}")
        return execution

    async def list_executions(self) -> list[ExecutionRecord]:
        """Fetch all executions in backend order."""
        status, data = await self._request("GET", "/executions")
        return _parse_many(ExecutionRecord, status, data)

    async def list_executions_by_student(
        self, student_name: str
    ) -> list[ExecutionRecord]:
        """Fetch the executions triggered by one student."""
        path = f"/student/{quote(student_name, safe='')}"
        status, data = await self._request("GET", path)
        return _parse_many(ExecutionRecord, status, data)

    async def get_execution(self, execution_id: ExecutionId) -> ExecutionRecord:
        """Fetch a single execution.

        Raises:
            NotFoundError: If the backend does not know the ID

        """
        try:
            status, data = await self._request("GET", f"/executions/{execution_id}")
        except ServerError as e:
            if e.status == 404:
                raise NotFoundError(execution_id, e.payload) from e
            raise
        return _parse_one(ExecutionRecord, status, data)

    async def get_test_results(self, execution_id: ExecutionId) -> list[TestResult]:
        """Fetch test results; empty until the test stage has reported."""
        status, data = await self._request(
            "GET", f"/executions/{execution_id}/tests"
        )
        return _parse_many(TestResult, status, data)

    async def check_health(self) -> bool:
        """Return whether the backend answers its health endpoint."""
        try:
            await self._request("GET", "/health")
        except PipelineClientError as e:
            logger.warning(f"Health check failed: {e}")
            return False
        return True

    async def get_recent_commits(self, repo_url: str) -> list[CommitInfo]:
        """Fetch recent commits of a repository through the backend.

        Commit history is auxiliary: any failure yields an empty list.
        """
        try:
            status, data = await self._request(
                "GET", "/github/commits", params={"repoUrl": repo_url}
            )
            if not isinstance(data, list):
                raise ServerError(status, data, UNEXPECTED_PAYLOAD)
            return [
                CommitInfo.from_api(item) for item in data if isinstance(item, dict)
            ]
        except (PipelineClientError, pydantic.ValidationError) as e:
            logger.warning(f"Failed to fetch commits for {repo_url}: {e}")
            return []

    async def _request(
        self,
        method: str,
        path: str,
        json_body: Mapping[str, object] | None = None,
        params: Mapping[str, str] | None = None,
    ) -> tuple[int, object]:
        """Send one request and decode the JSON response body.

        Returns:
            Tuple of (status, decoded payload)

        """
        url = f"{self.base_url}{path}"
        timeout = aiohttp.ClientTimeout(total=self.config.timeout)
        logger.debug(f"{method} {url}")

        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.request(
                    method, url, json=json_body, params=params
                ) as response:
                    text = await response.text()
                    status = response.status
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise NetworkError(f"Failed to reach {url}: {e}") from e

        payload = _decode(text)

        if not 200 <= status < 300:
            logger.debug(f"{method} {url} returned {status}: {text}")
            raise ServerError(status, payload, _error_message(payload))

        return status, payload


def _parse_one(model: type[ModelT], status: int, payload: object) -> ModelT:
    """Validate a 2xx payload, reporting a malformed one as ServerError."""
    try:
        return model.model_validate(payload)
    except pydantic.ValidationError as e:
        raise ServerError(status, payload, f"{UNEXPECTED_PAYLOAD}: {e}") from e


def _parse_many(model: type[ModelT], status: int, payload: object) -> list[ModelT]:
    """Validate a 2xx payload that must be a JSON array."""
    if not isinstance(payload, list):
        raise ServerError(status, payload, UNEXPECTED_PAYLOAD)
    return [_parse_one(model, status, item) for item in payload]


def _decode(text: str) -> object:
    if not text:
        return None
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return text


def _error_message(payload: object) -> str | None:
    """Pick the backend's own error message out of a response payload."""
    if isinstance(payload, dict):
        for key in ("message", "error"):
            value = payload.get(key)
            if isinstance(value, str) and value:
                return value
    elif isinstance(payload, str) and payload.strip():
        return payload.strip()
    return None
