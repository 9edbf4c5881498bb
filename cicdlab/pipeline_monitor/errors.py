"""Error taxonomy for the pipeline backend client."""

from collections.abc import Sequence


class PipelineClientError(Exception):
    """Base class for every failure surfaced by the execution client."""


class ValidationError(PipelineClientError):
    """Trigger request is missing required fields."""

    def __init__(self, fields: Sequence[str]) -> None:
        """Initialize with the names of the missing fields."""
        self.fields = list(fields)
        super().__init__(f"Missing required fields: {', '.join(self.fields)}")


class NetworkError(PipelineClientError):
    """Backend could not be reached."""


class ServerError(PipelineClientError):
    """Backend answered with a non-2xx status."""

    def __init__(
        self, status: int, payload: object = None, message: str | None = None
    ) -> None:
        """Initialize with the response status and decoded payload."""
        self.status = status
        self.payload = payload
        self.message = message or f"Backend request failed with status {status}"
        super().__init__(self.message)


class NotFoundError(ServerError):
    """Backend does not know the requested execution."""

    def __init__(self, execution_id: object, payload: object = None) -> None:
        """Initialize with the unknown execution id."""
        self.execution_id = execution_id
        super().__init__(404, payload, f"Execution {execution_id} not found")
