"""Configuration models for the backend client and polling."""

from pydantic import BaseModel, Field

DEFAULT_API_URL = "http://localhost:9090/api/pipeline"


class ClientConfig(BaseModel):
    """Configuration for the pipeline backend API client."""

    base_url: str = Field(
        default=DEFAULT_API_URL, description="Pipeline backend API base URL"
    )
    timeout: float = Field(
        default=30.0, gt=0, description="Total request timeout in seconds"
    )


class PollingConfig(BaseModel):
    """Polling cadence for monitored subjects."""

    list_interval: float = Field(
        default=5.0, gt=0, description="Seconds between execution list refreshes"
    )
    detail_interval: float = Field(
        default=3.0, gt=0, description="Seconds between single execution refreshes"
    )
