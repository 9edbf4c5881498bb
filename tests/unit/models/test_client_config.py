"""Tests for client and polling configuration models."""

import pytest
from pydantic import ValidationError

from cicdlab.pipeline_monitor.models.client_config import (
    DEFAULT_API_URL,
    ClientConfig,
    PollingConfig,
)


def test_client_config_defaults() -> None:
    """ClientConfig points at the local backend by default."""
    config = ClientConfig()

    assert config.base_url == DEFAULT_API_URL
    assert config.base_url == "http://localhost:9090/api/pipeline"
    assert config.timeout == 30.0


def test_polling_config_defaults() -> None:
    """The list refreshes every 5 seconds, a single execution every 3."""
    config = PollingConfig()

    assert config.list_interval == 5.0
    assert config.detail_interval == 3.0


@pytest.mark.parametrize("field", ["list_interval", "detail_interval"])
def test_polling_config_rejects_non_positive_interval(field: str) -> None:
    """Intervals must be positive."""
    with pytest.raises(ValidationError):
        PollingConfig(**{field: 0})


def test_client_config_rejects_non_positive_timeout() -> None:
    """Timeout must be positive."""
    with pytest.raises(ValidationError):
        ClientConfig(timeout=0)
