"""Data models for executions, derived views and configuration."""

from cicdlab.pipeline_monitor.models.client_config import ClientConfig, PollingConfig
from cicdlab.pipeline_monitor.models.execution import (
    CommitInfo,
    ExecutionRecord,
    TestResult,
    TriggerRequest,
)
from cicdlab.pipeline_monitor.models.stage import (
    ExecutionSnapshot,
    StageView,
    SummaryCounts,
)

__all__ = [
    "ClientConfig",
    "CommitInfo",
    "ExecutionRecord",
    "ExecutionSnapshot",
    "PollingConfig",
    "StageView",
    "SummaryCounts",
    "TestResult",
    "TriggerRequest",
]
