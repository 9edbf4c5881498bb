"""Derived views computed from execution records."""

from pydantic import BaseModel, Field

from cicdlab.pipeline_monitor.models.execution import ExecutionRecord, TestResult
from cicdlab.pipeline_monitor.status import StatusBucket


class StageView(BaseModel):
    """Display status of one named pipeline stage."""

    name: str = Field(..., description="Stage name")
    status: str = Field(..., description="Status label shown for the stage")
    bucket: StatusBucket = Field(..., description="Normalized status")


class SummaryCounts(BaseModel):
    """Execution counts per status bucket."""

    success: int = 0
    failed: int = 0
    running: int = 0
    total: int = 0


class ExecutionSnapshot(BaseModel):
    """Latest known state of a single execution and its test results."""

    execution: ExecutionRecord
    test_results: list[TestResult] = Field(default_factory=list)
