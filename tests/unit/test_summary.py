"""Tests for execution summary counts."""

from cicdlab.pipeline_monitor.models.execution import ExecutionRecord
from cicdlab.pipeline_monitor.models.stage import SummaryCounts
from cicdlab.pipeline_monitor.summary import summarize


def _executions(*statuses: str | None) -> list[ExecutionRecord]:
    return [
        ExecutionRecord(id=i, status=status) for i, status in enumerate(statuses)
    ]


def test_summarize_empty() -> None:
    """summarize returns all zeros for no executions."""
    assert summarize([]) == SummaryCounts(success=0, failed=0, running=0, total=0)


def test_summarize_counts_each_bucket() -> None:
    """Unrecognized statuses only count toward the total."""
    counts = summarize(_executions("SUCCESS", "FAILED", "RUNNING", "WEIRD"))

    assert counts == SummaryCounts(success=1, failed=1, running=1, total=4)


def test_summarize_ignores_case_and_failure_alias() -> None:
    """summarize uses the shared case-insensitive status lookup."""
    counts = summarize(_executions("success", "Failure", "running", "PENDING", None))

    assert counts.model_dump() == {
        "success": 1,
        "failed": 1,
        "running": 1,
        "total": 5,
    }


def test_summarize_accepts_generators() -> None:
    """summarize works on any iterable of executions."""
    counts = summarize(e for e in _executions("SUCCESS", "SUCCESS"))

    assert counts.success == 2
    assert counts.total == 2
