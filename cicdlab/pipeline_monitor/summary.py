"""Aggregate execution collections into status counts."""

from collections.abc import Iterable

from cicdlab.pipeline_monitor.models.execution import ExecutionRecord
from cicdlab.pipeline_monitor.models.stage import SummaryCounts
from cicdlab.pipeline_monitor.status import StatusBucket, normalize_status


def summarize(executions: Iterable[ExecutionRecord]) -> SummaryCounts:
    """Count executions per status bucket.

    Statuses outside SUCCESS, FAILED and RUNNING only count toward the total.
    """
    counts = SummaryCounts()
    for execution in executions:
        counts.total += 1
        bucket = normalize_status(execution.status)
        if bucket is StatusBucket.SUCCESS:
            counts.success += 1
        elif bucket is StatusBucket.FAILED:
            counts.failed += 1
        elif bucket is StatusBucket.RUNNING:
            counts.running += 1
    return counts
