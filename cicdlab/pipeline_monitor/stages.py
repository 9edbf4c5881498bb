"""Derive per-stage display status from an execution record."""

from cicdlab.pipeline_monitor.models.execution import ExecutionRecord
from cicdlab.pipeline_monitor.models.stage import StageView
from cicdlab.pipeline_monitor.status import normalize_status

STAGE_NAMES = ("Checkout", "Build", "Test", "Package", "Deploy")

_RUNNING = "RUNNING"
_SUCCESS = "SUCCESS"
_PENDING = "PENDING"


def derive_stages(execution: ExecutionRecord) -> list[StageView]:
    """Map an execution onto the five pipeline stages, in order.

    The backend reports explicit status only for build, test and deploy.
    Checkout and package are inferred from ``current_stage``; package falls
    back to the build status once it is no longer the current stage.

    Args:
        execution: Latest known record for the execution

    Returns:
        One StageView per entry of STAGE_NAMES

    """
    current_stage = (execution.current_stage or "").strip().upper()

    statuses = {
        "Checkout": _RUNNING if current_stage == "CHECKOUT" else _SUCCESS,
        "Build": execution.build_status,
        "Test": execution.test_status,
        "Package": _RUNNING if current_stage == "PACKAGE" else execution.build_status,
        "Deploy": execution.deployment_status,
    }

    return [_stage_view(name, statuses[name]) for name in STAGE_NAMES]


def _stage_view(name: str, status: str | None) -> StageView:
    label = status or _PENDING
    return StageView(name=name, status=label, bucket=normalize_status(label))
