"""Tests for stage derivation."""

import pytest

from cicdlab.pipeline_monitor.models.execution import ExecutionRecord
from cicdlab.pipeline_monitor.stages import STAGE_NAMES, derive_stages
from cicdlab.pipeline_monitor.status import StatusBucket


def _statuses(execution: ExecutionRecord) -> dict[str, str]:
    return {stage.name: stage.status for stage in derive_stages(execution)}


@pytest.mark.parametrize(
    "fields",
    [
        {},
        {"status": "RUNNING", "currentStage": "CHECKOUT"},
        {
            "status": "SUCCESS",
            "currentStage": "DEPLOY",
            "buildStatus": "SUCCESS",
            "testStatus": "SUCCESS",
            "deploymentStatus": "SUCCESS",
        },
        {"status": "WEIRD", "currentStage": "SOMETHING_ELSE"},
    ],
)
def test_derive_stages_always_returns_five_in_order(
    fields: dict[str, object],
) -> None:
    """derive_stages returns every stage in fixed order regardless of fields."""
    execution = ExecutionRecord.model_validate({"id": 1, **fields})

    stages = derive_stages(execution)

    assert [stage.name for stage in stages] == list(STAGE_NAMES)
    assert [stage.name for stage in stages] == [
        "Checkout",
        "Build",
        "Test",
        "Package",
        "Deploy",
    ]


def test_derive_stages_missing_statuses_are_pending() -> None:
    """Absent per-stage statuses display as PENDING."""
    execution = ExecutionRecord(id=1, status="PENDING")

    stages = derive_stages(execution)

    assert _statuses(execution) == {
        "Checkout": "SUCCESS",
        "Build": "PENDING",
        "Test": "PENDING",
        "Package": "PENDING",
        "Deploy": "PENDING",
    }
    assert stages[1].bucket is StatusBucket.PENDING


def test_derive_stages_checkout_running() -> None:
    """Checkout is RUNNING while it is the current stage."""
    execution = ExecutionRecord(id=1, status="RUNNING", current_stage="CHECKOUT")

    assert _statuses(execution)["Checkout"] == "RUNNING"


def test_derive_stages_current_stage_ignores_case() -> None:
    """current_stage matches regardless of case."""
    execution = ExecutionRecord(id=1, status="RUNNING", current_stage="package")

    statuses = _statuses(execution)

    assert statuses["Checkout"] == "SUCCESS"
    assert statuses["Package"] == "RUNNING"


def test_derive_stages_package_follows_build_status() -> None:
    """Package reuses the build status once it is not the current stage."""
    execution = ExecutionRecord(
        id=1,
        status="FAILED",
        current_stage="TEST",
        build_status="SUCCESS",
        test_status="FAILED",
    )

    assert _statuses(execution) == {
        "Checkout": "SUCCESS",
        "Build": "SUCCESS",
        "Test": "FAILED",
        "Package": "SUCCESS",
        "Deploy": "PENDING",
    }


def test_derive_stages_verbatim_statuses() -> None:
    """Reported statuses are shown as-is and bucketed ignoring case."""
    execution = ExecutionRecord(
        id=1,
        status="RUNNING",
        current_stage="DEPLOY",
        build_status="success",
        test_status="Success",
        deployment_status="running",
    )

    stages = derive_stages(execution)

    assert [stage.status for stage in stages] == [
        "SUCCESS",
        "success",
        "Success",
        "success",
        "running",
    ]
    assert [stage.bucket for stage in stages] == [
        StatusBucket.SUCCESS,
        StatusBucket.SUCCESS,
        StatusBucket.SUCCESS,
        StatusBucket.SUCCESS,
        StatusBucket.RUNNING,
    ]
