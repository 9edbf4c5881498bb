"""Tests for status normalization."""

import pytest

from cicdlab.pipeline_monitor.status import (
    StatusBucket,
    badge,
    is_terminal,
    normalize_status,
)


@pytest.mark.parametrize(
    ("status", "expected"),
    [
        ("success", StatusBucket.SUCCESS),
        ("SUCCESS", StatusBucket.SUCCESS),
        ("Success", StatusBucket.SUCCESS),
        ("FAILED", StatusBucket.FAILED),
        ("failure", StatusBucket.FAILED),
        ("Running", StatusBucket.RUNNING),
        ("pending", StatusBucket.PENDING),
        (" running ", StatusBucket.RUNNING),
        ("WEIRD", StatusBucket.UNKNOWN),
        ("", StatusBucket.UNKNOWN),
        (None, StatusBucket.UNKNOWN),
    ],
)
def test_normalize_status(status: str | None, expected: StatusBucket) -> None:
    """normalize_status maps raw statuses to buckets ignoring case."""
    assert normalize_status(status) is expected


@pytest.mark.parametrize(
    ("status", "expected"),
    [
        ("SUCCESS", True),
        ("failed", True),
        ("FAILURE", True),
        ("RUNNING", False),
        ("PENDING", False),
        (None, False),
    ],
)
def test_is_terminal(status: str | None, expected: bool) -> None:
    """Only SUCCESS and FAILED are terminal."""
    assert is_terminal(status) is expected


def test_badge_keeps_raw_label() -> None:
    """badge shows the bucket icon with the status as reported."""
    assert badge("success") == "✓ success"
    assert badge("FAILURE") == "✗ FAILURE"
    assert badge("RUNNING") == "⟳ RUNNING"
    assert badge("PENDING") == "○ PENDING"


def test_badge_unknown() -> None:
    """badge labels absent statuses as UNKNOWN."""
    assert badge(None) == "◉ UNKNOWN"
    assert badge("SKIPPED") == "◉ SKIPPED"
