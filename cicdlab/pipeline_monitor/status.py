"""Status normalization shared by stage derivation, summaries and display."""

from enum import Enum


class StatusBucket(str, Enum):
    """Presentation bucket a raw backend status falls into."""

    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
    RUNNING = "RUNNING"
    PENDING = "PENDING"
    UNKNOWN = "UNKNOWN"


_STATUS_LOOKUP: dict[str, StatusBucket] = {
    "SUCCESS": StatusBucket.SUCCESS,
    "FAILED": StatusBucket.FAILED,
    "FAILURE": StatusBucket.FAILED,
    "RUNNING": StatusBucket.RUNNING,
    "PENDING": StatusBucket.PENDING,
}

_BADGE_ICONS: dict[StatusBucket, str] = {
    StatusBucket.SUCCESS: "✓",
    StatusBucket.FAILED: "✗",
    StatusBucket.RUNNING: "⟳",
    StatusBucket.PENDING: "○",
    StatusBucket.UNKNOWN: "◉",
}

TERMINAL_BUCKETS = frozenset({StatusBucket.SUCCESS, StatusBucket.FAILED})


def normalize_status(status: str | None) -> StatusBucket:
    """Map a raw status string to its bucket, ignoring case.

    Absent or unrecognized values land in ``StatusBucket.UNKNOWN``.
    """
    if not status:
        return StatusBucket.UNKNOWN
    return _STATUS_LOOKUP.get(status.strip().upper(), StatusBucket.UNKNOWN)


def is_terminal(status: str | None) -> bool:
    """Whether no further transitions are expected after this status."""
    return normalize_status(status) in TERMINAL_BUCKETS


def badge(status: str | None) -> str:
    """Render a status as an icon followed by its label."""
    icon = _BADGE_ICONS[normalize_status(status)]
    return f"{icon} {status or 'UNKNOWN'}"
