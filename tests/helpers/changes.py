"""Builders for change records used across pipeline-stage tests."""

from skill_router.change_tracker import ChangeKind, FileChangeRecord


def make_change(path: str, kind: str = "modified", lines: int = 1) -> FileChangeRecord:
    """Create a FileChangeRecord for a path."""
    return FileChangeRecord(path=path, change_kind=ChangeKind(kind), lines_changed=lines)
