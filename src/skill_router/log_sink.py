"""
Run logs for the post-action pipeline.

Layout: one append-only text file per category per day

    .claude/logs/
        build_2025-03-02.log
        build_2025-03-03.log
        file-changes_2025-03-03.log

Each record is one line: "<ISO timestamp> <payload>". Dict payloads are
written as compact JSON.

Losing the log is the only fatal condition of a run, so filesystem errors
surface as LogSinkError instead of being swallowed.
"""

import json
import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, List, Optional, Tuple

logger = logging.getLogger(__name__)

DATE_FORMAT = "%Y-%m-%d"
DEFAULT_KEEP = 20

_CATEGORY_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")


class LogSinkError(Exception):
    """Raised when the log directory or a log file cannot be written."""
    pass


def _default_clock() -> datetime:
    return datetime.now(timezone.utc)


def _payload(record: Any) -> str:
    if isinstance(record, (dict, list)):
        return json.dumps(record, sort_keys=True, separators=(",", ":"), default=str)
    text = str(record)
    return text.replace("\r", "\\r").replace("\n", "\\n")


class LogSink:
    """Appends run records to dated per-category files and prunes old ones."""

    def __init__(self, log_dir: Path, clock: Optional[Callable[[], datetime]] = None):
        self.log_dir = Path(log_dir)
        self.clock = clock or _default_clock

    @staticmethod
    def _check_category(category: str) -> None:
        if not _CATEGORY_RE.match(category):
            raise ValueError(f"Invalid log category: {category!r}")

    def path_for(self, category: str, when: Optional[datetime] = None) -> Path:
        """Log file path for a category on the given (or current) date."""
        self._check_category(category)
        when = when or self.clock()
        return self.log_dir / f"{category}_{when.strftime(DATE_FORMAT)}.log"

    def append(self, category: str, record: Any) -> Path:
        """
        Append one record as one line.

        Returns:
            Path of the file written

        Raises:
            LogSinkError: If the directory or file cannot be written
        """
        now = self.clock()
        path = self.path_for(category, now)
        line = f"{now.isoformat()} {_payload(record)}\n"
        try:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            with open(path, "a", encoding="utf-8", errors="backslashreplace") as f:
                f.write(line)
        except OSError as e:
            raise LogSinkError(f"Cannot write log file {path}: {e}") from e
        return path

    def files(self, category: str) -> List[Path]:
        """Dated log files for a category, oldest first."""
        self._check_category(category)
        if not self.log_dir.is_dir():
            return []

        pattern = re.compile(rf"^{re.escape(category)}_(\d{{4}}-\d{{2}}-\d{{2}})\.log$")
        dated: List[Tuple[datetime, Path]] = []
        for entry in self.log_dir.iterdir():
            match = pattern.match(entry.name)
            if not match or not entry.is_file():
                continue
            try:
                stamp = datetime.strptime(match.group(1), DATE_FORMAT)
            except ValueError:
                continue
            dated.append((stamp, entry))
        dated.sort(key=lambda item: (item[0], item[1].name))
        return [path for _, path in dated]

    def prune(self, category: str, keep: int = DEFAULT_KEEP) -> List[Path]:
        """
        Delete all but the `keep` most recent files of a category.

        Returns:
            Paths that were deleted

        Raises:
            LogSinkError: If a file cannot be deleted
        """
        if keep < 0:
            raise ValueError(f"keep must be >= 0, got {keep}")

        existing = self.files(category)
        doomed = existing[: max(0, len(existing) - keep)]
        for path in doomed:
            try:
                path.unlink()
            except FileNotFoundError:
                continue
            except OSError as e:
                raise LogSinkError(f"Cannot delete old log file {path}: {e}") from e
        if doomed:
            logger.info(f"Pruned {len(doomed)} old '{category}' log files")
        return doomed
