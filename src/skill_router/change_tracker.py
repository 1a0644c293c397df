"""Change Tracker - files touched since a git baseline.

Combines three git queries run from the repository top level:
- git diff --no-renames --name-status <baseline>  (change kind)
- git diff --no-renames --numstat <baseline>      (added + removed lines)
- git ls-files --others --exclude-standard        (untracked = added)

Any failure (git missing, not a repository, unknown baseline, timeout)
yields an empty list so later stages simply have nothing to do.

Paths that are not valid UTF-8 keep their raw bytes as surrogate escapes,
so they still open and pass to subprocesses unchanged.
"""

import logging
import subprocess
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)

DEFAULT_BASELINE = "HEAD"
DEFAULT_TIMEOUT = 30
COUNT_CHUNK_BYTES = 64 * 1024


class ChangeKind(Enum):
    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"


# git --name-status letters; anything else (T, U, X) counts as modified
_STATUS_KINDS = {
    "A": ChangeKind.ADDED,
    "D": ChangeKind.DELETED,
    "M": ChangeKind.MODIFIED,
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class FileChangeRecord:
    """A single changed file relative to the baseline."""

    path: str
    change_kind: ChangeKind
    lines_changed: int = 0
    observed_at: datetime = field(default_factory=_utcnow)

    @property
    def extension(self) -> str:
        """Lower-case extension without the dot ('' when there is none)."""
        return Path(self.path).suffix.lstrip(".").lower()

    @property
    def is_deleted(self) -> bool:
        return self.change_kind is ChangeKind.DELETED

    def to_dict(self) -> dict:
        return {
            "path": self.path,
            "change_kind": self.change_kind.value,
            "lines_changed": self.lines_changed,
            "observed_at": self.observed_at.isoformat(),
        }


class GitCommandError(Exception):
    """Raised internally when a git command cannot produce usable output."""
    pass


class ChangeTracker:
    """Computes working-tree changes against a version-control baseline."""

    def __init__(
        self,
        project_root: Path,
        git: str = "git",
        timeout: int = DEFAULT_TIMEOUT,
    ):
        self.project_root = Path(project_root)
        self.git = git
        self.timeout = timeout
        self.repo_root: Optional[Path] = None

    def _git(self, args: List[str], cwd: Path) -> str:
        try:
            result = subprocess.run(
                [self.git, "-c", "core.quotepath=off", *args],
                cwd=cwd,
                capture_output=True,
                encoding="utf-8",
                errors="surrogateescape",
                timeout=self.timeout,
            )
        except FileNotFoundError:
            raise GitCommandError(f"git executable not found: {self.git}")
        except subprocess.TimeoutExpired:
            raise GitCommandError(f"git {args[0]} timed out after {self.timeout}s")
        except OSError as e:
            raise GitCommandError(f"git {args[0]} failed: {e}")

        if result.returncode != 0:
            raise GitCommandError(
                f"git {' '.join(args)} exited {result.returncode}: {result.stderr.strip()}"
            )
        return result.stdout

    def _find_repo_root(self) -> Path:
        output = self._git(["rev-parse", "--show-toplevel"], cwd=self.project_root)
        return Path(output.strip())

    @staticmethod
    def _parse_name_status(output: str) -> Dict[str, ChangeKind]:
        kinds: Dict[str, ChangeKind] = {}
        for line in output.splitlines():
            parts = line.split("\t")
            if len(parts) < 2:
                continue
            status = parts[0][:1]
            kinds[parts[-1]] = _STATUS_KINDS.get(status, ChangeKind.MODIFIED)
        return kinds

    @staticmethod
    def _parse_numstat(output: str) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for line in output.splitlines():
            parts = line.split("\t")
            if len(parts) < 3:
                continue
            added, removed, path = parts[0], parts[1], parts[2]
            # Binary files report "-" for both columns
            total = 0
            for value in (added, removed):
                if value.isdigit():
                    total += int(value)
            counts[path] = total
        return counts

    @staticmethod
    def _count_lines(path: Path) -> int:
        newlines = 0
        last = b""
        try:
            with open(path, "rb") as f:
                for chunk in iter(lambda: f.read(COUNT_CHUNK_BYTES), b""):
                    newlines += chunk.count(b"\n")
                    last = chunk
        except OSError as e:
            logger.debug(f"Cannot count lines in {path}: {e}")
            return 0
        if not last:
            return 0
        return newlines + (0 if last.endswith(b"\n") else 1)

    def current_changes(self, baseline: str = DEFAULT_BASELINE) -> List[FileChangeRecord]:
        """
        List files changed in the working tree since the baseline.

        Args:
            baseline: Any git revision (default: HEAD)

        Returns:
            FileChangeRecords sorted by path; empty when git context is unavailable
        """
        try:
            repo_root = self._find_repo_root()
            name_status = self._git(
                ["diff", "--no-renames", "--name-status", baseline, "--"], cwd=repo_root
            )
            numstat = self._git(
                ["diff", "--no-renames", "--numstat", baseline, "--"], cwd=repo_root
            )
            untracked = self._git(
                ["ls-files", "--others", "--exclude-standard"], cwd=repo_root
            )
        except GitCommandError as e:
            logger.warning(f"No version-control changes available: {e}")
            return []

        self.repo_root = repo_root
        observed_at = _utcnow()
        kinds = self._parse_name_status(name_status)
        counts = self._parse_numstat(numstat)

        records: Dict[str, FileChangeRecord] = {}
        for path, kind in kinds.items():
            records[path] = FileChangeRecord(
                path=path,
                change_kind=kind,
                lines_changed=counts.get(path, 0),
                observed_at=observed_at,
            )

        for path in untracked.splitlines():
            if not path or path in records:
                continue
            records[path] = FileChangeRecord(
                path=path,
                change_kind=ChangeKind.ADDED,
                lines_changed=self._count_lines(repo_root / path),
                observed_at=observed_at,
            )

        changes = [records[path] for path in sorted(records)]
        logger.info(f"Found {len(changes)} changed files since {baseline}")
        return changes
