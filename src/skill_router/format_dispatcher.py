"""Format Dispatcher - runs a formatter on each changed, formattable file.

One subprocess per file. A failure on one file is recorded as a warning
and the remaining files are still formatted.
"""

import logging
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence

from skill_router.change_tracker import FileChangeRecord

logger = logging.getLogger(__name__)

FILE_PLACEHOLDER = "{file}"
DEFAULT_TIMEOUT = 30


@dataclass
class FormatWarning:
    """A formatter failure for one file."""

    path: str
    message: str


@dataclass
class FormatReport:
    """Result of a format pass."""

    attempted: List[str] = field(default_factory=list)
    formatted: List[str] = field(default_factory=list)
    warnings: List[FormatWarning] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.warnings

    def to_dict(self) -> dict:
        return {
            "attempted": len(self.attempted),
            "formatted": self.formatted,
            "warnings": [{"path": w.path, "message": w.message} for w in self.warnings],
            "skipped": len(self.skipped),
        }


def normalize_extensions(extensions: Iterable[str]) -> set:
    """Lower-case extensions without leading dots."""
    return {ext.lower().lstrip(".") for ext in extensions if ext}


def build_command(template: Sequence[str], path: str) -> List[str]:
    """Substitute {file} in the argv template, or append the path."""
    if any(FILE_PLACEHOLDER in arg for arg in template):
        return [arg.replace(FILE_PLACEHOLDER, path) for arg in template]
    return [*template, path]


class FormatDispatcher:
    """Invokes the configured formatter per file."""

    def __init__(
        self,
        command: Sequence[str],
        overrides: Optional[Dict[str, Sequence[str]]] = None,
        timeout: int = DEFAULT_TIMEOUT,
        cwd: Optional[Path] = None,
    ):
        """
        Args:
            command: Formatter argv; "{file}" is replaced by the file path
            overrides: Extension -> argv for files that need another formatter
            timeout: Seconds allowed per file
            cwd: Directory the formatter runs in (paths are relative to it)
        """
        self.command = list(command)
        self.overrides = {
            ext.lower().lstrip("."): list(argv) for ext, argv in (overrides or {}).items()
        }
        self.timeout = timeout
        self.cwd = Path(cwd) if cwd else None

    def _command_for(self, change: FileChangeRecord) -> List[str]:
        template = self.overrides.get(change.extension, self.command)
        return build_command(template, change.path)

    def _run_one(self, change: FileChangeRecord) -> Optional[str]:
        """Format one file; return a warning message on failure."""
        argv = self._command_for(change)
        if not argv:
            return "no formatter command configured"
        try:
            result = subprocess.run(
                argv,
                cwd=self.cwd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except FileNotFoundError:
            return f"formatter not found: {argv[0]}"
        except subprocess.TimeoutExpired:
            return f"formatter timed out after {self.timeout}s"
        except OSError as e:
            return f"formatter failed to start: {e}"

        if result.returncode != 0:
            detail = (result.stderr or result.stdout or "").strip().splitlines()
            reason = detail[-1] if detail else "no output"
            return f"formatter exited {result.returncode}: {reason}"
        return None

    def format(
        self,
        changes: Sequence[FileChangeRecord],
        extension_allowlist: Iterable[str],
    ) -> FormatReport:
        """
        Format every non-deleted change whose extension is allowed.

        Args:
            changes: Records from the ChangeTracker
            extension_allowlist: Extensions to format ("ts" or ".ts")

        Returns:
            FormatReport listing attempted, formatted, failed and skipped paths
        """
        allowed = normalize_extensions(extension_allowlist)
        report = FormatReport()

        for change in changes:
            if change.is_deleted or change.extension not in allowed:
                report.skipped.append(change.path)
                continue

            report.attempted.append(change.path)
            message = self._run_one(change)
            if message:
                logger.warning(f"Format failed for {change.path}: {message}")
                report.warnings.append(FormatWarning(path=change.path, message=message))
            else:
                logger.debug(f"Formatted {change.path}")
                report.formatted.append(change.path)

        return report
