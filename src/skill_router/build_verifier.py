"""Build Verifier - runs the build/typecheck command and classifies its output.

The command only runs when a build-relevant file changed. Output lines are
classified by marker regexes, not parsed per tool:

    src/api.ts(12,5): error TS2322: Type 'string' is not assignable...
    src/util.py:40: error: Incompatible return value type
    warning: unused variable 'x'

The build fails when the exit code is non-zero OR any error line was found.
"""

import logging
import re
import subprocess
import time
from dataclasses import dataclass, field
from pathlib import Path
from re import Pattern
from typing import Iterable, List, Optional, Sequence

from skill_router.change_tracker import FileChangeRecord
from skill_router.format_dispatcher import normalize_extensions

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 300
DEFAULT_ERROR_MARKERS = (r"\berror\b",)
DEFAULT_WARNING_MARKERS = (r"\bwarn(ing)?\b",)

SEVERITY_ERROR = "error"
SEVERITY_WARNING = "warning"

SKIP_NO_CHANGES = "no build-relevant changes"
SKIP_NO_COMMAND = "no build command configured"

# "path(line,col)" as printed by tsc
_PAREN_LOCATION = re.compile(r"^\s*(?P<file>[^\s():]+)\((?P<line>\d+),\d+\)")
# "path:line[:col]" as printed by gcc, eslint --format unix, mypy, pyright
_COLON_LOCATION = re.compile(r"^\s*(?P<file>[^\s:]+\.[A-Za-z0-9]+):(?P<line>\d+)(?::\d+)?")


@dataclass
class BuildDiagnostic:
    """One classified line of build output."""

    severity: str
    raw_line: str
    source_file: Optional[str] = None
    source_line: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "severity": self.severity,
            "raw_line": self.raw_line,
            "source_file": self.source_file,
            "source_line": self.source_line,
        }


@dataclass
class BuildResult:
    """Outcome of a build check."""

    success: bool
    errors: List[BuildDiagnostic] = field(default_factory=list)
    warnings: List[BuildDiagnostic] = field(default_factory=list)
    raw_output: str = ""
    duration_ms: int = 0
    skipped: bool = False
    skip_reason: str = ""
    exit_code: Optional[int] = None
    command: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "skipped": self.skipped,
            "skip_reason": self.skip_reason,
            "exit_code": self.exit_code,
            "duration_ms": self.duration_ms,
            "command": self.command,
            "errors": [d.to_dict() for d in self.errors],
            "warnings": [d.to_dict() for d in self.warnings],
        }


def parse_location(line: str) -> tuple:
    """Extract (source_file, source_line) from a diagnostic line, if present."""
    for pattern in (_PAREN_LOCATION, _COLON_LOCATION):
        match = pattern.match(line)
        if match:
            return match.group("file"), int(match.group("line"))
    return None, None


def _compile_markers(markers: Iterable[str]) -> List[Pattern]:
    compiled = []
    for marker in markers:
        try:
            compiled.append(re.compile(marker, re.IGNORECASE))
        except re.error as e:
            logger.warning(f"Skipping invalid build marker {marker!r}: {e}")
    return compiled


class BuildVerifier:
    """Runs the build command and turns its output into a BuildResult."""

    def __init__(
        self,
        command: Sequence[str],
        timeout: int = DEFAULT_TIMEOUT,
        cwd: Optional[Path] = None,
        error_markers: Iterable[str] = DEFAULT_ERROR_MARKERS,
        warning_markers: Iterable[str] = DEFAULT_WARNING_MARKERS,
    ):
        self.command = list(command)
        self.timeout = timeout
        self.cwd = Path(cwd) if cwd else None
        self.error_markers = _compile_markers(error_markers)
        self.warning_markers = _compile_markers(warning_markers)

    def classify(self, output: str) -> tuple:
        """Split output lines into (errors, warnings) diagnostics."""
        errors: List[BuildDiagnostic] = []
        warnings: List[BuildDiagnostic] = []
        for line in output.splitlines():
            if not line.strip():
                continue
            if any(marker.search(line) for marker in self.error_markers):
                severity, bucket = SEVERITY_ERROR, errors
            elif any(marker.search(line) for marker in self.warning_markers):
                severity, bucket = SEVERITY_WARNING, warnings
            else:
                continue
            source_file, source_line = parse_location(line)
            bucket.append(
                BuildDiagnostic(
                    severity=severity,
                    raw_line=line.rstrip(),
                    source_file=source_file,
                    source_line=source_line,
                )
            )
        return errors, warnings

    def _failure(self, message: str, started: float) -> BuildResult:
        logger.error(f"Build check failed to run: {message}")
        return BuildResult(
            success=False,
            errors=[BuildDiagnostic(severity=SEVERITY_ERROR, raw_line=message)],
            duration_ms=int((time.monotonic() - started) * 1000),
            command=self.command,
        )

    def verify(
        self,
        changes: Sequence[FileChangeRecord],
        build_extensions: Iterable[str],
    ) -> BuildResult:
        """
        Run the build command if any build-relevant file changed.

        Args:
            changes: Records from the ChangeTracker
            build_extensions: Extensions that make a build check worthwhile

        Returns:
            BuildResult; success is False on a non-zero exit or any error line
        """
        relevant = normalize_extensions(build_extensions)
        if not any(not c.is_deleted and c.extension in relevant for c in changes):
            logger.debug("No build-relevant changes, skipping build check")
            return BuildResult(
                success=True, skipped=True, skip_reason=SKIP_NO_CHANGES, command=self.command
            )

        if not self.command:
            logger.debug("No build command configured, skipping build check")
            return BuildResult(success=True, skipped=True, skip_reason=SKIP_NO_COMMAND)

        started = time.monotonic()
        try:
            result = subprocess.run(
                self.command,
                cwd=self.cwd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                timeout=self.timeout,
            )
        except FileNotFoundError:
            return self._failure(f"build command not found: {self.command[0]}", started)
        except subprocess.TimeoutExpired:
            return self._failure(f"build command timed out after {self.timeout}s", started)
        except OSError as e:
            return self._failure(f"build command failed to start: {e}", started)

        duration_ms = int((time.monotonic() - started) * 1000)
        output = result.stdout or ""
        errors, warnings = self.classify(output)
        success = result.returncode == 0 and not errors

        logger.info(
            f"Build check exited {result.returncode} in {duration_ms}ms: "
            f"{len(errors)} errors, {len(warnings)} warnings"
        )
        return BuildResult(
            success=success,
            errors=errors,
            warnings=warnings,
            raw_output=output,
            duration_ms=duration_ms,
            exit_code=result.returncode,
            command=self.command,
        )
