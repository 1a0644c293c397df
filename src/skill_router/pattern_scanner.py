"""
Pattern Scanner - line-window heuristics over changed source files.

Each heuristic is a row in a table: a detection regex, a window of lines
around the hit, an optional guard regex that suppresses the finding when it
appears inside the window, and optional exclusions. A single loop evaluates
every row, so a new heuristic is a new table entry and nothing else.

These are heuristics, not a parser. Findings are advisory: they never fail
a run unless the caller opts into strict mode.
"""

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from re import Pattern
from typing import Iterable, List, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

SEVERITY_HIGH = "high"
SEVERITY_MEDIUM = "medium"
SEVERITY_LOW = "low"

# Files larger than this are not scanned
MAX_SCAN_BYTES = 2_000_000

_ERROR_HANDLING = re.compile(r"\btry\b|\.catch\(")


@dataclass(frozen=True)
class Heuristic:
    """One row of the detection table."""

    kind: str
    detection: Pattern
    message: str
    suggestion: str
    severity: str
    lines_before: int = 0
    lines_after: int = 0
    guard: Optional[Pattern] = None
    line_exclusion: Optional[Pattern] = None
    path_exclusions: Tuple[str, ...] = ()


@dataclass
class ErrorPatternFinding:
    """An advisory finding for one line of one file."""

    kind: str
    severity: str
    file: str
    line: int
    message: str
    suggestion: str

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "severity": self.severity,
            "file": self.file,
            "line": self.line,
            "message": self.message,
            "suggestion": self.suggestion,
        }


DEFAULT_HEURISTICS: Tuple[Heuristic, ...] = (
    Heuristic(
        kind="async-without-protection",
        detection=re.compile(
            r"\basync\s+(?:function\b|def\b|\([^)]*\)\s*=>|[A-Za-z_$][\w$]*\s*=>|[A-Za-z_$][\w$]*\s*\()"
        ),
        message="Async function without error handling",
        suggestion="Wrap the awaited work in try/catch (or try/except) or attach .catch()",
        severity=SEVERITY_MEDIUM,
        lines_after=10,
        guard=_ERROR_HANDLING,
    ),
    Heuristic(
        kind="unguarded-external-call",
        detection=re.compile(
            r"\b(?:fetch|axios(?:\.\w+)?|prisma\.\w+\.\w+|db\.query|pool\.query"
            r"|requests\.(?:get|post|put|patch|delete|request)"
            r"|httpx\.(?:get|post|put|patch|delete|request))\s*\("
        ),
        message="Network or database call without error handling",
        suggestion="Handle failures of external calls (timeouts, rejected promises, DB errors)",
        severity=SEVERITY_HIGH,
        lines_before=5,
        lines_after=5,
        guard=_ERROR_HANDLING,
    ),
    Heuristic(
        kind="debug-print",
        detection=re.compile(
            r"\bconsole\.(?:log|debug|trace)\s*\(|^\s*print\s*\(|^\s*debugger\s*;?\s*$|\bpdb\.set_trace\(|\bbreakpoint\(\)"
        ),
        message="Debug statement left in code",
        suggestion="Remove it or use the project logger",
        severity=SEVERITY_LOW,
        path_exclusions=(".test.", ".spec."),
    ),
    Heuristic(
        kind="literal-secret",
        detection=re.compile(
            r"\b[\w$]*(?:key|password|secret|token)[\w$]*[\"']?\s*[:=]\s*[\"'][^\"'\s]{16,}[\"']",
            re.IGNORECASE,
        ),
        message="Possible hardcoded secret",
        suggestion="Load the value from an environment variable or a secret store",
        severity=SEVERITY_HIGH,
        line_exclusion=re.compile(
            r"^\s*(?://|#|\*|/\*)|process\.env|os\.environ|os\.getenv|import\.meta\.env"
        ),
    ),
)


def _guarded(heuristic: Heuristic, lines: Sequence[str], index: int) -> bool:
    if heuristic.guard is None:
        return False
    start = max(0, index - heuristic.lines_before)
    end = min(len(lines), index + heuristic.lines_after + 1)
    return any(heuristic.guard.search(lines[i]) for i in range(start, end))


class PatternScanner:
    """Applies the heuristic table to source files."""

    def __init__(
        self,
        heuristics: Sequence[Heuristic] = DEFAULT_HEURISTICS,
        root: Optional[Path] = None,
    ):
        self.heuristics = tuple(heuristics)
        self.root = Path(root) if root else None

    def scan_text(self, path: str, text: str) -> List[ErrorPatternFinding]:
        """Scan in-memory file content; `path` is used for reporting and exclusions."""
        lines = text.splitlines()
        findings: List[ErrorPatternFinding] = []

        for heuristic in self.heuristics:
            if any(marker in path for marker in heuristic.path_exclusions):
                continue
            for index, line in enumerate(lines):
                if not heuristic.detection.search(line):
                    continue
                if heuristic.line_exclusion and heuristic.line_exclusion.search(line):
                    continue
                if _guarded(heuristic, lines, index):
                    continue
                findings.append(
                    ErrorPatternFinding(
                        kind=heuristic.kind,
                        severity=heuristic.severity,
                        file=path,
                        line=index + 1,
                        message=heuristic.message,
                        suggestion=heuristic.suggestion,
                    )
                )

        findings.sort(key=lambda f: f.line)
        return findings

    def _read(self, path: str) -> Optional[str]:
        file_path = Path(path)
        if self.root and not file_path.is_absolute():
            file_path = self.root / file_path
        try:
            if file_path.stat().st_size > MAX_SCAN_BYTES:
                logger.info(f"Skipping large file in pattern scan: {path}")
                return None
            return file_path.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            logger.warning(f"Cannot scan {path}: {e}")
            return None

    def scan(self, changed_source_files: Iterable[str]) -> List[ErrorPatternFinding]:
        """
        Scan files on disk.

        Args:
            changed_source_files: Paths, relative to root when one is set

        Returns:
            Findings grouped by file, in line order within each file
        """
        findings: List[ErrorPatternFinding] = []
        for path in changed_source_files:
            text = self._read(path)
            if text is None:
                continue
            findings.extend(self.scan_text(path, text))
        logger.info(f"Pattern scan produced {len(findings)} findings")
        return findings


def has_blocking_findings(findings: Iterable[ErrorPatternFinding]) -> bool:
    """True when any finding is high severity (only consulted in strict mode)."""
    return any(f.severity == SEVERITY_HIGH for f in findings)
