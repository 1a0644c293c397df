"""
Hook pipelines.

Prompt analysis (before an edit):
    RuleStore -> PromptMatcher -> Prioritizer -> ReminderComposer

Post-action (after an edit):
    ChangeTracker -> FormatDispatcher -> BuildVerifier -> PatternScanner -> LogSink

The post-action stages only share the list of changes. Each stage runs
inside its own error boundary; a crash becomes a StageFailure in the report
and the next stage still runs. Only LogSinkError escapes, because a run
whose log cannot be written has lost its one durable output.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from skill_router.build_verifier import BuildResult, BuildVerifier
from skill_router.change_tracker import ChangeTracker, FileChangeRecord
from skill_router.config import get_int, get_log_dir, get_rules_path, get_section
from skill_router.format_dispatcher import FormatDispatcher, FormatReport, normalize_extensions
from skill_router.log_sink import LogSink
from skill_router.matcher import MatchResult, PromptMatcher
from skill_router.pattern_scanner import (
    ErrorPatternFinding,
    PatternScanner,
    has_blocking_findings,
)
from skill_router.prioritizer import DEFAULT_TOP_N, select_rules
from skill_router.reminder import compose, render_block
from skill_router.rule_store import RuleStore, SkillRule

logger = logging.getLogger(__name__)

STAGE_CHANGES = "changes"
STAGE_FORMAT = "format"
STAGE_BUILD = "build"
STAGE_SCAN = "scan"

LOG_FILE_CHANGES = "file-changes"
LOG_FORMAT = "format"
LOG_BUILD = "build"
LOG_PATTERNS = "patterns"
LOG_STAGES = "stages"
LOG_CATEGORIES = (LOG_FILE_CHANGES, LOG_FORMAT, LOG_BUILD, LOG_PATTERNS, LOG_STAGES)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_FATAL = 2


# =============================================================================
# Prompt analysis
# =============================================================================


@dataclass
class PromptAnalysis:
    """Result of matching one prompt."""

    prompt: str
    matches: MatchResult
    selected: List[SkillRule]
    annotated: str

    @property
    def matched_ids(self) -> List[str]:
        return self.matches.ids

    @property
    def selected_ids(self) -> List[str]:
        return [rule.id for rule in self.selected]

    @property
    def reminder(self) -> str:
        return render_block(self.selected)


def analyze_prompt(
    prompt: str,
    rules: Sequence[SkillRule],
    top_n: int = DEFAULT_TOP_N,
    changed_paths: Optional[Sequence[str]] = None,
    root: Optional[Path] = None,
    matcher: Optional[PromptMatcher] = None,
) -> PromptAnalysis:
    """
    Match a prompt (and optionally changed files) and compose the reminder.

    Args:
        prompt: User prompt text
        rules: Loaded rules in configuration order
        top_n: Maximum number of skills in the reminder
        changed_paths: Repo-relative paths to evaluate fileTriggers against
        root: Directory the changed paths are relative to
        matcher: Matcher to reuse (a fresh one by default)
    """
    matcher = matcher or PromptMatcher()
    matches = matcher.match_prompt(prompt, rules)
    if changed_paths:
        matches.merge(matcher.match_files_result(changed_paths, rules, root or Path.cwd()))

    selected = select_rules(matches.ids, rules, top_n)
    return PromptAnalysis(
        prompt=prompt,
        matches=matches,
        selected=selected,
        annotated=compose(prompt, selected),
    )


def analyze_prompt_with_config(
    prompt: str,
    config: Dict[str, Any],
    project_root: Path,
    top_n: Optional[int] = None,
    include_changed_files: Optional[bool] = None,
) -> PromptAnalysis:
    """Load rules from configuration and run analyze_prompt()."""
    rules = RuleStore(get_rules_path(config, project_root)).load()
    prompt_cfg = get_section(config, "prompt")

    if top_n is None:
        top_n = get_int(config, "prompt", "top_n")
    if include_changed_files is None:
        include_changed_files = bool(prompt_cfg.get("include_changed_files", False))

    changed_paths: List[str] = []
    root = project_root
    if include_changed_files and any(rule.has_file_triggers for rule in rules):
        changes_cfg = get_section(config, "changes")
        tracker = ChangeTracker(project_root, timeout=get_int(config, "changes", "timeout"))
        changes = tracker.current_changes(changes_cfg.get("baseline", "HEAD"))
        changed_paths = [c.path for c in changes if not c.is_deleted]
        root = tracker.repo_root or project_root

    return analyze_prompt(prompt, rules, top_n=top_n, changed_paths=changed_paths, root=root)


# =============================================================================
# Post-action pipeline
# =============================================================================


@dataclass
class StageFailure:
    """A stage that crashed instead of returning its result object."""

    stage: str
    message: str


@dataclass
class PipelineReport:
    """Everything a post-action run produced."""

    changes: List[FileChangeRecord] = field(default_factory=list)
    format_report: Optional[FormatReport] = None
    build_result: Optional[BuildResult] = None
    findings: List[ErrorPatternFinding] = field(default_factory=list)
    failures: List[StageFailure] = field(default_factory=list)
    strict: bool = False

    @property
    def build_failed(self) -> bool:
        return self.build_result is not None and not self.build_result.success

    @property
    def strict_failed(self) -> bool:
        return self.strict and has_blocking_findings(self.findings)

    @property
    def exit_code(self) -> int:
        if self.build_failed or self.strict_failed:
            return EXIT_FAILED
        return EXIT_OK


class PostActionPipeline:
    """Runs the fixed post-edit sequence for one invocation."""

    def __init__(
        self,
        config: Dict[str, Any],
        project_root: Path,
        tracker: Optional[ChangeTracker] = None,
        dispatcher: Optional[FormatDispatcher] = None,
        verifier: Optional[BuildVerifier] = None,
        scanner: Optional[PatternScanner] = None,
        sink: Optional[LogSink] = None,
    ):
        self.config = config
        self.project_root = Path(project_root)
        self.format_cfg = get_section(config, "format")
        self.build_cfg = get_section(config, "build")
        self.scan_cfg = get_section(config, "scan")
        self.changes_cfg = get_section(config, "changes")

        self.tracker = tracker or ChangeTracker(
            self.project_root, timeout=get_int(config, "changes", "timeout")
        )
        self.dispatcher = dispatcher
        self.verifier = verifier
        self.scanner = scanner
        self.sink = sink or LogSink(get_log_dir(config, self.project_root))

    @property
    def work_dir(self) -> Path:
        """Directory change paths are relative to (the git top level)."""
        return self.tracker.repo_root or self.project_root

    def _dispatcher(self) -> FormatDispatcher:
        if self.dispatcher is None:
            self.dispatcher = FormatDispatcher(
                self.format_cfg.get("command") or [],
                overrides=self.format_cfg.get("overrides") or {},
                timeout=get_int(self.config, "format", "timeout"),
                cwd=self.work_dir,
            )
        return self.dispatcher

    def _verifier(self) -> BuildVerifier:
        if self.verifier is None:
            kwargs: Dict[str, Any] = {}
            if self.build_cfg.get("error_markers"):
                kwargs["error_markers"] = self.build_cfg["error_markers"]
            if self.build_cfg.get("warning_markers"):
                kwargs["warning_markers"] = self.build_cfg["warning_markers"]
            self.verifier = BuildVerifier(
                self.build_cfg.get("command") or [],
                timeout=get_int(self.config, "build", "timeout"),
                cwd=self.work_dir,
                **kwargs,
            )
        return self.verifier

    def _scanner(self) -> PatternScanner:
        if self.scanner is None:
            self.scanner = PatternScanner(root=self.work_dir)
        return self.scanner

    # -------------------------------------------------------------------------
    # Stages
    # -------------------------------------------------------------------------

    def _track(self, report: PipelineReport, baseline: Optional[str]) -> None:
        baseline = baseline or self.changes_cfg.get("baseline", "HEAD")
        report.changes = self.tracker.current_changes(baseline)

    def _format(self, report: PipelineReport) -> None:
        if not self.format_cfg.get("enabled", True):
            return
        report.format_report = self._dispatcher().format(
            report.changes, self.format_cfg.get("extensions") or []
        )

    def _build(self, report: PipelineReport) -> None:
        if not self.build_cfg.get("enabled", True):
            return
        report.build_result = self._verifier().verify(
            report.changes, self.build_cfg.get("extensions") or []
        )

    def _scan(self, report: PipelineReport) -> None:
        if not self.scan_cfg.get("enabled", True):
            return
        extensions = normalize_extensions(self.scan_cfg.get("extensions") or [])
        paths = [
            c.path for c in report.changes
            if not c.is_deleted and c.extension in extensions
        ]
        report.findings = self._scanner().scan(paths)

    def _run_stage(self, report: PipelineReport, stage: str, func, *args) -> None:
        try:
            func(report, *args)
        except Exception as e:
            logger.error(f"Stage '{stage}' failed: {e}", exc_info=True)
            report.failures.append(StageFailure(stage=stage, message=str(e)))

    def _log(self, report: PipelineReport) -> None:
        """Write run records; LogSinkError propagates."""
        self.sink.append(
            LOG_FILE_CHANGES,
            {"count": len(report.changes), "changes": [c.to_dict() for c in report.changes]},
        )
        if report.format_report is not None:
            self.sink.append(LOG_FORMAT, report.format_report.to_dict())
        if report.build_result is not None:
            self.sink.append(LOG_BUILD, report.build_result.to_dict())
        self.sink.append(
            LOG_PATTERNS,
            {
                "count": len(report.findings),
                "strict": report.strict,
                "findings": [f.to_dict() for f in report.findings],
            },
        )
        for failure in report.failures:
            self.sink.append(LOG_STAGES, {"stage": failure.stage, "message": failure.message})

        keep = get_int(self.config, "logging", "keep")
        for category in LOG_CATEGORIES:
            self.sink.prune(category, keep=keep)

    def run(self, strict: bool = False, baseline: Optional[str] = None) -> PipelineReport:
        """
        Run every stage once.

        Args:
            strict: Treat high-severity pattern findings as failures
            baseline: Override the configured git baseline

        Returns:
            PipelineReport; its exit_code is the process exit code

        Raises:
            LogSinkError: If the run log cannot be written
        """
        report = PipelineReport(strict=strict)

        self._run_stage(report, STAGE_CHANGES, self._track, baseline)
        self._run_stage(report, STAGE_FORMAT, self._format)
        self._run_stage(report, STAGE_BUILD, self._build)
        self._run_stage(report, STAGE_SCAN, self._scan)
        self._log(report)

        logger.info(
            f"Post-action run: {len(report.changes)} changes, "
            f"{len(report.findings)} findings, exit {report.exit_code}"
        )
        return report
