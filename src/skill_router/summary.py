"""
Post-action summary formatter.

Renders a PipelineReport as plain text, one section per stage: what ran,
what passed, and what to do next. Used by the post-edit hook (stderr
feedback) and as panel content by the CLI.
"""

from typing import Dict, List

from skill_router.pattern_scanner import ErrorPatternFinding
from skill_router.pipeline import PipelineReport

# Diagnostics listed per section before "... and N more"
MAX_LISTED = 10


def _more(total: int) -> List[str]:
    if total > MAX_LISTED:
        return [f"  ... and {total - MAX_LISTED} more"]
    return []


def render_changes(report: PipelineReport) -> str:
    if not report.changes:
        return "Changes: none since baseline (nothing to check)"
    lines = [f"Changes: {len(report.changes)} file(s)"]
    for change in report.changes[:MAX_LISTED]:
        lines.append(
            f"  {change.change_kind.value:<8} {change.path} (+/-{change.lines_changed})"
        )
    lines.extend(_more(len(report.changes)))
    return "\n".join(lines)


def render_format(report: PipelineReport) -> str:
    fmt = report.format_report
    if fmt is None:
        return "Format: not run"
    if not fmt.attempted:
        return "Format: no formattable files"
    lines = [f"Format: {len(fmt.formatted)}/{len(fmt.attempted)} file(s) formatted"]
    for warning in fmt.warnings[:MAX_LISTED]:
        lines.append(f"  ! {warning.path}: {warning.message}")
    lines.extend(_more(len(fmt.warnings)))
    if fmt.warnings:
        lines.append("  Next: check the formatter is installed and the files parse")
    return "\n".join(lines)


def render_build(report: PipelineReport) -> str:
    build = report.build_result
    if build is None:
        return "Build: not run"
    if build.skipped:
        return f"Build: skipped ({build.skip_reason or 'not needed'})"

    status = "passed" if build.success else "FAILED"
    exit_info = f"exit {build.exit_code}" if build.exit_code is not None else "did not run"
    lines = [
        f"Build: {status} ({exit_info}, {build.duration_ms}ms, "
        f"{len(build.errors)} error(s), {len(build.warnings)} warning(s))"
    ]
    for diagnostic in build.errors[:MAX_LISTED]:
        lines.append(f"  x {diagnostic.raw_line}")
    lines.extend(_more(len(build.errors)))
    if not build.success:
        if build.errors:
            lines.append("  Next: fix the errors above before continuing")
        else:
            lines.append("  Next: the build exited non-zero; run it manually to inspect output")
    return "\n".join(lines)


def _group_by_kind(findings: List[ErrorPatternFinding]) -> Dict[str, List[ErrorPatternFinding]]:
    groups: Dict[str, List[ErrorPatternFinding]] = {}
    for finding in findings:
        groups.setdefault(finding.kind, []).append(finding)
    return groups


def render_findings(report: PipelineReport) -> str:
    if not report.findings:
        return "Patterns: no risky patterns found"
    mode = "strict" if report.strict else "advisory"
    lines = [f"Patterns: {len(report.findings)} finding(s) ({mode})"]
    for kind, group in _group_by_kind(report.findings).items():
        first = group[0]
        lines.append(f"  [{first.severity}] {kind}: {first.message}")
        for finding in group[:MAX_LISTED]:
            lines.append(f"    {finding.file}:{finding.line}")
        lines.extend(_more(len(group)))
        lines.append(f"    Suggestion: {first.suggestion}")
    return "\n".join(lines)


def render_failures(report: PipelineReport) -> str:
    if not report.failures:
        return ""
    lines = ["Stage errors:"]
    for failure in report.failures:
        lines.append(f"  {failure.stage}: {failure.message}")
    return "\n".join(lines)


def render_summary(report: PipelineReport) -> str:
    """Full plain-text summary of a post-action run."""
    sections = [
        render_changes(report),
        render_format(report),
        render_build(report),
        render_findings(report),
    ]
    failures = render_failures(report)
    if failures:
        sections.append(failures)

    if report.build_failed:
        sections.append("Result: FAILED (build errors)")
    elif report.strict_failed:
        sections.append("Result: FAILED (high-severity findings in strict mode)")
    else:
        sections.append("Result: OK")
    return "\n\n".join(sections)
