"""Skill Router CLI entry point."""

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from skill_router.log_sink import LogSinkError
from skill_router.pipeline import EXIT_FATAL, PostActionPipeline, analyze_prompt_with_config
from skill_router.summary import (
    render_build,
    render_changes,
    render_failures,
    render_findings,
    render_format,
)

from . import __version__
from .console import print_error, print_info, print_panel, print_success
from .logs import app as logs_app
from .project import CONFIG_OPTION, PROJECT_OPTION, load_project
from .rules import app as rules_app

app = typer.Typer(
    name="skill-router",
    help="Skill Router - skill activation and post-edit checks for AI coding assistants",
    no_args_is_help=True,
)
console = Console()


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        console.print(f"skill-router version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """Skill Router - skill activation and post-edit checks for AI coding assistants."""
    pass


@app.command(name="route")
def route_command(
    text: str = typer.Argument(..., help="Prompt text to match against the skill rules"),
    top: Optional[int] = typer.Option(
        None, "--top", "-n", min=0, help="Maximum skills to include (default: from config)"
    ),
    with_changes: bool = typer.Option(
        False, "--with-changes", help="Also match fileTriggers against changed files"
    ),
    project: Optional[Path] = PROJECT_OPTION,
    config_path: Optional[Path] = CONFIG_OPTION,
) -> None:
    """Print the prompt with the skill reminder appended."""
    project_root, config = load_project(project, config_path)
    analysis = analyze_prompt_with_config(
        text,
        config,
        project_root,
        top_n=top,
        include_changed_files=True if with_changes else None,
    )

    if not analysis.selected:
        print_info("No skills matched")
    typer.echo(analysis.annotated)


@app.command(name="post-edit")
def post_edit_command(
    strict: bool = typer.Option(
        False, "--strict", help="Fail on high-severity pattern findings"
    ),
    baseline: Optional[str] = typer.Option(
        None, "--baseline", "-b", help="Git revision to diff against (default: from config)"
    ),
    project: Optional[Path] = PROJECT_OPTION,
    config_path: Optional[Path] = CONFIG_OPTION,
) -> None:
    """Format, build-check and scan files changed since the baseline."""
    project_root, config = load_project(project, config_path)

    try:
        report = PostActionPipeline(config, project_root).run(strict=strict, baseline=baseline)
    except LogSinkError as e:
        print_error(f"Aborted: run log unavailable: {e}")
        raise typer.Exit(EXIT_FATAL)

    format_warned = bool(report.format_report and report.format_report.warnings)

    print_panel("Changes", render_changes(report))
    print_panel("Format", render_format(report), style="yellow" if format_warned else "blue")
    print_panel("Build", render_build(report), style="red" if report.build_failed else "green")
    print_panel(
        "Patterns",
        render_findings(report),
        style="red" if report.strict_failed else "blue",
    )
    failures = render_failures(report)
    if failures:
        print_panel("Stage errors", failures, style="red")

    if report.exit_code:
        print_error("Post-edit checks failed")
        raise typer.Exit(report.exit_code)
    print_success("Post-edit checks passed")


app.add_typer(rules_app, name="rules")
app.add_typer(logs_app, name="logs")


if __name__ == "__main__":
    app()
