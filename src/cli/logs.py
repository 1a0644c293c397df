"""Log CLI commands: prune run logs."""

from pathlib import Path
from typing import Optional

import typer

from skill_router.config import get_int, get_log_dir
from skill_router.log_sink import LogSink, LogSinkError
from skill_router.pipeline import LOG_CATEGORIES

from .console import print_error, print_success
from .project import CONFIG_OPTION, PROJECT_OPTION, load_project

app = typer.Typer(
    name="logs",
    help="Manage post-action run logs",
    no_args_is_help=True,
)


@app.command(name="prune")
def prune_logs(
    keep: Optional[int] = typer.Option(
        None, "--keep", "-k", min=0, help="Files to keep per category (default: from config)"
    ),
    category: Optional[str] = typer.Option(
        None, "--category", help="Only prune this category"
    ),
    project: Optional[Path] = PROJECT_OPTION,
    config_path: Optional[Path] = CONFIG_OPTION,
) -> None:
    """Delete all but the most recent log files per category."""
    project_root, config = load_project(project, config_path)
    if keep is None:
        keep = get_int(config, "logging", "keep")

    sink = LogSink(get_log_dir(config, project_root))
    categories = [category] if category else list(LOG_CATEGORIES)

    deleted = 0
    try:
        for name in categories:
            deleted += len(sink.prune(name, keep=keep))
    except (LogSinkError, ValueError) as e:
        print_error(str(e))
        raise typer.Exit(2)

    print_success(f"Pruned {deleted} log file(s), keeping {keep} per category")
