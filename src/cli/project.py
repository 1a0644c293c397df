"""Shared project/config resolution for CLI commands."""

from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import typer

from skill_router.config import (
    ConfigurationError,
    configure_logging,
    get_project_root,
    get_section,
    load_config,
)

from .console import print_error


def load_project(
    project: Optional[Path] = None,
    config_path: Optional[Path] = None,
) -> Tuple[Path, Dict[str, Any]]:
    """Resolve the project root and load its configuration, or exit 2."""
    project_root = project.resolve() if project else get_project_root()
    try:
        config = load_config(
            config_path=str(config_path) if config_path else None,
            project_root=project_root,
        )
    except ConfigurationError as e:
        print_error(f"Configuration error: {e}")
        raise typer.Exit(2)

    configure_logging(get_section(config, "logging").get("level", "WARNING"))
    return project_root, config


PROJECT_OPTION = typer.Option(
    None,
    "--project",
    "-p",
    help="Project root (default: $SKILL_ROUTER_PROJECT_ROOT, $CLAUDE_PROJECT_DIR or cwd)",
)
CONFIG_OPTION = typer.Option(
    None,
    "--config",
    "-c",
    help="Config file (default: .claude/skill-router.yaml)",
)
