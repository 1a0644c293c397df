#!/usr/bin/env python3
"""
Hook entry points for Skill Router.

skill-router-prompt is called by the UserPromptSubmit hook: it reads the
prompt, matches it against the skill rules and prints the skill reminder
to stdout, where it is added to the assistant's context.

skill-router-post-edit is called after an edit: it runs the post-action
pipeline, writes the summary to stderr and exits with the pipeline's code.
"""

import json
import sys
from pathlib import Path
from typing import List, Optional

from skill_router.config import (
    ConfigurationError,
    configure_logging,
    get_project_root,
    get_section,
    load_config,
)
from skill_router.log_sink import LogSinkError
from skill_router.pipeline import EXIT_FATAL, PostActionPipeline, analyze_prompt_with_config
from skill_router.summary import render_summary


def _read_prompt(argv: List[str]) -> tuple:
    """Return (prompt, cwd) from argv or the hook's stdin JSON."""
    if argv:
        return " ".join(argv), None

    stdin_data = sys.stdin.read().strip()
    if not stdin_data:
        return "", None

    try:
        input_data = json.loads(stdin_data)
    except json.JSONDecodeError:
        # Plain text on stdin
        return stdin_data, None

    if not isinstance(input_data, dict):
        return "", None
    return input_data.get("prompt", "") or "", input_data.get("cwd")


def prompt_hook(argv: Optional[List[str]] = None) -> None:
    """
    CLI entry point for the UserPromptSubmit hook.

    UserPromptSubmit hook sends JSON:
        {"prompt": "user message", "session_id": "...", "cwd": "..."}

    Usage:
        echo '{"prompt": "add an api endpoint"}' | skill-router-prompt
        skill-router-prompt "add an api endpoint"

    Exit codes:
        0: Always; a broken rule setup must never block the user's prompt
    """
    argv = sys.argv[1:] if argv is None else argv
    prompt, cwd = _read_prompt(argv)
    if not prompt:
        sys.exit(0)

    try:
        project_root = get_project_root() if cwd is None else Path(cwd)
        config = load_config(project_root=project_root)
        configure_logging(get_section(config, "logging").get("level", "WARNING"))

        analysis = analyze_prompt_with_config(prompt, config, project_root)
        if analysis.selected:
            print(analysis.reminder)

    except Exception as e:
        # Log error to stderr, don't pollute stdout
        print(f"Skill router error: {e}", file=sys.stderr)
    sys.exit(0)


def post_edit_hook(argv: Optional[List[str]] = None) -> None:
    """
    CLI entry point for the post-edit hook.

    Usage:
        skill-router-post-edit [--strict]

    Exit codes:
        0: No build errors
        1: Build errors (or high-severity findings with --strict)
        2: Run log could not be written, or configuration is invalid
    """
    argv = sys.argv[1:] if argv is None else argv
    strict = "--strict" in argv

    project_root = get_project_root()
    try:
        config = load_config(project_root=project_root)
    except ConfigurationError as e:
        print(f"Skill router configuration error: {e}", file=sys.stderr)
        sys.exit(EXIT_FATAL)

    configure_logging(get_section(config, "logging").get("level", "WARNING"))

    try:
        report = PostActionPipeline(config, project_root).run(strict=strict)
    except LogSinkError as e:
        print(f"Skill router aborted: run log unavailable: {e}", file=sys.stderr)
        sys.exit(EXIT_FATAL)

    print(render_summary(report), file=sys.stderr)
    sys.exit(report.exit_code)


if __name__ == "__main__":
    prompt_hook()
