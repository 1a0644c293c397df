"""Rule CLI commands: inspect and validate skill-rules.json."""

import re
from pathlib import Path
from typing import Optional

import typer

from skill_router.config import get_rules_path
from skill_router.prioritizer import select
from skill_router.rule_store import ConfigError, RuleStore

from .console import console, create_table, print_error, print_success, print_table
from .project import CONFIG_OPTION, PROJECT_OPTION, load_project

app = typer.Typer(
    name="rules",
    help="Inspect and validate skill rules",
    no_args_is_help=True,
)


@app.command(name="list")
def list_rules(
    project: Optional[Path] = PROJECT_OPTION,
    config_path: Optional[Path] = CONFIG_OPTION,
) -> None:
    """List loaded rules in priority order."""
    project_root, config = load_project(project, config_path)
    rules_path = get_rules_path(config, project_root)
    rules = RuleStore(rules_path).load()

    if not rules:
        console.print(f"[dim]No skill rules loaded from {rules_path}[/dim]")
        return

    by_id = {rule.id: rule for rule in rules}
    table = create_table(f"Skill rules ({rules_path.name})")
    table.add_column("ID", style="cyan")
    table.add_column("Type")
    table.add_column("Priority")
    table.add_column("Enforcement")
    table.add_column("Triggers", justify="right")
    table.add_column("Description")

    for rule_id in select([r.id for r in rules], rules, top_n=len(rules)):
        rule = by_id[rule_id]
        trigger_count = (
            len(rule.keywords)
            + len(rule.intent_patterns)
            + len(rule.path_patterns)
            + len(rule.content_patterns)
        )
        table.add_row(
            rule.id,
            rule.kind.value,
            rule.priority.label,
            rule.enforcement.value,
            str(trigger_count),
            rule.description,
        )
    print_table(table)


@app.command(name="validate")
def validate_rules(
    project: Optional[Path] = PROJECT_OPTION,
    config_path: Optional[Path] = CONFIG_OPTION,
) -> None:
    """Check that the rules file parses and every pattern compiles."""
    project_root, config = load_project(project, config_path)
    rules_path = get_rules_path(config, project_root)

    try:
        rules = RuleStore(rules_path).strict_load()
    except ConfigError as e:
        print_error(f"{rules_path}: {e}")
        raise typer.Exit(1)

    problems = []
    for rule in rules:
        for source in (*rule.intent_patterns, *rule.content_patterns):
            try:
                re.compile(source)
            except re.error as e:
                problems.append(f"{rule.id}: invalid pattern {source!r}: {e}")
        if not (rule.keywords or rule.intent_patterns or rule.has_file_triggers):
            problems.append(f"{rule.id}: has no triggers and can never match")

    for problem in problems:
        print_error(problem)
    if problems:
        raise typer.Exit(1)

    print_success(f"{len(rules)} rules valid in {rules_path}")
