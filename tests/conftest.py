"""Shared pytest fixtures for skill-router tests.

Provides sample rule configurations and a throwaway git repository for
change-tracking and pipeline tests. Tests that need git are skipped when
no git executable is installed.
"""

import json
from pathlib import Path
from typing import Any

import pytest

from tests.helpers import GIT_AVAILABLE, run_git


# =============================================================================
# Rule Fixtures
# =============================================================================


SAMPLE_RULES: dict[str, Any] = {
    "$schema": "https://example.com/skill-rules.schema.json",
    "backend-dev-guidelines": {
        "type": "domain",
        "enforcement": "suggest",
        "priority": "high",
        "description": "Backend development patterns for Express routes and services",
        "promptTriggers": {
            "keywords": ["api", "endpoint", "route", "controller"],
            "intentPatterns": [r"(create|add|implement).*?(route|endpoint|service)"],
        },
        "fileTriggers": {
            "pathPatterns": ["backend/src/**/*.ts"],
            "contentPatterns": [r"router\.", r"express\("],
        },
    },
    "frontend-dev-guidelines": {
        "type": "domain",
        "enforcement": "suggest",
        "priority": "high",
        "description": "React component and styling conventions",
        "promptTriggers": {
            "keywords": ["component", "react", "ui"],
            "intentPatterns": [r"(create|build).*?(page|component|form)"],
        },
        "fileTriggers": {
            "pathPatterns": ["frontend/src/**/*.tsx"],
        },
    },
    "database-verification": {
        "type": "quality",
        "enforcement": "require",
        "priority": "critical",
        "description": "Verify column names against the schema before writing queries",
        "promptTriggers": {
            "keywords": ["prisma", "database", "migration"],
            "intentPatterns": [r"(add|change).*?(column|table)"],
        },
    },
    "error-tracking": {
        "type": "domain",
        "enforcement": "suggest",
        "priority": "medium",
        "description": "Report errors to the error tracker",
        "promptTriggers": {
            "keywords": ["sentry", "error handling"],
            "intentPatterns": [],
        },
    },
}


@pytest.fixture
def sample_rules_data() -> dict[str, Any]:
    """Return a fresh copy of the sample rules configuration."""
    return json.loads(json.dumps(SAMPLE_RULES))


@pytest.fixture
def rules_file(tmp_path: Path, sample_rules_data: dict[str, Any]) -> Path:
    """Write the sample rules to .claude/skills/skill-rules.json."""
    path = tmp_path / ".claude" / "skills" / "skill-rules.json"
    path.parent.mkdir(parents=True)
    path.write_text(json.dumps(sample_rules_data, indent=2))
    return path


# =============================================================================
# Git Fixtures
# =============================================================================


@pytest.fixture
def git_repo(tmp_path: Path) -> Path:
    """Create a git repository with one committed file (src/app.ts).

    The working tree is clean when the fixture returns.
    """
    if not GIT_AVAILABLE:
        pytest.skip("git executable not installed")

    repo = tmp_path / "repo"
    repo.mkdir()
    run_git(repo, "init", "-q")

    (repo / "src").mkdir()
    (repo / "src" / "app.ts").write_text("export const a = 1;\nexport const b = 2;\n")
    (repo / "README.md").write_text("# Test\n")
    (repo / ".gitignore").write_text(".claude/logs/\n")

    run_git(repo, "add", "-A")
    run_git(repo, "commit", "-q", "-m", "initial")
    return repo


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove skill-router environment overrides for the test."""
    for var in (
        "SKILL_ROUTER_CONFIG_PATH",
        "SKILL_ROUTER_PROJECT_ROOT",
        "SKILL_ROUTER_RULES_PATH",
        "SKILL_ROUTER_LOG_DIR",
        "CLAUDE_PROJECT_DIR",
    ):
        monkeypatch.delenv(var, raising=False)
