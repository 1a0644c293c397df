"""Unit tests for the skill-router CLI.

Commands are invoked through typer's CliRunner. Assertions use
result.output so they hold whether or not stderr is mixed in.
"""

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from cli import __version__
from cli import console as cli_console
from cli import main as cli_main
from cli.main import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def wide_console(monkeypatch):
    """Keep rich from wrapping table cells and panels in assertions."""
    monkeypatch.setattr(cli_console.console, "width", 200)
    monkeypatch.setattr(cli_console.err_console, "width", 200)
    monkeypatch.setattr(cli_main.console, "width", 200)


@pytest.fixture
def quiet_config(tmp_path: Path) -> Path:
    """Config with the formatter and build disabled."""
    path = tmp_path / "quiet.yaml"
    path.write_text(json.dumps({"format": {"enabled": False}, "build": {"enabled": False}}))
    return path


def test_version():
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_no_args_shows_help():
    result = runner.invoke(app, [])
    assert "route" in result.output
    assert "post-edit" in result.output


class TestRoute:
    """Tests for the route command."""

    def test_prints_reminder(self, tmp_path: Path, rules_file, clean_env):
        result = runner.invoke(app, ["route", "add a prisma migration", "-p", str(tmp_path)])

        assert result.exit_code == 0
        assert result.output.startswith("add a prisma migration\n\n<skill_activation>")
        assert "database-verification" in result.output

    def test_top_limits_reminder(self, tmp_path: Path, rules_file, clean_env):
        result = runner.invoke(
            app, ["route", "react api prisma", "--top", "1", "-p", str(tmp_path)]
        )

        assert result.exit_code == 0
        assert "database-verification" in result.output
        assert "frontend-dev-guidelines" not in result.output

    def test_no_match(self, tmp_path: Path, rules_file, clean_env):
        result = runner.invoke(app, ["route", "hello", "-p", str(tmp_path)])

        assert result.exit_code == 0
        assert "No skills matched" in result.output
        assert "<skill_activation>" not in result.output

    def test_invalid_config_exits_two(self, tmp_path: Path, clean_env):
        bad = tmp_path / "bad.yaml"
        bad.write_text("prompt: [oops\n")

        result = runner.invoke(app, ["route", "x", "-p", str(tmp_path), "-c", str(bad)])

        assert result.exit_code == 2


class TestRules:
    """Tests for the rules sub-commands."""

    def test_list_in_priority_order(self, tmp_path: Path, rules_file, clean_env):
        result = runner.invoke(app, ["rules", "list", "-p", str(tmp_path)])

        assert result.exit_code == 0
        positions = [
            result.output.index(rule_id)
            for rule_id in (
                "database-verification",
                "backend-dev-guidelines",
                "frontend-dev-guidelines",
                "error-tracking",
            )
        ]
        assert positions == sorted(positions)

    def test_list_without_rules_file(self, tmp_path: Path, clean_env):
        result = runner.invoke(app, ["rules", "list", "-p", str(tmp_path)])
        assert result.exit_code == 0
        assert "No skill rules loaded" in result.output

    def test_validate_ok(self, tmp_path: Path, rules_file, clean_env):
        result = runner.invoke(app, ["rules", "validate", "-p", str(tmp_path)])
        assert result.exit_code == 0
        assert "4 rules valid" in result.output

    def test_validate_bad_pattern(self, tmp_path: Path, rules_file, sample_rules_data, clean_env):
        sample_rules_data["error-tracking"]["promptTriggers"]["intentPatterns"] = ["(unclosed"]
        rules_file.write_text(json.dumps(sample_rules_data))

        result = runner.invoke(app, ["rules", "validate", "-p", str(tmp_path)])

        assert result.exit_code == 1
        assert "error-tracking: invalid pattern" in result.output

    def test_validate_rule_without_triggers(self, tmp_path: Path, rules_file, sample_rules_data, clean_env):
        sample_rules_data["orphan"] = {"description": "never fires"}
        rules_file.write_text(json.dumps(sample_rules_data))

        result = runner.invoke(app, ["rules", "validate", "-p", str(tmp_path)])

        assert result.exit_code == 1
        assert "orphan: has no triggers" in result.output

    def test_validate_unparseable_file(self, tmp_path: Path, rules_file, clean_env):
        rules_file.write_text("{broken")

        result = runner.invoke(app, ["rules", "validate", "-p", str(tmp_path)])

        assert result.exit_code == 1


class TestLogs:
    """Tests for the logs prune command."""

    def _seed(self, log_dir: Path, category: str, count: int) -> None:
        log_dir.mkdir(parents=True, exist_ok=True)
        for day in range(1, count + 1):
            (log_dir / f"{category}_2025-01-{day:02d}.log").write_text("x\n")

    def test_prune_keep(self, tmp_path: Path, clean_env):
        log_dir = tmp_path / ".claude" / "logs"
        self._seed(log_dir, "build", 5)
        self._seed(log_dir, "format", 2)

        result = runner.invoke(app, ["logs", "prune", "-k", "2", "-p", str(tmp_path)])

        assert result.exit_code == 0
        assert "Pruned 3 log file(s)" in result.output
        assert sorted(p.name for p in log_dir.glob("build_*.log")) == [
            "build_2025-01-04.log",
            "build_2025-01-05.log",
        ]

    def test_prune_single_category(self, tmp_path: Path, clean_env):
        log_dir = tmp_path / ".claude" / "logs"
        self._seed(log_dir, "build", 3)
        self._seed(log_dir, "format", 3)

        result = runner.invoke(
            app, ["logs", "prune", "-k", "1", "--category", "format", "-p", str(tmp_path)]
        )

        assert result.exit_code == 0
        assert len(list(log_dir.glob("build_*.log"))) == 3
        assert len(list(log_dir.glob("format_*.log"))) == 1

    def test_prune_bad_category(self, tmp_path: Path, clean_env):
        result = runner.invoke(
            app, ["logs", "prune", "--category", "../etc", "-p", str(tmp_path)]
        )
        assert result.exit_code == 2


class TestPostEdit:
    """Tests for the post-edit command."""

    def test_clean_changes_pass(self, git_repo: Path, quiet_config: Path, clean_env):
        (git_repo / "src" / "app.ts").write_text("export const a = 10;\n")

        result = runner.invoke(
            app, ["post-edit", "-p", str(git_repo), "-c", str(quiet_config)]
        )

        assert result.exit_code == 0
        assert "src/app.ts" in result.output
        assert "Post-edit checks passed" in result.output

    def test_strict_high_finding_fails(self, git_repo: Path, quiet_config: Path, clean_env):
        (git_repo / "src" / "app.ts").write_text(
            'export const dbPassword = "correct-horse-battery-staple";\n'
        )

        result = runner.invoke(
            app, ["post-edit", "--strict", "-p", str(git_repo), "-c", str(quiet_config)]
        )

        assert result.exit_code == 1
        assert "literal-secret" in result.output
        assert "Post-edit checks failed" in result.output

    def test_baseline_option(self, git_repo: Path, quiet_config: Path, clean_env):
        result = runner.invoke(
            app,
            ["post-edit", "-b", "HEAD", "-p", str(git_repo), "-c", str(quiet_config)],
        )

        assert result.exit_code == 0
        assert "none since baseline" in result.output
