"""Unit tests for rule_store module.

Tests loading of skill-rules.json, fail-soft behavior on malformed
configuration, and enum fallbacks.
"""

import json
from pathlib import Path

import pytest

from skill_router.rule_store import (
    ConfigError,
    Enforcement,
    PriorityTier,
    RuleKind,
    RuleStore,
    parse_rule,
)


class TestPriorityTier:
    """Tests for PriorityTier ordering and parsing."""

    def test_total_order(self):
        """critical < high < medium < low < unknown."""
        assert (
            PriorityTier.CRITICAL
            < PriorityTier.HIGH
            < PriorityTier.MEDIUM
            < PriorityTier.LOW
            < PriorityTier.UNKNOWN
        )

    def test_parse_is_case_insensitive(self):
        assert PriorityTier.parse("Critical") is PriorityTier.CRITICAL
        assert PriorityTier.parse(" low ") is PriorityTier.LOW

    def test_parse_unknown_values(self):
        assert PriorityTier.parse("urgent") is PriorityTier.UNKNOWN
        assert PriorityTier.parse(None) is PriorityTier.UNKNOWN
        assert PriorityTier.parse(3) is PriorityTier.UNKNOWN


class TestLoad:
    """Tests for RuleStore.load."""

    def test_load_from_dict(self, sample_rules_data):
        """Rules load from an explicit dict in configuration order."""
        rules = RuleStore(sample_rules_data).load()

        assert [r.id for r in rules] == [
            "backend-dev-guidelines",
            "frontend-dev-guidelines",
            "database-verification",
            "error-tracking",
        ]

    def test_schema_key_ignored(self, sample_rules_data):
        """$schema is not treated as a rule."""
        store = RuleStore(sample_rules_data)
        assert "$schema" not in store.ids

    def test_load_from_path(self, rules_file: Path):
        """Rules load from a file path."""
        rules = RuleStore(rules_file).load()
        assert len(rules) == 4

    def test_load_from_json_string(self, sample_rules_data):
        """Rules load from a JSON string."""
        rules = RuleStore(json.dumps(sample_rules_data)).load()
        assert len(rules) == 4

    def test_fields_parsed(self, sample_rules_data):
        """All documented fields are mapped onto SkillRule."""
        rule = RuleStore(sample_rules_data).get("backend-dev-guidelines")

        assert rule is not None
        assert rule.kind is RuleKind.DOMAIN
        assert rule.enforcement is Enforcement.SUGGEST
        assert rule.priority is PriorityTier.HIGH
        assert rule.keywords == ("api", "endpoint", "route", "controller")
        assert rule.path_patterns == ("backend/src/**/*.ts",)
        assert rule.content_patterns == (r"router\.", r"express\(")
        assert rule.position == 0

    def test_positions_follow_configuration_order(self, sample_rules_data):
        rules = RuleStore(sample_rules_data).load()
        assert [r.position for r in rules] == [0, 1, 2, 3]

    def test_file_triggers_optional(self, sample_rules_data):
        rule = RuleStore(sample_rules_data).get("database-verification")
        assert rule.path_patterns == ()
        assert rule.content_patterns == ()
        assert rule.has_file_triggers is False


class TestFailSoft:
    """Malformed configuration degrades to an empty rule set."""

    def test_invalid_json_returns_empty(self):
        assert RuleStore("{not json").load() == []

    def test_missing_file_returns_empty(self, tmp_path: Path):
        assert RuleStore(tmp_path / "missing.json").load() == []

    def test_non_object_top_level_returns_empty(self):
        assert RuleStore("[1, 2, 3]").load() == []

    def test_duplicate_ids_return_empty(self):
        text = '{"a": {"priority": "high"}, "a": {"priority": "low"}}'
        assert RuleStore(text).load() == []

    def test_strict_load_raises(self):
        with pytest.raises(ConfigError):
            RuleStore("{not json").strict_load()

    def test_non_object_rule_skipped(self):
        """A single bad entry is skipped; the others still load."""
        store = RuleStore({"bad": "string", "good": {"priority": "low"}})
        assert store.ids == ["good"]

    def test_unknown_enums_fall_back(self):
        rule = parse_rule(
            "odd",
            {"type": "weird", "enforcement": "block", "priority": "urgent"},
            position=0,
        )
        assert rule.kind is RuleKind.DOMAIN
        assert rule.enforcement is Enforcement.SUGGEST
        assert rule.priority is PriorityTier.UNKNOWN

    def test_non_list_triggers_ignored(self):
        rule = parse_rule(
            "odd",
            {"promptTriggers": {"keywords": "api", "intentPatterns": ["x", 5, "x"]}},
            position=0,
        )
        assert rule.keywords == ()
        assert rule.intent_patterns == ("x",)


class TestIndependence:
    """Stores built from different configuration values do not interfere."""

    def test_two_stores_are_independent(self):
        first = RuleStore({"one": {"priority": "high"}})
        second = RuleStore({"two": {"priority": "low"}})

        assert first.ids == ["one"]
        assert second.ids == ["two"]

    def test_to_dict(self, sample_rules_data):
        rule = RuleStore(sample_rules_data).get("database-verification")
        data = rule.to_dict()
        assert data["priority"] == "critical"
        assert data["enforcement"] == "require"
        assert data["type"] == "quality"
