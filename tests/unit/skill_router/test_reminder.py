"""Unit tests for reminder module."""

from skill_router.reminder import BLOCK_CLOSE, BLOCK_OPEN, compose, render_block
from skill_router.rule_store import RuleStore


class TestCompose:
    """Tests for compose()."""

    def test_empty_selection_returns_text_unchanged(self):
        text = "  Fix the login bug\n"
        assert compose(text, []) == text

    def test_appends_block_after_original(self, sample_rules_data):
        rules = RuleStore(sample_rules_data).load()
        text = "Add an endpoint"

        result = compose(text, rules[:1])

        assert result.startswith(text + "\n\n")
        assert result.endswith(BLOCK_CLOSE)

    def test_lists_descriptions_in_given_order(self, sample_rules_data):
        store = RuleStore(sample_rules_data)
        selected = [store.get("database-verification"), store.get("backend-dev-guidelines")]

        block = render_block(selected)
        db_index = block.index("Verify column names")
        backend_index = block.index("Backend development patterns")

        assert db_index < backend_index

    def test_deterministic(self, sample_rules_data):
        rules = RuleStore(sample_rules_data).load()
        assert compose("x", rules) == compose("x", rules)


class TestRenderBlock:
    """Tests for render_block()."""

    def test_empty(self):
        assert render_block([]) == ""

    def test_required_rules_flagged(self, sample_rules_data):
        rule = RuleStore(sample_rules_data).get("database-verification")
        block = render_block([rule])

        assert block.startswith(BLOCK_OPEN)
        assert "- database-verification [critical, require] (REQUIRED):" in block
        assert "must be applied" in block

    def test_suggested_rules_not_flagged(self, sample_rules_data):
        rule = RuleStore(sample_rules_data).get("error-tracking")
        block = render_block([rule])

        assert "- error-tracking [medium, suggest]: Report errors" in block
        assert "REQUIRED" not in block
