"""
Skill Reminder Composer.

Renders the selected skills as a block appended to the user's prompt.
The block is deterministic: same rules in, same text out. Rules appear in
the order the prioritizer produced.

Example block:

    <skill_activation>
    Relevant skills for this request:
    - backend-dev-guidelines [high, suggest]: Backend development patterns
    - database-verification [critical, require] (REQUIRED): Verify column names
    Read the listed skill guidelines before making changes.
    </skill_activation>
"""

from typing import Sequence

from skill_router.rule_store import Enforcement, SkillRule

BLOCK_OPEN = "<skill_activation>"
BLOCK_CLOSE = "</skill_activation>"
HEADER = "Relevant skills for this request:"
FOOTER = "Read the listed skill guidelines before making changes."
REQUIRED_FOOTER = "Skills marked REQUIRED must be applied; do not skip them."


def _rule_line(rule: SkillRule) -> str:
    flag = " (REQUIRED)" if rule.enforcement is Enforcement.REQUIRE else ""
    description = " ".join(rule.description.split()) or "(no description)"
    return (
        f"- {rule.id} [{rule.priority.label}, {rule.enforcement.value}]{flag}: "
        f"{description}"
    )


def render_block(selected_rules: Sequence[SkillRule]) -> str:
    """Render the reminder block; empty string when nothing is selected."""
    if not selected_rules:
        return ""

    lines = [BLOCK_OPEN, HEADER]
    lines.extend(_rule_line(rule) for rule in selected_rules)
    lines.append(FOOTER)
    if any(rule.enforcement is Enforcement.REQUIRE for rule in selected_rules):
        lines.append(REQUIRED_FOOTER)
    lines.append(BLOCK_CLOSE)
    return "\n".join(lines)


def compose(original_text: str, selected_rules: Sequence[SkillRule]) -> str:
    """
    Append the reminder block to the original text.

    Returns original_text unchanged when no rules are selected. The original
    text is never altered, only extended.
    """
    if not selected_rules:
        return original_text
    return f"{original_text}\n\n{render_block(selected_rules)}"
