"""Orders matched skills by priority tier and truncates to the top N."""

import logging
from typing import Iterable, List, Sequence

from skill_router.rule_store import SkillRule

logger = logging.getLogger(__name__)

DEFAULT_TOP_N = 3


def select(
    matched_ids: Iterable[str],
    rules: Sequence[SkillRule],
    top_n: int = DEFAULT_TOP_N,
) -> List[str]:
    """
    Pick the most important matched rules.

    Sorted by priority tier (critical first); equal tiers keep their order
    in the rules configuration. Ids that are not in `rules` are ignored.

    Args:
        matched_ids: Ids produced by the matcher
        rules: Loaded rules, in configuration order
        top_n: Maximum number of ids to return

    Returns:
        At most top_n rule ids

    Raises:
        ValueError: If top_n is negative
    """
    if top_n < 0:
        raise ValueError(f"top_n must be >= 0, got {top_n}")

    by_id = {rule.id: rule for rule in rules}
    order = {rule.id: index for index, rule in enumerate(rules)}

    wanted: List[str] = []
    for rule_id in matched_ids:
        if rule_id not in by_id:
            logger.debug(f"Ignoring unknown rule id: {rule_id}")
        elif rule_id not in wanted:
            wanted.append(rule_id)

    ranked = sorted(wanted, key=lambda rule_id: (by_id[rule_id].priority, order[rule_id]))
    return ranked[:top_n]


def select_rules(
    matched_ids: Iterable[str],
    rules: Sequence[SkillRule],
    top_n: int = DEFAULT_TOP_N,
) -> List[SkillRule]:
    """Same as select() but returns the SkillRule objects."""
    by_id = {rule.id: rule for rule in rules}
    return [by_id[rule_id] for rule_id in select(matched_ids, rules, top_n)]
