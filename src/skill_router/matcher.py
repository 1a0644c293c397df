"""Prompt Matcher

Decides which skill rules apply to a prompt (promptTriggers) or to a set
of changed files (fileTriggers).

Prompt matching:
    A rule matches when any keyword is a case-insensitive substring of the
    prompt, or any intent pattern matches it (re.IGNORECASE).

File matching:
    Path patterns are globs tested against repo-relative POSIX paths.
    Content patterns are regexes searched in the file text. A rule with both
    needs a path hit and a content hit on the same file.

Every pattern is compiled on its own. A pattern that fails to compile is
logged once and skipped; the rest of the rule set is evaluated normally.
"""

import fnmatch
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from re import Pattern
from typing import Dict, Iterable, List, Optional, Sequence, Set

from skill_router.rule_store import SkillRule

logger = logging.getLogger(__name__)

# Matching reasons, in the order they are reported
REASON_KEYWORD = "keyword"
REASON_INTENT = "intent"
REASON_FILE = "file"

# Files larger than this are not read for content patterns
MAX_CONTENT_BYTES = 1_000_000


@dataclass
class MatchResult:
    """Matched rule ids in configuration order, with why each one matched."""

    ids: List[str] = field(default_factory=list)
    reasons: Dict[str, List[str]] = field(default_factory=dict)

    def add(self, rule_id: str, reason: str) -> None:
        if rule_id not in self.reasons:
            self.ids.append(rule_id)
            self.reasons[rule_id] = []
        if reason not in self.reasons[rule_id]:
            self.reasons[rule_id].append(reason)

    def merge(self, other: "MatchResult") -> "MatchResult":
        for rule_id in other.ids:
            for reason in other.reasons[rule_id]:
                self.add(rule_id, reason)
        return self

    def __contains__(self, rule_id: object) -> bool:
        return rule_id in self.reasons

    def __len__(self) -> int:
        return len(self.ids)


def glob_match(path: str, pattern: str) -> bool:
    """
    Match a repo-relative path against a glob.

    fnmatch lets '*' cross directory separators; '**/' is additionally
    allowed to match zero directories so 'src/**/*.ts' covers 'src/a.ts'.
    """
    if fnmatch.fnmatch(path, pattern):
        return True
    if "**/" in pattern:
        return fnmatch.fnmatch(path, pattern.replace("**/", ""))
    return False


class PromptMatcher:
    """Evaluates skill rule triggers; caches compiled patterns per instance."""

    def __init__(self) -> None:
        self._compiled: Dict[str, Optional[Pattern]] = {}
        self.invalid_patterns: Set[str] = set()

    def _compile(self, source: str, rule_id: str) -> Optional[Pattern]:
        if source in self._compiled:
            return self._compiled[source]
        try:
            compiled: Optional[Pattern] = re.compile(source, re.IGNORECASE)
        except re.error as e:
            logger.warning(f"Rule '{rule_id}': skipping invalid pattern {source!r}: {e}")
            self.invalid_patterns.add(source)
            compiled = None
        self._compiled[source] = compiled
        return compiled

    def _prompt_reason(self, prompt_lower: str, prompt: str, rule: SkillRule) -> Optional[str]:
        for keyword in rule.keywords:
            if keyword.lower() in prompt_lower:
                return REASON_KEYWORD
        for source in rule.intent_patterns:
            compiled = self._compile(source, rule.id)
            if compiled is not None and compiled.search(prompt):
                return REASON_INTENT
        return None

    def match_prompt(self, prompt: str, rules: Sequence[SkillRule]) -> MatchResult:
        """Match a prompt against every rule's promptTriggers."""
        result = MatchResult()
        if not prompt:
            return result

        prompt_lower = prompt.lower()
        for rule in rules:
            reason = self._prompt_reason(prompt_lower, prompt, rule)
            if reason:
                result.add(rule.id, reason)

        logger.debug(f"Prompt matched {len(result)} of {len(rules)} rules: {result.ids}")
        return result

    def match(self, prompt: str, rules: Sequence[SkillRule]) -> List[str]:
        """Return ids of rules whose prompt triggers fire, in configuration order."""
        return self.match_prompt(prompt, rules).ids

    def _read_content(self, path: Path) -> Optional[str]:
        try:
            if path.stat().st_size > MAX_CONTENT_BYTES:
                logger.debug(f"Skipping content match for large file: {path}")
                return None
            return path.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            logger.debug(f"Cannot read {path} for content match: {e}")
            return None

    def _file_matches(self, rel_path: str, root: Path, rule: SkillRule) -> bool:
        if rule.path_patterns and not any(glob_match(rel_path, p) for p in rule.path_patterns):
            return False
        if not rule.content_patterns:
            return True

        content = self._read_content(root / rel_path)
        if content is None:
            return False
        for source in rule.content_patterns:
            compiled = self._compile(source, rule.id)
            if compiled is not None and compiled.search(content):
                return True
        return False

    def match_files_result(
        self,
        paths: Iterable[str],
        rules: Sequence[SkillRule],
        root: Path,
    ) -> MatchResult:
        """Match repo-relative file paths against every rule's fileTriggers."""
        result = MatchResult()
        path_list = [Path(p).as_posix() for p in paths]
        if not path_list:
            return result

        for rule in rules:
            if not rule.has_file_triggers:
                continue
            if any(self._file_matches(p, Path(root), rule) for p in path_list):
                result.add(rule.id, REASON_FILE)
        return result

    def match_files(
        self,
        paths: Iterable[str],
        rules: Sequence[SkillRule],
        root: Path,
    ) -> List[str]:
        """Return ids of rules whose file triggers fire, in configuration order."""
        return self.match_files_result(paths, rules, root).ids


def match(prompt: str, rules: Sequence[SkillRule]) -> List[str]:
    """Module-level convenience wrapper around PromptMatcher.match."""
    return PromptMatcher().match(prompt, rules)
