"""Skill Rule Store

Loads skill activation rules from the skill-rules.json format:

{
  "$schema": "...",
  "backend-dev-guidelines": {
    "type": "domain",
    "enforcement": "suggest",
    "priority": "high",
    "description": "Backend development patterns",
    "promptTriggers": {
      "keywords": ["api", "endpoint"],
      "intentPatterns": ["(create|add).*?(route|endpoint)"]
    },
    "fileTriggers": {
      "pathPatterns": ["backend/src/**/*.ts"],
      "contentPatterns": ["router\\\\."]
    }
  }
}

The configuration is always passed in explicitly, so independent stores
never share state.
"""

import json
import logging
from dataclasses import dataclass
from enum import Enum, IntEnum
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

logger = logging.getLogger(__name__)

RuleSource = Union[Dict[str, Any], str, Path]

SCHEMA_KEY = "$schema"


class ConfigError(Exception):
    """Raised when a rule configuration is malformed."""
    pass


class RuleKind(Enum):
    DOMAIN = "domain"
    QUALITY = "quality"


class Enforcement(Enum):
    SUGGEST = "suggest"
    REQUIRE = "require"


class PriorityTier(IntEnum):
    """Priority tiers; lower value sorts first."""

    CRITICAL = 0
    HIGH = 1
    MEDIUM = 2
    LOW = 3
    UNKNOWN = 4

    @classmethod
    def parse(cls, value: Any) -> "PriorityTier":
        if isinstance(value, str):
            try:
                return cls[value.strip().upper()]
            except KeyError:
                pass
        return cls.UNKNOWN

    @property
    def label(self) -> str:
        return self.name.lower()


@dataclass(frozen=True)
class SkillRule:
    """A single skill activation rule."""

    id: str
    kind: RuleKind
    enforcement: Enforcement
    priority: PriorityTier
    description: str
    keywords: Tuple[str, ...] = ()
    intent_patterns: Tuple[str, ...] = ()
    path_patterns: Tuple[str, ...] = ()
    content_patterns: Tuple[str, ...] = ()
    position: int = 0

    @property
    def has_file_triggers(self) -> bool:
        return bool(self.path_patterns or self.content_patterns)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "type": self.kind.value,
            "enforcement": self.enforcement.value,
            "priority": self.priority.label,
            "description": self.description,
            "keywords": list(self.keywords),
            "intent_patterns": list(self.intent_patterns),
            "path_patterns": list(self.path_patterns),
            "content_patterns": list(self.content_patterns),
        }


def _string_list(value: Any, rule_id: str, field_name: str) -> Tuple[str, ...]:
    """Normalize a trigger list: keep strings, drop duplicates, keep order."""
    if value is None:
        return ()
    if not isinstance(value, list):
        logger.warning(f"Rule '{rule_id}': {field_name} is not a list (ignoring)")
        return ()
    seen: Dict[str, None] = {}
    for item in value:
        if isinstance(item, str) and item:
            seen.setdefault(item, None)
        else:
            logger.warning(f"Rule '{rule_id}': skipping non-string {field_name} entry {item!r}")
    return tuple(seen)


def _reject_duplicate_keys(pairs: List[Tuple[str, Any]]) -> Dict[str, Any]:
    result: Dict[str, Any] = {}
    for key, value in pairs:
        if key in result:
            raise ConfigError(f"Duplicate key: '{key}'")
        result[key] = value
    return result


def parse_rule(rule_id: str, data: Dict[str, Any], position: int) -> SkillRule:
    """
    Build a SkillRule from one entry of the rules file.

    Unknown enum values fall back to defaults (domain, suggest, unknown
    priority) rather than rejecting the rule.
    """
    raw_kind = data.get("type", RuleKind.DOMAIN.value)
    try:
        kind = RuleKind(raw_kind)
    except ValueError:
        logger.warning(f"Rule '{rule_id}': unknown type {raw_kind!r}, using 'domain'")
        kind = RuleKind.DOMAIN

    raw_enforcement = data.get("enforcement", Enforcement.SUGGEST.value)
    try:
        enforcement = Enforcement(raw_enforcement)
    except ValueError:
        logger.warning(
            f"Rule '{rule_id}': unknown enforcement {raw_enforcement!r}, using 'suggest'"
        )
        enforcement = Enforcement.SUGGEST

    priority = PriorityTier.parse(data.get("priority"))
    if priority is PriorityTier.UNKNOWN and data.get("priority") is not None:
        logger.warning(f"Rule '{rule_id}': unknown priority {data.get('priority')!r}")

    prompt_triggers = data.get("promptTriggers") or {}
    file_triggers = data.get("fileTriggers") or {}
    if not isinstance(prompt_triggers, dict):
        logger.warning(f"Rule '{rule_id}': promptTriggers is not an object (ignoring)")
        prompt_triggers = {}
    if not isinstance(file_triggers, dict):
        logger.warning(f"Rule '{rule_id}': fileTriggers is not an object (ignoring)")
        file_triggers = {}

    description = data.get("description", "")
    if not isinstance(description, str):
        description = str(description)

    return SkillRule(
        id=rule_id,
        kind=kind,
        enforcement=enforcement,
        priority=priority,
        description=description,
        keywords=_string_list(prompt_triggers.get("keywords"), rule_id, "keywords"),
        intent_patterns=_string_list(
            prompt_triggers.get("intentPatterns"), rule_id, "intentPatterns"
        ),
        path_patterns=_string_list(file_triggers.get("pathPatterns"), rule_id, "pathPatterns"),
        content_patterns=_string_list(
            file_triggers.get("contentPatterns"), rule_id, "contentPatterns"
        ),
        position=position,
    )


class RuleStore:
    """Loads and holds the skill rules for one pipeline run."""

    def __init__(self, source: RuleSource):
        """
        Args:
            source: Parsed rules dict, a JSON string, or a Path to the rules file
        """
        self.source = source
        self._rules: Optional[List[SkillRule]] = None

    def _read_source(self) -> Dict[str, Any]:
        if isinstance(self.source, dict):
            return self.source

        if isinstance(self.source, Path):
            try:
                text = self.source.read_text(encoding="utf-8")
            except OSError as e:
                raise ConfigError(f"Cannot read rules file {self.source}: {e}")
        else:
            text = self.source

        try:
            data = json.loads(text, object_pairs_hook=_reject_duplicate_keys)
        except json.JSONDecodeError as e:
            raise ConfigError(f"Invalid JSON in rules: {e}")

        if not isinstance(data, dict):
            raise ConfigError(f"Rules must be a JSON object, got {type(data).__name__}")
        return data

    def strict_load(self) -> List[SkillRule]:
        """
        Load rules, raising on a malformed configuration.

        Raises:
            ConfigError: If the source cannot be read or parsed
        """
        data = self._read_source()
        rules: List[SkillRule] = []
        for rule_id, entry in data.items():
            if rule_id == SCHEMA_KEY:
                continue
            if not isinstance(entry, dict):
                logger.warning(f"Skipping rule '{rule_id}': entry is not an object")
                continue
            rules.append(parse_rule(rule_id, entry, position=len(rules)))

        self._rules = rules
        logger.debug(f"Loaded {len(rules)} skill rules")
        return list(rules)

    def load(self) -> List[SkillRule]:
        """
        Load rules, degrading to an empty rule set on a malformed configuration.

        Returns:
            Rules in configuration order
        """
        try:
            return self.strict_load()
        except ConfigError as e:
            logger.warning(f"Skill rules unavailable (matching disabled): {e}")
            self._rules = []
            return []

    @property
    def rules(self) -> List[SkillRule]:
        if self._rules is None:
            self.load()
        return list(self._rules or [])

    @property
    def ids(self) -> List[str]:
        return [rule.id for rule in self.rules]

    def get(self, rule_id: str) -> Optional[SkillRule]:
        for rule in self.rules:
            if rule.id == rule_id:
                return rule
        return None
