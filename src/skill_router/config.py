"""Skill Router Configuration

Configuration loading with environment variable support and sensible defaults.

Environment Variables:
    SKILL_ROUTER_CONFIG_PATH: Path to config file (default: .claude/skill-router.yaml)
    SKILL_ROUTER_PROJECT_ROOT: Project root (falls back to CLAUDE_PROJECT_DIR, then cwd)
    SKILL_ROUTER_RULES_PATH: Override rules file path from config
    SKILL_ROUTER_LOG_DIR: Override log directory from config

Configuration Schema:
    rules:
        path: str - Path to skill-rules.json
    prompt:
        top_n: int - Maximum number of skills in a reminder (default: 3)
        include_changed_files: bool - Also match fileTriggers on changed files
    format:
        enabled: bool
        command: list[str] - Formatter argv ("{file}" placeholder optional)
        extensions: list[str] - Formattable extensions
        overrides: dict - Extension -> formatter argv
        timeout: int - Seconds per formatter call
    build:
        enabled: bool
        command: list[str] - Build/typecheck argv
        extensions: list[str] - Build-relevant extensions
        timeout: int - Seconds for the build call
        error_markers: list[str] - Regexes classifying error lines
        warning_markers: list[str] - Regexes classifying warning lines
    scan:
        enabled: bool
        extensions: list[str] - Source extensions to scan
    changes:
        baseline: str - Version-control baseline (default: HEAD)
        timeout: int - Seconds per git call
    logging:
        dir: str - Log directory
        keep: int - Log files kept per category (default: 20)
        level: str - Logging level for hook runs (default: WARNING)
"""

import copy
import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

CONFIG_DIR = ".claude"
CONFIG_FILE = "skill-router.yaml"

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


class ConfigurationError(Exception):
    """Raised when configuration is invalid or cannot be loaded."""
    pass


# Default configuration values
DEFAULT_CONFIG: Dict[str, Any] = {
    "rules": {
        "path": ".claude/skills/skill-rules.json",
    },
    "prompt": {
        "top_n": 3,
        "include_changed_files": False,
    },
    "format": {
        "enabled": True,
        "command": ["npx", "prettier", "--write", "{file}"],
        "extensions": ["ts", "tsx", "js", "jsx", "json", "css", "scss", "md", "yaml", "yml"],
        "overrides": {},
        "timeout": 30,
    },
    "build": {
        "enabled": True,
        "command": ["npx", "tsc", "--noEmit"],
        "extensions": ["ts", "tsx", "js", "jsx", "mts", "cts"],
        "timeout": 300,
        "error_markers": [r"\berror\b"],
        "warning_markers": [r"\bwarn(ing)?\b"],
    },
    "scan": {
        "enabled": True,
        "extensions": ["ts", "tsx", "js", "jsx", "mjs", "cjs", "py"],
    },
    "changes": {
        "baseline": "HEAD",
        "timeout": 30,
    },
    "logging": {
        "dir": ".claude/logs",
        "keep": 20,
        "level": "WARNING",
    },
}


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """
    Deep merge override dict into base dict.

    Args:
        base: Base dictionary (defaults)
        override: Override dictionary (user config)

    Returns:
        Merged dictionary with override values taking precedence
    """
    result = copy.deepcopy(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _resolve_path(path: Optional[str], base_dir: Path) -> Optional[Path]:
    """
    Resolve a path, making relative paths absolute from base_dir.

    Args:
        path: Path string (absolute or relative) or None
        base_dir: Base directory for relative path resolution

    Returns:
        Resolved absolute Path or None if path was None
    """
    if path is None:
        return None

    path_obj = Path(path).expanduser()
    if path_obj.is_absolute():
        return path_obj
    return (base_dir / path_obj).resolve()


def _read_yaml(path: Path) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise yaml.YAMLError(f"top level must be a mapping, got {type(data).__name__}")
    return data


# (section, key, minimum) for integer settings
INTEGER_SETTINGS = (
    ("prompt", "top_n", 0),
    ("format", "timeout", 1),
    ("build", "timeout", 1),
    ("changes", "timeout", 1),
    ("logging", "keep", 0),
)


def _valid_int(value: Any, minimum: int) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= minimum


def validate_config(config: Dict[str, Any]) -> None:
    """
    Check integer settings.

    Raises:
        ConfigurationError: If a setting is not an integer or is below its minimum
    """
    for section_name, key, minimum in INTEGER_SETTINGS:
        section = config.get(section_name)
        if not isinstance(section, dict) or key not in section:
            continue
        if not _valid_int(section[key], minimum):
            raise ConfigurationError(
                f"{section_name}.{key} must be an integer >= {minimum}, got {section[key]!r}"
            )


def get_int(config: Dict[str, Any], section_name: str, key: str) -> int:
    """Integer setting, falling back to its default when the value is unusable."""
    default = DEFAULT_CONFIG[section_name][key]
    value = get_section(config, section_name).get(key, default)
    minimum = next(m for s, k, m in INTEGER_SETTINGS if (s, k) == (section_name, key))
    if not _valid_int(value, minimum):
        logger.warning(
            f"Ignoring invalid {section_name}.{key}={value!r}, using default {default}"
        )
        return default
    return value


def get_project_root() -> Path:
    """
    Determine the project root directory.

    Resolution order:
    1. SKILL_ROUTER_PROJECT_ROOT
    2. CLAUDE_PROJECT_DIR (set by the assistant when running hooks)
    3. Current working directory
    """
    for var in ("SKILL_ROUTER_PROJECT_ROOT", "CLAUDE_PROJECT_DIR"):
        value = os.environ.get(var)
        if value:
            return Path(value).expanduser().resolve()
    return Path.cwd()


def load_config(
    config_path: Optional[str] = None,
    project_root: Optional[Path] = None
) -> Dict[str, Any]:
    """
    Load configuration from YAML file with environment variable overrides.

    Configuration Loading Order (later overrides earlier):
    1. Default values (DEFAULT_CONFIG)
    2. Config file (from SKILL_ROUTER_CONFIG_PATH or config_path parameter)
    3. Environment variable overrides (SKILL_ROUTER_RULES_PATH, SKILL_ROUTER_LOG_DIR)

    Args:
        config_path: Explicit config file path (overrides SKILL_ROUTER_CONFIG_PATH)
        project_root: Project directory for relative path resolution

    Returns:
        Merged configuration dictionary

    Raises:
        ConfigurationError: If an explicit config file exists but is invalid YAML,
            or an integer setting is invalid
    """
    if project_root is None:
        project_root = get_project_root()

    config = copy.deepcopy(DEFAULT_CONFIG)

    file_path = config_path or os.environ.get("SKILL_ROUTER_CONFIG_PATH")

    if file_path:
        # Explicit config path - must be valid if it exists
        resolved_path = _resolve_path(file_path, project_root)
        if resolved_path and resolved_path.exists():
            try:
                config = _deep_merge(config, _read_yaml(resolved_path))
                logger.info(f"Loaded configuration from: {resolved_path}")
            except yaml.YAMLError as e:
                raise ConfigurationError(f"Invalid YAML in config file: {e}")
            except OSError as e:
                raise ConfigurationError(f"Cannot read config file: {e}")
        else:
            logger.warning(f"Config file not found (using defaults): {file_path}")
    else:
        default_config_path = project_root / CONFIG_DIR / CONFIG_FILE
        if default_config_path.exists():
            try:
                config = _deep_merge(config, _read_yaml(default_config_path))
                logger.info(f"Loaded configuration from: {default_config_path}")
            except yaml.YAMLError as e:
                logger.warning(f"Invalid YAML in default config (ignoring): {e}")
            except OSError as e:
                logger.warning(f"Cannot read default config (ignoring): {e}")
        else:
            logger.debug("No config file found, using defaults")

    rules_override = os.environ.get("SKILL_ROUTER_RULES_PATH")
    if rules_override:
        config.setdefault("rules", {})["path"] = rules_override
        logger.info(f"Rules path override from env: {rules_override}")

    log_dir_override = os.environ.get("SKILL_ROUTER_LOG_DIR")
    if log_dir_override:
        config.setdefault("logging", {})["dir"] = log_dir_override
        logger.info(f"Log directory override from env: {log_dir_override}")

    validate_config(config)
    return config


def get_section(config: Dict[str, Any], name: str) -> Dict[str, Any]:
    """Return a config section, falling back to its defaults."""
    section = config.get(name)
    if not isinstance(section, dict):
        return copy.deepcopy(DEFAULT_CONFIG.get(name, {}))
    return section


def get_rules_path(config: Dict[str, Any], project_root: Path) -> Path:
    """Get the skill rules file path, resolved against the project root."""
    path_str = get_section(config, "rules").get("path") or DEFAULT_CONFIG["rules"]["path"]
    return _resolve_path(path_str, project_root)


def get_log_dir(config: Dict[str, Any], project_root: Path) -> Path:
    """Get the log directory, resolved against the project root."""
    path_str = get_section(config, "logging").get("dir") or DEFAULT_CONFIG["logging"]["dir"]
    return _resolve_path(path_str, project_root)


def configure_logging(level: str = "WARNING") -> None:
    """
    Send log records to stderr.

    Hooks write their payload to stdout, so diagnostics must never go there.
    """
    numeric = logging.getLevelName(str(level).upper())
    if not isinstance(numeric, int):
        numeric = logging.WARNING
    logging.basicConfig(level=numeric, format=LOG_FORMAT, stream=sys.stderr)
