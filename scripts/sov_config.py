#!/usr/bin/env python3
"""
Validator configuration.

Two layers:
- ValidatorConfig: per-skill constants loaded from a YAML file
  (skills/<skill>/validator.yaml). Immutable for one run.
- RuntimeSettings: environment-driven knobs that affect logging and tool
  invocation only, never the verdict.

Example validator.yaml:

    skill_name: ios-ui-testing
    skill_version: 1.0.0
    schema_path: schemas/output.schema.json
    required_fields: [skillName, status, output, output.summary]
    enum_validations:
      .status: [success, partial, failed, skipped]
    must_contain_terms: [XCTest, iOS]
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from sov_assertions import PathSyntaxError, parse_path
from sov_validation_common import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_JSON_TOOLS = ("jq", "python", "node")
DEFAULT_SCHEMA_TOOLS = ("jsonschema", "check-jsonschema", "ajv")
DEFAULT_TOOL_TIMEOUT = 30.0
DEFAULT_TRUST_TIER = 2
MAX_TRUST_TIER = 3

CONFIG_FILENAME = "validator.yaml"

# Skill configs shipped alongside the scripts directory
DEFAULT_SKILLS_DIR = Path(__file__).resolve().parent.parent / "skills"

# Keys accepted in validator.yaml, mapped to the expected container type
_LIST_KEYS = {
    "required_fields",
    "recommended_fields",
    "must_contain_terms",
    "must_not_contain_terms",
    "array_fields",
    "json_tools",
    "schema_tools",
}
_STR_KEYS = {"skill_name", "skill_version", "schema_path", "expected_skill_name"}
_KNOWN_KEYS = _LIST_KEYS | _STR_KEYS | {"enum_validations", "trust_tier"}
_PATH_KEYS = ("required_fields", "recommended_fields", "array_fields")
_TERM_KEYS = {"must_contain_terms", "must_not_contain_terms"}

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class ValidatorConfig:
    """Per-skill validation constants.

    Attributes:
        skill_name: Skill identifier, reported as skillName
        skill_version: Skill version shown in the report header
        schema_path: Absolute path to the output JSON Schema, or None
        expected_skill_name: Value the document's .skillName must equal;
            empty string disables that check
        required_fields: Dotted paths that must resolve to a non-empty value
        recommended_fields: Dotted paths whose absence is only a warning
            (a failure in strict mode)
        enum_validations: Dotted path -> allowed values
        must_contain_terms: Terms the raw file text must contain (case-insensitive)
        must_not_contain_terms: Terms the raw file text must not contain
        array_fields: Dotted paths expected to hold arrays; counts are reported
        trust_tier: 0-3, gates which check groups run and how strictly
        json_tools: JSON syntax providers in preference order
        schema_tools: JSON Schema providers in preference order
    """

    skill_name: str
    skill_version: str = "0.0.0"
    schema_path: Path | None = None
    expected_skill_name: str | None = None
    required_fields: tuple[str, ...] = ()
    recommended_fields: tuple[str, ...] = ()
    enum_validations: dict[str, tuple[str, ...]] = field(default_factory=dict)
    must_contain_terms: tuple[str, ...] = ()
    must_not_contain_terms: tuple[str, ...] = ()
    array_fields: tuple[str, ...] = ()
    trust_tier: int = DEFAULT_TRUST_TIER
    json_tools: tuple[str, ...] = DEFAULT_JSON_TOOLS
    schema_tools: tuple[str, ...] = DEFAULT_SCHEMA_TOOLS

    @property
    def skill_name_check(self) -> str:
        """Name the .skillName field must equal ("" means unchecked)."""
        if self.expected_skill_name is None:
            return self.skill_name
        return self.expected_skill_name


@dataclass(frozen=True)
class RuntimeSettings:
    """Environment-driven settings; affect logging and tools, never outcome."""

    debug: bool = False
    log_file: Path | None = None
    tool_timeout: float = DEFAULT_TOOL_TIMEOUT
    allow_remote: bool = False
    skills_dir: Path = DEFAULT_SKILLS_DIR

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> RuntimeSettings:
        """Build settings from SOV_* environment variables."""
        env = os.environ if environ is None else environ

        log_file = env.get("SOV_LOG_FILE", "").strip()
        skills_dir = env.get("SOV_SKILLS_DIR", "").strip()
        return cls(
            debug=_is_truthy(env.get("SOV_DEBUG", "")),
            log_file=Path(log_file) if log_file else None,
            tool_timeout=_parse_timeout(env.get("SOV_TOOL_TIMEOUT", "")),
            allow_remote=_is_truthy(env.get("SOV_ALLOW_REMOTE", "")),
            skills_dir=Path(skills_dir) if skills_dir else DEFAULT_SKILLS_DIR,
        )


def _is_truthy(value: str) -> bool:
    return value.strip().lower() in _TRUTHY


def _parse_timeout(raw: str) -> float:
    """SOV_TOOL_TIMEOUT in seconds; unusable values fall back to the default."""
    raw = raw.strip()
    if not raw:
        return DEFAULT_TOOL_TIMEOUT
    try:
        timeout = float(raw)
    except ValueError:
        timeout = 0.0
    if not 0 < timeout < float("inf"):
        logger.warning("Ignoring SOV_TOOL_TIMEOUT=%r, using %ss", raw, DEFAULT_TOOL_TIMEOUT)
        return DEFAULT_TOOL_TIMEOUT
    return timeout


def _as_str_tuple(key: str, value: Any, allow_empty: bool = True) -> tuple[str, ...]:
    if isinstance(value, str) or not isinstance(value, list):
        raise ConfigError(f"'{key}' must be a list of strings")
    items: list[str] = []
    for item in value:
        if not isinstance(item, (str, int, float)) or isinstance(item, bool):
            raise ConfigError(f"'{key}' entries must be strings, got {item!r}")
        if not allow_empty and not str(item).strip():
            raise ConfigError(f"'{key}' entries must not be empty")
        items.append(str(item))
    return tuple(items)


def _check_path(key: str, path: str) -> None:
    try:
        parse_path(path)
    except PathSyntaxError as e:
        raise ConfigError(f"'{key}': {e}") from e


def _parse_enum_validations(value: Any) -> dict[str, tuple[str, ...]]:
    """Accept either a mapping or the shell-style "path:a,b,c" list."""
    enums: dict[str, tuple[str, ...]] = {}
    if isinstance(value, dict):
        for path, allowed in value.items():
            if isinstance(allowed, str):
                allowed = [a.strip() for a in allowed.split(",") if a.strip()]
            enums[str(path)] = _as_str_tuple(f"enum_validations.{path}", allowed)
    elif isinstance(value, list):
        for entry in value:
            if not isinstance(entry, str) or ":" not in entry:
                raise ConfigError(f"enum_validations entry must look like '.path:a,b', got {entry!r}")
            path, _, allowed_csv = entry.rpartition(":")
            enums[path] = tuple(a.strip() for a in allowed_csv.split(",") if a.strip())
    else:
        raise ConfigError("'enum_validations' must be a mapping or a list")

    for path, allowed in enums.items():
        if not allowed:
            raise ConfigError(f"enum_validations for '{path}' has no allowed values")
    return enums


def config_from_mapping(data: dict[str, Any], base_dir: Path | None = None) -> ValidatorConfig:
    """Build a ValidatorConfig from an already-parsed mapping.

    Args:
        data: Parsed configuration
        base_dir: Directory relative schema paths resolve against

    Raises:
        ConfigError: On unknown keys, wrong types or missing skill_name
    """
    if not isinstance(data, dict):
        raise ConfigError("Validator config must be a mapping")

    unknown = sorted(set(data) - _KNOWN_KEYS)
    if unknown:
        raise ConfigError(f"Unknown config keys: {', '.join(unknown)}")

    skill_name = data.get("skill_name")
    if not isinstance(skill_name, str) or not skill_name.strip():
        raise ConfigError("'skill_name' is required and must be a non-empty string")

    kwargs: dict[str, Any] = {"skill_name": skill_name.strip()}

    for key in _STR_KEYS - {"skill_name", "schema_path"}:
        if key in data and data[key] is not None:
            if not isinstance(data[key], (str, int, float)):
                raise ConfigError(f"'{key}' must be a string")
            kwargs[key] = str(data[key])

    schema = data.get("schema_path")
    if schema:
        if not isinstance(schema, str):
            raise ConfigError("'schema_path' must be a string")
        schema_path = Path(schema).expanduser()
        if not schema_path.is_absolute() and base_dir is not None:
            schema_path = base_dir / schema_path
        kwargs["schema_path"] = schema_path

    for key in _LIST_KEYS:
        if key in data and data[key] is not None:
            kwargs[key] = _as_str_tuple(key, data[key], allow_empty=key not in _TERM_KEYS)

    for key in _PATH_KEYS:
        for path in kwargs.get(key, ()):
            _check_path(key, path)

    for key, known in (("json_tools", DEFAULT_JSON_TOOLS), ("schema_tools", DEFAULT_SCHEMA_TOOLS)):
        bad = [t for t in kwargs.get(key, ()) if t not in known]
        if bad:
            raise ConfigError(f"'{key}' has unknown tools {bad}; choose from {list(known)}")

    if data.get("enum_validations") is not None:
        kwargs["enum_validations"] = _parse_enum_validations(data["enum_validations"])
        for path in kwargs["enum_validations"]:
            _check_path("enum_validations", path)

    if "trust_tier" in data:
        tier = data["trust_tier"]
        if not isinstance(tier, int) or isinstance(tier, bool) or not 0 <= tier <= MAX_TRUST_TIER:
            raise ConfigError(f"'trust_tier' must be an integer 0-{MAX_TRUST_TIER}, got {tier!r}")
        kwargs["trust_tier"] = tier

    return ValidatorConfig(**kwargs)


def load_validator_config(path: Path) -> ValidatorConfig:
    """Load a ValidatorConfig from a YAML file."""
    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        raise ConfigError(f"Config file is empty: {path}")

    config = config_from_mapping(data, base_dir=path.resolve().parent)
    logger.debug("Loaded config for %s v%s from %s", config.skill_name, config.skill_version, path)
    return config


def find_skill_config(skill: str, settings: RuntimeSettings) -> Path:
    """Locate <skills_dir>/<skill>/validator.yaml."""
    path = settings.skills_dir / skill / CONFIG_FILENAME
    if not path.is_file():
        raise ConfigError(f"No validator config for skill '{skill}' (looked in {path})")
    return path
