#!/usr/bin/env python3
"""
Field, enum and content assertions over a parsed skill output document.

Every check returns ValidationResult objects and never raises on bad
content, so a single run reports every problem at once. Paths use the
dotted form of the skill configs: ".output.summary.totalEnvVars",
"output.findings[0].id" (leading dot optional).
"""

from __future__ import annotations

import re
from typing import Any

from sov_validation_common import ValidationResult


class _Missing:
    """Sentinel for a path that does not resolve."""

    def __repr__(self) -> str:
        return "MISSING"


MISSING: Any = _Missing()

_PATH_TOKEN = re.compile(r"\.?([^.\[\]]+)|\[(\d+)\]")


class PathSyntaxError(ValueError):
    """Raised for a dotted path that cannot be tokenized."""


def parse_path(path: str) -> list[str | int]:
    """Split a dotted path into object keys (str) and array indices (int)."""
    tokens: list[str | int] = []
    pos = 0
    text = path.strip()
    if text in ("", "."):
        return tokens
    while pos < len(text):
        match = _PATH_TOKEN.match(text, pos)
        if match is None or match.end() == pos:
            raise PathSyntaxError(f"Invalid field path: {path!r}")
        key, index = match.groups()
        tokens.append(int(index) if index is not None else key)
        pos = match.end()
    return tokens


def get_path(document: Any, path: str) -> Any:
    """Resolve a dotted path in a JSON value; MISSING when it does not resolve.

    Numeric segments index into arrays ("items.0" and "items[0]" are the same).
    """
    node = document
    for token in parse_path(path):
        if isinstance(node, dict):
            key = str(token)
            if key not in node:
                return MISSING
            node = node[key]
        elif isinstance(node, list):
            try:
                index = int(token)
            except ValueError:
                return MISSING
            if not 0 <= index < len(node):
                return MISSING
            node = node[index]
        else:
            return MISSING
    return node


def is_empty(value: Any) -> bool:
    """Missing, null, "", [] and {} are empty; 0 and false are values."""
    if value is MISSING or value is None:
        return True
    if isinstance(value, (str, list, dict)):
        return len(value) == 0
    return False


def json_type_name(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    return "object"


def _display(path: str) -> str:
    return path.strip().lstrip(".") or "(root)"


def _scalar_text(value: Any) -> str | None:
    """Render a scalar the way jq -r would, None for arrays and objects."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float, str)):
        return str(value)
    return None


# =============================================================================
# Checks
# =============================================================================


def check_required_fields(document: Any, fields: tuple[str, ...] | list[str]) -> list[ValidationResult]:
    """One result per configured path; fails when the value is missing or empty."""
    results = []
    for path in fields:
        name = f"required:{_display(path)}"
        value = get_path(document, path)
        if value is MISSING:
            results.append(ValidationResult(name, "fail", f"Missing required field: {_display(path)}"))
        elif is_empty(value):
            results.append(
                ValidationResult(name, "fail", f"Required field is empty: {_display(path)} ({json_type_name(value)})")
            )
        else:
            results.append(ValidationResult(name, "pass", f"Required field present: {_display(path)}"))
    return results


def check_enum(document: Any, path: str, allowed: tuple[str, ...] | list[str]) -> ValidationResult:
    """Assert the value at ``path`` is one of ``allowed``."""
    name = f"enum:{_display(path)}"
    expected = "/".join(allowed)
    value = get_path(document, path)
    if value is MISSING or value is None:
        return ValidationResult(name, "fail", f"Missing {_display(path)} (expected {expected})")

    text = _scalar_text(value)
    if text is None:
        return ValidationResult(
            name, "fail", f"Invalid {_display(path)}: got {json_type_name(value)} (expected {expected})"
        )
    if text not in allowed:
        return ValidationResult(name, "fail", f"Invalid {_display(path)}: {text} (expected {expected})")
    return ValidationResult(name, "pass", f"{_display(path)} valid: {text}")


def check_enums(document: Any, enums: dict[str, tuple[str, ...]]) -> list[ValidationResult]:
    return [check_enum(document, path, allowed) for path, allowed in enums.items()]


def check_terms(
    text: str,
    must_contain: tuple[str, ...] | list[str] = (),
    must_not_contain: tuple[str, ...] | list[str] = (),
) -> list[ValidationResult]:
    """Case-insensitive substring checks over the raw document text."""
    haystack = text.casefold()
    results = []
    for term in must_contain:
        name = f"contains:{term}"
        if term.casefold() in haystack:
            results.append(ValidationResult(name, "pass", f"Contains expected term: {term}"))
        else:
            results.append(ValidationResult(name, "fail", f"Missing expected term: {term}"))
    for term in must_not_contain:
        name = f"excludes:{term}"
        if term.casefold() in haystack:
            results.append(ValidationResult(name, "fail", f"Contains forbidden term: {term}"))
        else:
            results.append(ValidationResult(name, "pass", f"Forbidden term absent: {term}"))
    return results


def check_skill_name(document: Any, expected: str) -> ValidationResult:
    actual = get_path(document, ".skillName")
    if actual == expected:
        return ValidationResult("skill_name", "pass", "skillName correct")
    shown = "<missing>" if actual is MISSING else actual
    return ValidationResult("skill_name", "fail", f"Invalid skillName: expected '{expected}', got '{shown}'")


def check_recommended_fields(
    document: Any, fields: tuple[str, ...] | list[str], strict: bool = False
) -> tuple[list[ValidationResult], list[str]]:
    """Check fields that should be present.

    Returns:
        (results, warnings). A missing field is a warning, or a failure
        result when ``strict`` is set.
    """
    results: list[ValidationResult] = []
    warnings: list[str] = []
    for path in fields:
        name = f"recommended:{_display(path)}"
        value = get_path(document, path)
        if not is_empty(value):
            results.append(ValidationResult(name, "pass", f"{_display(path)} present: {_scalar_text(value) or json_type_name(value)}"))
        elif strict:
            results.append(ValidationResult(name, "fail", f"Missing recommended field (strict): {_display(path)}"))
        else:
            warnings.append(f"Missing recommended field: {_display(path)}")
    return results, warnings


def count_array_fields(document: Any, fields: tuple[str, ...] | list[str]) -> tuple[list[ValidationResult], list[str]]:
    """Report item counts for configured arrays.

    An absent array counts as 0 items (a note); a present non-array value fails.
    """
    results: list[ValidationResult] = []
    notes: list[str] = []
    for path in fields:
        name = f"array:{_display(path)}"
        value = get_path(document, path)
        if value is MISSING or value is None:
            notes.append(f"{_display(path)} absent: 0 items")
        elif isinstance(value, list):
            results.append(ValidationResult(name, "pass", f"{_display(path)} array present: {len(value)} items"))
        else:
            results.append(
                ValidationResult(name, "fail", f"Expected an array at {_display(path)}, got {json_type_name(value)}")
            )
    return results, notes
