#!/usr/bin/env python3
"""
Skill Output Validation - Common Module

Shared validation infrastructure for the skill output validator.
This module contains:
- Type definitions (CheckStatus, ValidationResult, ValidationReport)
- Exit codes and the overall-status fold
- Exceptions shared by the tool and config layers
- Terminal formatting helpers

All other sov_* modules import from here to keep statuses consistent.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

# =============================================================================
# Type Definitions
# =============================================================================

# Per-check status. Every check invocation yields exactly one of these.
# Precedence when folding: fail > skip > pass
CheckStatus = Literal["pass", "fail", "skip"]

# Overall run status derived from the fold
OverallStatus = Literal["passed", "partial", "failed"]

# Report buckets; each check belongs to exactly one
Category = Literal["tools", "syntax", "schema", "content"]

CATEGORIES: tuple[Category, ...] = ("tools", "syntax", "schema", "content")

# =============================================================================
# Exit Codes
# =============================================================================

EXIT_OK = 0  # passed or partial
EXIT_FAILED = 1  # at least one check failed, or usage/config error
EXIT_SKIPPED = 2  # JSON syntax could not be verified (no tool available)

# =============================================================================
# Exceptions
# =============================================================================


class ConfigError(ValueError):
    """Raised when a validator configuration file is missing or malformed."""


class ToolUnavailable(RuntimeError):
    """Raised by a provider that cannot answer on this machine."""


# =============================================================================
# Data Classes
# =============================================================================


@dataclass(frozen=True)
class ValidationResult:
    """Single validation check result.

    Attributes:
        check_name: Stable identifier of the check (e.g. "required:output.summary")
        status: pass, fail or skip
        message: Human-readable description of the result
        category: Report bucket the result folds into
    """

    check_name: str
    status: CheckStatus
    message: str
    category: Category = "content"

    def to_dict(self) -> dict[str, str]:
        """Convert to dictionary for JSON serialization."""
        return {
            "check": self.check_name,
            "status": self.status,
            "message": self.message,
            "category": self.category,
        }


def fold_statuses(statuses: list[CheckStatus]) -> OverallStatus:
    """Fold individual statuses into one verdict (fail > skip > pass)."""
    if "fail" in statuses:
        return "failed"
    if "skip" in statuses:
        return "partial"
    return "passed"


# JSON report vocabulary for a single category
_CATEGORY_LABELS: dict[OverallStatus, str] = {
    "passed": "passed",
    "partial": "skipped",
    "failed": "failed",
}


@dataclass
class ValidationReport:
    """Complete validation report for one output file.

    Results are accumulated in run order; nothing short-circuits except the
    orchestrator's fatal JSON-syntax gate. Warnings and notes never affect
    the verdict.
    """

    results: list[ValidationResult] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)

    def add(self, result: ValidationResult) -> ValidationResult:
        """Add a validation result and return it."""
        self.results.append(result)
        return result

    def extend(self, results: list[ValidationResult]) -> None:
        self.results.extend(results)

    def warning(self, message: str) -> None:
        """Add a warning - always reported, never changes the verdict."""
        self.warnings.append(message)

    def note(self, message: str) -> None:
        """Add an informational note, shown in verbose mode."""
        self.notes.append(message)

    @property
    def has_failure(self) -> bool:
        return any(r.status == "fail" for r in self.results)

    @property
    def overall_status(self) -> OverallStatus:
        return fold_statuses([r.status for r in self.results])

    def by_category(self, category: Category) -> list[ValidationResult]:
        return [r for r in self.results if r.category == category]

    def category_status(self, category: Category) -> str:
        """Fold one category into the JSON report vocabulary.

        Returns "not_run" when no check of that category was recorded.
        """
        results = self.by_category(category)
        if not results:
            return "not_run"
        return _CATEGORY_LABELS[fold_statuses([r.status for r in results])]

    def result_for(self, check_name: str) -> ValidationResult | None:
        for r in self.results:
            if r.check_name == check_name:
                return r
        return None

    def count_by_status(self) -> dict[str, int]:
        """Get count of results by status."""
        counts = {"pass": 0, "fail": 0, "skip": 0}
        for r in self.results:
            counts[r.status] += 1
        return counts


# =============================================================================
# Color Formatting (for terminal output)
# =============================================================================

# ANSI color codes
COLORS = {
    "fail": "\033[91m",  # Red
    "skip": "\033[93m",  # Yellow
    "pass": "\033[92m",  # Green
    "WARNING": "\033[95m",  # Magenta
    "INFO": "\033[90m",  # Gray
    "RESET": "\033[0m",
    "BOLD": "\033[1m",
}

STATUS_TAGS: dict[str, str] = {"pass": "[PASS]", "fail": "[FAIL]", "skip": "[SKIP]"}


def colorize(text: str, key: str, enabled: bool = True) -> str:
    """Apply color to text based on a status or level key."""
    if not enabled:
        return text
    color = COLORS.get(key, "")
    return f"{color}{text}{COLORS['RESET']}"


def format_result(result: ValidationResult, color: bool = True) -> str:
    """Format a single validation result for terminal output."""
    tag = colorize(STATUS_TAGS[result.status], result.status, color)
    return f"{tag} {result.message}"
