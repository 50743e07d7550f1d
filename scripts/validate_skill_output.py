#!/usr/bin/env python3
"""
Skill Output Validator

Validates the JSON output document a skill run produced against that
skill's validator.yaml: JSON syntax, JSON Schema, required fields, enum
values, expected terms and skill-specific extras.

Usage:
    python validate_skill_output.py <output.json> --skill ios-ui-testing [--verbose|--json]
    python validate_skill_output.py <output.json> --config path/to/validator.yaml
    python validate_skill_output.py --self-test

Library usage:
    from validate_skill_output import SkillOutputValidator
    report = SkillOutputValidator(config, settings).run(output_path)

Exit codes:
    0 - passed or partial (some checks skipped)
    1 - failed (or usage / config error)
    2 - JSON syntax could not be verified (no JSON tool available)
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Literal

from sov_assertions import (
    MISSING,
    check_enums,
    check_recommended_fields,
    check_required_fields,
    check_skill_name,
    check_terms,
    count_array_fields,
)
from sov_config import (
    RuntimeSettings,
    ValidatorConfig,
    find_skill_config,
    load_validator_config,
)
from sov_json_checks import (
    JsonDocumentError,
    check_tools,
    load_json_file,
    validate_json_schema,
    validate_json_syntax,
)
from sov_logging import setup_logging
from sov_validation_common import (
    CATEGORIES,
    COLORS,
    EXIT_FAILED,
    EXIT_OK,
    EXIT_SKIPPED,
    ConfigError,
    ValidationReport,
    ValidationResult,
    colorize,
    format_result,
)

logger = logging.getLogger(__name__)

RunState = Literal["idle", "running", "reported"]

# Trust tiers gate which check groups run
TIER_FIELDS = 1  # skill name + required fields
TIER_CONTENT = 2  # schema, enums, terms, recommended fields, arrays
TIER_STRICT = 3  # recommended fields become failures


class SkillOutputValidator:
    """Runs the fixed check sequence for one output file.

    A validator instance moves idle -> running -> reported exactly once;
    build a new one per file.
    """

    def __init__(self, config: ValidatorConfig, settings: RuntimeSettings, strict: bool = False) -> None:
        self.config = config
        self.settings = settings
        self.strict = strict or config.trust_tier >= TIER_STRICT
        self.state: RunState = "idle"
        self.report = ValidationReport()

    def run(self, output_file: Path) -> ValidationReport:
        if self.state != "idle":
            raise RuntimeError(f"Validator already {self.state}; create a new instance per run")
        self.state = "running"
        logger.info("Validating %s output: %s", self.config.skill_name, output_file)
        try:
            self._run_checks(output_file)
        finally:
            self.state = "reported"
        logger.info("Overall status for %s: %s", output_file, self.report.overall_status)
        return self.report

    # ------------------------------------------------------------------
    # Check sequence
    # ------------------------------------------------------------------

    def _run_checks(self, output_file: Path) -> None:
        config, settings, report = self.config, self.settings, self.report

        report.add(check_tools(config, settings))

        # JSON syntax is the only fatal gate
        syntax = report.add(validate_json_syntax(output_file, config, settings))
        if syntax.status == "fail":
            return

        document: Any = MISSING
        if syntax.status == "pass":
            try:
                document = load_json_file(output_file)
            except JsonDocumentError as e:
                # A fallback tool accepted what strict parsing rejects
                report.add(ValidationResult("document", "fail", f"Document is not strict JSON: {e}", "syntax"))
                return

        if config.trust_tier >= TIER_CONTENT and config.schema_path is not None:
            if document is MISSING:
                report.add(ValidationResult("schema", "skip", "Schema not checked: JSON syntax unverified", "schema"))
            else:
                result = report.add(validate_json_schema(config.schema_path, output_file, config, settings))
                if result.status == "fail":
                    logger.warning("Schema check failed for %s: %s", output_file, result.message)

        if config.trust_tier >= TIER_FIELDS:
            if document is MISSING:
                report.add(ValidationResult("fields", "skip", "Field checks not run: JSON syntax unverified"))
            else:
                if config.skill_name_check:
                    report.add(check_skill_name(document, config.skill_name_check))
                report.extend(check_required_fields(document, config.required_fields))

        if config.trust_tier >= TIER_CONTENT:
            if document is not MISSING:
                self._run_document_checks(document)
            elif config.enum_validations or config.recommended_fields or config.array_fields:
                report.add(ValidationResult("content", "skip", "Enum and field checks not run: JSON syntax unverified"))

            text = output_file.read_text(encoding="utf-8", errors="replace")
            report.extend(check_terms(text, config.must_contain_terms, config.must_not_contain_terms))

    def _run_document_checks(self, document: Any) -> None:
        config, report = self.config, self.report
        report.extend(check_enums(document, config.enum_validations))

        results, warnings = check_recommended_fields(document, config.recommended_fields, strict=self.strict)
        report.extend(results)
        for message in warnings:
            report.warning(message)

        results, notes = count_array_fields(document, config.array_fields)
        report.extend(results)
        for message in notes:
            report.note(message)

    # ------------------------------------------------------------------
    # Verdict
    # ------------------------------------------------------------------

    @property
    def exit_code(self) -> int:
        if self.state != "reported":
            raise RuntimeError("Validator has not run yet")
        return exit_code_for(self.report)


def exit_code_for(report: ValidationReport) -> int:
    """Map a report to the process exit code (fail > syntax-skipped > ok)."""
    if report.has_failure:
        return EXIT_FAILED
    syntax = report.result_for("json_syntax")
    if syntax is not None and syntax.status == "skip":
        return EXIT_SKIPPED
    return EXIT_OK


# =============================================================================
# Report rendering
# =============================================================================


def report_timestamp(output_file: Path) -> str:
    """Modification time of the validated file (UTC), so reruns are identical."""
    try:
        mtime = output_file.stat().st_mtime
    except OSError:
        return datetime.now(timezone.utc).isoformat(timespec="seconds")
    return datetime.fromtimestamp(mtime, timezone.utc).isoformat(timespec="seconds")


def build_json_report(report: ValidationReport, config: ValidatorConfig, output_file: Path) -> dict[str, Any]:
    return {
        "skillName": config.skill_name,
        "skillVersion": config.skill_version,
        "outputFile": str(output_file),
        "overallStatus": report.overall_status,
        "validations": {category: report.category_status(category) for category in CATEGORIES},
        "checks": [r.to_dict() for r in report.results],
        "warnings": list(report.warnings),
        "timestamp": report_timestamp(output_file),
    }


def print_report(
    report: ValidationReport,
    config: ValidatorConfig,
    output_file: Path,
    verbose: bool = False,
    color: bool = True,
) -> None:
    """Print the human-readable report; PASS lines and notes only when verbose."""
    bold = COLORS["BOLD"] if color else ""
    reset = COLORS["RESET"] if color else ""
    print(f"{bold}{config.skill_name} v{config.skill_version}{reset}: {output_file}")

    for result in report.results:
        if result.status != "pass" or verbose:
            print(f"  {format_result(result, color)}")

    for message in report.warnings:
        print(f"  {colorize('[WARN]', 'WARNING', color)} {message}")

    if verbose:
        for message in report.notes:
            print(f"  {colorize('[INFO]', 'INFO', color)} {message}")

    counts = report.count_by_status()
    status = report.overall_status
    key = {"passed": "pass", "partial": "skip", "failed": "fail"}[status]
    print("")
    print(
        colorize(f"Validation {status.upper()} for {config.skill_name} v{config.skill_version}", key, color)
        + f" ({counts['pass']} passed, {counts['fail']} failed, {counts['skip']} skipped)"
    )


# =============================================================================
# CLI
# =============================================================================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="validate-skill-output",
        description="Validate a skill's JSON output document",
    )
    parser.add_argument("output_file", nargs="?", help="Skill output JSON file to validate")
    source = parser.add_mutually_exclusive_group()
    source.add_argument("--config", type=Path, help="Path to a validator.yaml")
    source.add_argument("--skill", help="Skill name; loads <skills dir>/<skill>/validator.yaml")
    parser.add_argument("--verbose", "-v", action="store_true", help="Show passed checks and debug logs")
    parser.add_argument("--json", action="store_true", help="Output a single JSON report")
    parser.add_argument("--strict", action="store_true", help="Treat missing recommended fields as failures")
    parser.add_argument("--self-test", action="store_true", help="Run the validator's own smoke tests and exit")
    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    settings = RuntimeSettings.from_env()
    setup_logging(debug=settings.debug or args.verbose, log_file=settings.log_file)

    if args.self_test:
        from sov_self_test import print_self_test, run_self_test

        results = run_self_test(settings)
        return print_self_test(results)

    if not args.output_file:
        print("Error: No output file specified. Usage: validate-skill-output <output.json> --skill NAME", file=sys.stderr)
        return EXIT_FAILED

    try:
        if args.config is not None:
            config = load_validator_config(args.config)
        elif args.skill:
            config = load_validator_config(find_skill_config(args.skill, settings))
        else:
            print("Error: one of --config or --skill is required", file=sys.stderr)
            return EXIT_FAILED
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FAILED

    output_file = Path(args.output_file)
    validator = SkillOutputValidator(config, settings, strict=args.strict)
    report = validator.run(output_file)

    if args.json:
        print(json.dumps(build_json_report(report, config, output_file), indent=2))
    else:
        color = sys.stdout.isatty() and "NO_COLOR" not in os.environ
        print_report(report, config, output_file, verbose=args.verbose, color=color)

    return validator.exit_code


if __name__ == "__main__":
    sys.exit(main())
