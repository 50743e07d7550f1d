#!/usr/bin/env python3
"""
JSON syntax and JSON Schema validators with tool fallback.

Each validator walks a prioritized list of providers (config.json_tools /
config.schema_tools). A provider either answers with a ToolVerdict or raises
ToolUnavailable, in which case the next provider is tried. When no provider
answers the check is recorded as "skip" - it is never silently passed.

Usage:
    from sov_json_checks import validate_json_syntax, validate_json_schema
    result = validate_json_syntax(path, config, settings)
    result = validate_json_schema(schema_path, path, config, settings)
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

from jsonschema.exceptions import SchemaError, best_match
from jsonschema.validators import validator_for
from referencing.exceptions import Unresolvable

from sov_config import RuntimeSettings, ValidatorConfig
from sov_tools import resolve_tool_command, run_tool
from sov_validation_common import ToolUnavailable, ValidationResult

logger = logging.getLogger(__name__)

NODE_PARSE_SCRIPT = "JSON.parse(require('fs').readFileSync(process.argv[1], 'utf8'))"


@dataclass(frozen=True)
class ToolVerdict:
    """Answer from a provider that was able to run.

    Attributes:
        tool: Provider name
        ok: True if the document is valid / conforms
        detail: First error message when not ok
        schema_error: True when the schema itself is broken (schema providers only)
    """

    tool: str
    ok: bool
    detail: str = ""
    schema_error: bool = False


class JsonDocumentError(ValueError):
    """Raised by load_json_file when a file is not a single strict JSON document."""


def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-standard JSON constant {name}")


def load_json_file(path: Path) -> Any:
    """Parse a file as strict JSON (no NaN/Infinity).

    Raises:
        JsonDocumentError: If the file is not UTF-8 or not valid JSON
    """
    try:
        text = path.read_text(encoding="utf-8")
        return json.loads(text, parse_constant=_reject_constant)
    except json.JSONDecodeError as e:
        raise JsonDocumentError(f"{e.msg} (line {e.lineno}, column {e.colno})") from e
    except RecursionError as e:
        raise JsonDocumentError("nesting too deep") from e
    except (UnicodeDecodeError, ValueError) as e:
        raise JsonDocumentError(str(e)) from e


def _first_line(text: str) -> str:
    for line in text.splitlines():
        if line.strip():
            return line.strip()
    return ""


# =============================================================================
# JSON syntax providers
# =============================================================================


def _jq_syntax(path: Path, settings: RuntimeSettings) -> ToolVerdict:
    # --slurp so that an empty file or several concatenated documents fail
    argv = resolve_tool_command("jq", settings.allow_remote) + ["-e", "--slurp", "length == 1", str(path)]
    proc = run_tool(argv, settings.tool_timeout)
    if proc.returncode == 0:
        return ToolVerdict("jq", True)
    if proc.returncode == 1:
        return ToolVerdict("jq", False, "expected exactly one JSON document")
    return ToolVerdict("jq", False, _first_line(proc.stderr) or f"jq exited with {proc.returncode}")


def _python_syntax(path: Path, settings: RuntimeSettings) -> ToolVerdict:
    try:
        load_json_file(path)
    except JsonDocumentError as e:
        return ToolVerdict("python", False, str(e))
    return ToolVerdict("python", True)


def _node_syntax(path: Path, settings: RuntimeSettings) -> ToolVerdict:
    argv = resolve_tool_command("node", settings.allow_remote) + ["-e", NODE_PARSE_SCRIPT, str(path)]
    proc = run_tool(argv, settings.tool_timeout)
    if proc.returncode == 0:
        return ToolVerdict("node", True)
    # node prints the script location first; the SyntaxError line is what matters
    detail = next((ln.strip() for ln in proc.stderr.splitlines() if "Error" in ln), "")
    return ToolVerdict("node", False, detail or _first_line(proc.stderr))


JSON_PROVIDERS: dict[str, Callable[[Path, RuntimeSettings], ToolVerdict]] = {
    "jq": _jq_syntax,
    "python": _python_syntax,
    "node": _node_syntax,
}


def json_tool_available(tool: str, settings: RuntimeSettings) -> bool:
    """Check whether a JSON syntax provider could run on this machine."""
    if tool == "python":
        return True
    try:
        resolve_tool_command(tool, settings.allow_remote)
    except ToolUnavailable:
        return False
    return True


def check_tools(config: ValidatorConfig, settings: RuntimeSettings) -> ValidationResult:
    """Tool availability check, recorded before anything else runs."""
    available = [t for t in config.json_tools if json_tool_available(t, settings)]
    if available:
        return ValidationResult("tools", "pass", f"JSON tools available: {', '.join(available)}", "tools")
    tried = ", ".join(config.json_tools) or "none configured"
    return ValidationResult("tools", "skip", f"No JSON tool available (tried: {tried})", "tools")


def validate_json_syntax(path: Path, config: ValidatorConfig, settings: RuntimeSettings) -> ValidationResult:
    """Check that a file holds one syntactically valid JSON document.

    Returns:
        fail if the file is missing or malformed, skip if no provider could
        run, pass otherwise
    """
    if not path.is_file():
        return ValidationResult("json_syntax", "fail", f"File not found: {path}", "syntax")

    for tool in config.json_tools:
        provider = JSON_PROVIDERS[tool]
        try:
            verdict = provider(path, settings)
        except ToolUnavailable as e:
            logger.debug("JSON provider %s unavailable: %s", tool, e)
            continue
        if verdict.ok:
            return ValidationResult("json_syntax", "pass", f"JSON syntax valid (checked with {tool})", "syntax")
        return ValidationResult("json_syntax", "fail", f"Invalid JSON syntax: {verdict.detail}", "syntax")

    tried = ", ".join(config.json_tools) or "none configured"
    return ValidationResult(
        "json_syntax", "skip", f"JSON syntax not verified: no JSON tool available (tried: {tried})", "syntax"
    )


# =============================================================================
# JSON Schema providers
# =============================================================================


def _format_location(parts: Any) -> str:
    location = "/".join(str(p) for p in parts)
    return f"/{location}" if location else "(root)"


def _jsonschema_provider(schema: Any, schema_path: Path, data_path: Path, settings: RuntimeSettings) -> ToolVerdict:
    cls = validator_for(schema)
    try:
        cls.check_schema(schema)
    except SchemaError as e:
        return ToolVerdict("jsonschema", False, f"{e.message} at {_format_location(e.absolute_path)}", schema_error=True)

    try:
        data = load_json_file(data_path)
    except JsonDocumentError as e:
        return ToolVerdict("jsonschema", False, f"at (root): document is not strict JSON: {e}")
    try:
        error = best_match(cls(schema).iter_errors(data))
    except Unresolvable as e:
        # $ref targets are only resolved lazily, so check_schema cannot catch them
        return ToolVerdict("jsonschema", False, f"unresolvable reference: {e}", schema_error=True)
    if error is None:
        return ToolVerdict("jsonschema", True)
    return ToolVerdict("jsonschema", False, f"at {_format_location(error.absolute_path)}: {error.message}")


def _check_jsonschema_provider(
    schema: Any, schema_path: Path, data_path: Path, settings: RuntimeSettings
) -> ToolVerdict:
    argv = resolve_tool_command("check-jsonschema", settings.allow_remote)
    proc = run_tool(argv + ["--schemafile", str(schema_path), str(data_path)], settings.tool_timeout)
    if proc.returncode == 0:
        return ToolVerdict("check-jsonschema", True)
    output = proc.stdout + proc.stderr
    detail = next((ln.strip() for ln in output.splitlines() if ln.strip().startswith(data_path.name)), "")
    if "SchemaError" in output:
        return ToolVerdict("check-jsonschema", False, _first_line(output), schema_error=True)
    return ToolVerdict("check-jsonschema", False, f"({detail or _first_line(output)})")


def _ajv_provider(schema: Any, schema_path: Path, data_path: Path, settings: RuntimeSettings) -> ToolVerdict:
    argv = resolve_tool_command("ajv", settings.allow_remote)
    proc = run_tool(argv + ["validate", "-s", str(schema_path), "-d", str(data_path)], settings.tool_timeout)
    if proc.returncode == 0:
        return ToolVerdict("ajv", True)
    output = proc.stderr + proc.stdout
    first = _first_line(output)
    # ajv-cli reports "schema <file> is invalid" before touching the data
    if first.startswith("schema ") and first.endswith("is invalid"):
        return ToolVerdict("ajv", False, first, schema_error=True)
    lines = [ln.strip() for ln in output.splitlines() if ln.strip()]
    return ToolVerdict("ajv", False, f"({' '.join(lines[1:3]) or first})")


SCHEMA_PROVIDERS: dict[str, Callable[[Any, Path, Path, RuntimeSettings], ToolVerdict]] = {
    "jsonschema": _jsonschema_provider,
    "check-jsonschema": _check_jsonschema_provider,
    "ajv": _ajv_provider,
}


def validate_json_schema(
    schema_path: Path, data_path: Path, config: ValidatorConfig, settings: RuntimeSettings
) -> ValidationResult:
    """Check that a (syntactically valid) data file conforms to a JSON Schema.

    A schema file that does not parse, or is not a valid schema, is reported
    as a schema error - distinct from the data violating the schema.
    """
    if not schema_path.is_file():
        return ValidationResult("schema", "skip", f"Schema file not found: {schema_path}", "schema")

    try:
        schema = load_json_file(schema_path)
    except JsonDocumentError as e:
        return ValidationResult("schema", "fail", f"Schema error: {schema_path.name} is not valid JSON: {e}", "schema")
    if not isinstance(schema, (dict, bool)):
        return ValidationResult(
            "schema", "fail", f"Schema error: {schema_path.name} must be a JSON object or boolean", "schema"
        )

    for tool in config.schema_tools:
        provider = SCHEMA_PROVIDERS[tool]
        try:
            verdict = provider(schema, schema_path, data_path, settings)
        except ToolUnavailable as e:
            logger.debug("Schema provider %s unavailable: %s", tool, e)
            continue
        if verdict.ok:
            return ValidationResult("schema", "pass", f"Schema validation passed (checked with {tool})", "schema")
        if verdict.schema_error:
            return ValidationResult("schema", "fail", f"Schema error: {verdict.detail}", "schema")
        return ValidationResult("schema", "fail", f"Schema violation {verdict.detail}", "schema")

    tried = ", ".join(config.schema_tools) or "none configured"
    return ValidationResult("schema", "skip", f"Schema not verified: no schema validator available (tried: {tried})", "schema")
