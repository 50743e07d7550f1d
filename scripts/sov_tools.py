#!/usr/bin/env python3
"""
sov_tools.py

Resolves the external tools the validators fall back to:
- Detects which executors exist on this machine (direct binary, uvx/uv, pipx, bunx/bun x, pnpm dlx, npx, npm exec)
- Builds the argv prefix for a tool using the best available executor
- Runs the tool via subprocess with a timeout, preserving exit code and output

Remote runners (uvx, npx, ...) may download packages, so they are only
considered when RuntimeSettings.allow_remote is set (SOV_ALLOW_REMOTE=1).
A direct install is always preferred.

Examples:
  ./sov_tools.py executors
  ./sov_tools.py db
  ./sov_tools.py which ajv
"""

from __future__ import annotations

import argparse
import json
import logging
import shlex
import shutil
import subprocess
import sys
from dataclasses import dataclass

from sov_validation_common import ToolUnavailable

logger = logging.getLogger(__name__)

# ----------------------------
# Data model
# ----------------------------


@dataclass(frozen=True)
class ToolSpec:
    # What the config names (logical name)
    name: str
    # ecosystem hint: "python", "node", "native"
    ecosystem: str
    # package to fetch (PyPI or npm); None for native binaries
    package: str | None = None
    # actual command/binary to invoke (may differ from package)
    command: str | None = None


# Tools the JSON and schema providers know how to drive.
TOOL_DB: dict[str, ToolSpec] = {
    "jq": ToolSpec("jq", "native", package=None, command="jq"),
    "node": ToolSpec("node", "native", package=None, command="node"),
    "check-jsonschema": ToolSpec("check-jsonschema", "python", package="check-jsonschema", command="check-jsonschema"),
    # ajv-cli: CLI name != package name
    "ajv": ToolSpec("ajv", "node", package="ajv-cli", command="ajv"),
}


# Remote executor preference per ecosystem
PRIORITY: dict[str, list[str]] = {
    "python": ["uvx", "uv", "pipx"],
    "node": ["bunx", "pnpm", "npx", "npm"],
    "native": [],
}


# ----------------------------
# Executor detection
# ----------------------------


def which(cmd: str) -> str | None:
    return shutil.which(cmd)


def have(cmd: str) -> bool:
    return which(cmd) is not None


def detect_executors() -> dict[str, bool]:
    # bunx may be an executable, or `bun x` is available via bun itself
    return {
        "uvx": have("uvx"),
        "uv": have("uv"),
        "pipx": have("pipx"),
        "bunx": have("bunx") or have("bun"),
        "pnpm": have("pnpm"),
        "npx": have("npx"),
        "npm": have("npm"),
    }


# ----------------------------
# Command builders
# ----------------------------


def bunx_argv(pkg: str, cmd: str) -> list[str]:
    base = ["bunx"] if have("bunx") else ["bun", "x"]
    if cmd == pkg:
        return base + [pkg]
    return base + ["-p", pkg, cmd]


def pnpm_dlx_argv(pkg: str, cmd: str) -> list[str]:
    if cmd == pkg:
        return ["pnpm", "dlx", pkg]
    return ["pnpm", "--package", pkg, "dlx", cmd]


def npx_argv(pkg: str, cmd: str) -> list[str]:
    if cmd == pkg:
        return ["npx", "--yes", pkg]
    return ["npx", "--yes", "-p", pkg, cmd]


def npm_exec_argv(pkg: str, cmd: str) -> list[str]:
    return ["npm", "exec", "--yes", f"--package={pkg}", "--", cmd]


def uvx_argv(pkg: str, cmd: str) -> list[str]:
    if have("uvx"):
        if pkg == cmd:
            return ["uvx", pkg]
        return ["uvx", "--from", pkg, cmd]
    if pkg == cmd:
        return ["uv", "tool", "run", pkg]
    return ["uv", "tool", "run", "--from", pkg, cmd]


def pipx_run_argv(pkg: str, cmd: str) -> list[str]:
    # pipx can't reliably pick an arbitrary bin from a package; best effort
    if pkg == cmd:
        return ["pipx", "run", pkg]
    return ["pipx", "run", "--spec", pkg, cmd]


# ----------------------------
# Selection logic
# ----------------------------


def resolve_tool(tool_name: str) -> ToolSpec:
    if tool_name in TOOL_DB:
        return TOOL_DB[tool_name]
    # Unknown tools are only ever run if installed directly
    return ToolSpec(name=tool_name, ecosystem="native", package=None, command=tool_name)


def build_argv_for_executor(executor: str, spec: ToolSpec, executors: dict[str, bool]) -> list[str] | None:
    cmd = spec.command or spec.name
    pkg = spec.package or spec.name

    if executor in ("uvx", "uv"):
        if spec.ecosystem != "python" or not (executors.get("uvx") or executors.get("uv")):
            return None
        return uvx_argv(pkg, cmd)

    if executor == "pipx":
        if spec.ecosystem != "python" or not executors.get("pipx"):
            return None
        return pipx_run_argv(pkg, cmd)

    if spec.ecosystem != "node" or not executors.get(executor):
        return None
    if executor == "bunx":
        return bunx_argv(pkg, cmd)
    if executor == "pnpm":
        return pnpm_dlx_argv(pkg, cmd)
    if executor == "npx":
        return npx_argv(pkg, cmd)
    if executor == "npm":
        return npm_exec_argv(pkg, cmd)
    return None


def choose_best(spec: ToolSpec, executors: dict[str, bool], allow_remote: bool = False) -> tuple[list[str], str]:
    """Pick the argv prefix for a tool.

    Raises:
        ToolUnavailable: No direct install and no permitted remote executor
    """
    # Prefer direct if already available (fast, avoids downloads)
    direct_cmd = spec.command or spec.name
    if have(direct_cmd):
        return [direct_cmd], "direct"

    if allow_remote:
        for ex in PRIORITY.get(spec.ecosystem, []):
            argv = build_argv_for_executor(ex, spec, executors)
            if argv is not None:
                return argv, ex

    raise ToolUnavailable(f"No suitable executor found for tool '{spec.name}' (ecosystem={spec.ecosystem}).")


def resolve_tool_command(tool_name: str, allow_remote: bool = False) -> list[str]:
    """Resolve a tool to its executable command prefix.

    Returns:
        Command prefix as list (e.g. ["npx", "--yes", "-p", "ajv-cli", "ajv"])

    Raises:
        ToolUnavailable: When the tool cannot be run on this system
    """
    spec = resolve_tool(tool_name)
    argv, executor = choose_best(spec, detect_executors(), allow_remote=allow_remote)
    logger.debug("Resolved %s via %s: %s", tool_name, executor, shlex.join(argv))
    return argv


def run_tool(argv: list[str], timeout: float) -> subprocess.CompletedProcess[str]:
    """Run a resolved tool command and capture its output.

    A tool that cannot be spawned or does not finish within ``timeout``
    seconds is reported as unavailable rather than as a verdict.
    """
    logger.debug("[exec] %s", shlex.join(argv))
    try:
        return subprocess.run(argv, capture_output=True, text=True, timeout=timeout)
    except subprocess.TimeoutExpired:
        raise ToolUnavailable(f"{argv[0]} timed out after {timeout:g}s") from None
    except OSError as e:
        raise ToolUnavailable(f"{argv[0]} could not be started: {e}") from e


# ----------------------------
# CLI
# ----------------------------


def parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="sov_tools.py")
    sub = p.add_subparsers(dest="subcmd", required=True)

    p_which = sub.add_parser("which", help="Show how a tool would be executed")
    p_which.add_argument("--allow-remote", action="store_true", help="Consider uvx/npx/bunx runners")
    p_which.add_argument("--json", action="store_true")
    p_which.add_argument("tool", help="Tool to resolve")

    sub.add_parser("executors", help="List detected executors")
    p_db = sub.add_parser("db", help="List known tools")
    p_db.add_argument("--json", action="store_true")

    return p.parse_args(argv)


def main(argv: list[str]) -> int:
    ns = parse_args(argv)

    if ns.subcmd == "executors":
        print(json.dumps({"available": detect_executors()}, indent=2))
        return 0

    if ns.subcmd == "db":
        if ns.json:
            print(json.dumps({k: TOOL_DB[k].__dict__ for k in sorted(TOOL_DB)}, indent=2))
        else:
            for k in sorted(TOOL_DB):
                t = TOOL_DB[k]
                print(f"{k:18} ecosystem={t.ecosystem:8} package={t.package or '-':18} command={t.command or '-'}")
        return 0

    spec = resolve_tool(ns.tool)
    try:
        argv2, chosen = choose_best(spec, detect_executors(), allow_remote=ns.allow_remote)
    except ToolUnavailable as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if ns.json:
        print(json.dumps({"tool": spec.name, "ecosystem": spec.ecosystem, "chosen_executor": chosen, "argv": argv2}, indent=2))
    else:
        print(f"[executor] {chosen}", file=sys.stderr)
        print("[argv] " + shlex.join(argv2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
