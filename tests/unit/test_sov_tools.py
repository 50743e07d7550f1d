#!/usr/bin/env python3
"""Tests for sov_tools.py - executor detection and tool resolution."""

import subprocess
import sys

import pytest

import sov_tools
from sov_tools import build_argv_for_executor, choose_best, resolve_tool, run_tool
from sov_validation_common import ToolUnavailable


def _installed(monkeypatch: pytest.MonkeyPatch, *commands: str) -> None:
    """Pretend only ``commands`` are on PATH."""
    monkeypatch.setattr(sov_tools, "which", lambda cmd: f"/usr/bin/{cmd}" if cmd in commands else None)


class TestChooseBest:
    """Tests for executor selection."""

    def test_direct_install_preferred(self, monkeypatch: pytest.MonkeyPatch) -> None:
        _installed(monkeypatch, "ajv", "npx")
        argv, executor = choose_best(resolve_tool("ajv"), {"npx": True}, allow_remote=True)
        assert (argv, executor) == (["ajv"], "direct")

    def test_remote_runner_only_when_allowed(self, monkeypatch: pytest.MonkeyPatch) -> None:
        _installed(monkeypatch, "npx")
        spec = resolve_tool("ajv")
        with pytest.raises(ToolUnavailable):
            choose_best(spec, {"npx": True}, allow_remote=False)
        argv, executor = choose_best(spec, {"npx": True}, allow_remote=True)
        assert executor == "npx"
        assert argv == ["npx", "--yes", "-p", "ajv-cli", "ajv"]

    def test_python_tool_uses_uvx(self, monkeypatch: pytest.MonkeyPatch) -> None:
        _installed(monkeypatch, "uvx")
        argv, executor = choose_best(resolve_tool("check-jsonschema"), {"uvx": True}, allow_remote=True)
        assert executor == "uvx"
        assert argv == ["uvx", "check-jsonschema"]

    def test_native_tool_never_remote(self, monkeypatch: pytest.MonkeyPatch) -> None:
        _installed(monkeypatch, "npx", "uvx")
        with pytest.raises(ToolUnavailable, match="jq"):
            choose_best(resolve_tool("jq"), {"npx": True, "uvx": True}, allow_remote=True)

    def test_ecosystem_mismatch_returns_none(self) -> None:
        assert build_argv_for_executor("uvx", resolve_tool("ajv"), {"uvx": True}) is None
        assert build_argv_for_executor("npx", resolve_tool("check-jsonschema"), {"npx": True}) is None

    def test_unknown_tool_is_native(self) -> None:
        spec = resolve_tool("yajl")
        assert spec.ecosystem == "native"
        assert spec.command == "yajl"


class TestRunTool:
    """Tests for run_tool."""

    def test_captures_exit_code_and_output(self) -> None:
        proc = run_tool([sys.executable, "-c", "import sys; print('hi'); sys.exit(3)"], timeout=30)
        assert proc.returncode == 3
        assert proc.stdout.strip() == "hi"

    def test_timeout_is_unavailable(self) -> None:
        with pytest.raises(ToolUnavailable, match="timed out"):
            run_tool([sys.executable, "-c", "import time; time.sleep(5)"], timeout=0.2)

    def test_missing_binary_is_unavailable(self) -> None:
        with pytest.raises(ToolUnavailable, match="could not be started"):
            run_tool(["definitely-not-a-real-binary-sov"], timeout=5)


def test_cli_db_lists_tools() -> None:
    result = subprocess.run(
        [sys.executable, sov_tools.__file__, "db"], capture_output=True, text=True, timeout=30
    )
    assert result.returncode == 0
    assert "check-jsonschema" in result.stdout
    assert "ajv-cli" in result.stdout
