#!/usr/bin/env python3
"""Tests for sov_self_test.py - the built-in smoke test."""

import pytest

import sov_self_test
from sov_config import RuntimeSettings
from sov_self_test import CASES, print_self_test, run_self_test


def test_all_cases_pass(settings: RuntimeSettings) -> None:
    results = run_self_test(settings)
    assert len(results) == len(CASES)
    failed = [f"{r.name}: {r.detail}" for r in results if not r.passed]
    assert failed == []


def test_crashing_case_is_reported_not_raised(monkeypatch: pytest.MonkeyPatch, settings: RuntimeSettings) -> None:
    def boom(fixtures_dir, s):
        raise KeyError("fixture")

    monkeypatch.setattr(sov_self_test, "CASES", [("Broken primitive", boom)])
    results = run_self_test(settings)
    assert len(results) == 1
    assert not results[0].passed
    assert "KeyError" in results[0].detail


def test_print_self_test_exit_code(capsys: pytest.CaptureFixture[str], settings: RuntimeSettings) -> None:
    results = run_self_test(settings)
    assert print_self_test(results) == 0
    out = capsys.readouterr().out
    assert f"Result: {len(results)}/{len(results)} passed" in out

    results[0].passed = False
    assert print_self_test(results) == 1
