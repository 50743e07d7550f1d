#!/usr/bin/env python3
"""Tests for sov_assertions.py - dotted paths and field/enum/term checks."""

import pytest

from sov_assertions import (
    MISSING,
    PathSyntaxError,
    check_enum,
    check_enums,
    check_recommended_fields,
    check_required_fields,
    check_skill_name,
    check_terms,
    count_array_fields,
    get_path,
    is_empty,
    parse_path,
)

DOCUMENT = {
    "skillName": "env-dependency-extractor",
    "status": "success",
    "output": {
        "summary": {"totalEnvVars": 0, "healthScore": 87, "flag": False},
        "envVars": [{"name": "DATABASE_URL"}, {"name": "REDIS_URL"}],
        "qualityGates": {"tier": "gold"},
        "notes": "",
    },
}


class TestPaths:
    """Tests for the typed dotted-path accessor."""

    def test_leading_dot_is_optional(self) -> None:
        assert get_path(DOCUMENT, ".output.qualityGates.tier") == "gold"
        assert get_path(DOCUMENT, "output.qualityGates.tier") == "gold"

    def test_array_indexing_both_forms(self) -> None:
        assert get_path(DOCUMENT, "output.envVars[1].name") == "REDIS_URL"
        assert get_path(DOCUMENT, "output.envVars.0.name") == "DATABASE_URL"

    def test_missing_segments_return_sentinel(self) -> None:
        assert get_path(DOCUMENT, "output.summary.nope") is MISSING
        assert get_path(DOCUMENT, "output.envVars[5]") is MISSING
        assert get_path(DOCUMENT, "status.deeper") is MISSING

    def test_root_path_returns_document(self) -> None:
        assert get_path(DOCUMENT, ".") is DOCUMENT

    @pytest.mark.parametrize("bad", ["a..b", "a[x]", "a.", "a[1"])
    def test_malformed_paths_raise(self, bad: str) -> None:
        with pytest.raises(PathSyntaxError):
            parse_path(bad)

    def test_is_empty_keeps_falsy_scalars(self) -> None:
        assert not is_empty(0)
        assert not is_empty(False)
        assert is_empty("")
        assert is_empty([])
        assert is_empty({})
        assert is_empty(None)
        assert is_empty(MISSING)


class TestRequiredFields:
    """Tests for check_required_fields."""

    def test_nested_field_present(self) -> None:
        results = check_required_fields({"a": {"b": 1}}, ["a.b"])
        assert [r.status for r in results] == ["pass"]

    def test_nested_field_absent(self) -> None:
        results = check_required_fields({"a": {}}, ["a.b"])
        assert results[0].status == "fail"
        assert "Missing required field: a.b" in results[0].message

    def test_zero_counts_as_present(self) -> None:
        results = check_required_fields(DOCUMENT, [".output.summary.totalEnvVars", "output.summary.flag"])
        assert all(r.status == "pass" for r in results)

    def test_every_field_is_checked(self) -> None:
        """A failing field does not stop the remaining fields from being checked."""
        results = check_required_fields(DOCUMENT, ["missing.one", "output.notes", "status"])
        assert [r.status for r in results] == ["fail", "fail", "pass"]
        assert "empty" in results[1].message


class TestEnum:
    """Tests for check_enum."""

    def test_allowed_value_passes(self) -> None:
        assert check_enum({"status": "pass"}, ".status", ("pass", "fail", "skip")).status == "pass"

    def test_disallowed_value_fails(self) -> None:
        result = check_enum({"status": "maybe"}, ".status", ("pass", "fail", "skip"))
        assert result.status == "fail"
        assert "maybe" in result.message

    def test_missing_value_fails(self) -> None:
        result = check_enum({}, ".status", ("pass",))
        assert result.status == "fail"
        assert result.message.startswith("Missing status")

    def test_object_value_fails(self) -> None:
        assert check_enum({"status": {"x": 1}}, "status", ("pass",)).status == "fail"

    def test_check_enums_runs_all(self) -> None:
        results = check_enums(DOCUMENT, {".status": ("success",), ".output.qualityGates.tier": ("silver",)})
        assert [r.status for r in results] == ["pass", "fail"]


class TestTerms:
    """Tests for check_terms."""

    def test_case_insensitive_match(self) -> None:
        results = check_terms('{"framework": "XCTest on iOS"}', ["xctest", "IOS"])
        assert all(r.status == "pass" for r in results)

    def test_missing_term_fails(self) -> None:
        results = check_terms("{}", ["VoiceOver"])
        assert results[0].status == "fail"
        assert results[0].message == "Missing expected term: VoiceOver"

    def test_forbidden_term(self) -> None:
        results = check_terms('{"note": "TODO later"}', must_not_contain=["todo", "lorem"])
        assert [r.status for r in results] == ["fail", "pass"]


class TestSkillSpecific:
    """Tests for skill name, recommended fields and array counts."""

    def test_skill_name_matches(self) -> None:
        assert check_skill_name(DOCUMENT, "env-dependency-extractor").status == "pass"

    def test_skill_name_mismatch_reports_both(self) -> None:
        result = check_skill_name(DOCUMENT, "ios-ui-testing")
        assert result.status == "fail"
        assert "expected 'ios-ui-testing', got 'env-dependency-extractor'" in result.message

    def test_recommended_missing_is_warning(self) -> None:
        results, warnings = check_recommended_fields(DOCUMENT, ["output.summary.healthScore", "output.summary.congruenceScore"])
        assert [r.status for r in results] == ["pass"]
        assert warnings == ["Missing recommended field: output.summary.congruenceScore"]

    def test_recommended_missing_fails_in_strict_mode(self) -> None:
        results, warnings = check_recommended_fields(DOCUMENT, ["output.summary.congruenceScore"], strict=True)
        assert results[0].status == "fail"
        assert warnings == []

    def test_array_counts(self) -> None:
        results, notes = count_array_fields(DOCUMENT, ["output.envVars", "output.dependencies", "output.qualityGates"])
        assert [r.status for r in results] == ["pass", "fail"]
        assert "2 items" in results[0].message
        assert notes == ["output.dependencies absent: 0 items"]
