"""Shared fixtures for the skill output validator tests."""

import json
import sys
from pathlib import Path
from typing import Any, Callable

import pytest

PROJECT_ROOT = Path(__file__).resolve().parent.parent
SCRIPTS_DIR = PROJECT_ROOT / "scripts"

# The validator modules are flat scripts; make them importable without installing
if str(SCRIPTS_DIR) not in sys.path:
    sys.path.insert(0, str(SCRIPTS_DIR))

from sov_config import RuntimeSettings, ValidatorConfig  # noqa: E402


@pytest.fixture
def settings() -> RuntimeSettings:
    """Settings that never reach for remote runners."""
    return RuntimeSettings(tool_timeout=10.0, allow_remote=False)


@pytest.fixture
def make_config() -> Callable[..., ValidatorConfig]:
    """Build a config that only uses in-process providers unless overridden."""

    def _make(**overrides: Any) -> ValidatorConfig:
        values: dict[str, Any] = {
            "skill_name": "demo-skill",
            "skill_version": "1.2.3",
            "json_tools": ("python",),
            "schema_tools": ("jsonschema",),
        }
        values.update(overrides)
        return ValidatorConfig(**values)

    return _make


@pytest.fixture
def write_json(tmp_path: Path) -> Callable[[str, Any], Path]:
    """Write a JSON value (or raw text) into tmp_path and return the path."""

    def _write(name: str, content: Any) -> Path:
        path = tmp_path / name
        text = content if isinstance(content, str) else json.dumps(content)
        path.write_text(text, encoding="utf-8")
        return path

    return _write
