"""Tests for prompt template and JSON schema loading."""

import json
from pathlib import Path

import pytest

from enhancer.analysis.analyzer import Prompt
from enhancer.analysis.exceptions import AnalysisError
from enhancer.analysis.prompt_loader import load_json_schema, load_prompt_template


class TestLoadPromptTemplate:
    def test_every_bundled_template_takes_the_schema(self) -> None:
        for prompt in Prompt:
            assert "{json_schema}" in load_prompt_template(prompt.value)

    def test_loads_custom_template(self, tmp_path: Path) -> None:
        (tmp_path / "custom.txt").write_text("Hello {json_schema}")
        assert load_prompt_template("custom", tmp_path) == "Hello {json_schema}"

    def test_missing_file_raises_error(self) -> None:
        with pytest.raises(AnalysisError, match="Failed to load prompt"):
            load_prompt_template("missing", Path("/nonexistent"))


class TestLoadJsonSchema:
    def test_every_bundled_schema_is_valid_json(self) -> None:
        for prompt in Prompt:
            schema = json.loads(load_json_schema(prompt.value))
            assert schema["type"] == "object"

    def test_loads_custom_schema(self, tmp_path: Path) -> None:
        (tmp_path / "custom_schema.json").write_text('{"type": "object"}')
        assert load_json_schema("custom", tmp_path) == '{"type": "object"}'

    def test_missing_file_raises_error(self) -> None:
        with pytest.raises(AnalysisError, match="Failed to load JSON schema"):
            load_json_schema("missing", Path("/nonexistent"))
