"""Unit tests for model response parsing."""

import pytest

from docintake.core.errors import ExtractionError
from docintake.extractors.parsing import parse_model_json, strip_code_fences


class TestParseModelJson:
    """Tests for the three-step JSON recovery."""

    def test_direct_json(self):
        assert parse_model_json('{"firstName": "Ana"}') == {"firstName": "Ana"}

    def test_markdown_fences(self):
        text = """```json
{"firstName": "Ana", "lastName": "Muster"}
```"""
        assert parse_model_json(text) == {"firstName": "Ana", "lastName": "Muster"}

    def test_bare_fences(self):
        assert parse_model_json('```\n{"a": 1}\n```') == {"a": 1}

    def test_prose_around_object(self):
        text = 'Here is the data you asked for:\n{"firstName": "Ana", "nested": {"x": 1}}\nHope this helps!'
        assert parse_model_json(text) == {"firstName": "Ana", "nested": {"x": 1}}

    def test_prose_and_fences(self):
        text = 'Sure!\n```json\n{"firstName": "Ana"}\n```\nDone.'
        assert parse_model_json(text) == {"firstName": "Ana"}

    @pytest.mark.parametrize("text", [None, "", "   \n"])
    def test_empty_response(self, text):
        with pytest.raises(ExtractionError, match="Empty"):
            parse_model_json(text)

    @pytest.mark.parametrize("text", [
        "not valid json",
        "{broken: json",
        "[1, 2, 3]",
        "Result: {not json at all}",
    ])
    def test_unparseable(self, text):
        with pytest.raises(ExtractionError, match="Invalid JSON"):
            parse_model_json(text)


def test_strip_code_fences():
    assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'
