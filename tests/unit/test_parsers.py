"""JSON helper tests with property-based testing."""

import json

import pytest
from hypothesis import given, strategies as st

from genui.core import (
    JSONParseError,
    decode_json,
    extract_json,
    safe_json_dumps,
    strip_code_fence,
    validate_json_depth,
    validate_json_size,
)


def test_extract_json_clean():
    """Test extracting clean JSON."""
    text = '{"root": "a", "elements": {}}'
    assert extract_json(text) == {"root": "a", "elements": {}}


def test_extract_json_with_markdown():
    """Test extracting JSON from markdown code blocks."""
    text = '''Here is the UI:
```json
{"key": "a", "type": "Text"}
```
Done!'''
    assert extract_json(text) == {"key": "a", "type": "Text"}


def test_extract_json_array():
    """Test top-level arrays are extracted."""
    text = 'records: [{"key": "a"}, {"key": "b"}] end'
    assert extract_json(text) == [{"key": "a"}, {"key": "b"}]


def test_extract_json_repairs_trailing_comma():
    """Test slightly malformed JSON is repaired."""
    result = extract_json('{"key": "a", "props": {"title": "x",},}')
    assert result["key"] == "a"
    assert result["props"] == {"title": "x"}


def test_extract_json_invalid():
    """Test error on text without JSON."""
    with pytest.raises(JSONParseError):
        extract_json("This has no JSON", repair=False)


def test_extract_json_no_repair():
    """Test repair can be disabled."""
    with pytest.raises(JSONParseError):
        extract_json('{"key": "a",}', repair=False)


def test_strip_code_fence():
    """Test fences are removed."""
    assert strip_code_fence('```json\n{"a": 1}\n```').strip() == '{"a": 1}'


def test_decode_json_error():
    """Test decode errors are wrapped."""
    with pytest.raises(JSONParseError) as exc:
        decode_json('{"a": ')
    assert exc.value.original is not None


def test_validate_json_size():
    """Test size limit is enforced in bytes."""
    validate_json_size("abc", 3)
    with pytest.raises(JSONParseError):
        validate_json_size("é" * 2, 3)


def test_validate_json_depth():
    """Test depth limit."""
    validate_json_depth({"a": {"b": [1]}}, max_depth=3)
    with pytest.raises(JSONParseError):
        validate_json_depth({"a": {"b": {"c": {"d": 1}}}}, max_depth=2)


def test_safe_json_dumps_with_indent():
    """Test JSON serialization with indentation."""
    result = safe_json_dumps({"title": "Test"}, indent=2)
    assert json.loads(result) == {"title": "Test"}
    assert "\n" in result


@given(st.dictionaries(st.text(min_size=1), st.integers(min_value=-(2**53), max_value=2**53)))
def test_json_roundtrip(data):
    """Property test: dumps then decode returns the same document."""
    assert decode_json(safe_json_dumps(data)) == data
