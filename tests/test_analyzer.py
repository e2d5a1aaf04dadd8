"""
Local schema inference tests.
"""

import json
import pytest

from dataforge.core.analyzer import (
    analyze_json_structure_local,
    attach_sample_values,
    determine_strategy,
    infer_field_type,
    parse_sample,
)
from dataforge.core.config import AnalysisResult, FieldConfig, FieldType, GenerationStrategy
from dataforge.core.errors import ParseError


class TestParseSample:
    """Test sample parsing"""

    def test_malformed_json(self):
        with pytest.raises(ParseError):
            parse_sample('{"id": 1,')

    def test_valid_json(self):
        assert parse_sample('[{"a": 1}]') == [{"a": 1}]

    @pytest.mark.parametrize("text", [
        '{"rating": NaN}',
        '{"x": Infinity}',
        '[{"x": -Infinity}]',
    ])
    def test_non_standard_constants(self, text):
        """NaN and Infinity are not JSON"""
        with pytest.raises(ParseError):
            parse_sample(text)

    def test_local_analysis_rejects_nan(self):
        with pytest.raises(ParseError):
            analyze_json_structure_local('{"rating": NaN}')


class TestDetermineStrategy:
    """Test the per-value heuristics"""

    @pytest.mark.parametrize("key,value,expected", [
        ("id", 7, GenerationStrategy.INCREMENT),
        ("order_id", 7, GenerationStrategy.INCREMENT),
        ("userId", 7, GenerationStrategy.INCREMENT),
        ("score_id", 4.5, GenerationStrategy.RANDOM_FLOAT),
        ("login_count", 42, GenerationStrategy.RANDOM_INT),
        ("rating", 4.5, GenerationStrategy.RANDOM_FLOAT),
        ("is_active", True, GenerationStrategy.ENUM),
        ("ref", "123e4567-e89b-12d3-a456-426614174000", GenerationStrategy.UUID),
        ("day", "2024-01-05", GenerationStrategy.DATE),
        ("updated_at", "March 3, 2024", GenerationStrategy.DATE),
        ("contact_email", "a@b.c", GenerationStrategy.EMAIL),
        ("author", "Ann", GenerationStrategy.NAME),
        ("user_name", "Ann", GenerationStrategy.NAME),
        ("mobile_phone", "555", GenerationStrategy.PHONE),
        ("home_city", "Paris", GenerationStrategy.ADDRESS),
        ("label_time", "soon", GenerationStrategy.AI_CONTEXT),
        ("status_at", "now", GenerationStrategy.AI_CONTEXT),
        ("due_date", "Today", GenerationStrategy.AI_CONTEXT),
        ("role", "admin", GenerationStrategy.AI_CONTEXT),
        ("note", None, GenerationStrategy.STATIC),
        ("matrix.0", [1, 2], GenerationStrategy.STATIC),
    ])
    def test_strategy_table(self, key, value, expected):
        strategy, _, _ = determine_strategy(key, value)
        assert strategy == expected

    def test_increment_options(self):
        _, options, _ = determine_strategy("id", 1001)
        assert options.start == 1001
        assert options.step == 1

    def test_integer_bounds(self):
        """Max bound is twice the sample, or 100 when that is zero"""
        _, options, _ = determine_strategy("count", 42)
        assert (options.min, options.max) == (0, 84)

        _, options, _ = determine_strategy("count", 0)
        assert options.max == 100

    def test_null_and_boolean_options(self):
        _, options, _ = determine_strategy("note", None)
        assert options.static_value == "null"

        _, options, _ = determine_strategy("flag", False)
        assert options.values == ["true", "false"]

    def test_date_format(self):
        _, options, _ = determine_strategy("created_at", "2023-10-01")
        assert options.format == "YYYY-MM-DD"

    def test_ai_context_description(self):
        _, _, description = determine_strategy("role", "admin")
        assert description == "Local: Random String"


class TestInferFieldType:
    """Test leaf type classification"""

    @pytest.mark.parametrize("value,expected", [
        ("x", FieldType.STRING),
        (1, FieldType.NUMBER),
        (1.5, FieldType.NUMBER),
        (True, FieldType.BOOLEAN),
        (None, FieldType.NULL),
        ([1], FieldType.ARRAY),
    ])
    def test_types(self, value, expected):
        assert infer_field_type(value) == expected


class TestAnalyzeLocal:
    """Test analyze_json_structure_local"""

    def test_id_and_rating_scenario(self):
        """id becomes increment from 1001, rating a float in [0, 9]"""
        result = analyze_json_structure_local('{"id": 1001, "rating": 4.5}')
        id_field, rating = result.fields

        assert id_field.key == "id"
        assert id_field.strategy == GenerationStrategy.INCREMENT
        assert id_field.options.start == 1001
        assert id_field.options.step == 1

        assert rating.strategy == GenerationStrategy.RANDOM_FLOAT
        assert rating.options.min == 0
        assert rating.options.max == 9
        assert rating.options.precision == 2
        assert result.original_sample_count == 1

    def test_list_sample_uses_first_item(self):
        sample = json.dumps([{"user": {"name": "Ann"}}, {"other": 1}])
        result = analyze_json_structure_local(sample)
        assert [f.key for f in result.fields] == ["user.name"]
        assert result.original_sample_count == 2

    def test_fields_keep_sample_value(self):
        result = analyze_json_structure_local('{"role": "admin", "flag": true, "gone": null}')
        values = {f.key: f.sample_value for f in result.fields}
        assert values == {"role": "admin", "flag": True, "gone": None}
        assert all(f.has_sample_value() for f in result.fields)

    def test_descriptions(self):
        result = analyze_json_structure_local('{"role": "admin", "n": 3}')
        assert result.fields[0].description == "Local: Random String"
        assert result.fields[1].description == "Detected locally"

    def test_empty_list_sample(self):
        result = analyze_json_structure_local("[]")
        assert result.fields == []
        assert result.original_sample_count == 0

    def test_parse_error(self):
        with pytest.raises(ParseError):
            analyze_json_structure_local("not json")


class TestAttachSampleValues:
    """Test sample value attachment for delegated results"""

    def test_attaches_matching_keys(self):
        result = AnalysisResult(fields=[
            FieldConfig(key="items.0.count", type=FieldType.NUMBER, strategy=GenerationStrategy.RANDOM_INT),
            FieldConfig(key="missing", type=FieldType.STRING, strategy=GenerationStrategy.NAME),
        ])
        attach_sample_values(result, '[{"items": [{"count": 3}]}]')

        assert result.fields[0].sample_value == 3
        assert result.fields[0].has_sample_value()
        assert not result.fields[1].has_sample_value()

    def test_bad_sample_is_ignored(self):
        result = AnalysisResult(fields=[])
        assert attach_sample_values(result, "{oops") is result
