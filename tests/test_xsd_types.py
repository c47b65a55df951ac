"""
Tests for value type normalization and lexical checks.
"""

import pytest

from aas_editor.utils.xsd_types import (
    is_boolean_type,
    is_numeric_type,
    normalize_value_type,
    placeholder_value,
    resolve_value_type,
    value_matches_type,
    value_type_from_data_type,
)


class TestNormalizeValueType:
    """Tests for free-form type token normalization."""

    @pytest.mark.parametrize(
        "token,expected",
        [
            ("xs:string", "xs:string"),
            ("string", "xs:string"),
            ("XSD:Integer", "xs:integer"),
            ("int", "xs:int"),
            ("bool", "xs:boolean"),
            ("float", "xs:float"),
            ("datetime", "xs:dateTime"),
            ("uri", "xs:anyURI"),
            ("  xs:unsignedLong ", "xs:unsignedLong"),
        ],
    )
    def test_known_tokens(self, token, expected):
        """Test that known tokens map onto canonical names."""
        assert normalize_value_type(token) == expected

    @pytest.mark.parametrize("token", [None, "", "   ", "xs:nonsense", "widget"])
    def test_unknown_tokens(self, token):
        """Test that unknown or blank tokens yield None."""
        assert normalize_value_type(token) is None


class TestDataTypeDerivation:
    """Tests for IEC 61360 data type to primitive type mapping."""

    @pytest.mark.parametrize(
        "data_type,expected",
        [
            ("INTEGER_MEASURE", "xs:integer"),
            ("INTEGER_COUNT", "xs:integer"),
            ("REAL_MEASURE", "xs:double"),
            ("REAL_CURRENCY", "xs:decimal"),
            ("TIMESTAMP", "xs:dateTime"),
            ("DATE", "xs:date"),
            ("TIME", "xs:time"),
            ("BOOLEAN", "xs:boolean"),
            ("IRI", "xs:anyURI"),
            ("STRING_TRANSLATABLE", "xs:string"),
            ("piece count", "xs:integer"),
            ("something else", "xs:string"),
        ],
    )
    def test_mapping(self, data_type, expected):
        """Test classification mapping including keyword fallbacks."""
        assert value_type_from_data_type(data_type) == expected

    def test_blank_data_type(self):
        """Test that a blank classification derives nothing."""
        assert value_type_from_data_type("  ") is None
        assert value_type_from_data_type(None) is None

    def test_explicit_type_wins(self):
        """Test that an explicit value type takes precedence."""
        assert resolve_value_type("xs:boolean", "REAL_MEASURE") == "xs:boolean"
        assert resolve_value_type(None, "REAL_MEASURE") == "xs:double"
        assert resolve_value_type("bogus", None) is None


class TestValueMatchesType:
    """Tests for the value/type oracle."""

    @pytest.mark.parametrize(
        "value,value_type,expected",
        [
            ("true", "xs:boolean", True),
            ("FALSE", "xs:boolean", True),
            ("1", "xs:boolean", True),
            ("yes", "xs:boolean", False),
            ("-12", "xs:integer", True),
            ("1.5", "xs:integer", False),
            ("-1", "xs:unsignedInt", False),
            ("7", "xs:nonNegativeInteger", True),
            ("3.14", "xs:double", True),
            ("-2.5e3", "xs:float", True),
            (".5", "xs:decimal", True),
            ("1,5", "xs:decimal", False),
            ("abc", "xs:double", False),
            ("anything", "xs:string", True),
            ("", "xs:integer", True),
            (None, "xs:boolean", True),
        ],
    )
    def test_oracle(self, value, value_type, expected):
        """Test literals against the lexical rules of their type."""
        assert value_matches_type(value, value_type) is expected


class TestTypeHelpers:
    """Tests for type family helpers and placeholders."""

    def test_boolean_not_numeric(self):
        """Test that booleans are not part of the numeric family."""
        assert is_boolean_type("xs:boolean")
        assert not is_numeric_type("xs:boolean")

    def test_numeric_family(self):
        """Test integer and float families are numeric."""
        assert is_numeric_type("xs:long")
        assert is_numeric_type("xs:decimal")
        assert not is_numeric_type("xs:string")

    @pytest.mark.parametrize(
        "value_type",
        ["xs:boolean", "xs:int", "xs:positiveInteger", "xs:negativeInteger", "xs:double", "xs:date", "xs:dateTime", "xs:anyURI", "xs:string", None],
    )
    def test_placeholders_match_their_type(self, value_type):
        """Test that every placeholder is non-blank and type-conforming."""
        placeholder = placeholder_value(value_type)
        assert placeholder.strip()
        assert value_matches_type(placeholder, value_type)
