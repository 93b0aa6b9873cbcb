"""
Unit tests for the field codec.

Tests cover:
- Scalar string forms for str/int/float/bool
- Rejection of wrongly typed values and malformed stored strings
- List order preservation and set deduplication
- Whole-record encode/decode with defaults for missing fields
"""

import math
import sys

import pytest

from kvorm.codec import (
    decode_list,
    decode_record_fields,
    decode_set,
    decode_value,
    encode_list,
    encode_record,
    encode_set,
    encode_value,
)
from kvorm.errors import ConversionError
from kvorm.schema import ModelRegistry, ScalarKind

from ..models import Account, Measurement, ModelWithSet, Person, Tagged


class TestScalarCodec:
    """Tests for single-value encoding."""

    @pytest.mark.parametrize(
        "kind, value, expected",
        [
            (ScalarKind.STRING, "Bob", "Bob"),
            (ScalarKind.STRING, "", ""),
            (ScalarKind.INTEGER, 25, "25"),
            (ScalarKind.INTEGER, -7, "-7"),
            (ScalarKind.INTEGER, 10**20, "100000000000000000000"),
            (ScalarKind.FLOAT, 2.5, "2.5"),
            (ScalarKind.FLOAT, 25.0, "25.0"),
            (ScalarKind.FLOAT, 3, "3.0"),
            (ScalarKind.FLOAT, 0.1, "0.1"),
            (ScalarKind.BOOLEAN, True, "true"),
            (ScalarKind.BOOLEAN, False, "false"),
        ],
    )
    def test_encode(self, kind, value, expected):
        """Values encode to a stable string form."""
        assert encode_value(kind, value, "f") == expected

    @pytest.mark.parametrize(
        "kind, raw, expected",
        [
            (ScalarKind.STRING, "Bob", "Bob"),
            (ScalarKind.INTEGER, "25", 25),
            (ScalarKind.INTEGER, "-7", -7),
            (ScalarKind.FLOAT, "2.5", 2.5),
            (ScalarKind.FLOAT, "25", 25.0),
            (ScalarKind.INTEGER, "0", 0),
            (ScalarKind.FLOAT, "1e+16", 1e16),
            (ScalarKind.FLOAT, "-inf", float("-inf")),
            (ScalarKind.BOOLEAN, "true", True),
            (ScalarKind.BOOLEAN, "false", False),
        ],
    )
    def test_decode(self, kind, raw, expected):
        """Stored strings decode to typed values."""
        decoded = decode_value(kind, raw, "f")
        assert decoded == expected
        assert type(decoded) is type(expected)

    def test_float_repr_round_trips(self):
        """Float encoding is exact for awkward values."""
        for value in (1 / 3, 1e-300, 123456789.123456789, -0.0, 1e16, float("inf")):
            assert decode_value(ScalarKind.FLOAT, encode_value(ScalarKind.FLOAT, value, "f"), "f") == value

    def test_float_nan(self):
        """NaN survives as NaN."""
        raw = encode_value(ScalarKind.FLOAT, float("nan"), "f")
        assert math.isnan(decode_value(ScalarKind.FLOAT, raw, "f"))

    @pytest.mark.parametrize(
        "kind, value",
        [
            (ScalarKind.STRING, 25),
            (ScalarKind.STRING, None),
            (ScalarKind.INTEGER, "25"),
            (ScalarKind.INTEGER, True),
            (ScalarKind.INTEGER, 2.5),
            (ScalarKind.FLOAT, "2.5"),
            (ScalarKind.FLOAT, False),
            (ScalarKind.BOOLEAN, 1),
            (ScalarKind.BOOLEAN, "true"),
        ],
    )
    def test_encode_wrong_type_raises(self, kind, value):
        """Wrongly typed values are not coerced."""
        with pytest.raises(ConversionError) as exc_info:
            encode_value(kind, value, "age")

        assert exc_info.value.field_name == "age"
        assert exc_info.value.target == kind.value

    @pytest.mark.skipif(
        not hasattr(sys, "get_int_max_str_digits"), reason="no int digit limit"
    )
    def test_encode_oversized_int_raises(self):
        """Ints beyond the interpreter's digit limit fail as ConversionError."""
        with pytest.raises(ConversionError, match="Cannot encode field 'age'") as exc_info:
            encode_value(ScalarKind.INTEGER, 10**5000, "age")

        assert exc_info.value.code == "CONVERSION_ERROR"

    def test_encode_int_overflowing_float_raises(self):
        """An int too large for a float fails as ConversionError."""
        with pytest.raises(ConversionError, match="Cannot encode field 'value'"):
            encode_value(ScalarKind.FLOAT, 10**400, "value")

    @pytest.mark.skipif(
        not hasattr(sys, "get_int_max_str_digits"), reason="no int digit limit"
    )
    def test_decode_oversized_int_raises(self):
        """Stored digit strings beyond int() limits fail as ConversionError."""
        with pytest.raises(ConversionError):
            decode_value(ScalarKind.INTEGER, "9" * 5000, "age")

    @pytest.mark.parametrize(
        "kind, raw",
        [
            (ScalarKind.INTEGER, "abc"),
            (ScalarKind.INTEGER, "2.5"),
            (ScalarKind.INTEGER, ""),
            (ScalarKind.INTEGER, " 25 "),
            (ScalarKind.INTEGER, "2_5"),
            (ScalarKind.INTEGER, "+5"),
            (ScalarKind.INTEGER, "007"),
            (ScalarKind.INTEGER, "-0"),
            (ScalarKind.INTEGER, "\u0661"),
            (ScalarKind.FLOAT, "two"),
            (ScalarKind.FLOAT, " 2.5"),
            (ScalarKind.FLOAT, "1_0.5"),
            (ScalarKind.FLOAT, "NaN"),
            (ScalarKind.FLOAT, "Infinity"),
            (ScalarKind.BOOLEAN, "yes"),
            (ScalarKind.BOOLEAN, ""),
            (ScalarKind.BOOLEAN, "TRUE"),
            (ScalarKind.BOOLEAN, "1"),
            (ScalarKind.BOOLEAN, "0"),
        ],
    )
    def test_decode_malformed_raises(self, kind, raw):
        """Malformed stored strings raise ConversionError with the raw value."""
        with pytest.raises(ConversionError, match="Cannot decode") as exc_info:
            decode_value(kind, raw, "age")

        assert exc_info.value.value == raw
        assert exc_info.value.code == "CONVERSION_ERROR"


class TestCollectionCodec:
    """Tests for list and set encoding."""

    @pytest.fixture
    def registry(self):
        registry = ModelRegistry()
        registry.register("tagged", Tagged)
        registry.register("modelWithSet", ModelWithSet)
        registry.register("measurement", Measurement)
        return registry

    def test_list_keeps_order_and_duplicates(self, registry):
        """List encoding keeps order and repeated values."""
        scores = registry.get("tagged").get_field("scores")

        assert encode_list(scores, [3, 1, 3]) == ["3", "1", "3"]
        assert decode_list(scores, ["3", "1", "3"]) == [3, 1, 3]

    def test_set_deduplicates(self, registry):
        """Set encoding drops duplicates, keeping first-seen order."""
        members = registry.get("modelWithSet").get_field("members")

        assert encode_set(members, ["one", "two", "three", "three"]) == ["one", "two", "three"]

    def test_list_declared_set_decodes_to_list(self, registry):
        """List-typed set fields decode to a deduplicated list."""
        members = registry.get("modelWithSet").get_field("members")

        assert decode_set(members, ["one", "three", "two"]) == ["one", "three", "two"]

    def test_set_decodes_to_container(self, registry):
        """set and frozenset fields decode to their own container."""
        tags = registry.get("tagged").get_field("tags")
        flags = registry.get("measurement").get_field("flags")

        assert decode_set(tags, ["a", "b"]) == {"a", "b"}
        decoded_flags = decode_set(flags, ["true", "false"])
        assert decoded_flags == frozenset({True, False})
        assert isinstance(decoded_flags, frozenset)

    def test_tuple_field(self, registry):
        """tuple[float, ...] fields round-trip as tuples."""
        samples = registry.get("measurement").get_field("samples")

        assert decode_list(samples, encode_list(samples, (1.5, 2.0))) == (1.5, 2.0)

    def test_non_collection_raises(self, registry):
        """A scalar where a collection is expected is a ConversionError."""
        tags = registry.get("tagged").get_field("tags")

        with pytest.raises(ConversionError):
            encode_set(tags, "abc")

    def test_bad_element_raises(self, registry):
        """One bad element fails the whole field."""
        scores = registry.get("tagged").get_field("scores")

        with pytest.raises(ConversionError):
            encode_list(scores, [1, "2"])
        with pytest.raises(ConversionError):
            decode_list(scores, ["1", "x"])


class TestRecordCodec:
    """Tests for whole-record helpers."""

    def test_encode_record(self):
        """Scalars go to the hash map, collections to their own lists."""
        meta = ModelRegistry().register("tagged", Tagged)
        record = Tagged(title="t", tags={"b", "a"}, scores=[2, 1], id="x1")

        scalars, collections = encode_record(meta, record)

        assert scalars == {"title": "t", "id": "x1"}
        assert sorted(collections["tags"]) == ["a", "b"]
        assert collections["scores"] == ["2", "1"]

    def test_encode_record_example(self):
        """Bob, 25 encodes to string fields."""
        meta = ModelRegistry().register("person", Person)

        scalars, collections = encode_record(meta, Person(name="Bob", age=25, id="p1"))

        assert scalars == {"name": "Bob", "age": "25", "id": "p1"}
        assert collections == {}

    def test_missing_scalar_uses_default(self):
        """A scalar absent from storage decodes to its default."""
        meta = ModelRegistry().register("person", Person)

        values = decode_record_fields(meta, {"name": "Bob", "age": None, "id": "p1"}, {})

        assert values == {"name": "Bob", "age": 0, "id": "p1"}

    def test_missing_scalar_without_default_raises(self):
        """A required scalar absent from storage is a ConversionError."""
        meta = ModelRegistry().register("account", Account)

        with pytest.raises(ConversionError, match="missing"):
            decode_record_fields(meta, {"email": None, "balance": "1", "id": "a1"}, {"roles": []})

    def test_missing_collection_is_empty(self):
        """An absent auxiliary key decodes to an empty collection."""
        meta = ModelRegistry().register("tagged", Tagged)

        values = decode_record_fields(meta, {"title": "t", "id": "x"}, {})

        assert values["tags"] == set()
        assert values["scores"] == []
