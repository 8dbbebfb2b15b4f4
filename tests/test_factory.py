"""
Tests for DecisionFactory.

These tests verify:
    - Type tags resolve to decision kinds, aliases included
    - Numeric ranges, option sets and cardinalities are validated
    - Factories are independent objects
"""

import pytest
from dopler.exceptions import UnsupportedRangeOrCardinality, UnsupportedType
from dopler.factory import DecisionFactory
from dopler.model import Cardinality, DecisionModel, DecisionType, EnumOptions, NumberRange


@pytest.fixture
def factory():
    return DecisionFactory()


class TestTypeResolution:
    """Test type tag dispatch."""

    @pytest.mark.parametrize("tag,expected", [
        ("BOOLEAN", DecisionType.BOOLEAN),
        ("Boolean", DecisionType.BOOLEAN),
        ("enum", DecisionType.ENUM),
        ("Number", DecisionType.NUMBER),
        ("string", DecisionType.STRING),
    ])
    def test_canonical_tags(self, factory, tag, expected):
        """Canonical tags match in any case."""
        assert factory.resolve_type(tag) is expected

    def test_dopler_aliases(self, factory):
        """DOPLER names Enumeration and Double are accepted."""
        assert factory.resolve_type("Enumeration") is DecisionType.ENUM
        assert factory.resolve_type("double") is DecisionType.NUMBER

    def test_unknown_tag(self, factory):
        """An unknown tag is reported with its value."""
        with pytest.raises(UnsupportedType) as exc:
            factory.resolve_type("choice")
        assert exc.value.value == "choice"

    def test_aliases_can_be_disabled(self):
        """An empty alias table accepts only canonical tags."""
        factory = DecisionFactory(type_aliases={})
        with pytest.raises(UnsupportedType):
            factory.resolve_type("Enumeration")

    def test_alias_to_unknown_type(self):
        """Aliases must point at a known decision type."""
        with pytest.raises(ValueError):
            DecisionFactory(type_aliases={"choice": "SET"})

    def test_create_decision(self, factory):
        """create_decision builds a decision of the resolved type."""
        d = factory.create_decision("enum", "Color")
        assert d.id == "Color"
        assert d.type is DecisionType.ENUM

    def test_typed_constructors(self, factory):
        """Each typed constructor builds its own kind."""
        assert factory.create_boolean_decision("a").type is DecisionType.BOOLEAN
        assert factory.create_enum_decision("b").type is DecisionType.ENUM
        assert factory.create_number_decision("c").type is DecisionType.NUMBER
        assert factory.create_string_decision("d").type is DecisionType.STRING

    def test_create_model(self, factory):
        """A new model is empty and inline."""
        model = factory.create_model(name="m")
        assert isinstance(model, DecisionModel)
        assert model.source == "inline"
        assert model.size() == 0


class TestNumberRanges:
    """Test numeric range construction."""

    def test_number_range_two_tokens(self, factory):
        """Two tokens give a closed interval."""
        assert factory.create_number_range(["0", "10"]) == NumberRange(0.0, 10.0)

    def test_number_range_single_token(self, factory):
        """One token gives the degenerate interval."""
        assert factory.create_number_range(["7.5"]) == NumberRange(7.5, 7.5)

    def test_number_range_negative(self, factory):
        """Signed bounds are kept."""
        assert factory.create_number_range(["-5", "-1"]) == NumberRange(-5.0, -1.0)

    def test_number_range_exponent(self, factory):
        """Exponent notation is a plain decimal."""
        assert factory.create_number_range(["1e2"]) == NumberRange(100.0, 100.0)

    def test_number_range_malformed(self, factory):
        """Words are not numbers."""
        with pytest.raises(UnsupportedRangeOrCardinality):
            factory.create_number_range(["zero", "10"])

    @pytest.mark.parametrize("token", ["1_0", "1__0", "١٠", "1.2.3", "0x10"])
    def test_number_range_rejects_non_decimal_spellings(self, factory, token):
        """Digit separators, non-ASCII digits and hex are rejected."""
        with pytest.raises(UnsupportedRangeOrCardinality) as exc:
            factory.create_number_range([token, "20"])
        assert exc.value.value == token

    def test_number_range_too_many_tokens(self, factory):
        """At most two bounds."""
        with pytest.raises(UnsupportedRangeOrCardinality):
            factory.create_number_range(["1", "2", "3"])

    def test_number_range_no_tokens(self, factory):
        """At least one bound."""
        with pytest.raises(UnsupportedRangeOrCardinality):
            factory.create_number_range([])

    @pytest.mark.parametrize("token", ["inf", "nan", "1e999"])
    def test_number_range_not_finite(self, factory, token):
        """Infinite and NaN bounds are rejected."""
        with pytest.raises(UnsupportedRangeOrCardinality):
            factory.create_number_range(["0", token])


class TestOptionsAndCardinality:
    """Test option sets and cardinality construction."""

    def test_enum_options(self, factory):
        """Options keep their order."""
        assert factory.create_enum_options(["red", "green", "blue"]) == EnumOptions(("red", "green", "blue"))

    def test_enum_options_duplicates(self, factory):
        """Duplicate options are rejected."""
        with pytest.raises(UnsupportedRangeOrCardinality):
            factory.create_enum_options(["red", "red"])

    def test_cardinality(self, factory):
        """A valid min:max pair."""
        assert factory.create_cardinality(1, 3) == Cardinality(1, 3)

    def test_cardinality_invalid(self, factory):
        """min above max is rejected."""
        with pytest.raises(UnsupportedRangeOrCardinality):
            factory.create_cardinality(2, 1)

    def test_factories_are_independent(self):
        """Two factories with different aliases coexist."""
        a = DecisionFactory(type_aliases={"flag": "BOOLEAN"})
        b = DecisionFactory(type_aliases={})
        assert a.resolve_type("flag") is DecisionType.BOOLEAN
        with pytest.raises(UnsupportedType):
            b.resolve_type("flag")
