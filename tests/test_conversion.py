import enum
from collections.abc import Sequence
from decimal import Decimal
from pathlib import Path
from typing import Optional

import pytest

from autowire.conversion import SimpleTypeConverter
from autowire.errors import ConversionFailure


class Colour(enum.Enum):
    RED = "r"
    GREEN = "g"


@pytest.fixture
def converter():
    return SimpleTypeConverter()


def test_assignable_values_pass_through_unchanged(converter):
    value = ["a"]
    assert converter.convert(value, list) is value
    assert converter.convert(value, None) is value


@pytest.mark.parametrize(
    "value, target, expected",
    [
        ("42", int, 42),
        (" 42 ", int, 42),
        (4.0, int, 4),
        ("2.5", float, 2.5),
        ("2.5", Decimal, Decimal("2.5")),
        ("yes", bool, True),
        ("Off", bool, False),
        (1, bool, True),
        (42, str, "42"),
        ("/tmp/x", Path, Path("/tmp/x")),
        ("RED", Colour, Colour.RED),
        ("g", Colour, Colour.GREEN),
        ("7", Optional[int], 7),
    ],
)
def test_scalar_conversions(converter, value, target, expected):
    assert converter.convert(value, target) == expected


@pytest.mark.parametrize(
    "value, target",
    [
        (None, int),
        ("forty-two", int),
        (4.5, int),
        ("maybe", bool),
        ("BLUE", Colour),
        (object(), str),
    ],
)
def test_failed_conversions(converter, value, target):
    with pytest.raises(ConversionFailure, match="Cannot convert value of type"):
        converter.convert(value, target)


def test_collections_convert_their_elements(converter):
    assert converter.convert(["1", "2"], list[int]) == [1, 2]
    assert converter.convert(("1", "1"), set[int]) == {1}
    assert converter.convert(["1", "2"], tuple[int, ...]) == (1, 2)
    assert converter.convert(["1", "x"], tuple[int, str]) == (1, "x")
    assert converter.convert(("1",), Sequence[int]) == [1]


def test_fixed_length_tuple_needs_the_right_number_of_elements(converter):
    with pytest.raises(ConversionFailure, match="wrong number of elements"):
        converter.convert(["1"], tuple[int, str])


def test_mappings_convert_keys_and_values(converter):
    assert converter.convert({"1": "2"}, dict[int, int]) == {1: 2}


def test_strings_are_not_split_into_collections(converter):
    with pytest.raises(ConversionFailure):
        converter.convert("abc", list[str])
