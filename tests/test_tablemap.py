import pytest

from houdinigeo.encoding.tablemap import pairs_to_dict, token_kind
from houdinigeo.errors import GeoFormatError


def test_pairs_keep_order_and_values():
    tokens = ["pointcount", 8, "info", {"a": 1}, "topology", ["pointref", []]]
    out = pairs_to_dict(tokens)
    assert list(out) == ["pointcount", "info", "topology"]
    assert out["pointcount"] == 8
    assert out["topology"] == ["pointref", []]


def test_numeric_keys_are_coerced_to_strings():
    assert pairs_to_dict([1, "a", 2.5, "b"]) == {"1": "a", "2.5": "b"}


def test_empty_array_gives_empty_dict():
    assert pairs_to_dict([]) == {}


def test_odd_length_names_context():
    with pytest.raises(GeoFormatError, match="topology"):
        pairs_to_dict(["pointref"], "topology")


def test_non_array_is_rejected():
    with pytest.raises(GeoFormatError, match="Object"):
        pairs_to_dict({"pointcount": 8}, "<root>")


@pytest.mark.parametrize("key", [True, None, [1], {"x": 1}])
def test_bad_keys(key):
    with pytest.raises(GeoFormatError, match="must be a string"):
        pairs_to_dict([key, 1], "info")


def test_duplicate_key():
    with pytest.raises(GeoFormatError, match="Duplicate key 'a'"):
        pairs_to_dict(["a", 1, "a", 2], "attrs")


def test_token_kind_names():
    assert token_kind(True) == "Boolean"
    assert token_kind(3) == "Integer"
    assert token_kind(3.0) == "Float"
    assert token_kind("x") == "String"
    assert token_kind([]) == "Array"
    assert token_kind({}) == "Object"
    assert token_kind(None) == "Null"
