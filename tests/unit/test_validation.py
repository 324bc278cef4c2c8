"""Unit tests for request input validation."""

import math
from collections import OrderedDict
from types import MappingProxyType

import pytest

from http_requester.exceptions import ValidationError
from http_requester.validation import (
    MAX_SAFE_INTEGER,
    UNSET,
    ValueShape,
    classify_shape,
    is_empty_params,
    validate_params,
    validate_serializable,
    validate_timeout,
)


@pytest.mark.parametrize(
    "value,shape",
    [
        ({"a": 1}, ValueShape.MAPPING),
        (MappingProxyType({"a": 1}), ValueShape.MAPPING),
        ([1, 2], ValueShape.ARRAY),
        ((1, 2), ValueShape.ARRAY),
        ("text", ValueShape.STRING),
        ("", ValueShape.STRING),
        (True, ValueShape.BOOLEAN),
        (False, ValueShape.BOOLEAN),
        (0, ValueShape.NUMBER),
        (42, ValueShape.NUMBER),
        (1.5, ValueShape.NUMBER),
        (None, ValueShape.NULL),
    ],
)
def test_classify_shape_accepted(value, shape):
    assert classify_shape(value) is shape


@pytest.mark.parametrize(
    "value", [object(), {1, 2}, b"bytes", math.nan, math.inf, lambda: None]
)
def test_classify_shape_rejected(value):
    assert classify_shape(value) is None


@pytest.mark.parametrize("value", [0, -1, 1.5, "100", True, MAX_SAFE_INTEGER + 1, []])
def test_validate_timeout_rejects(value):
    with pytest.raises(ValidationError) as exc:
        validate_timeout(value)
    assert "timeout_msecs must be a positive integer" in str(exc.value)
    assert exc.value.field == "timeout_msecs"


@pytest.mark.parametrize("value", [1, 30000, MAX_SAFE_INTEGER, None, UNSET])
def test_validate_timeout_accepts(value):
    validate_timeout(value)


def test_validate_timeout_uses_label():
    with pytest.raises(ValidationError, match="config.timeout_msecs"):
        validate_timeout(0, label="config.timeout_msecs")


def test_validate_serializable_requires_explicit_value():
    with pytest.raises(ValidationError, match="explicitly specified"):
        validate_serializable(UNSET)


def test_validate_serializable_rejects_unknown_shape():
    with pytest.raises(ValidationError, match="serializable"):
        validate_serializable(object())


@pytest.mark.parametrize("value", [{"a": 1}, [1], "s", False, 42, None])
def test_validate_serializable_returns_shape(value):
    assert validate_serializable(value) is classify_shape(value)


@pytest.mark.parametrize("value", [[1, 2], ("a",), "a=1", 5, True])
def test_validate_params_rejects_non_mapping(value):
    with pytest.raises(ValidationError, match="params must be a mapping"):
        validate_params(value)


@pytest.mark.parametrize(
    "value",
    [
        None,
        UNSET,
        {},
        {"a": 1},
        OrderedDict(a=1),
        {"s": "x", "f": 1.5, "b": False, "n": None, "tags": ["a", 2]},
    ],
)
def test_validate_params_accepts(value):
    validate_params(value)


@pytest.mark.parametrize(
    "value", [{"a": {"b": 1}}, {"a": [{"b": 1}]}, {"a": object()}, {"a": [[1]]}]
)
def test_validate_params_rejects_nested_values(value):
    with pytest.raises(ValidationError, match=r"params\['a'\] must be a string") as exc:
        validate_params(value)
    assert exc.value.field == "params.a"


def test_is_empty_params():
    assert is_empty_params(None)
    assert is_empty_params(UNSET)
    assert is_empty_params({})
    assert not is_empty_params({"a": 1})


def test_unset_is_a_falsy_singleton():
    assert not UNSET
    assert repr(UNSET) == "UNSET"
    assert type(UNSET)() is UNSET
    assert UNSET is not None


def test_validation_error_is_type_error():
    with pytest.raises(TypeError):
        validate_params([1])
