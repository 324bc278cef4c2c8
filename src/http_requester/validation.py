"""Input validation for request timeouts, parameters and bodies.

Every check in this module is synchronous and free of I/O so that
malformed input is rejected before a request is ever dispatched.

Request bodies are classified against a closed set of value shapes
(:class:`ValueShape`); anything outside that set is not sent.
"""

import math
from collections.abc import Mapping
from enum import Enum
from typing import Any, Optional

from .exceptions import ValidationError

MAX_SAFE_INTEGER = 2**53 - 1


class _Unset:
    """Marker for an argument that was not supplied at all.

    Distinct from ``None``, which is the JSON ``null`` value.
    """

    _instance: Optional["_Unset"] = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()


class ValueShape(str, Enum):
    """Shapes a request body may take."""

    MAPPING = "mapping"
    ARRAY = "array"
    STRING = "string"
    BOOLEAN = "boolean"
    NUMBER = "number"
    NULL = "null"


def classify_shape(value: Any) -> Optional[ValueShape]:
    """Classify a value into one of the accepted body shapes.

    ``bool`` is checked before numbers since it is an ``int`` subclass.
    Non-finite floats have no JSON representation and are rejected.

    :param value: Value to classify
    :type value: Any
    :return: The matching shape, or None when the value is not serializable
    :rtype: Optional[ValueShape]
    """
    if value is None:
        return ValueShape.NULL
    if isinstance(value, bool):
        return ValueShape.BOOLEAN
    if isinstance(value, int):
        return ValueShape.NUMBER
    if isinstance(value, float):
        return ValueShape.NUMBER if math.isfinite(value) else None
    if isinstance(value, str):
        return ValueShape.STRING
    if isinstance(value, Mapping):
        return ValueShape.MAPPING
    if isinstance(value, (list, tuple)):
        return ValueShape.ARRAY
    return None


def is_positive_safe_integer(value: Any) -> bool:
    """Check that a value is an int in ``1..2**53 - 1``.

    :param value: Value to check
    :type value: Any
    :return: True if the value is a positive safe integer
    :rtype: bool
    """
    if isinstance(value, bool) or not isinstance(value, int):
        return False
    return 0 < value <= MAX_SAFE_INTEGER


def validate_timeout(value: Any, label: str = "timeout_msecs") -> None:
    """Validate a timeout in milliseconds.

    Absent values (``UNSET`` or ``None``) pass; the caller falls back
    to its default.

    :param value: Timeout to validate
    :type value: Any
    :param label: Argument name used in the error message
    :type label: str
    :raises ValidationError: If the value is not a positive safe integer
    """
    if value is UNSET or value is None:
        return
    if not is_positive_safe_integer(value):
        raise ValidationError(
            f"{label} must be a positive integer", field=label, value=value
        )


def validate_serializable(value: Any, label: str = "body") -> ValueShape:
    """Validate a value that will be sent as a JSON body.

    :param value: Body to validate
    :type value: Any
    :param label: Argument name used in the error message
    :type label: str
    :return: The shape of the value
    :rtype: ValueShape
    :raises ValidationError: If the value is missing or not serializable
    """
    if value is UNSET:
        raise ValidationError(
            "Request body must be explicitly specified", field=label
        )
    shape = classify_shape(value)
    if shape is None:
        raise ValidationError(
            f"{label} must be serializable value", field=label, value=value
        )
    return shape


def validate_params(value: Any, label: str = "params") -> None:
    """Validate query or form parameters.

    Field values are sent flat, so each must be a string, number,
    boolean or None, or a list of those (sent as a repeated key).
    Nested mappings are rejected rather than encoded as their ``repr``.

    :param value: Parameters to validate
    :type value: Any
    :param label: Argument name used in the error message
    :type label: str
    :raises ValidationError: If the value is present and not a mapping,
        or a field value cannot be encoded
    """
    if value is UNSET or value is None:
        return
    if not isinstance(value, Mapping):
        raise ValidationError(f"{label} must be a mapping", field=label, value=value)
    for key, item in value.items():
        items = item if isinstance(item, (list, tuple)) else [item]
        if not all(_is_field_primitive(v) for v in items):
            raise ValidationError(
                f"{label}[{key!r}] must be a string, number, boolean or null"
                " or a list of them",
                field=f"{label}.{key}",
                value=item,
            )


def _is_field_primitive(value: Any) -> bool:
    return value is None or isinstance(value, (str, bool, int, float))


def is_empty_params(value: Any) -> bool:
    """Whether parameters should be left out of the request entirely."""
    return value is UNSET or value is None or len(value) == 0
