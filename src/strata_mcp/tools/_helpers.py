"""Argument extraction shared by the tool categories.

Required helpers raise ``MissingArgumentError`` when the field is absent
(or null) and ``InvalidArgumentError`` when it has the wrong shape.
Optional helpers treat absent and null alike but still reject a present
value of the wrong shape. ``prefix`` qualifies the reported field name for
nested objects, e.g. ``entries[1].vector``.
"""

from __future__ import annotations

import math
from typing import Any

from strata_mcp.convert import json_to_value
from strata_mcp.errors import InvalidArgumentError, MissingArgumentError

U64_MAX = 2**64 - 1

Args = dict[str, Any]


def _require(args: Args, name: str, prefix: str) -> Any:
    value = args.get(name)
    if value is None:
        raise MissingArgumentError(f"{prefix}{name}")
    return value


def _string(value: Any, label: str) -> str:
    if not isinstance(value, str):
        raise InvalidArgumentError(label, "expected a string")
    return value


def _u64(value: Any, label: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0 or value > U64_MAX:
        raise InvalidArgumentError(label, "expected a non-negative integer")
    return value


def _number(value: Any, label: str) -> float:
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise InvalidArgumentError(label, "expected a number")
    try:
        as_float = float(value)
    except OverflowError:
        raise InvalidArgumentError(label, "Number out of range") from None
    if not math.isfinite(as_float):
        raise InvalidArgumentError(label, "Number out of range")
    return as_float


def get_string_arg(args: Args, name: str, *, prefix: str = "") -> str:
    return _string(_require(args, name, prefix), f"{prefix}{name}")


def get_optional_string(args: Args, name: str, *, prefix: str = "") -> str | None:
    value = args.get(name)
    return None if value is None else _string(value, f"{prefix}{name}")


def get_u64_arg(args: Args, name: str, *, prefix: str = "") -> int:
    return _u64(_require(args, name, prefix), f"{prefix}{name}")


def get_optional_u64(args: Args, name: str, *, prefix: str = "") -> int | None:
    value = args.get(name)
    return None if value is None else _u64(value, f"{prefix}{name}")


def get_optional_bool(args: Args, name: str, *, prefix: str = "") -> bool | None:
    value = args.get(name)
    if value is None:
        return None
    if not isinstance(value, bool):
        raise InvalidArgumentError(f"{prefix}{name}", "expected a boolean")
    return value


def get_value_arg(args: Args, name: str, *, prefix: str = "") -> Any:
    """Required arbitrary JSON value. An explicit null is a valid value."""
    if name not in args:
        raise MissingArgumentError(f"{prefix}{name}")
    return json_to_value(args[name], f"{prefix}{name}")


def get_optional_value(args: Args, name: str, *, prefix: str = "") -> Any:
    value = args.get(name)
    return None if value is None else json_to_value(value, f"{prefix}{name}")


def get_vector_arg(args: Args, name: str, *, prefix: str = "") -> list[float]:
    value = _require(args, name, prefix)
    label = f"{prefix}{name}"
    if not isinstance(value, list):
        raise InvalidArgumentError(label, "expected an array of numbers")
    return [_number(item, f"{label}[{i}]") for i, item in enumerate(value)]


def get_string_array(args: Args, name: str, *, prefix: str = "") -> list[str]:
    value = _require(args, name, prefix)
    label = f"{prefix}{name}"
    if not isinstance(value, list):
        raise InvalidArgumentError(label, "expected an array of strings")
    return [_string(item, f"{label}[{i}]") for i, item in enumerate(value)]


def get_optional_string_array(args: Args, name: str, *, prefix: str = "") -> list[str] | None:
    if args.get(name) is None:
        return None
    return get_string_array(args, name, prefix=prefix)


def get_object_array(args: Args, name: str, *, prefix: str = "") -> list[Args]:
    value = _require(args, name, prefix)
    label = f"{prefix}{name}"
    if not isinstance(value, list):
        raise InvalidArgumentError(label, "expected an array of objects")
    for i, item in enumerate(value):
        if not isinstance(item, dict):
            raise InvalidArgumentError(f"{label}[{i}]", "expected an object")
    return value


def get_optional_object_array(args: Args, name: str, *, prefix: str = "") -> list[Args] | None:
    if args.get(name) is None:
        return None
    return get_object_array(args, name, prefix=prefix)


def get_optional_object(args: Args, name: str, *, prefix: str = "") -> Args | None:
    value = args.get(name)
    if value is None:
        return None
    if not isinstance(value, dict):
        raise InvalidArgumentError(f"{prefix}{name}", "expected an object")
    return value
