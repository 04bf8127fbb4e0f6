from __future__ import annotations

import re
from decimal import ROUND_FLOOR, ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Mapping, Union

from ts3perf.core.errors import ProtocolParseError

Number = Union[int, float, Decimal, str]

# sign, digits with optional fraction (or a bare fraction), optional exponent
_NUMERIC_RE = re.compile(r"^\s*[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?\s*$")


def is_numeric(value: object) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float, Decimal)):
        return True
    return isinstance(value, str) and _NUMERIC_RE.match(value) is not None


def to_decimal(value: Number) -> Decimal:
    if isinstance(value, float):
        # str() gives the shortest repr, so 2.345 stays 2.345
        return Decimal(str(value))
    try:
        return Decimal(str(value).strip())
    except InvalidOperation:
        raise ValueError(f"not a number: {value!r}") from None


def round_half_up(value: Number, places: int = 0) -> float:
    """Round half away from zero on the decimal value: 2.345 -> 2.35."""
    quantum = Decimal(1).scaleb(-places)
    return float(to_decimal(value).quantize(quantum, rounding=ROUND_HALF_UP))


def floor_int(value: Number) -> int:
    return int(to_decimal(value).to_integral_value(rounding=ROUND_FLOOR))


def require_field(fields: Mapping[str, str], key: str, message: str, *, raw: str = "") -> str:
    if key not in fields:
        raise ProtocolParseError(message, field=key, raw=raw)
    return fields[key]


def require_number(fields: Mapping[str, str], key: str, message: str, *, raw: str = "") -> str:
    """Return the numeric text of `key`; missing or non-numeric is a parse error."""
    value = require_field(fields, key, message, raw=raw)
    if not is_numeric(value):
        raise ProtocolParseError(message, field=key, raw=raw)
    return value


def require_int(fields: Mapping[str, str], key: str, message: str, *, raw: str = "") -> int:
    """Numeric field truncated toward zero."""
    return int(to_decimal(require_number(fields, key, message, raw=raw)))
