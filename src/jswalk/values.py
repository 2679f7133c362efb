"""JavaScript value types and primitive coercions."""

import math
import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Optional, Tuple, Union


class JSUndefined:
    """JavaScript undefined value (singleton)."""

    _instance: Optional["JSUndefined"] = None

    def __new__(cls) -> "JSUndefined":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "undefined"

    def __bool__(self) -> bool:
        return False


class JSNull:
    """JavaScript null value (singleton)."""

    _instance: Optional["JSNull"] = None

    def __new__(cls) -> "JSNull":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "null"

    def __bool__(self) -> bool:
        return False


UNDEFINED = JSUndefined()
NULL = JSNull()


@dataclass
class DataDescriptor:
    """A property that stores a value."""

    value: Any
    writable: bool = True
    enumerable: bool = True
    configurable: bool = True


@dataclass
class AccessorDescriptor:
    """A property backed by getter and/or setter functions."""

    getter: Any = UNDEFINED
    setter: Any = UNDEFINED
    enumerable: bool = True
    configurable: bool = True


PropertyDescriptor = Union[DataDescriptor, AccessorDescriptor]


class JSObject:
    """JavaScript object: a descriptor table, engine-private fields and a prototype link.

    ``internal_fields`` is never reachable from property access. Exotic
    objects can put a ``get_own_property_descriptor(context, obj, name)``
    callable there to answer lookups without materialising every
    property, plus ``set_own_property`` and ``own_property_keys`` hooks.
    """

    def __init__(
        self,
        proto: Union["JSObject", JSNull],
        own_properties: Optional[Dict[str, PropertyDescriptor]] = None,
        internal_fields: Optional[Dict[str, Any]] = None,
    ):
        self.proto = proto
        self.own_properties: Dict[str, PropertyDescriptor] = (
            own_properties if own_properties is not None else {}
        )
        self.internal_fields: Dict[str, Any] = (
            internal_fields if internal_fields is not None else {}
        )

    def __repr__(self) -> str:
        return f"JSObject({list(self.own_properties)})"


# Type alias for JavaScript values
JSValue = Union[JSUndefined, JSNull, bool, float, str, JSObject]


def is_nan(value: Any) -> bool:
    """Check if value is NaN."""
    return isinstance(value, float) and math.isnan(value)


def type_tag(value: JSValue) -> str:
    """Return the variant name of a value."""
    if value is UNDEFINED:
        return "undefined"
    if value is NULL:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, JSObject):
        return "object"
    raise TypeError(f"not a JavaScript value: {value!r}")


def array_index(name: str) -> Optional[int]:
    """Return the index named by a canonical array-index string, else None."""
    if not (name.isascii() and name.isdigit()):
        return None
    index = int(name)
    if str(index) != name or index >= 0xFFFFFFFF:
        return None
    return index


def to_boolean(value: JSValue) -> bool:
    """Convert a JavaScript value to boolean."""
    if value is UNDEFINED or value is NULL:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        if is_nan(value) or value == 0:
            return False
        return True
    if isinstance(value, str):
        return len(value) > 0
    # Objects are always truthy
    return True


_DECIMAL_LITERAL = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$", re.ASCII)
_RADIX_PREFIXES = {"0x": 16, "0o": 8, "0b": 2}


def string_to_number(text: str) -> float:
    """StringToNumber: whitespace-trimmed numeric literal, else NaN."""
    s = text.strip()
    if s == "":
        return 0.0
    if s in ("Infinity", "+Infinity"):
        return math.inf
    if s == "-Infinity":
        return -math.inf
    radix = _RADIX_PREFIXES.get(s[:2].lower())
    if radix is not None:
        body = s[2:]
        if not (body.isascii() and body.isalnum()):
            return math.nan
        try:
            return float(int(body, radix))
        except ValueError:
            return math.nan
    if _DECIMAL_LITERAL.match(s):
        return float(s)
    return math.nan


def primitive_to_number(value: JSValue) -> float:
    """Convert a primitive JavaScript value to number."""
    if value is UNDEFINED:
        return math.nan
    if value is NULL:
        return 0.0
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        return string_to_number(value)
    raise TypeError(f"not a primitive value: {value!r}")


def _shortest_digits(value: float) -> Tuple[str, int]:
    """Return (digits, n) such that value == 0.digits * 10**n, digits minimal."""
    _, digits, exponent = Decimal(repr(value)).as_tuple()
    text = "".join(str(d) for d in digits)
    stripped = text.rstrip("0")
    exponent += len(text) - len(stripped)
    return stripped, len(stripped) + exponent


def number_to_string(value: float) -> str:
    """Number::toString for radix 10."""
    if math.isnan(value):
        return "NaN"
    if value == 0:
        return "0"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"

    sign = "-" if value < 0 else ""
    digits, n = _shortest_digits(abs(value))
    k = len(digits)

    if k <= n <= 21:
        return sign + digits + "0" * (n - k)
    if 0 < n <= 21:
        return sign + digits[:n] + "." + digits[n:]
    if -6 < n <= 0:
        return sign + "0." + "0" * (-n) + digits

    e = n - 1
    exponent = ("+" if e >= 0 else "-") + str(abs(e))
    if k == 1:
        return sign + digits + "e" + exponent
    return sign + digits[0] + "." + digits[1:] + "e" + exponent


def primitive_to_string(value: JSValue) -> str:
    """Convert a primitive JavaScript value to string."""
    if value is UNDEFINED:
        return "undefined"
    if value is NULL:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return number_to_string(float(value))
    if isinstance(value, str):
        return value
    raise TypeError(f"not a primitive value: {value!r}")


def to_int32(value: float) -> int:
    """Convert a number to a 32-bit signed integer."""
    if math.isnan(value) or math.isinf(value) or value == 0:
        return 0
    n = int(value) & 0xFFFFFFFF
    if n >= 0x80000000:
        n -= 0x100000000
    return n


def to_uint32(value: float) -> int:
    """Convert a number to a 32-bit unsigned integer."""
    if math.isnan(value) or math.isinf(value) or value == 0:
        return 0
    return int(value) & 0xFFFFFFFF


def js_divide(left: float, right: float) -> float:
    """IEEE-754 division without Python's ZeroDivisionError."""
    if right == 0:
        if left == 0 or math.isnan(left):
            return math.nan
        sign = math.copysign(1, left) * math.copysign(1, right)
        return math.inf if sign > 0 else -math.inf
    return left / right


def js_remainder(left: float, right: float) -> float:
    """The % operator: truncating remainder with the sign of the dividend."""
    if math.isnan(left) or math.isnan(right) or math.isinf(left) or right == 0:
        return math.nan
    if math.isinf(right):
        return left
    return math.fmod(left, right)


def js_pow(base: float, exponent: float) -> float:
    """The ** operator."""
    if math.isnan(exponent):
        return math.nan
    if exponent == 0:
        return 1.0
    if abs(base) == 1 and math.isinf(exponent):
        return math.nan
    odd_integer = exponent.is_integer() and int(exponent) % 2 == 1
    try:
        return math.pow(base, exponent)
    except OverflowError:
        return -math.inf if base < 0 and odd_integer else math.inf
    except ValueError:
        if base == 0:
            # 0 ** negative
            negative = math.copysign(1, base) < 0 and odd_integer
            return -math.inf if negative else math.inf
        # Negative base with a fractional exponent
        return math.nan
