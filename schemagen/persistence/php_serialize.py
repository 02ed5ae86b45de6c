"""
PHP serialize() / unserialize() for WordPress meta values.

Grammar (byte-exact with PHP):

    null     N;
    bool     b:0;  b:1;
    int      i:<digits>;
    float    d:<shortest round-trip digits>;   d:1;  d:0.1;  d:1.0E-5;  d:1.0E+25;
    string   s:<utf-8 byte length>:"<raw bytes>";
    array    a:<count>:{<key><value>...}     keys are int or string

Python lists encode as index-keyed arrays, dicts keep insertion order.
The decoder returns a list for arrays keyed exactly 0..n-1 and a dict
otherwise. It is used for diff and rollback inspection only; values are
written to the store exactly as encoded.
"""
import math
from decimal import Decimal
from typing import Any, Tuple, Union

from schemagen.errors import PHPSerializationError


# =============================================================================
# Encoder
# =============================================================================

def _encode_float(value: float) -> str:
    if math.isnan(value):
        return "d:NAN;"
    if math.isinf(value):
        return "d:INF;" if value > 0 else "d:-INF;"
    return f"d:{_format_float(value)};"


# serialize_precision=-1 switches to exponent form outside this decimal-point range
_FIXED_DECPT_MIN = -3
_FIXED_DECPT_MAX = 17


def _format_float(value: float) -> str:
    """Format a finite float the way PHP 7.1+ serialize() does."""
    sign = "-" if math.copysign(1.0, value) < 0 else ""
    _, digit_tuple, exponent = Decimal(repr(abs(value))).as_tuple()
    digits = "".join(map(str, digit_tuple))
    decpt = len(digits) + exponent
    digits = digits.rstrip("0") or "0"
    if digits == "0":
        return f"{sign}0"

    if decpt < _FIXED_DECPT_MIN or decpt > _FIXED_DECPT_MAX:
        power = decpt - 1
        return f"{sign}{digits[0]}.{digits[1:] or '0'}E{'-' if power < 0 else '+'}{abs(power)}"
    if decpt <= 0:
        return f"{sign}0.{'0' * -decpt}{digits}"
    if decpt >= len(digits):
        return f"{sign}{digits}{'0' * (decpt - len(digits))}"
    return f"{sign}{digits[:decpt]}.{digits[decpt:]}"


def _encode_key(key: Any) -> str:
    if isinstance(key, bool):
        raise PHPSerializationError(f"Unsupported array key type: {type(key).__name__}")
    if isinstance(key, int):
        return f"i:{key};"
    if isinstance(key, str):
        return f's:{len(key.encode("utf-8"))}:"{key}";'
    raise PHPSerializationError(f"Unsupported array key type: {type(key).__name__}")


def php_serialize(value: Any) -> str:
    """
    Serialize a JSON-like Python value.

    Raises:
        PHPSerializationError: value (or a nested value) has no PHP equivalent
    """
    if value is None:
        return "N;"
    if isinstance(value, bool):
        return f"b:{1 if value else 0};"
    if isinstance(value, int):
        return f"i:{value};"
    if isinstance(value, float):
        return _encode_float(value)
    if isinstance(value, str):
        return f's:{len(value.encode("utf-8"))}:"{value}";'
    if isinstance(value, (list, tuple)):
        body = "".join(f"i:{i};{php_serialize(item)}" for i, item in enumerate(value))
        return f"a:{len(value)}:{{{body}}}"
    if isinstance(value, dict):
        body = "".join(_encode_key(k) + php_serialize(v) for k, v in value.items())
        return f"a:{len(value)}:{{{body}}}"
    raise PHPSerializationError(f"Cannot serialize value of type {type(value).__name__}")


# =============================================================================
# Decoder
# =============================================================================

class _Reader:
    """Cursor over the serialized bytes."""

    def __init__(self, data: bytes):
        self.data = data
        self.pos = 0

    def fail(self, message: str):
        raise PHPSerializationError(f"{message} at offset {self.pos}")

    def expect(self, token: bytes):
        end = self.pos + len(token)
        if self.data[self.pos:end] != token:
            self.fail(f"Expected {token.decode()!r}")
        self.pos = end

    def read_until(self, delimiter: bytes) -> bytes:
        end = self.data.find(delimiter, self.pos)
        if end < 0:
            self.fail(f"Missing {delimiter.decode()!r}")
        chunk = self.data[self.pos:end]
        self.pos = end + len(delimiter)
        return chunk

    def read_int(self, delimiter: bytes) -> int:
        raw = self.read_until(delimiter)
        try:
            return int(raw)
        except ValueError:
            self.fail(f"Invalid integer {raw!r}")

    def value(self) -> Any:
        if self.pos >= len(self.data):
            self.fail("Unexpected end of data")
        tag = self.data[self.pos:self.pos + 1]

        if tag == b"N":
            self.expect(b"N;")
            return None
        if tag == b"b":
            self.expect(b"b:")
            raw = self.read_until(b";")
            if raw not in (b"0", b"1"):
                self.fail(f"Invalid boolean {raw!r}")
            return raw == b"1"
        if tag == b"i":
            self.expect(b"i:")
            return self.read_int(b";")
        if tag == b"d":
            self.expect(b"d:")
            raw = self.read_until(b";").decode("ascii", errors="replace")
            if raw in ("INF", "-INF", "NAN"):
                return float(raw.replace("NAN", "nan").replace("INF", "inf"))
            try:
                return float(raw)
            except ValueError:
                self.fail(f"Invalid float {raw!r}")
        if tag == b"s":
            self.expect(b"s:")
            length = self.read_int(b":")
            self.expect(b'"')
            end = self.pos + length
            if end > len(self.data):
                self.fail("String length exceeds data")
            raw = self.data[self.pos:end]
            self.pos = end
            self.expect(b'";')
            try:
                return raw.decode("utf-8")
            except UnicodeDecodeError:
                self.fail("String is not valid UTF-8")
        if tag == b"a":
            self.expect(b"a:")
            count = self.read_int(b":")
            self.expect(b"{")
            items = []
            for _ in range(count):
                key = self.value()
                if not isinstance(key, (int, str)) or isinstance(key, bool):
                    self.fail("Array keys must be int or string")
                items.append((key, self.value()))
            self.expect(b"}")
            if [k for k, _ in items] == list(range(count)):
                return [v for _, v in items]
            return dict(items)

        self.fail(f"Unsupported type tag {tag!r}")


def php_unserialize(data: Union[str, bytes]) -> Any:
    """
    Parse a PHP serialized value.

    Raises:
        PHPSerializationError: malformed input or trailing data
    """
    raw = data.encode("utf-8") if isinstance(data, str) else bytes(data)
    reader = _Reader(raw)
    value = reader.value()
    if reader.pos != len(raw):
        reader.fail("Trailing data")
    return value


def is_serialized(data: Union[str, bytes, None]) -> bool:
    """Cheap check used before attempting to decode a stored meta value."""
    if not data:
        return False
    head = data[:2] if isinstance(data, str) else data[:2].decode("ascii", errors="ignore")
    return head in ("N;", "b:", "i:", "d:", "s:", "a:")


def try_unserialize(data: Union[str, bytes, None]) -> Tuple[bool, Any]:
    """(True, value) on success, (False, raw) when the value is not PHP serialized."""
    if not is_serialized(data):
        return False, data
    try:
        return True, php_unserialize(data)
    except PHPSerializationError:
        return False, data
