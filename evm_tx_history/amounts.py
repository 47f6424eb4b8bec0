"""
Exact amount conversion.

Base-unit amounts arrive as hex strings and can exceed 2**64, so they are
decoded to Python ints and scaled by moving the decimal point in the digit
string. No float arithmetic touches an amount.
"""

from decimal import Decimal, InvalidOperation
from typing import Optional, Union


NATIVE_DECIMALS = 18
DEFAULT_TOKEN_DECIMALS = 18
MAX_DECIMALS = 255


def parse_hex_int(value: str) -> int:
    """
    Decode a 0x-prefixed hex integer ("0x" alone is zero).

    Strings without the prefix are read as base 10.

    Raises:
        ValueError: If the string is not an integer literal
    """
    if not isinstance(value, str):
        raise ValueError(f"expected a hex string, got {type(value).__name__}")
    text = value.strip()
    if text[:2].lower() == "0x":
        body = text[2:]
        return int(body, 16) if body else 0
    return int(text, 10)


def parse_decimals(value: Optional[str], default: int = DEFAULT_TOKEN_DECIMALS) -> int:
    """
    Decode a hex decimals field, falling back to default when absent.

    Raises:
        ValueError: If the value is not hex or is out of range
    """
    if value is None or value == "":
        return default
    decimals = parse_hex_int(value)
    if decimals < 0 or decimals > MAX_DECIMALS:
        raise ValueError(f"decimals out of range: {decimals}")
    return decimals


def to_decimal_string(raw: int, decimals: int) -> str:
    """
    Render a base-unit integer as an exact decimal string.

    to_decimal_string(10**18, 18) == "1"
    to_decimal_string(1500000, 6) == "1.5"
    to_decimal_string(0, 18) == "0"
    """
    if decimals < 0:
        raise ValueError(f"decimals must be non-negative: {decimals}")

    sign = "-" if raw < 0 else ""
    digits = str(abs(raw))
    if decimals == 0:
        return "0" if raw == 0 else f"{sign}{digits}"

    padded = digits.rjust(decimals + 1, "0")
    integer_part = padded[:-decimals]
    fractional_part = padded[-decimals:].rstrip("0")

    if fractional_part:
        return f"{sign}{integer_part}.{fractional_part}"
    if integer_part == "0":
        return "0"
    return f"{sign}{integer_part}"


def hex_to_decimal_string(hex_value: Optional[str], decimals: int) -> str:
    """Convert an optional hex base-unit amount; absent means zero."""
    if not hex_value:
        return "0"
    return to_decimal_string(parse_hex_int(hex_value), decimals)


def strip_trailing_zeros(text: str) -> str:
    """
    Strip trailing zeros from the fractional part only.

    "1.500" -> "1.5", "2.0" -> "2", "100" -> "100".
    """
    if "." not in text:
        return text or "0"
    text = text.rstrip("0").rstrip(".")
    if text in ("", "-", "-0"):
        return "0"
    return text


def approximate_to_decimal_string(value: Union[int, float, None]) -> str:
    """
    Render the provider's float approximation without exponent notation.

    The shortest repr of the float is taken as the intended value, so 1e-05
    becomes "0.00001" rather than the binary expansion.

    Raises:
        ValueError: If the value is not a finite number
    """
    if value is None or isinstance(value, bool):
        return "0"
    try:
        amount = Decimal(repr(value)) if isinstance(value, float) else Decimal(value)
    except (InvalidOperation, TypeError) as e:
        raise ValueError(f"not a number: {value!r}") from e
    if not amount.is_finite():
        raise ValueError(f"not a finite number: {value!r}")
    if amount == 0:
        return "0"
    return strip_trailing_zeros(format(amount, "f"))
