"""
Value <-> character conversion.

Everything on the paper is characters. Numbers are written into a fixed
field of ``CHARS_PER_FLOAT`` columns, right-justified, the way you would
line figures up in a column by hand:

    98765432.0  ->  "  98765432"
    0.5         ->  "       0.5"
    -3          ->  "        -3"

Integral floats drop the fractional part. Non-integral floats use the
shortest positional form and are rounded to fewer decimals when they
would overflow the field. A value whose integral part cannot fit is
rejected with ConversionError rather than truncated, so a later read of
the field never yields a silently different number.

Reading goes the other way: strip the surrounding blanks and parse.
"""

from __future__ import annotations
import math
from decimal import Decimal
from typing import Sequence, Union

CHARS_PER_FLOAT = 10

Value = Union[int, float, str, Sequence[str]]


class ConversionError(ValueError):
    """Characters do not form the requested value (or a value does not fit)."""
    def __init__(self, message: str, text: str = ""):
        self.text = text
        super().__init__(message)


# ──────────────────────────────────────────────
# Value -> characters
# ──────────────────────────────────────────────

def _positional(value: float) -> str:
    """Shortest round-tripping text, never in exponent notation."""
    text = repr(value)
    if "e" in text or "E" in text:
        text = format(Decimal(text), "f")
    return text


def _fit_fraction(value: float, width: int) -> str:
    text = _positional(value)
    if len(text) <= width:
        return text
    for decimals in range(max(width - 2, 0), -1, -1):
        text = f"{value:.{decimals}f}"
        if "." in text:
            text = text.rstrip("0").rstrip(".")
        if text == "-0":
            text = "0"
        if len(text) <= width:
            return text
    return text


def format_number(value: Union[int, float], width: int = CHARS_PER_FLOAT) -> str:
    """Render a number right-justified in a field of ``width`` characters."""
    if isinstance(value, bool):
        raise ConversionError(f"Booleans are not numbers on paper: {value!r}")
    if isinstance(value, int):
        text = str(value)
    elif math.isnan(value):
        text = "NaN"
    elif math.isinf(value):
        text = "inf" if value > 0 else "-inf"
    elif value.is_integer():
        text = str(int(value))
    else:
        text = _fit_fraction(value, width)

    if len(text) > width:
        raise ConversionError(
            f"{value!r} does not fit in a {width}-character field", text)
    return text.rjust(width)


def to_chars(value: Value) -> str:
    """Characters written to the paper for ``value``."""
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return format_number(value)
    if isinstance(value, (list, tuple)):
        if not all(isinstance(c, str) and len(c) == 1 for c in value):
            raise TypeError(f"Character sequences must hold single characters: {value!r}")
        return "".join(value)
    raise TypeError(f"Cannot write {type(value).__name__} to paper: {value!r}")


# ──────────────────────────────────────────────
# Characters -> value
# ──────────────────────────────────────────────

def from_chars(chars: Union[str, Sequence[str]], kind: type = str):
    """Interpret characters read from the paper as ``kind``.

    ``str`` joins the characters, ``list`` returns them one per item,
    ``int`` and ``float`` trim surrounding whitespace and parse.
    """
    text = "".join(chars)
    if kind is str:
        return text
    if kind is list:
        return list(text)
    if kind is int or kind is float:
        stripped = text.strip()
        # Python's parsers accept digit separators, handwriting does not
        if not stripped or "_" in stripped:
            raise ConversionError(f"Cannot read {kind.__name__} from {text!r}", text)
        try:
            return kind(stripped)
        except ValueError as e:
            raise ConversionError(f"Cannot read {kind.__name__} from {text!r}", text) from e
    raise TypeError(f"Unsupported conversion target: {kind!r}")


def trimmed(chars: str) -> str:
    """Characters with every whitespace character removed."""
    return "".join(c for c in chars if not c.isspace())
