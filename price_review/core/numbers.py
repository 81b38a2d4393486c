"""Locale-aware number formatting for price and quantity cells.

Source datasets mix German (``1.234,56``) and English (``1234.56``) notation.
Everything is rendered with a comma as decimal separator.  Formatting is
fail-soft: strings that are not recognisable numbers are returned untouched.
"""
from __future__ import annotations

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

NO_VALUE = "---"

_NUMBER_PATTERN = re.compile(r"^-?\d+(\.\d+)?$")
_WHITESPACE = re.compile(r"\s")


def to_str(value: Any) -> str:
    return "" if value is None else str(value)


def is_blank(value: Any) -> bool:
    return to_str(value).strip() == ""


def _normalise(raw: str) -> str:
    text = _WHITESPACE.sub("", raw)
    if "," in text and "." in text:
        text = text.replace(".", "").replace(",", ".", 1)
    elif "," in text:
        text = text.replace(",", ".", 1)
    if text.startswith("+"):
        text = text[1:]
    return text


def _format_decimal(raw: Any, places: int) -> str:
    original = to_str(raw).strip()
    if original == "":
        return ""
    if original == NO_VALUE:
        return NO_VALUE

    normalised = _normalise(original)
    if not _NUMBER_PATTERN.match(normalised):
        return original

    try:
        quantized = Decimal(normalised).quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)
    except InvalidOperation:
        return original
    return format(quantized, "f").replace(".", ",")


def format_number(raw: Any) -> str:
    """Render ``raw`` with two decimals and a comma separator (``"7,50"``)."""

    return _format_decimal(raw, 2)


def format_score(raw: Any) -> str:
    """Render relevance scores with four decimals."""

    return _format_decimal(raw, 4)


def parse_number_loose(raw: Any) -> float | None:
    """Parse ``"12,34"``, ``"1.234,56"`` or ``"1234.56"``; ``None`` if not a number."""

    original = to_str(raw).strip()
    if not original or original == NO_VALUE:
        return None
    normalised = _normalise(original)
    if not _NUMBER_PATTERN.match(normalised):
        return None
    return float(normalised)


__all__ = [
    "NO_VALUE",
    "format_number",
    "format_score",
    "is_blank",
    "parse_number_loose",
    "to_str",
]
