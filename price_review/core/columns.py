"""Six-slot column layout for candidate values.

Candidates cite up to six source documents and carry parallel, semicolon-joined
values (one price per source, one quantity per source, ...).  The review grid
shows exactly six columns.  Values beyond the sixth are dropped silently: this
is a display-width cap and callers that need the full list must read the raw
field with :func:`price_review.core.fields.split_list` instead.
"""
from __future__ import annotations

import re
from typing import Callable, Sequence

from price_review.core.fields import split_list
from price_review.core.numbers import format_number, to_str

SLOT_COUNT = 6


def pad_slots(values: Sequence[str]) -> list[str]:
    slots = list(values[:SLOT_COUNT])
    slots.extend([""] * (SLOT_COUNT - len(slots)))
    return slots


def build_six_slots(
    values: Sequence[str],
    sources: Sequence[str] = (),
    *,
    placeholder: str = "",
    formatter: Callable[[str], str] = to_str,
    replicate_single_across_sources: bool = False,
) -> list[str]:
    """Lay ``values`` out in exactly six slots.

    With ``replicate_single_across_sources`` a single aggregate value is
    repeated once per cited source (at most six times).  Two values for five
    sources stay positional.
    """

    if not values:
        laid_out = [placeholder] if placeholder else []
    elif replicate_single_across_sources and len(values) == 1 and len(sources) > 1:
        laid_out = [values[0]] * min(len(sources), SLOT_COUNT)
    else:
        laid_out = list(values[:SLOT_COUNT])

    return pad_slots([formatter(value) for value in laid_out])


def format_semi_number_field(raw: object, *, placeholder: str = "") -> str:
    """Format each element of a semicolon list and join them for a single cell."""

    parts = split_list(raw)
    if not parts:
        return placeholder
    return "; ".join(format_number(part) for part in parts)


def strip_json_extension(name: str) -> str:
    return re.sub(r"\.json$", "", to_str(name), flags=re.IGNORECASE)


__all__ = [
    "SLOT_COUNT",
    "build_six_slots",
    "format_semi_number_field",
    "pad_slots",
    "strip_json_extension",
]
