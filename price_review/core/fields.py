"""Alias-tolerant field lookups for heterogeneous review records.

Producers of the review datasets do not agree on key spelling: the same value
may arrive as ``query-preis``, ``query_preis``, ``preis`` or ``unitPrice``.
Each logical field therefore carries an ordered alias list and all reads go
through :func:`resolve`.
"""
from __future__ import annotations

from typing import Any, Iterable, Mapping

from price_review.core.numbers import is_blank, to_str

DEFAULT_UNIT_PRICE_KEY = "query-preis"

QUERY_ALIASES: dict[str, tuple[str, ...]] = {
    "path": ("query_path", "query-path", "path", "queryPath"),
    "sequence_code": ("query-oz", "query_oz", "oz", "queryOz"),
    "short_text": ("query-kurztext", "query_kurztext", "kurztext", "queryKurztext"),
    "long_text": ("query_text", "query-text", "text", "queryText"),
    "unit": ("query-einheit", "query_einheit", "einheit", "queryEinheit"),
    "quantity": ("query-menge", "query_menge", "menge", "queryMenge"),
    "unit_price": (DEFAULT_UNIT_PRICE_KEY, "query_preis", "preis", "unit_price", "unitPrice"),
}

# The list view only trusts the explicitly prefixed spellings.
QUERY_PREVIEW_ALIASES: dict[str, tuple[str, ...]] = {
    "sequence_code": ("query-oz", "query_oz", "oz"),
    "short_text": ("query-kurztext", "query_kurztext", "queryKurztext"),
    "unit": ("query-einheit", "query_einheit", "queryEinheit"),
    "quantity": ("query-menge", "query_menge", "queryMenge"),
}

SELECTION_KEYS: tuple[str, ...] = ("selectedCandidateKey", "selectedRankKey")


def candidate_aliases(candidate_id: str) -> dict[str, tuple[str, ...]]:
    """Alias table for one candidate slot, e.g. ``rank2-preis`` for ``Rank2``."""

    prefix = (candidate_id or "").lower()
    return {
        "sources": (f"{prefix}-quellen", f"{prefix}_quellen", "quellen", "sources", "source"),
        "path": (f"{prefix}_path", f"{prefix}-path", "path"),
        "sequence_code": (f"{prefix}-oz", f"{prefix}_oz", "oz"),
        "short_text": (f"{prefix}-kurztext", f"{prefix}_kurztext", "kurztext"),
        "long_text": (f"{prefix}_text", f"{prefix}-text", "text"),
        "unit": (f"{prefix}-einheit", f"{prefix}_einheit", "einheit"),
        "quantity": (f"{prefix}-menge", f"{prefix}_menge", "menge"),
        "unit_price": (f"{prefix}-preis", f"{prefix}_preis", "preis", "unit_price", "unitPrice"),
        "relevance_score": (f"{prefix}_score", f"{prefix}-score", "score", "Score"),
    }


def resolve(fragment: Mapping[str, Any] | None, keys: Iterable[str]) -> Any:
    """Return the first non-blank value among ``keys``; ``""`` when none matches.

    ``"0"`` is a real value and resolves.  Missing or non-mapping fragments
    resolve to ``""`` as well.
    """

    if not isinstance(fragment, Mapping):
        return ""
    for key in keys:
        value = fragment.get(key)
        if value is not None and not is_blank(value):
            return value
    return ""


def resolve_fields(fragment: Mapping[str, Any] | None, table: Mapping[str, Iterable[str]]) -> dict[str, Any]:
    return {name: resolve(fragment, keys) for name, keys in table.items()}


def split_list(raw: Any) -> list[str]:
    """Split a semicolon-joined value, dropping empty parts."""

    text = to_str(raw)
    if is_blank(text):
        return []
    return [part.strip() for part in text.split(";") if part.strip()]


def first_of(raw: Any) -> str:
    parts = split_list(raw)
    if parts:
        return parts[0]
    return to_str(raw).strip()


__all__ = [
    "DEFAULT_UNIT_PRICE_KEY",
    "QUERY_ALIASES",
    "QUERY_PREVIEW_ALIASES",
    "SELECTION_KEYS",
    "candidate_aliases",
    "first_of",
    "resolve",
    "resolve_fields",
    "split_list",
]
