"""Prompt construction for AI assisted unit prices.

The prompt is kept small on purpose: texts are compacted, numbers parsed and
the input object is serialised without whitespace.
"""
from __future__ import annotations

import json
import re
from typing import Any, Iterable, Mapping

from price_review.core.fields import QUERY_ALIASES, first_of, resolve_fields
from price_review.core.numbers import parse_number_loose, to_str
from price_review.core.projection import candidate_fields

NO_DATA_PROMPT = "No data loaded."

PRICE_SCHEMA: dict[str, Any] = {
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "preis_comp": {"type": "number"},
        "preis_ai": {"type": "number"},
        "begruendung": {"type": "string"},
    },
    "required": ["preis_comp", "preis_ai", "begruendung"],
}


def compact_text(value: Any, max_len: int = 240) -> str:
    text = re.sub(r"\s+", " ", to_str(value)).strip()
    if len(text) <= max_len:
        return text
    return text[: max(0, max_len - 1)] + "…"


def unit_hint(record: Mapping[str, Any] | None) -> str:
    query = record.get("Query") if isinstance(record, Mapping) else None
    unit = to_str(resolve_fields(query, {"unit": QUERY_ALIASES["unit"]})["unit"]).strip()
    return f"EUR/{unit}" if unit else "EUR"


def build_price_prompt(record: Mapping[str, Any] | None, candidate_ids: Iterable[str]) -> str:
    if not isinstance(record, Mapping):
        return NO_DATA_PROMPT

    query = resolve_fields(record.get("Query"), QUERY_ALIASES)
    unit = to_str(query["unit"]).strip()
    comparables = []
    for candidate_id in candidate_ids:
        fields = candidate_fields(record, candidate_id)
        comparables.append(
            {
                "r": candidate_id,
                "s": parse_number_loose(first_of(fields["relevance_score"])),
                "p": parse_number_loose(first_of(fields["unit_price"])),
                "u": to_str(fields["unit"]).strip() or None,
                "oz": to_str(fields["sequence_code"]).strip() or None,
                "k": compact_text(fields["short_text"], 140) or None,
                "t": compact_text(fields["long_text"], 200) or None,
                "m": parse_number_loose(first_of(fields["quantity"])),
            }
        )

    payload = {
        "unit": unit or None,
        "query": {
            "oz": to_str(query["sequence_code"]).strip() or None,
            "k": compact_text(query["short_text"], 140) or None,
            "t": compact_text(query["long_text"], 260) or None,
            "m": parse_number_loose(first_of(query["quantity"])),
        },
        "comps": comparables,
    }

    return "\n".join(
        [
            f"Baukalkulator. Ziel: Einheitspreis für QUERY ({unit_hint(record)}).",
            "Antworte als JSON mit: preis_comp (nur comps+scores), preis_ai (preis_comp + Fachwissen), "
            "begruendung (<=5 Sätze).",
            "Regel preis_comp: nutze nur comps mit p!=null. Wenn Scores (s) vorhanden und Σs>0: Σ(p*s)/Σs, "
            "sonst Mittelwert(p).",
            "INPUT=" + json.dumps(payload, ensure_ascii=False, separators=(",", ":")),
        ]
    )
