"""Normalised views over raw review records."""
from __future__ import annotations

from typing import Any, Mapping

from price_review.core.columns import (
    build_six_slots,
    format_semi_number_field,
    strip_json_extension,
)
from price_review.core.fields import (
    DEFAULT_UNIT_PRICE_KEY,
    QUERY_ALIASES,
    QUERY_PREVIEW_ALIASES,
    candidate_aliases,
    first_of,
    resolve,
    resolve_fields,
    split_list,
)
from price_review.core.numbers import NO_VALUE, format_number, format_score, is_blank, to_str
from price_review.core.schema import CandidateView, QueryPreview, QueryView


def _query_fragment(record: Mapping[str, Any] | None) -> Mapping[str, Any]:
    if not isinstance(record, Mapping):
        return {}
    query = record.get("Query")
    return query if isinstance(query, Mapping) else {}


def project_query(record: Mapping[str, Any] | None) -> QueryView:
    fields = resolve_fields(_query_fragment(record), QUERY_ALIASES)
    return QueryView(
        path=to_str(fields["path"]),
        sequence_code=to_str(fields["sequence_code"]),
        short_text=to_str(fields["short_text"]),
        long_text=to_str(fields["long_text"]),
        unit=to_str(fields["unit"]),
        quantity=format_semi_number_field(fields["quantity"]),
        unit_price=format_semi_number_field(fields["unit_price"], placeholder=NO_VALUE),
    )


def project_query_preview(record: Mapping[str, Any] | None) -> QueryPreview:
    fields = resolve_fields(_query_fragment(record), QUERY_PREVIEW_ALIASES)
    first_quantity = first_of(fields["quantity"])
    return QueryPreview(
        sequence_code=to_str(fields["sequence_code"]),
        short_text=to_str(fields["short_text"]),
        unit=to_str(fields["unit"]),
        quantity="" if is_blank(first_quantity) else format_number(first_quantity),
    )


def candidate_fields(record: Mapping[str, Any] | None, candidate_id: str) -> dict[str, Any]:
    fragment = record.get(candidate_id) if isinstance(record, Mapping) else None
    return resolve_fields(fragment, candidate_aliases(candidate_id))


def candidate_price_slots(fields: Mapping[str, Any]) -> list[str]:
    return build_six_slots(
        split_list(fields["unit_price"]),
        split_list(fields["sources"]),
        placeholder=NO_VALUE,
        formatter=format_number,
        replicate_single_across_sources=True,
    )


def project_candidate(record: Mapping[str, Any] | None, candidate_id: str) -> CandidateView:
    fields = candidate_fields(record, candidate_id)
    sources = split_list(fields["sources"])
    return CandidateView(
        candidate_id=candidate_id,
        sources=build_six_slots(sources, formatter=strip_json_extension),
        path=to_str(fields["path"]),
        sequence_code=build_six_slots(split_list(fields["sequence_code"])),
        short_text=to_str(fields["short_text"]),
        long_text=to_str(fields["long_text"]),
        unit=to_str(fields["unit"]),
        quantity=build_six_slots(
            split_list(fields["quantity"]),
            sources,
            formatter=format_number,
            replicate_single_across_sources=True,
        ),
        unit_price=candidate_price_slots(fields),
        relevance_score=format_score(first_of(fields["relevance_score"])),
    )


def adopted_unit_price(record: Mapping[str, Any] | None, candidate_id: str) -> str | None:
    """Unit price the query adopts when ``candidate_id`` is selected.

    This is the first six-slot price of the candidate, never an average.
    """

    fields = candidate_fields(record, candidate_id)
    first = build_six_slots(
        split_list(fields["unit_price"]),
        split_list(fields["sources"]),
        formatter=format_number,
        replicate_single_across_sources=True,
    )[0]
    return None if is_blank(first) else first


def get_unit_price(record: Mapping[str, Any] | None) -> str:
    return to_str(resolve(_query_fragment(record), QUERY_ALIASES["unit_price"]))


def with_unit_price(record: Mapping[str, Any] | None, value: Any) -> dict[str, Any]:
    """Return a copy of ``record`` whose query unit price is ``value``.

    The first alias key already present on the query is reused so exported
    records do not grow duplicate price keys.  A ``Query`` that is present
    but not an object is left as it is.
    """

    raw_query = record.get("Query") if isinstance(record, Mapping) else None
    if raw_query is not None and not isinstance(raw_query, Mapping):
        return dict(record)

    query = dict(_query_fragment(record))
    key = next((alias for alias in QUERY_ALIASES["unit_price"] if alias in query), DEFAULT_UNIT_PRICE_KEY)
    text = to_str(value)
    query[key] = None if is_blank(text) else text
    updated = dict(record) if isinstance(record, Mapping) else {}
    updated["Query"] = query
    return updated


__all__ = [
    "adopted_unit_price",
    "candidate_fields",
    "candidate_price_slots",
    "get_unit_price",
    "project_candidate",
    "project_query",
    "project_query_preview",
    "with_unit_price",
]
