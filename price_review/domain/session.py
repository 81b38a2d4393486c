"""Review session state and its transitions.

A :class:`ReviewSession` is never mutated.  Loading a file, finishing a remote
job, selecting a candidate or editing a price each produce a new session that
the application service swaps in as a whole.
"""
from __future__ import annotations

import json
import re
from dataclasses import dataclass, field, replace
from typing import Any, Iterable, Mapping, Sequence

from price_review.core.fields import SELECTION_KEYS, resolve
from price_review.core.projection import adopted_unit_price, with_unit_price

SELECTION_FIELD = "selectedCandidateKey"
DEFAULT_EXPORT_BASE = "selection"


class MalformedDatasetError(ValueError):
    """Raised when an uploaded dataset is not a JSON list of records."""


class UnknownCandidateError(ValueError):
    """Raised when a selection names a candidate slot that does not exist."""


class RecordNotFoundError(IndexError):
    """Raised when a record index is outside the loaded dataset."""


@dataclass(frozen=True, slots=True)
class ReviewSession:
    records: tuple[dict[str, Any], ...] = ()
    selection: Mapping[int, str] = field(default_factory=dict)
    input_filename: str | None = None
    status: str = ""


def selection_from_records(records: Sequence[Any], candidate_ids: Iterable[str]) -> dict[int, str]:
    """Rebuild the selection map from each record's persisted selection."""

    known = set(candidate_ids)
    selection: dict[int, str] = {}
    for index, record in enumerate(records):
        value = resolve(record, SELECTION_KEYS)
        if isinstance(value, str) and value in known:
            selection[index] = value
    return selection


def parse_dataset(raw: bytes | str) -> list[Any]:
    try:
        parsed = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise MalformedDatasetError("file is not valid JSON") from exc
    if not isinstance(parsed, list):
        raise MalformedDatasetError("JSON must be a list of records, e.g. [{Query, Rank1, ...}, ...]")
    return parsed


def replace_records(
    session: ReviewSession,
    records: Sequence[Any],
    candidate_ids: Iterable[str],
    *,
    input_filename: str | None = None,
    status: str = "",
) -> ReviewSession:
    snapshot = tuple(dict(record) if isinstance(record, Mapping) else record for record in records)
    return ReviewSession(
        records=snapshot,
        selection=selection_from_records(snapshot, candidate_ids),
        input_filename=input_filename if input_filename is not None else session.input_filename,
        status=status,
    )


def load_session(raw: bytes | str, filename: str | None, candidate_ids: Iterable[str]) -> ReviewSession:
    records = parse_dataset(raw)
    return replace_records(
        ReviewSession(),
        records,
        candidate_ids,
        input_filename=filename,
        status=f"Input loaded ({len(records)} rows).",
    )


def _check_index(session: ReviewSession, index: int) -> None:
    if index < 0 or index >= len(session.records):
        raise RecordNotFoundError(f"record {index} does not exist")


def _with_record(session: ReviewSession, index: int, record: dict[str, Any]) -> tuple[dict[str, Any], ...]:
    return tuple(record if position == index else row for position, row in enumerate(session.records))


def set_unit_price(session: ReviewSession, index: int, value: Any) -> ReviewSession:
    _check_index(session, index)
    record = with_unit_price(session.records[index], value)
    return replace(session, records=_with_record(session, index, record))


def select_candidate(
    session: ReviewSession,
    index: int,
    candidate_id: str,
    candidate_ids: Iterable[str],
) -> ReviewSession:
    """Record the choice and adopt the candidate's first price as the query price."""

    _check_index(session, index)
    if candidate_id not in set(candidate_ids):
        raise UnknownCandidateError(f"unknown candidate {candidate_id!r}")

    selection = dict(session.selection)
    selection[index] = candidate_id
    price = adopted_unit_price(session.records[index], candidate_id)
    updated = set_unit_price(session, index, price)
    return replace(updated, selection=selection)


def clear_selection(session: ReviewSession, index: int) -> ReviewSession:
    _check_index(session, index)
    selection = {key: value for key, value in session.selection.items() if key != index}
    return replace(session, selection=selection)


def annotated_records(session: ReviewSession) -> list[dict[str, Any]]:
    output: list[dict[str, Any]] = []
    for index, record in enumerate(session.records):
        row = dict(record) if isinstance(record, Mapping) else {}
        row.pop("selectedRankKey", None)
        row[SELECTION_FIELD] = session.selection.get(index)
        output.append(row)
    return output


def export_filename(input_filename: str | None, extension: str = "json") -> str:
    base = re.sub(r"\.json$", "", input_filename or "", flags=re.IGNORECASE) or DEFAULT_EXPORT_BASE
    return f"{base}-selection.{extension}"


def export_dataset(session: ReviewSession) -> bytes:
    return json.dumps(annotated_records(session), ensure_ascii=False, indent=2).encode("utf-8")


__all__ = [
    "MalformedDatasetError",
    "RecordNotFoundError",
    "ReviewSession",
    "SELECTION_FIELD",
    "UnknownCandidateError",
    "annotated_records",
    "clear_selection",
    "export_dataset",
    "export_filename",
    "load_session",
    "parse_dataset",
    "replace_records",
    "select_candidate",
    "selection_from_records",
    "set_unit_price",
]
