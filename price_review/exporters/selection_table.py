from __future__ import annotations

from io import BytesIO
from typing import Iterable

import pandas as pd

from price_review.core.projection import get_unit_price, project_candidate, project_query
from price_review.domain.session import ReviewSession

COLUMNS = [
    "index",
    "sequence_code",
    "short_text",
    "unit",
    "quantity",
    "selected_candidate",
    "candidate_sequence_code",
    "candidate_sources",
    "unit_price",
]


def selection_frame(session: ReviewSession, candidate_ids: Iterable[str]) -> pd.DataFrame:
    known = set(candidate_ids)
    rows = []
    for index, record in enumerate(session.records):
        query = project_query(record)
        selected = session.selection.get(index)
        candidate = project_candidate(record, selected) if selected in known else None
        rows.append(
            {
                "index": index + 1,
                "sequence_code": query.sequence_code,
                "short_text": query.short_text,
                "unit": query.unit,
                "quantity": query.quantity,
                "selected_candidate": selected or "",
                "candidate_sequence_code": "; ".join(v for v in candidate.sequence_code if v) if candidate else "",
                "candidate_sources": "; ".join(v for v in candidate.sources if v) if candidate else "",
                "unit_price": get_unit_price(record),
            }
        )
    return pd.DataFrame(rows, columns=COLUMNS)


def export_csv(session: ReviewSession, candidate_ids: Iterable[str]) -> bytes:
    # Prices use a decimal comma, so the column separator is a semicolon.
    return selection_frame(session, candidate_ids).to_csv(index=False, sep=";").encode("utf-8-sig")


def export_xlsx(session: ReviewSession, candidate_ids: Iterable[str]) -> bytes:
    buffer = BytesIO()
    selection_frame(session, candidate_ids).to_excel(buffer, index=False, sheet_name="Selection", engine="openpyxl")
    return buffer.getvalue()
