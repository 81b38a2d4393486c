"""Application service layer for the review session."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Sequence

from price_review.core.projection import (
    get_unit_price,
    project_candidate,
    project_query,
    project_query_preview,
)
from price_review.core.schema import RecordDetail
from price_review.core.settings import get_settings
from price_review.domain import RecordNotFoundError, ReviewSession
from price_review.domain import session as transitions
from price_review.exporters.selection_table import export_csv, export_xlsx
from price_review.infrastructure import InMemorySessionRepository, SessionRepository

logger = logging.getLogger(__name__)

EXPORT_MEDIA_TYPES = {
    "json": "application/json",
    "csv": "text/csv",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}


@dataclass(slots=True)
class ExportedFile:
    filename: str
    content: bytes
    media_type: str


class ReviewService:
    """Coordinates loading, reviewing and exporting the dataset."""

    def __init__(self, repository: SessionRepository, candidate_ids: Sequence[str] | None = None) -> None:
        self._repository = repository
        self._candidate_ids = tuple(candidate_ids) if candidate_ids else None

    @property
    def candidate_ids(self) -> tuple[str, ...]:
        return self._candidate_ids or get_settings().candidate_ids

    # ------------------------------------------------------------------
    # session lifecycle
    # ------------------------------------------------------------------
    def session(self) -> ReviewSession:
        return self._repository.get()

    def overview(self) -> dict[str, object]:
        session = self.session()
        return {
            "input_filename": session.input_filename,
            "records": len(session.records),
            "selected": len(session.selection),
            "selection": {str(index): value for index, value in sorted(session.selection.items())},
            "candidates": list(self.candidate_ids),
            "status": session.status,
        }

    def load(self, raw: bytes | str, filename: str | None) -> ReviewSession:
        session = transitions.load_session(raw, filename, self.candidate_ids)
        logger.info("Loaded %s with %d records", filename or "dataset", len(session.records))
        return self._repository.replace(session)

    def apply_job_result(self, records: Sequence[Any]) -> ReviewSession:
        """Swap in the records produced by a remote job."""

        session = transitions.replace_records(
            self.session(),
            records,
            self.candidate_ids,
            status=f"Job result loaded ({len(records)} rows).",
        )
        return self._repository.replace(session)

    # ------------------------------------------------------------------
    # review
    # ------------------------------------------------------------------
    def previews(self) -> list[dict[str, object]]:
        session = self.session()
        return [
            {
                "index": index,
                "selected_candidate": session.selection.get(index),
                **project_query_preview(record).model_dump(),
            }
            for index, record in enumerate(session.records)
        ]

    def record_detail(self, index: int) -> RecordDetail:
        session = self.session()
        if index < 0 or index >= len(session.records):
            raise RecordNotFoundError(f"record {index} does not exist")
        record = session.records[index]
        return RecordDetail(
            index=index,
            query=project_query(record),
            candidates=[project_candidate(record, candidate_id) for candidate_id in self.candidate_ids],
            selected_candidate=session.selection.get(index),
            unit_price_input=get_unit_price(record),
        )

    def record(self, index: int) -> Any:
        session = self.session()
        if index < 0 or index >= len(session.records):
            raise RecordNotFoundError(f"record {index} does not exist")
        return session.records[index]

    def select(self, index: int, candidate_id: str) -> RecordDetail:
        session = transitions.select_candidate(self.session(), index, candidate_id, self.candidate_ids)
        self._repository.replace(session)
        return self.record_detail(index)

    def clear_selection(self, index: int) -> RecordDetail:
        self._repository.replace(transitions.clear_selection(self.session(), index))
        return self.record_detail(index)

    def set_unit_price(self, index: int, value: Any) -> RecordDetail:
        self._repository.replace(transitions.set_unit_price(self.session(), index, value))
        return self.record_detail(index)

    # ------------------------------------------------------------------
    # export
    # ------------------------------------------------------------------
    def export_json(self) -> bytes:
        return transitions.export_dataset(self.session())

    def export(self, fmt: str = "json") -> ExportedFile:
        if fmt not in EXPORT_MEDIA_TYPES:
            raise ValueError(f"unsupported export format {fmt!r}")
        session = self.session()
        if fmt == "csv":
            content = export_csv(session, self.candidate_ids)
        elif fmt == "xlsx":
            content = export_xlsx(session, self.candidate_ids)
        else:
            content = self.export_json()
        filename = transitions.export_filename(session.input_filename, fmt)
        logger.info("Exported %d records as %s", len(session.records), filename)
        return ExportedFile(filename=filename, content=content, media_type=EXPORT_MEDIA_TYPES[fmt])

    # ------------------------------------------------------------------
    # testing helpers
    # ------------------------------------------------------------------
    def reset(self) -> None:
        self._repository.reset()


_repository = InMemorySessionRepository()
_service = ReviewService(_repository)


def get_review_service() -> ReviewService:
    """Return the singleton review service for the process."""

    return _service


def reset_review_state() -> None:
    """Reset the in-memory session (used in tests)."""

    _service.reset()
