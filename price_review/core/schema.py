from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

JobStateName = Literal["idle", "starting", "polling", "fetching", "done", "error"]


class QueryView(BaseModel):
    path: str = ""
    sequence_code: str = ""
    short_text: str = ""
    long_text: str = ""
    unit: str = ""
    quantity: str = ""
    unit_price: str = ""


class QueryPreview(BaseModel):
    sequence_code: str = ""
    short_text: str = ""
    unit: str = ""
    quantity: str = ""


class CandidateView(BaseModel):
    candidate_id: str
    sources: list[str] = Field(default_factory=list)
    path: str = ""
    sequence_code: list[str] = Field(default_factory=list)
    short_text: str = ""
    long_text: str = ""
    unit: str = ""
    quantity: list[str] = Field(default_factory=list)
    unit_price: list[str] = Field(default_factory=list)
    relevance_score: str = ""


class RecordDetail(BaseModel):
    index: int
    query: QueryView
    candidates: list[CandidateView]
    selected_candidate: str | None = None
    unit_price_input: str = ""


class JobSnapshot(BaseModel):
    state: JobStateName = "idle"
    job_id: str | None = None
    status_url: str | None = None
    result_url: str | None = None
    status_text: str | None = None
    progress: float | None = None
    message: str | None = None
    record_count: int | None = None


class SelectionPayload(BaseModel):
    candidate: str


class UnitPricePayload(BaseModel):
    value: str | None = None


class PriceSuggestion(BaseModel):
    comparable_price: str = ""
    ai_price: str = ""
    rationale: str = ""
    unit_hint: str = ""
