from __future__ import annotations

from fastapi import APIRouter, HTTPException

from price_review.application import get_review_service
from price_review.core.prompt import NO_DATA_PROMPT, build_price_prompt, unit_hint
from price_review.core.schema import PriceSuggestion, RecordDetail, SelectionPayload, UnitPricePayload
from price_review.domain import RecordNotFoundError, UnknownCandidateError
from price_review.infrastructure import AIPricingError, get_ai_pricing_client

router = APIRouter(prefix="/records", tags=["records"])


@router.get("")
async def list_records() -> dict:
    return {"items": get_review_service().previews()}


@router.get("/{index}")
async def get_record(index: int) -> RecordDetail:
    try:
        return get_review_service().record_detail(index)
    except RecordNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@router.put("/{index}/selection")
async def select_candidate(index: int, payload: SelectionPayload) -> RecordDetail:
    """Select a candidate; its first unit price becomes the query price."""
    try:
        return get_review_service().select(index, payload.candidate)
    except RecordNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except UnknownCandidateError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@router.delete("/{index}/selection")
async def clear_selection(index: int) -> RecordDetail:
    try:
        return get_review_service().clear_selection(index)
    except RecordNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@router.put("/{index}/unit-price")
async def set_unit_price(index: int, payload: UnitPricePayload) -> RecordDetail:
    try:
        return get_review_service().set_unit_price(index, payload.value)
    except RecordNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


def _prompt_for(index: int) -> tuple[str, str]:
    service = get_review_service()
    try:
        record = service.record(index)
    except RecordNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return build_price_prompt(record, service.candidate_ids), unit_hint(record)


@router.get("/{index}/ai-prompt")
async def get_ai_prompt(index: int) -> dict:
    prompt, hint = _prompt_for(index)
    return {"prompt": prompt, "unit_hint": hint}


@router.post("/{index}/ai-price")
async def suggest_price(index: int) -> PriceSuggestion:
    prompt, hint = _prompt_for(index)
    if prompt == NO_DATA_PROMPT:
        raise HTTPException(status_code=400, detail="record has no data")
    try:
        return await get_ai_pricing_client().suggest(prompt, hint)
    except AIPricingError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
