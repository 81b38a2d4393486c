from __future__ import annotations

from fastapi import APIRouter, HTTPException

from price_review.core.schema import JobSnapshot
from price_review.workers.orchestrator import JobAlreadyRunning, get_job_orchestrator

router = APIRouter(prefix="/jobs", tags=["jobs"])


@router.post("", status_code=202)
async def start_job() -> JobSnapshot:
    """Start a remote pricing job; its result replaces the loaded dataset."""
    try:
        return await get_job_orchestrator().start()
    except JobAlreadyRunning as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc


@router.get("/current")
async def get_current_job() -> JobSnapshot:
    return get_job_orchestrator().snapshot()


@router.delete("/current")
async def cancel_job() -> JobSnapshot:
    return await get_job_orchestrator().cancel()
