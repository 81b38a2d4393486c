from __future__ import annotations

from urllib.parse import quote

from fastapi import APIRouter, File, HTTPException, Query, UploadFile
from fastapi.responses import Response

from price_review.application import get_review_service
from price_review.domain import MalformedDatasetError
from price_review.domain.session import export_filename
from price_review.infrastructure import WebhookError, get_webhook_client

router = APIRouter(prefix="/dataset", tags=["dataset"])


def _attachment(filename: str) -> dict[str, str]:
    quoted = quote(filename, safe="")
    if quoted == filename:
        return {"Content-Disposition": f'attachment; filename="{filename}"'}
    # Header values are latin-1; non-ASCII names travel in filename*.
    fallback = filename.encode("ascii", "replace").decode("ascii").replace("\\", "_").replace('"', "_")
    return {"Content-Disposition": f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quoted}"}


@router.get("")
async def get_dataset() -> dict:
    return get_review_service().overview()


@router.post("")
async def load_dataset(file: UploadFile = File(...)) -> dict:
    """Replace the session with an uploaded JSON dataset."""
    try:
        raw = await file.read()
    finally:
        await file.close()

    service = get_review_service()
    try:
        service.load(raw, file.filename)
    except MalformedDatasetError as exc:
        raise HTTPException(status_code=400, detail=f"Error: {exc}") from exc
    return service.overview()


@router.get("/export")
async def export_dataset(fmt: str = Query(default="json", alias="format")) -> Response:
    service = get_review_service()
    if not service.session().records:
        raise HTTPException(status_code=400, detail="No data to save.")
    try:
        exported = service.export(fmt)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return Response(
        content=exported.content,
        media_type=exported.media_type,
        headers=_attachment(exported.filename),
    )


@router.post("/x84")
async def generate_x84() -> Response:
    service = get_review_service()
    session = service.session()
    if not session.records:
        raise HTTPException(status_code=400, detail="No data to generate from.")

    try:
        generated = await get_webhook_client().generate_x84(
            service.export_json(),
            session.input_filename or export_filename(None),
        )
    except WebhookError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return Response(
        content=generated.content,
        media_type=generated.media_type,
        headers=_attachment(generated.filename),
    )
