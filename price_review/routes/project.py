from __future__ import annotations

from pathlib import Path

from fastapi import APIRouter, File, HTTPException, UploadFile

from price_review.infrastructure import FilePart, WebhookError, get_webhook_client

router = APIRouter(prefix="/project", tags=["project"])


async def _read_parts(uploads: list[UploadFile]) -> list[FilePart]:
    parts: list[FilePart] = []
    for upload in uploads:
        try:
            if not upload.filename:
                raise HTTPException(status_code=400, detail="Uploaded file must have a filename")
            parts.append((Path(upload.filename).name, await upload.read(), upload.content_type))
        finally:
            await upload.close()
    return parts


@router.post("/upload")
async def upload_project(
    knowledge_base: list[UploadFile] = File(default=[]),
    bill_of_quantities: list[UploadFile] = File(default=[]),
) -> dict:
    """Forward the knowledge base and the bill of quantities to their webhooks."""
    if not knowledge_base or not bill_of_quantities:
        raise HTTPException(status_code=400, detail="Select at least one file for both groups.")

    kb_parts = await _read_parts(knowledge_base)
    lv_parts = await _read_parts(bill_of_quantities)
    try:
        await get_webhook_client().upload_project(kb_parts, lv_parts)
    except WebhookError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc

    return {
        "knowledge_base": [name for name, _, _ in kb_parts],
        "bill_of_quantities": [name for name, _, _ in lv_parts],
        "status": (
            f"Upload finished: {len(kb_parts)} knowledge base file(s), "
            f"{len(lv_parts)} bill of quantities file(s)."
        ),
    }
