"""
Knowledge base endpoints used by the dashboard's KB editor.

GET reads, PUT replaces wholesale, POST appends (optionally under a heading).
"""

from typing import Optional

from fastapi import APIRouter, HTTPException, Request

from .schemas import ErrorResponse, KBResponse, KBWriteRequest, KBWriteResponse
from ..agents.executor import kb_key, append_separator, KB_CACHE_CONTROL
from ..core.config import KB_BUCKET
from ..store.types import NotFoundError, StoreError

router = APIRouter()


def _process_id(request: Request, process_id: Optional[str]) -> str:
    return process_id or request.app.state.settings.default_process_id


@router.get("/kb", response_model=KBResponse, responses={404: {"model": ErrorResponse}})
def read_kb(request: Request, processId: Optional[str] = None):
    process_id = _process_id(request, processId)
    store = request.app.state.store
    try:
        content = store.download_text(KB_BUCKET, kb_key(process_id))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail={"error": "KB not found", "detail": str(e)})
    except StoreError as e:
        raise HTTPException(status_code=500, detail=str(e))

    return KBResponse(processId=process_id, content=content)


@router.put("/kb", response_model=KBWriteResponse)
def replace_kb(req: KBWriteRequest, request: Request, processId: Optional[str] = None):
    if not req.content:
        raise HTTPException(status_code=400, detail="content is required")

    process_id = _process_id(request, processId)
    store = request.app.state.store
    try:
        store.upload_text(KB_BUCKET, kb_key(process_id), req.content, content_type="text/markdown",
                          overwrite=True, cache_control=KB_CACHE_CONTROL)
    except StoreError as e:
        raise HTTPException(status_code=500, detail=str(e))

    return KBWriteResponse(success=True, action="replaced", processId=process_id)


@router.post("/kb", response_model=KBWriteResponse)
def append_kb(req: KBWriteRequest, request: Request, processId: Optional[str] = None):
    if not req.content:
        raise HTTPException(status_code=400, detail="content is required")

    process_id = _process_id(request, processId)
    store = request.app.state.store
    try:
        try:
            existing = store.download_text(KB_BUCKET, kb_key(process_id))
        except NotFoundError:
            existing = ""
        updated = existing + append_separator(req.section) + req.content
        store.upload_text(KB_BUCKET, kb_key(process_id), updated, content_type="text/markdown",
                          overwrite=True, cache_control=KB_CACHE_CONTROL)
    except StoreError as e:
        raise HTTPException(status_code=500, detail=str(e))

    return KBWriteResponse(success=True, action="appended", processId=process_id)
