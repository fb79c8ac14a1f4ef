"""
Signed URL endpoint for run recordings.
"""

from typing import Optional

from fastapi import APIRouter, HTTPException, Request

from .schemas import ErrorResponse, RecordingUrlResponse
from ..util.logging import logger

router = APIRouter()


@router.get("/recording-url", response_model=RecordingUrlResponse,
            responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}})
def get_recording_url(request: Request, key: Optional[str] = None):
    if not key:
        raise HTTPException(status_code=400, detail="Missing 'key' query parameter")
    if not key.endswith(".mp4"):
        raise HTTPException(status_code=400, detail="Invalid key format")

    signer = request.app.state.recordings
    try:
        url = signer.sign(key)
    except Exception as e:
        logger.error(f"Failed to generate pre-signed URL: {e}")
        raise HTTPException(status_code=500, detail={"error": "Failed to generate video URL", "detail": str(e)})

    return RecordingUrlResponse(url=url, expires_in=signer.expires_in)
