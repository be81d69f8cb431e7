"""Server-Sent Events endpoints."""
import asyncio
import json
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from geoattend.api.deps import get_db, verify_admin_token
from geoattend.core.logging_config import get_logger
from geoattend.services.payload import encode_payload
from geoattend.services.rotation import rotation_registry
from geoattend.services.store import get_training_by_id

logger = get_logger(__name__)
router = APIRouter()


async def qr_event_generator(request: Request, training_id: int, display_session_id: str):
    """
    Stream one event per token rotation until the display disconnects.

    The rotator belongs to this connection: it starts with the stream and is
    stopped when the generator exits, whatever the reason.
    """
    try:
        async with rotation_registry.session(training_id, display_session_id) as rotator:
            async for payload in rotator.payloads():
                if await request.is_disconnected():
                    break
                event = {"payload": payload, "qr_text": encode_payload(payload)}
                yield f"data: {json.dumps(event)}\n\n"
            else:
                # Loop ended on its own: the training went away
                yield f"event: error\ndata: {json.dumps({'error': 'Rotation stopped'})}\n\n"
    except asyncio.CancelledError:
        # Client disconnected
        logger.info("qr_stream_closed", training_id=training_id, display_session=display_session_id)
        raise


@router.get("/sse/trainings/{training_id}/qr")
async def sse_training_qr(
    request: Request,
    training_id: int,
    display: Optional[str] = None,
    admin: dict = Depends(verify_admin_token),
    db: Session = Depends(get_db)
):
    """
    SSE stream of rotating QR payloads for a venue display.

    Query params:
        display: identifier of the display session. Reconnecting with the same
                 id reuses its rotator; omitted, each connection gets its own.

    Every event carries the payload and its encoded QR text. Each rotation
    invalidates the previous code.
    """
    if get_training_by_id(db, training_id) is None:
        raise HTTPException(status_code=404, detail="Training not found")

    display_session_id = display or uuid.uuid4().hex
    logger.info("qr_stream_opened", training_id=training_id, display_session=display_session_id)

    return StreamingResponse(
        qr_event_generator(request, training_id, display_session_id),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",  # Disable buffering in nginx
        }
    )
