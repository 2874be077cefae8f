from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from server.dependencies.auth import get_owner_id
from server.models.requests import ChatRequest
from shared.errors import ValidationError

router = APIRouter(prefix="/chat", tags=["chat"])


@router.post("")
async def chat(
    request: Request,
    body: ChatRequest,
    owner_id: str = Depends(get_owner_id),
) -> StreamingResponse:
    """Answer a question over the owner's documents as an event stream.

    Args:
        request (Request): FastAPI request (provides app.state.chat_service).
        body (ChatRequest): JSON body with message and optional documentId.
        owner_id (str): Authenticated owner.

    Returns:
        StreamingResponse: text/event-stream of content frames followed by one sources frame.
    """
    if not body.message or not body.message.strip():
        raise ValidationError("Message is required")

    chat_service = request.app.state.chat_service
    composer = await chat_service.do_chat(
        owner_id=owner_id,
        question=body.message,
        document_id=body.document_id or None,
        is_disconnected=request.is_disconnected,
    )
    return StreamingResponse(
        composer.frames(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
    )
