"""
Chat endpoint: one user message in, one assistant reply out.

The whole tool-use loop runs inside the request. The chat log is written as a
background task after the response is produced, so a failed write never
affects the reply.
"""

from fastapi import APIRouter, BackgroundTasks, HTTPException, Request

from .schemas import ChatRequest, ChatResponse, ErrorResponse
from ..agents.context import ChatContext
from ..agents.driver import ChatMessage
from ..util.logging import logger

router = APIRouter()


@router.post("/chat", response_model=ChatResponse,
             responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}})
async def send_chat_message(req: ChatRequest, request: Request, background_tasks: BackgroundTasks):
    if not req.message or not req.message.strip():
        raise HTTPException(status_code=400, detail="Message is required")

    state = request.app.state
    if state.driver is None:
        raise HTTPException(status_code=500, detail=f"LLM provider not configured: {state.provider_error}")

    # Only the most recent turns are replayed to the model
    limit = state.settings.chat_history_limit
    history = [
        ChatMessage(role=m.role, content=m.content, timestamp=m.timestamp)
        for m in (req.history[-limit:] if limit else [])
    ]
    context = ChatContext(
        org_id=req.org_id,
        org_name=req.org_name,
        process_id=req.process_id,
        process_name=req.process_name,
    )

    logger.log_chat_request(req.process_id or state.settings.default_process_id, len(history))
    try:
        result = await state.driver.run(req.message, history, context)
    except Exception as e:
        logger.error(f"Chat error: {e}")
        raise HTTPException(status_code=500, detail=str(e) or "Internal server error")

    logger.log_chat_request(req.process_id or state.settings.default_process_id, len(history),
                            status="completed",
                            details={"rounds": result.rounds, "tool_calls": result.tool_calls,
                                     "exhausted": result.exhausted})

    background_tasks.add_task(state.driver.save_chat_log, req.message, result.response)
    return ChatResponse(response=result.response)
