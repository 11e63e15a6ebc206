"""Chat API routes."""

from typing import Optional

from fastapi import APIRouter, Depends, Header, Request

from planner.api.assistant_store import get_assistant
from planner.api.schemas import (
    ChatReply,
    ChatRequest,
    SessionStateResponse,
    StatusResponse,
)
from planner.context.session import GateState
from planner.engine.assistant import PlannerAssistant
from planner.utils.logging import logger

router = APIRouter(prefix="/chat", tags=["chat"])


def session_key(
    request: Request,
    x_session_id: Optional[str] = Header(default=None),
) -> str:
    """Explicit session header if sent, otherwise the caller's address."""
    if x_session_id:
        return x_session_id
    return request.client.host if request.client else "anonymous"


@router.post("", response_model=ChatReply)
async def send_message(
    request: ChatRequest,
    key: str = Depends(session_key),
    assistant: PlannerAssistant = Depends(get_assistant),
):
    """
    Send a message to the planner.
    Always answers 200 with a reply, even when the request could not be done.
    """
    logger.info(f"Received message from {key}: {(request.message or '')[:50]}")

    try:
        reply = await assistant.chat(key, request.message, request.active_project_id)
    except Exception as e:
        logger.error(f"Chat error: {type(e).__name__}: {e}", exc_info=True)
        reply = PlannerAssistant.BACKEND_ERROR_REPLY

    return ChatReply(reply=reply)


@router.post("/reset", response_model=StatusResponse)
async def reset_session(
    key: str = Depends(session_key),
    assistant: PlannerAssistant = Depends(get_assistant),
):
    """Forget the caller's session: pending delete, undo and active board."""
    await assistant.sessions.reset(key)
    return StatusResponse(status="ok")


@router.get("/state", response_model=SessionStateResponse)
async def get_state(
    key: str = Depends(session_key),
    assistant: PlannerAssistant = Depends(get_assistant),
):
    """Get the caller's conversation state (for debugging/transparency)."""
    session = assistant.sessions.peek(key)
    if session is None:
        return SessionStateResponse(state=GateState.IDLE.value)

    return SessionStateResponse(
        state=session.state.value,
        active_board_id=session.active_board_id,
        can_undo=session.last_deleted is not None,
    )
