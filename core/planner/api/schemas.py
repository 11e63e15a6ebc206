"""Pydantic models for API request/response schemas."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str


class ChatRequest(BaseModel):
    """Chat message request."""

    model_config = ConfigDict(populate_by_name=True)

    message: Optional[str] = None
    active_project_id: Optional[str] = Field(default=None, alias="activeProjectId")


class ChatReply(BaseModel):
    """Chat reply. Domain failures are replies too."""

    reply: str


class SessionStateResponse(BaseModel):
    """Conversation state of the caller's session."""

    state: str
    active_board_id: Optional[str] = None
    can_undo: bool = False


class StatusResponse(BaseModel):
    """Generic status response."""

    status: str
