"""Request/response schemas for the API layer."""

from __future__ import annotations

from pydantic import BaseModel, Field

from tutor_gateway.llm.schemas import ChatTurn

# --- Chat ---


class ChatRequest(BaseModel):
    """Request body for POST /chat."""

    prompt: str = Field(..., min_length=1)
    tool_name: str = ""
    conversation_history: list[ChatTurn] = Field(default_factory=list)
    system_prompt: str | None = None
    stream: bool = False


class ModelInfo(BaseModel):
    """One entry of GET /models."""

    id: str
    name: str
    provider: str


# --- Diagnostics ---


class DiagnosticsToggleRequest(BaseModel):
    """Request body for PUT /admin/diagnostics."""

    enabled: bool


class DiagnosticsStatusResponse(BaseModel):
    """Diagnostic mode flag plus the current error log size."""

    enabled: bool
    error_count: int
