"""Shared schemas for the chat pipeline."""

from collections.abc import Sequence
from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Role(StrEnum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class Message(BaseModel):
    """One entry of a conversation in the uniform (OpenAI-style) shape."""

    model_config = ConfigDict(frozen=True)

    role: Role
    content: str


class ChatTurn(BaseModel):
    """Prompt/response pair supplied by the conversation storage."""

    prompt: str
    response: str


class TokenUsage(BaseModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    @classmethod
    def from_counts(
        cls,
        prompt_tokens: int | None,
        completion_tokens: int | None,
        total_tokens: int | None = None,
    ) -> "TokenUsage":
        """Build usage from possibly-missing provider counters."""
        prompt = prompt_tokens or 0
        completion = completion_tokens or 0
        return cls(
            prompt_tokens=prompt,
            completion_tokens=completion,
            total_tokens=total_tokens or prompt + completion,
        )


class InferenceResult(BaseModel):
    """Normalized response from any provider."""

    success: bool = True
    response_text: str
    usage: TokenUsage = Field(default_factory=TokenUsage)
    model_id: str
    provider_id: str = ""
    tool_name: str | None = None
    latency_ms: int = 0
    cost_usd: float | None = None
    finished_at: datetime = Field(default_factory=datetime.now)

    @model_validator(mode="after")
    def _success_has_text(self) -> "InferenceResult":
        if self.success and not self.response_text.strip():
            raise ValueError("successful result must carry response text")
        return self


def build_messages(
    system_prompt: str,
    history: Sequence[ChatTurn],
    prompt: str,
) -> list[Message]:
    """Flatten history into messages: system, turns in order, new prompt."""
    messages = [Message(role=Role.SYSTEM, content=system_prompt)]
    for turn in history:
        messages.append(Message(role=Role.USER, content=turn.prompt))
        messages.append(Message(role=Role.ASSISTANT, content=turn.response))
    messages.append(Message(role=Role.USER, content=prompt))
    return messages
