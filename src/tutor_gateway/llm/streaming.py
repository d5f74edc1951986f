"""Server-sent-event framing for streamed completions.

Every adapter streams in one transport format: ``data: <json>`` frames in
the OpenAI delta shape, terminated by ``data: [DONE]``.
iter_stream_fragments() decodes that transport lazily.
"""

import json
from collections.abc import AsyncIterable, AsyncIterator
from dataclasses import dataclass
from typing import Any

import structlog

from tutor_gateway.llm.tools import ToolDescriptor

logger = structlog.get_logger()

DATA_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"


def encode_sse(data: str) -> bytes:
    return f"{DATA_PREFIX}{data}\n\n".encode()


def delta_frame(text: str) -> bytes:
    """Frame a text delta in the OpenAI chunk shape."""
    return encode_sse(json.dumps({"choices": [{"delta": {"content": text}}]}))


def error_frame(message: str) -> bytes:
    return encode_sse(json.dumps({"error": message}))


DONE_FRAME = encode_sse(DONE_SENTINEL)


async def iter_stream_fragments(
    chunks: AsyncIterable[bytes],
) -> AsyncIterator[dict[str, Any]]:
    """Decode SSE byte chunks into parsed JSON fragments.

    Frames may be split across chunks; a trailing frame without a newline
    is still decoded. Stops at the ``[DONE]`` sentinel; malformed frames
    (bad UTF-8, bad JSON, non-object payloads) are skipped. The sequence
    is single-use.
    """
    buffer = b""
    async for chunk in chunks:
        buffer += chunk
        *lines, buffer = buffer.split(b"\n")
        for raw_line in lines:
            data = _frame_data(raw_line)
            if data is None:
                continue
            if data == DONE_SENTINEL:
                return
            fragment = _parse_frame(data)
            if fragment is not None:
                yield fragment

    data = _frame_data(buffer)
    if data is not None and data != DONE_SENTINEL:
        fragment = _parse_frame(data)
        if fragment is not None:
            yield fragment


def _frame_data(raw_line: bytes) -> str | None:
    """Payload of a ``data:`` line, or None for anything else."""
    try:
        line = raw_line.decode("utf-8").rstrip("\r")
    except UnicodeDecodeError:
        logger.debug("stream_frame_skipped", frame=raw_line[:200].hex())
        return None
    if not line.startswith(DATA_PREFIX):
        return None
    return line[len(DATA_PREFIX) :]


def _parse_frame(data: str) -> dict[str, Any] | None:
    try:
        fragment = json.loads(data)
    except json.JSONDecodeError:
        logger.debug("stream_frame_skipped", frame=data[:200])
        return None
    return fragment if isinstance(fragment, dict) else None


def fragment_text(fragment: dict[str, Any]) -> str:
    """Extract the delta text of a fragment ("" for non-content frames)."""
    choices = fragment.get("choices") or []
    if not choices:
        return ""
    delta = choices[0].get("delta") or {}
    return delta.get("content") or ""


@dataclass
class StreamHandle:
    """Open streaming response: transport chunks plus the tool serving it."""

    tool: ToolDescriptor
    chunks: AsyncIterator[bytes]

    def fragments(self) -> AsyncIterator[dict[str, Any]]:
        return iter_stream_fragments(self.chunks)

    async def text(self) -> AsyncIterator[str]:
        """Yield non-empty text deltas in arrival order."""
        async for fragment in self.fragments():
            text = fragment_text(fragment)
            if text:
                yield text

    async def aclose(self) -> None:
        aclose = getattr(self.chunks, "aclose", None)
        if aclose is not None:
            await aclose()
