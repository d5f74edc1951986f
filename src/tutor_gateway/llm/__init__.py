"""Chat infrastructure: providers, tools, prompts, retry, router, diagnostics.

Quick start::

    from tutor_gateway.config import get_settings
    from tutor_gateway.llm import create_chat_router

    router = create_chat_router(get_settings())
    result = await router.send_chat_completion("Say OK", "GPT-5 Mini")
"""

from tutor_gateway.llm.diagnostics import Diagnostics, ErrorRecord, ErrorReport
from tutor_gateway.llm.health import HealthCheckRunner, HealthReport
from tutor_gateway.llm.router import ChatRouter
from tutor_gateway.llm.schemas import ChatTurn, InferenceResult, Message
from tutor_gateway.llm.setup import create_chat_router, create_health_runner
from tutor_gateway.llm.streaming import StreamHandle, iter_stream_fragments

__all__ = [
    "ChatRouter",
    "ChatTurn",
    "Diagnostics",
    "ErrorRecord",
    "ErrorReport",
    "HealthCheckRunner",
    "HealthReport",
    "InferenceResult",
    "Message",
    "StreamHandle",
    "create_chat_router",
    "create_health_runner",
    "iter_stream_fragments",
]
