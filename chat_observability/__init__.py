"""Fail-open Langfuse tracing for a chat application's LLM calls."""

from chat_observability.bootstrap import bootstrap
from chat_observability.config.settings import LangfuseSettings
from chat_observability.services.conversation_tracing import (
    conversation_turn,
    record_generation,
)
from chat_observability.services.langfuse_service import (
    LangfuseService,
    get_langfuse_service,
    initialize_langfuse_service,
)

__all__ = [
    "LangfuseService",
    "LangfuseSettings",
    "bootstrap",
    "conversation_turn",
    "get_langfuse_service",
    "initialize_langfuse_service",
    "record_generation",
]
