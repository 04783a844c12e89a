from chat_observability.services.conversation_tracing import (
    TurnTrace,
    conversation_turn,
    record_generation,
)
from chat_observability.services.langfuse_service import (
    LangfuseService,
    get_langfuse_service,
    initialize_langfuse_service,
    reset_langfuse_service,
)

__all__ = [
    "LangfuseService",
    "TurnTrace",
    "conversation_turn",
    "get_langfuse_service",
    "initialize_langfuse_service",
    "record_generation",
    "reset_langfuse_service",
]
