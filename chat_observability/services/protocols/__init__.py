from chat_observability.services.protocols.langfuse import (
    LangfuseClientProtocol,
    LangfuseServiceProtocol,
)

__all__ = ["LangfuseClientProtocol", "LangfuseServiceProtocol"]
