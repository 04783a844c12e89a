"""Helpers for tracing a chat pipeline's conversation turns.

One trace is opened per conversation turn, one generation is recorded per
model call, and the trace is updated with the outcome when the turn ends:

    with conversation_turn(service, conversation_id=convo_id, user_id=user_id,
                           input=text) as turn:
        started = datetime.now(UTC)
        reply = await llm.complete(messages)
        turn.generation(model="gpt-4o", messages=messages, response=reply.text,
                        usage=reply.usage, start_time=started,
                        end_time=datetime.now(UTC))
        turn.output = reply.text

A turn that was not sampled has ``turn.trace is None`` and every call on it
is a no-op.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from chat_observability.services.protocols.langfuse import LangfuseServiceProtocol


def record_generation(
    service: LangfuseServiceProtocol,
    trace: Any | None,
    *,
    model: str,
    messages: list[dict[str, Any]],
    response: str | None = None,
    usage: dict[str, int] | None = None,
    start_time: datetime | None = None,
    end_time: datetime | None = None,
    error: BaseException | str | None = None,
    metadata: dict[str, Any] | None = None,
    provider: str | None = None,
) -> Any | None:
    """
    Record one model invocation as a generation under ``trace``.

    Args:
        service: Langfuse service to record through
        trace: Parent trace handle (None means the turn is not traced)
        model: Model name
        messages: Prompt messages sent to the model
        response: Model output text, if any
        usage: Token counts as reported by the provider
        start_time: When the request was sent
        end_time: When the response (or error) arrived
        error: Failure of the call, if it failed
        metadata: Extra metadata attached to the generation
        provider: Provider name, used to name the generation

    Returns:
        Generation handle or None
    """
    if trace is None:
        return None

    generation_metadata = dict(metadata or {})
    if provider:
        generation_metadata["provider"] = provider

    payload: dict[str, Any] = {
        "name": f"{provider}_llm_call" if provider else "llm_call",
        "model": model,
        "input": messages,
        "output": response,
        "metadata": generation_metadata,
    }
    if usage:
        payload["usage"] = usage
    if start_time is not None:
        payload["start_time"] = start_time
    if end_time is not None:
        payload["end_time"] = end_time
    if error is not None:
        payload["level"] = "ERROR"
        payload["status_message"] = str(error)

    return service.generation(trace, **payload)


@dataclass
class TurnTrace:
    """State of one traced conversation turn."""

    service: LangfuseServiceProtocol
    trace: Any | None
    output: Any = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def recording(self) -> bool:
        return self.trace is not None

    def generation(self, **kwargs: Any) -> Any | None:
        return record_generation(self.service, self.trace, **kwargs)

    def span(self, **options: Any) -> Any | None:
        return self.service.span(self.trace, **options)

    def event(self, **options: Any) -> None:
        self.service.event(self.trace, **options)


@contextmanager
def conversation_turn(
    service: LangfuseServiceProtocol,
    name: str = "conversation_turn",
    *,
    conversation_id: str | None = None,
    user_id: str | None = None,
    input: Any = None,
    metadata: dict[str, Any] | None = None,
    tags: list[str] | None = None,
) -> Iterator[TurnTrace]:
    """
    Trace a conversation turn.

    The trace is updated with ``turn.output`` and a ``success`` marker when
    the block exits. Exceptions from the block are recorded and re-raised.
    """
    base_metadata = dict(metadata or {})
    trace = service.trace(
        name=name,
        session_id=conversation_id,
        user_id=user_id,
        input=input,
        metadata=base_metadata,
        tags=tags or [],
    )
    turn = TurnTrace(service=service, trace=trace)

    try:
        yield turn
    except BaseException as e:
        # Includes asyncio.CancelledError when the client disconnects
        service.update_trace(
            trace,
            output=turn.output,
            metadata={
                **base_metadata,
                **turn.metadata,
                "success": False,
                "error": str(e) or type(e).__name__,
            },
        )
        raise

    service.update_trace(
        trace,
        output=turn.output,
        metadata={**base_metadata, **turn.metadata, "success": True},
    )
