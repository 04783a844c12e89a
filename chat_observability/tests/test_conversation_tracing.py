"""Tests for conversation turn tracing helpers"""

import asyncio
from datetime import UTC, datetime, timedelta
from unittest.mock import MagicMock

import pytest
from pydantic import SecretStr

from chat_observability.config.settings import LangfuseSettings
from chat_observability.services.conversation_tracing import (
    TurnTrace,
    conversation_turn,
    record_generation,
)
from chat_observability.services.langfuse_service import LangfuseService


@pytest.fixture
def service(valid_settings, client_factory):
    return LangfuseService(valid_settings, client_factory).initialize()


@pytest.fixture
def unsampled_service(client_factory):
    settings = LangfuseSettings(
        enabled=True,
        public_key="pk",
        secret_key=SecretStr("sk"),
        sample_rate=0.0,
        flush_at_shutdown=False,
    )
    return LangfuseService(settings, client_factory).initialize()


MESSAGES = [{"role": "user", "content": "What is RAG?"}]


class TestRecordGeneration:
    def test_records_model_call(self, service, mock_trace):
        started = datetime(2025, 1, 1, tzinfo=UTC)
        finished = started + timedelta(seconds=2)
        usage = {"prompt_tokens": 12, "completion_tokens": 30, "total_tokens": 42}

        generation = record_generation(
            service,
            mock_trace,
            model="gpt-4o",
            messages=MESSAGES,
            response="Retrieval augmented generation.",
            usage=usage,
            start_time=started,
            end_time=finished,
            metadata={"endpoint": "openAI"},
            provider="openai",
        )

        assert generation is mock_trace.generation.return_value
        mock_trace.generation.assert_called_once_with(
            name="openai_llm_call",
            model="gpt-4o",
            input=MESSAGES,
            output="Retrieval augmented generation.",
            metadata={"endpoint": "openAI", "provider": "openai"},
            usage=usage,
            start_time=started,
            end_time=finished,
        )

    def test_records_failed_call(self, service, mock_trace):
        record_generation(
            service,
            mock_trace,
            model="gpt-4o",
            messages=MESSAGES,
            error=TimeoutError("upstream timed out"),
        )

        kwargs = mock_trace.generation.call_args.kwargs
        assert kwargs["name"] == "llm_call"
        assert kwargs["output"] is None
        assert kwargs["level"] == "ERROR"
        assert kwargs["status_message"] == "upstream timed out"
        assert "usage" not in kwargs

    def test_absent_trace_is_noop(self, service, mock_trace):
        result = record_generation(service, None, model="gpt-4o", messages=MESSAGES)

        assert result is None
        mock_trace.generation.assert_not_called()


class TestConversationTurn:
    def test_successful_turn(self, service, mock_langfuse_client, mock_trace):
        with conversation_turn(
            service,
            "chat",
            conversation_id="convo-1",
            user_id="user-1",
            input="What is RAG?",
            metadata={"endpoint": "openAI"},
        ) as turn:
            assert isinstance(turn, TurnTrace)
            assert turn.recording is True
            turn.generation(model="gpt-4o", messages=MESSAGES, response="An answer")
            turn.output = "An answer"

        mock_langfuse_client.trace.assert_called_once_with(
            name="chat",
            session_id="convo-1",
            user_id="user-1",
            input="What is RAG?",
            metadata={"endpoint": "openAI"},
            tags=[],
        )
        mock_trace.generation.assert_called_once()
        mock_trace.update.assert_called_once_with(
            output="An answer",
            metadata={"endpoint": "openAI", "success": True},
        )

    def test_failed_turn_is_marked_and_reraised(self, service, mock_trace):
        with pytest.raises(RuntimeError, match="model unavailable"):
            with conversation_turn(service, conversation_id="convo-1") as turn:
                turn.metadata["attempts"] = 2
                raise RuntimeError("model unavailable")

        mock_trace.update.assert_called_once_with(
            output=None,
            metadata={"attempts": 2, "success": False, "error": "model unavailable"},
        )

    def test_spans_and_events_go_through_service(self, service, mock_trace):
        with conversation_turn(service) as turn:
            turn.span(name="retrieval")
            turn.event(name="tool_call")

        mock_trace.span.assert_called_once_with(name="retrieval")
        mock_trace.event.assert_called_once_with(name="tool_call")

    def test_unsampled_turn_records_nothing(
        self, unsampled_service, mock_langfuse_client, mock_trace
    ):
        with conversation_turn(unsampled_service, conversation_id="convo-1") as turn:
            assert turn.recording is False
            assert turn.generation(model="gpt-4o", messages=MESSAGES) is None
            turn.output = "An answer"

        mock_langfuse_client.trace.assert_not_called()
        mock_trace.update.assert_not_called()

    def test_tracing_failure_does_not_break_turn(
        self, service, mock_langfuse_client
    ):
        mock_langfuse_client.trace.side_effect = Exception("Langfuse down")

        with conversation_turn(service) as turn:
            turn.output = "still answered"

        assert turn.trace is None

    def test_works_with_any_service_implementation(self):
        fake = MagicMock()
        fake.trace.return_value = "trace-handle"

        with conversation_turn(fake, "chat") as turn:
            turn.output = "ok"

        fake.update_trace.assert_called_once_with(
            "trace-handle", output="ok", metadata={"success": True}
        )

    @pytest.mark.asyncio
    async def test_cancelled_turn_is_marked_and_reraised(self, service, mock_trace):
        started = asyncio.Event()

        async def handle_turn():
            with conversation_turn(service, conversation_id="convo-1") as turn:
                turn.output = "partial answer"
                started.set()
                await asyncio.sleep(10)

        task = asyncio.create_task(handle_turn())
        await started.wait()
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

        mock_trace.update.assert_called_once_with(
            output="partial answer",
            metadata={"success": False, "error": "CancelledError"},
        )
