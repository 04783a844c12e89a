"""Shared fixtures for the observability tests."""

import os
import signal
from unittest.mock import MagicMock

import pytest
from pydantic import SecretStr

from chat_observability.config.settings import LangfuseSettings
from chat_observability.services.langfuse_service import reset_langfuse_service


@pytest.fixture(autouse=True)
def clean_langfuse_env(monkeypatch):
    """Keep the developer's LANGFUSE_* variables out of the tests"""
    for name in list(os.environ):
        if name.startswith("LANGFUSE_"):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def restore_signal_handlers():
    """Undo any SIGINT/SIGTERM handlers a test installed"""
    saved = {
        signum: signal.getsignal(signum) for signum in (signal.SIGINT, signal.SIGTERM)
    }
    yield
    reset_langfuse_service()
    for signum, handler in saved.items():
        if handler is not None:
            signal.signal(signum, handler)


@pytest.fixture
def valid_settings():
    """Enabled settings with credentials and no shutdown hooks"""
    return LangfuseSettings(
        enabled=True,
        public_key="pk-lf-test",
        secret_key=SecretStr("sk-lf-test"),
        host="https://cloud.langfuse.com",
        flush_at_shutdown=False,
        release="1.2.3",
    )


@pytest.fixture
def disabled_settings():
    return LangfuseSettings(
        enabled=False,
        public_key="pk-lf-test",
        secret_key=SecretStr("sk-lf-test"),
    )


@pytest.fixture
def empty_credentials_settings():
    return LangfuseSettings(
        enabled=True,
        public_key="",
        secret_key=SecretStr(""),
    )


@pytest.fixture
def mock_trace():
    """Stateful trace handle as returned by Langfuse.trace()"""
    trace = MagicMock()
    trace.span = MagicMock()
    trace.generation = MagicMock()
    trace.event = MagicMock()
    trace.update = MagicMock()
    return trace


@pytest.fixture
def mock_langfuse_client(mock_trace):
    """Create a mock Langfuse client"""
    client = MagicMock()
    client.trace = MagicMock(return_value=mock_trace)
    client.score = MagicMock()
    client.flush = MagicMock()
    client.shutdown = MagicMock()
    return client


@pytest.fixture
def client_factory(mock_langfuse_client):
    return MagicMock(return_value=mock_langfuse_client)
