"""Application startup for the observability layer.

Call ``bootstrap()`` once, before request handling starts, and pass the
returned service to the components that trace LLM calls.
"""

import logging

from dotenv import load_dotenv

from chat_observability.config.settings import LangfuseSettings
from chat_observability.services.langfuse_service import (
    LangfuseService,
    initialize_langfuse_service,
)
from chat_observability.utils.logging import configure_logging

logger = logging.getLogger(__name__)


def bootstrap(
    env_file: str | None = None,
    log_level: str | None = None,
    log_file: str | None = None,
    settings: LangfuseSettings | None = None,
) -> LangfuseService:
    """Load ``.env``, configure logging and initialize the Langfuse service."""
    load_dotenv(env_file)
    configure_logging(log_level, log_file)

    service = initialize_langfuse_service(settings)
    logger.info(f"Observability ready: {service.health_check()['status']}")
    return service
