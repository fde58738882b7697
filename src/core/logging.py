"""Logging setup shared by the application and its workers."""

import logging

from src.core.config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: str | None = None) -> None:
    """Configure the root logger once, honouring LOG_LEVEL."""
    resolved = getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO)

    # Leave existing handlers alone (uvicorn, pytest caplog)
    if not logging.root.handlers:
        logging.basicConfig(level=resolved, format=LOG_FORMAT)
    else:
        logging.root.setLevel(resolved)

    logging.getLogger(__name__).debug("Logging configured at %s", resolved)
