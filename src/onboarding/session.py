"""Onboarding session ids."""

import logging
import time
import uuid

logger = logging.getLogger(__name__)


def create_session_id() -> str:
    """
    New id correlating one Draft with one SessionRecord.

    Falls back to a timestamp id when the platform UUID source is unavailable.
    """
    try:
        return str(uuid.uuid4())
    except NotImplementedError:
        logger.warning("uuid4 unavailable, using timestamp session id")
        return f"session-{time.time_ns() // 1_000_000}"
