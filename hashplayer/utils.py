"""
utils.py - Retry helpers and byte utilities for the hashplayer package.
"""

import errno
import hashlib
import logging
from typing import Any, Callable

from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential

from .config import get_settings
from .exceptions import HashPlayerError

logger = logging.getLogger(__name__)

HASH_SIZE = 32
ZERO_HASH = bytes(HASH_SIZE)

# errno values worth another attempt; everything else is surfaced immediately
TRANSIENT_ERRNOS = frozenset({errno.EAGAIN, errno.EINTR, errno.EBUSY, errno.ETIMEDOUT})


def sha256(data: bytes) -> bytes:
    return hashlib.sha256(data).digest()


def _is_transient(exc: BaseException) -> bool:
    if isinstance(exc, HashPlayerError) or not isinstance(exc, OSError):
        return False
    return exc.errno in TRANSIENT_ERRNOS


def _log_retry(retry_state) -> None:
    logger.warning(
        "Retrying %s after transient error (attempt %d): %s",
        getattr(retry_state.fn, "__name__", "call"),
        retry_state.attempt_number,
        retry_state.outcome.exception(),
    )


def with_retry(func: Callable[..., Any]) -> Callable[..., Any]:
    """Decorator to retry transient I/O errors with exponential backoff."""
    settings = get_settings()
    return retry(
        retry=retry_if_exception(_is_transient),
        stop=stop_after_attempt(settings.retry_attempts),
        wait=wait_exponential(
            multiplier=settings.retry_wait_multiplier,
            min=settings.retry_wait_min,
            max=settings.retry_wait_max,
        ),
        before_sleep=_log_retry,
        reraise=True,
    )(func)


__all__ = [
    "HASH_SIZE",
    "ZERO_HASH",
    "sha256",
    "with_retry",
]
