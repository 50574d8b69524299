# petalstore/utils/retry.py
"""
Retry policies for calls that leave the process.

Only transport failures are retried. A refused connection or a timeout may
pass on the next attempt, an HTTP 4xx or a Redis command error will not.
"""
import redis
import requests
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from petalstore.utils.logging import get_logger
from petalstore.utils.settings import REMOTE_RETRY_ATTEMPTS, REMOTE_RETRY_WAIT_SECONDS

logger = get_logger(__name__)

HTTP_TRANSIENT = (requests.ConnectionError, requests.Timeout)
REDIS_TRANSIENT = (redis.ConnectionError, redis.TimeoutError)


def _log_retry(retry_state) -> None:
    name = getattr(retry_state.fn, "__qualname__", "remote call")
    logger.warning(
        f"{name} failed with {retry_state.outcome.exception()!r}, "
        f"attempt {retry_state.attempt_number} of {REMOTE_RETRY_ATTEMPTS}"
    )


def _remote_retry(transient, max_wait: float):
    return retry(
        reraise=True,
        stop=stop_after_attempt(REMOTE_RETRY_ATTEMPTS),
        wait=wait_exponential(multiplier=REMOTE_RETRY_WAIT_SECONDS, min=REMOTE_RETRY_WAIT_SECONDS, max=max_wait),
        retry=retry_if_exception_type(transient),
        before_sleep=_log_retry,
    )


def http_retry():
    """Auth and storage REST calls."""
    return _remote_retry(HTTP_TRANSIENT, max_wait=3)


def redis_retry():
    """Draft store and change feed."""
    return _remote_retry(REDIS_TRANSIENT, max_wait=2)
