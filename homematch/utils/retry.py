from functools import wraps

import httpx
from structlog import get_logger
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

logger = get_logger()

# Only network-level failures are retried; HTTP error statuses are the caller's call
TRANSIENT_ERRORS = (httpx.TransportError,)


def retry_api(tries: int = 3, delay: float = 1, backoff: float = 2):
    def decorator(func):
        @wraps(func)
        @retry(
            stop=stop_after_attempt(tries),
            wait=wait_exponential(multiplier=delay, exp_base=backoff),
            retry=retry_if_exception_type(TRANSIENT_ERRORS),
            reraise=True,
        )
        async def wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except TRANSIENT_ERRORS as e:
                logger.warning("Retry attempt", func=func.__name__, error=str(e))
                raise
        return wrapper
    return decorator
