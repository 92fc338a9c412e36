import time
from typing import Callable, TypeVar

from filegate.errors import RetryableError
from filegate.logging_config import logger

T = TypeVar("T")


def retry_call(fn: Callable[..., T], *args, attempts: int = 3, delay: float = 0.2, **kwargs) -> T:
    """
    Call fn, retrying only on RetryableError kinds.

    Sleeps delay * attempt_number between tries; the last error is re-raised.
    """
    attempt = 1
    while True:
        try:
            return fn(*args, **kwargs)
        except RetryableError as exc:
            if attempt >= attempts:
                raise
            logger.warning("%s failed (%s), retry %d/%d",
                           getattr(fn, "__name__", "call"), exc.detail, attempt, attempts - 1)
            if delay > 0:
                time.sleep(delay * attempt)
            attempt += 1
