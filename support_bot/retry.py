"""
Bounded retry with jittered exponential backoff.

Used only at store-adapter boundaries (database startup, cache calls) for
transient connection errors. Business logic never retries on its own.
"""

import logging
import random
import time
from typing import Callable, Tuple, Type, TypeVar

from . import config

logger = logging.getLogger(__name__)

T = TypeVar("T")


def retry_call(
    func: Callable[[], T],
    retry_on: Tuple[Type[BaseException], ...],
    attempts: int = None,
    base_delay: float = None,
    description: str = "store call",
) -> T:
    """
    Call func, retrying on the given exception types.

    The delay before retry n (1-based) is base_delay * 2**(n-1) plus up to
    the same amount of random jitter. The last exception is re-raised once
    attempts are exhausted.
    """
    if attempts is None:
        attempts = config.STORE_RETRY_ATTEMPTS
    if base_delay is None:
        base_delay = config.STORE_RETRY_BASE_DELAY
    attempts = max(1, attempts)

    for attempt in range(1, attempts + 1):
        try:
            return func()
        except retry_on as e:
            if attempt >= attempts:
                logger.error("%s failed after %d attempts: %s", description, attempts, e)
                raise
            delay = base_delay * (2 ** (attempt - 1))
            delay += random.uniform(0, delay)
            logger.warning(
                "%s failed (attempt %d/%d): %s; retrying in %.2fs",
                description, attempt, attempts, e, delay,
            )
            time.sleep(delay)

    # unreachable: the loop either returns or raises
    raise RuntimeError("retry_call exhausted without result")
