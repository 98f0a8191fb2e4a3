import logging
import time
from typing import Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def connect_with_retry(factory: Callable[[], T], max_retries: int = 3) -> T:
    """
    Build a client with bounded exponential backoff.

    ``factory`` is called up to ``max_retries`` times and must construct a
    fresh client on every call. After failed attempt ``i`` (zero-indexed) the
    loop sleeps ``2 ** i`` seconds before trying again. The exception from the
    last attempt is re-raised.

    Args:
        factory (Callable[[], T]): Builds and connects a new client.
        max_retries (int, optional): Maximum number of attempts. Defaults to 3.

    Returns:
        T: The first client that was built successfully.
    """
    if max_retries < 1:
        raise ValueError("max_retries must be at least 1")

    for attempt in range(max_retries):
        try:
            client = factory()
            logger.info("ACP client connected successfully")
            return client
        except Exception as e:
            logger.error(f"ACP client connection attempt {attempt + 1} failed: {e}")
            if attempt < max_retries - 1:
                delay = 2 ** attempt
                logger.info(f"Retrying in {delay}s...")
                time.sleep(delay)
            else:
                raise
