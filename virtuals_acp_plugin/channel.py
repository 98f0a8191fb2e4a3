import logging
import threading
from concurrent.futures import CancelledError, Future
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Any, Optional, Set

from virtuals_acp_plugin.exceptions import (
    ACPDelegationCancelledError,
    ACPDelegationTimeoutError,
)

logger = logging.getLogger(__name__)


class ReplyChannel:
    """Single-shot request/response channel between a job and the runtime.

    The runtime's reply callback calls ``reply`` once; the waiting side blocks
    in ``wait`` for at most ``timeout`` seconds. Replies after the first, or
    after the channel was cancelled, are dropped.
    """

    def __init__(self, name: str):
        self.name = name
        self._future: Future = Future()
        self._lock = threading.Lock()
        self._claimed = False

    @property
    def done(self) -> bool:
        return self._future.done()

    def claim(self) -> bool:
        """Reserve the channel for the one reply it will carry.

        Once claimed the channel can no longer be cancelled, so the waiting
        side keeps waiting until ``resolve`` is called. Returns False when the
        channel was already claimed or cancelled.
        """
        with self._lock:
            if self._claimed or self._future.done():
                logger.warning(f"[{self.name}] Reply dropped, channel already closed")
                return False
            self._claimed = True
            if not self._future.set_running_or_notify_cancel():
                logger.warning(f"[{self.name}] Reply dropped, channel was cancelled")
                return False
            return True

    def resolve(self, value: Any) -> None:
        """Complete a claimed channel with ``value``."""
        if not self._claimed:
            raise RuntimeError(f"[{self.name}] Channel must be claimed before it is resolved")
        self._future.set_result(value)

    def reply(self, value: Any) -> bool:
        if not self.claim():
            return False
        self.resolve(value)
        return True

    def cancel(self) -> bool:
        return self._future.cancel()

    def wait(self, timeout: float) -> Optional[Any]:
        try:
            return self._future.result(timeout=timeout)
        except FutureTimeoutError:
            if not self.cancel():
                # claimed, the reply is being written right now
                return self._future.result()
            raise ACPDelegationTimeoutError(
                f"No reply for {self.name} within {timeout} seconds"
            )
        except CancelledError:
            raise ACPDelegationCancelledError(f"Reply for {self.name} was cancelled")


class PendingReplies:
    """Tracks open reply channels so they can be cancelled on shutdown."""

    def __init__(self):
        self._channels: Set[ReplyChannel] = set()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._channels)

    def open(self, name: str) -> ReplyChannel:
        channel = ReplyChannel(name)
        with self._lock:
            self._channels.add(channel)
        return channel

    def close(self, channel: ReplyChannel) -> None:
        with self._lock:
            self._channels.discard(channel)

    def cancel_all(self) -> int:
        with self._lock:
            channels = list(self._channels)
            self._channels.clear()
        cancelled = sum(1 for channel in channels if channel.cancel())
        if cancelled:
            logger.info(f"Cancelled {cancelled} pending ACP replies")
        return cancelled
