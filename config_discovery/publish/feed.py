"""Non-blocking broadcast of published snapshots."""

import asyncio
from typing import Generic, TypeVar

import structlog

logger = structlog.get_logger(__name__)

T = TypeVar("T")

_CLOSED = object()


class Subscription(Generic[T]):
    """One subscriber's delivery handle.

    Holds at most buffer_size pending updates; older ones are dropped when a
    new update arrives and the buffer is full.
    """

    def __init__(self, feed: "UpdateFeed[T]", buffer_size: int) -> None:
        self._feed = feed
        # One extra slot so the close marker always fits.
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=buffer_size + 1)
        self.buffer_size = buffer_size
        self.dropped = 0
        self.closed = False

    def _deliver(self, item: T) -> None:
        if self.closed:
            return
        while self._queue.qsize() >= self.buffer_size:
            self._queue.get_nowait()
            self.dropped += 1
        self._queue.put_nowait(item)

    def _finish(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._queue.put_nowait(_CLOSED)

    def close(self) -> None:
        """Stop receiving updates and end iteration."""
        self._feed.unsubscribe(self)
        self._finish()

    def pending(self) -> int:
        return self._queue.qsize() - (1 if self.closed else 0)

    def get_nowait(self) -> T | None:
        """Return the next pending update, or None if nothing is pending."""
        if self._queue.empty():
            return None
        item = self._queue.get_nowait()
        if item is _CLOSED:
            # Keep the marker so later reads also see the end.
            self._queue.put_nowait(_CLOSED)
            return None
        return item

    async def get(self) -> T:
        """Wait for the next update.

        Raises:
            StopAsyncIteration: If the subscription is closed
        """
        item = await self._queue.get()
        if item is _CLOSED:
            self._queue.put_nowait(_CLOSED)
            raise StopAsyncIteration
        return item

    def __aiter__(self) -> "Subscription[T]":
        return self

    async def __anext__(self) -> T:
        return await self.get()


class UpdateFeed(Generic[T]):
    """Fan-out of updates to any number of subscriptions.

    publish() never blocks, so a subscriber that stops reading cannot stall
    the publisher.
    """

    def __init__(self, buffer_size: int = 1) -> None:
        if buffer_size < 1:
            raise ValueError("buffer_size must be at least 1")
        self.buffer_size = buffer_size
        self._subscriptions: list[Subscription[T]] = []
        self.closed = False

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def subscribe(self, current: T | None = None) -> Subscription[T]:
        """Create a subscription.

        Args:
            current: Optional item delivered first, e.g. the snapshot that is
                already published

        Returns:
            New subscription receiving every later publish()
        """
        sub: Subscription[T] = Subscription(self, self.buffer_size)
        if self.closed:
            sub._finish()
            return sub
        if current is not None:
            sub._deliver(current)
        self._subscriptions.append(sub)
        logger.debug("Update subscriber added", subscribers=len(self._subscriptions))
        return sub

    def unsubscribe(self, sub: Subscription[T]) -> None:
        if sub in self._subscriptions:
            self._subscriptions.remove(sub)

    def publish(self, item: T) -> None:
        """Deliver item to every subscription without blocking."""
        for sub in self._subscriptions:
            before = sub.dropped
            sub._deliver(item)
            if sub.dropped > before:
                logger.debug("Dropped stale update for slow subscriber")

    def close(self) -> None:
        """End all subscriptions."""
        self.closed = True
        subscriptions, self._subscriptions = self._subscriptions, []
        for sub in subscriptions:
            sub._finish()
