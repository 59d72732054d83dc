"""Fan-out of published events to live subscribers."""

import asyncio
from dataclasses import dataclass, field
from typing import Optional

from .config import SUBSCRIBER_QUEUE_SIZE
from .logging_config import get_logger

logger = get_logger(__name__, namespace='sse')


# Marker queued to a subscription when it is closed from the hub side
END_OF_STREAM = None


@dataclass(eq=False)
class Subscription:
    """One subscriber's output channel."""
    queue: asyncio.Queue = field(default_factory=lambda: asyncio.Queue(maxsize=SUBSCRIBER_QUEUE_SIZE))
    closed: bool = False

    async def get(self, timeout: Optional[float] = None) -> Optional[dict]:
        """Wait for the next event.

        Returns END_OF_STREAM once the subscription has been closed.

        Raises:
            asyncio.TimeoutError: If no event arrives within ``timeout``
        """
        if self.closed and self.queue.empty():
            return END_OF_STREAM
        if timeout is None:
            return await self.queue.get()
        return await asyncio.wait_for(self.queue.get(), timeout)

    def close(self):
        if self.closed:
            return
        self.closed = True
        # Wake a waiting reader; a full queue is drained before the check above fires
        try:
            self.queue.put_nowait(END_OF_STREAM)
        except asyncio.QueueFull:
            pass


@dataclass
class Broadcaster:
    """Registry of subscriptions; publish never blocks on a subscriber."""
    subscriptions: list[Subscription] = field(default_factory=list)

    def subscribe(self, maxsize: int = SUBSCRIBER_QUEUE_SIZE) -> Subscription:
        """Register a channel that receives events published from now on."""
        subscription = Subscription(queue=asyncio.Queue(maxsize=maxsize))
        self.subscriptions.append(subscription)
        logger.info(f"Subscriber connected. Total: {len(self.subscriptions)}")
        return subscription

    def unsubscribe(self, subscription: Subscription):
        """Remove a channel. Unknown channels are ignored."""
        if subscription in self.subscriptions:
            self.subscriptions.remove(subscription)
            logger.info(f"Subscriber disconnected. Total: {len(self.subscriptions)}")
        subscription.close()

    def publish(self, event: dict):
        """Deliver ``event`` to every live subscriber.

        Closed channels, and channels whose queue is full, are pruned.
        """
        if not self.subscriptions:
            return

        stale = []
        for subscription in self.subscriptions:
            if subscription.closed:
                stale.append(subscription)
                continue
            try:
                subscription.queue.put_nowait(event)
            except asyncio.QueueFull:
                logger.warning("Subscriber queue full; dropping slow subscriber")
                stale.append(subscription)

        for subscription in stale:
            self.unsubscribe(subscription)

    def close_all(self):
        """Close and deregister every subscription (shutdown)."""
        for subscription in list(self.subscriptions):
            self.unsubscribe(subscription)

    @property
    def subscriber_count(self) -> int:
        return len(self.subscriptions)
