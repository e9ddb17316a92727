"""
In-memory Event Broadcaster Interface

Pub/sub between use cases and SSE endpoints living in the same process.
Subscribers are grouped by channel (one channel per carpool group).
"""

from typing import Any, Protocol

from anyio.streams.memory import MemoryObjectReceiveStream


class IInMemoryEventBroadcaster(Protocol):
    async def subscribe(self, *, channel: str) -> MemoryObjectReceiveStream[dict[str, Any]]:
        """Register a new subscriber stream on `channel`."""
        ...

    async def broadcast(self, *, channel: str, event_data: dict[str, Any]) -> None:
        """
        Deliver `event_data` to every subscriber of `channel`.

        Never blocks: a subscriber whose buffer is full misses the event.
        """
        ...

    async def unsubscribe(
        self, *, channel: str, stream: MemoryObjectReceiveStream[dict[str, Any]]
    ) -> None:
        """Close and drop the stream. Unknown channels and streams are ignored."""
        ...

    def subscriber_count(self, *, channel: str) -> int: ...
