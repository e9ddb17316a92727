"""
In-memory Event Broadcaster Implementation

One instance per process, provided by the DI container.
"""

from typing import Any, Dict, List

from anyio import BrokenResourceError, ClosedResourceError, WouldBlock, create_memory_object_stream
from anyio.streams.memory import MemoryObjectReceiveStream, MemoryObjectSendStream

from src.platform.config.core_setting import settings
from src.platform.logging.loguru_io import Logger


_StreamPair = tuple[
    MemoryObjectSendStream[dict[str, Any]], MemoryObjectReceiveStream[dict[str, Any]]
]


class InMemoryEventBroadcasterImpl:
    """
    Memory Management:
    - Stream buffer: BROADCAST_BUFFER_SIZE events per subscriber
    - Drop policy: send_nowait raises WouldBlock when full, the event is dropped
    - Cleanup: empty channel lists are removed on unsubscribe
    """

    def __init__(self, *, max_buffer_size: int | None = None) -> None:
        self._max_buffer_size = (
            settings.BROADCAST_BUFFER_SIZE if max_buffer_size is None else max_buffer_size
        )
        self._subscribers: Dict[str, List[_StreamPair]] = {}

    async def subscribe(self, *, channel: str) -> MemoryObjectReceiveStream[dict[str, Any]]:
        send_stream, receive_stream = create_memory_object_stream[dict[str, Any]](
            max_buffer_size=self._max_buffer_size
        )
        self._subscribers.setdefault(channel, []).append((send_stream, receive_stream))

        Logger.base.debug(
            f'📡 [BROADCASTER] Subscribed to {channel} '
            f'(total subscribers: {len(self._subscribers[channel])})'
        )
        return receive_stream

    async def broadcast(self, *, channel: str, event_data: dict[str, Any]) -> None:
        subscribers = self._subscribers.get(channel)
        if not subscribers:
            Logger.base.debug(f'📡 [BROADCASTER] No subscribers for {channel}')
            return

        delivered = 0
        dropped = 0
        for pair in list(subscribers):
            send_stream = pair[0]
            try:
                send_stream.send_nowait(event_data)
                delivered += 1
            except WouldBlock:
                dropped += 1
                Logger.base.warning(
                    f'⚠️ [BROADCASTER] Stream full for {channel}, '
                    f'dropping event (type={event_data.get("event_type")})'
                )
            except (BrokenResourceError, ClosedResourceError):
                # Receiver went away without unsubscribing
                dropped += 1
                subscribers.remove(pair)

        Logger.base.info(
            f'📡 [BROADCASTER] Broadcast to {channel}: delivered={delivered}, dropped={dropped}'
        )

    async def unsubscribe(
        self, *, channel: str, stream: MemoryObjectReceiveStream[dict[str, Any]]
    ) -> None:
        subscribers = self._subscribers.get(channel)
        if subscribers is None:
            return

        for i, (send_stream, receive_stream) in enumerate(subscribers):
            if receive_stream is stream:
                await send_stream.aclose()
                await receive_stream.aclose()
                subscribers.pop(i)
                Logger.base.debug(
                    f'📡 [BROADCASTER] Unsubscribed from {channel} (remaining: {len(subscribers)})'
                )
                break

        if not subscribers:
            del self._subscribers[channel]
            Logger.base.debug(f'📡 [BROADCASTER] Cleaned up empty list for {channel}')

    def subscriber_count(self, *, channel: str) -> int:
        return len(self._subscribers.get(channel, []))
