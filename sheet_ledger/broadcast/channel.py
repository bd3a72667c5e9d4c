# sheet_ledger/broadcast/channel.py
"""
Real-time change notifications over Server-Sent Events.

Each connected client gets its own queue. Publishing drops the event into
every queue without waiting; there is no acknowledgement, no replay and no
persistence. A client that falls behind far enough to fill its queue simply
misses events.
"""

import json
import logging
import queue
import threading
from typing import Any, Dict, Iterator, List

from sheet_ledger.utils.timing import format_utc_timestamp

logger = logging.getLogger(__name__)

EVENT_ADD = 'add'
EVENT_UPDATE = 'update'
EVENT_DELETE = 'delete'

SSE_HEADERS = {
    'Cache-Control': 'no-cache',
    'X-Accel-Buffering': 'no',
    'Connection': 'keep-alive',
}

DEFAULT_QUEUE_SIZE = 100


def format_sse(event: str, data: Dict[str, Any]) -> str:
    """Encode one Server-Sent Events frame."""
    payload = json.dumps(data, ensure_ascii=False)
    return f"event: {event}\ndata: {payload}\n\n"


class EventChannel:
    """Fan-out of change events to every currently subscribed listener."""

    def __init__(self, enabled: bool = True, queue_size: int = DEFAULT_QUEUE_SIZE):
        self.enabled = enabled
        self.queue_size = queue_size
        self._listeners: List[queue.Queue] = []
        self._lock = threading.Lock()

    @property
    def listener_count(self) -> int:
        with self._lock:
            return len(self._listeners)

    def subscribe(self) -> queue.Queue:
        listener = queue.Queue(maxsize=self.queue_size)
        with self._lock:
            self._listeners.append(listener)
        logger.info(f"Broadcast listener connected ({self.listener_count} total)")
        return listener

    def unsubscribe(self, listener: queue.Queue) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)
        logger.info(f"Broadcast listener disconnected ({self.listener_count} total)")

    def publish(self, event: str, message: str) -> int:
        """
        Send an event to every listener.

        Args:
            event (str): Event name ('add', 'update' or 'delete')
            message (str): Human-readable description of the change

        Returns:
            int: Number of listeners the event was delivered to
        """
        if not self.enabled:
            return 0

        payload = {
            'event': event,
            'message': message,
            'timestamp': format_utc_timestamp()
        }

        with self._lock:
            listeners = list(self._listeners)

        delivered = 0
        for listener in listeners:
            try:
                listener.put_nowait(payload)
                delivered += 1
            except queue.Full:
                logger.warning(f"Dropped '{event}' event for a slow listener")

        logger.debug(f"Broadcast '{event}' to {delivered} listeners")
        return delivered

    def stream(self, heartbeat: float = 15.0) -> Iterator[str]:
        """
        Subscribe and yield SSE frames until the client goes away.

        The listener is registered only once the body is actually iterated,
        so responses whose body is never read (HEAD) leave nothing behind.

        A comment frame is sent on connect and after every idle heartbeat
        interval so proxies keep the connection open.
        """
        listener = self.subscribe()
        try:
            yield ": connected\n\n"
            while True:
                try:
                    payload = listener.get(timeout=heartbeat)
                except queue.Empty:
                    yield ": keep-alive\n\n"
                    continue
                yield format_sse(payload['event'], payload)
        finally:
            self.unsubscribe(listener)
