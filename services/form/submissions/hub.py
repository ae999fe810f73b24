"""In-process fan-out of new responses to live observers."""
from __future__ import annotations

import logging
import queue
import threading
from typing import Any, Dict, Optional, Set

from django.conf import settings

logger = logging.getLogger(__name__)


class ObserverClosed(Exception):
    """Raised when delivering to an observer that has already gone away."""


class QueueObserver:
    """A live connection's outbound mailbox.

    ``deliver`` never blocks: when the connection falls behind and its queue
    is full the observer is closed and the connection ends on its next read.
    """

    def __init__(self, form_id: str, maxsize: Optional[int] = None) -> None:
        self.form_id = form_id
        if maxsize is None:
            maxsize = settings.FORM_LIVE_QUEUE_SIZE
        self._queue: "queue.Queue[Dict[str, Any]]" = queue.Queue(maxsize=maxsize)
        self._closed = threading.Event()

    def __repr__(self) -> str:
        return f"<QueueObserver form={self.form_id} id={id(self):#x}>"

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def close(self) -> None:
        self._closed.set()

    def deliver(self, event: Dict[str, Any]) -> None:
        if self.closed:
            raise ObserverClosed(repr(self))
        try:
            self._queue.put_nowait(event)
        except queue.Full:
            self.close()
            raise

    def next_event(self, timeout: float) -> Optional[Dict[str, Any]]:
        """Wait up to ``timeout`` seconds; ``None`` means nothing arrived."""

        if self.closed:
            raise ObserverClosed(repr(self))
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None


class LiveHub:
    """Maps form ids to the observers currently watching them."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._observers: Dict[str, Set[Any]] = {}

    def subscribe(self, form_id: str, observer: Any) -> None:
        with self._lock:
            self._observers.setdefault(form_id, set()).add(observer)
        logger.debug("Observer %r subscribed to form %s", observer, form_id)

    def unsubscribe(self, form_id: str, observer: Any) -> None:
        with self._lock:
            observers = self._observers.get(form_id)
            if observers is None:
                return
            observers.discard(observer)
            if not observers:
                del self._observers[form_id]
        logger.debug("Observer %r unsubscribed from form %s", observer, form_id)

    def observer_count(self, form_id: str) -> int:
        with self._lock:
            return len(self._observers.get(form_id, ()))

    def publish(self, form_id: str, event: Dict[str, Any]) -> int:
        """Hand ``event`` to every observer of ``form_id``.

        Returns the number of observers that accepted it. Delivery failures
        are logged and never reach the caller.
        """

        with self._lock:
            observers = list(self._observers.get(form_id, ()))

        delivered = 0
        for observer in observers:
            try:
                observer.deliver(event)
            except Exception:
                logger.warning(
                    "Dropping live update for form %s to %r", form_id, observer, exc_info=True
                )
                continue
            delivered += 1
        return delivered


hub = LiveHub()
