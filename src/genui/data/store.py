"""Path-addressed reactive data store."""

import copy
from collections import deque
from typing import Any, Callable

from ..core import get_logger
from .paths import get_in, join_path, parse_path, set_in

logger = get_logger(__name__)

Subscriber = Callable[[Any], None]
Unsubscribe = Callable[[], None]


class DataStore:
    """
    Mutable JSON-like document with per-path subscriptions.

    A write at path P notifies subscribers registered at P and at every
    ancestor of P. Subscribers below P are notified only when their value
    actually changed. Subscribers elsewhere are never notified.

    Writes issued while subscribers are being notified are queued and
    applied once the current round finishes, so writes and their
    notifications never interleave.
    """

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._document: Any = copy.deepcopy(initial) if initial is not None else {}
        self._subscribers: dict[tuple[str, ...], list[Subscriber]] = {}
        self._pending: deque[tuple[tuple[str, ...], Any]] = deque()
        self._flushing = False

    @property
    def data(self) -> Any:
        """Live document (treat as read-only)."""
        return self._document

    def snapshot(self) -> Any:
        """Deep copy of the current document."""
        return copy.deepcopy(self._document)

    def get(self, path: str) -> Any:
        """Value at path, or None when the path does not exist."""
        return get_in(self._document, parse_path(path))

    def set(self, path: str, value: Any) -> None:
        """Write value at path, creating intermediate containers."""
        self._pending.append((parse_path(path), value))
        self._drain()

    def set_data(self, document: dict[str, Any]) -> None:
        """Replace the whole document."""
        self._pending.append(((), copy.deepcopy(document)))
        self._drain()

    def subscribe(self, path: str, callback: Subscriber) -> Unsubscribe:
        """
        Register callback for changes at path.

        The callback receives the new value at its own path.

        Returns:
            Function removing the subscription (idempotent)
        """
        segments = parse_path(path)
        self._subscribers.setdefault(segments, []).append(callback)

        def unsubscribe() -> None:
            callbacks = self._subscribers.get(segments)
            if callbacks and callback in callbacks:
                callbacks.remove(callback)
                if not callbacks:
                    del self._subscribers[segments]

        return unsubscribe

    def binding(self, path: str) -> tuple[Callable[[], Any], Callable[[Any], None]]:
        """Two-way binding helper returning (getter, setter) for path."""
        return (lambda: self.get(path)), (lambda value: self.set(path, value))

    def _drain(self) -> None:
        if self._flushing:
            return
        self._flushing = True
        try:
            while self._pending:
                segments, value = self._pending.popleft()
                self._apply(segments, value)
        except Exception:
            dropped = len(self._pending)
            self._pending.clear()
            if dropped:
                logger.warning("queued_writes_dropped", count=dropped)
            raise
        finally:
            self._flushing = False

    def _apply(self, segments: tuple[str, ...], value: Any) -> None:
        # Capture descendant values before the write to detect real changes
        before = {
            key: copy.deepcopy(get_in(self._document, key))
            for key in self._subscribers
            if len(key) > len(segments) and key[: len(segments)] == segments
        }

        self._document = set_in(self._document, segments, value)
        logger.debug("data_set", path=join_path(segments))

        targets = [segments[:i] for i in range(len(segments), -1, -1)]
        targets += [key for key in before if get_in(self._document, key) != before[key]]

        for key in targets:
            for callback in list(self._subscribers.get(key, ())):
                self._notify(key, callback)

    def _notify(self, segments: tuple[str, ...], callback: Subscriber) -> None:
        try:
            callback(get_in(self._document, segments))
        except Exception as e:
            logger.warning("subscriber_failed", path=join_path(segments), error=str(e))
