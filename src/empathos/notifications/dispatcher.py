"""Action dispatcher — bounded action history plus subscriber fan-out.

Architecture
~~~~~~~~~~~~
* **Subscription** — handle returned by ``subscribe()``; call it (or its
  ``unsubscribe()``) to detach.
* **BackgroundSubscriber** — runs a slow callback on its own worker thread
  behind a bounded queue, so it cannot stall a cycle.
* **ActionDispatcher** — records every action, then fans it out to
  subscribers in registration order with per-subscriber error isolation.
"""

from __future__ import annotations

import itertools
import queue
import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field

import structlog

from empathos.history.store import BoundedBuffer
from empathos.models import ActionEvent

logger = structlog.get_logger(__name__)

ActionCallback = Callable[[ActionEvent], object]

_STOP = object()


def _callback_name(callback: ActionCallback) -> str:
    return (
        getattr(callback, "name", None)
        or getattr(callback, "__qualname__", None)
        or type(callback).__name__
    )


# ── Dispatch result ───────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class DispatchResult:
    """Outcome summary for a single ``publish()`` call."""

    action_id: str
    delivered: list[int] = field(default_factory=list)
    failed: list[int] = field(default_factory=list)

    @property
    def all_ok(self) -> bool:
        return len(self.failed) == 0


# ── Subscribers ───────────────────────────────────────────────


class BackgroundSubscriber:
    """Deliver actions to *callback* from a dedicated worker thread.

    Actions are queued in publish order and delivered one at a time.  When
    the queue stays full for longer than *put_timeout* seconds the action
    is dropped for this subscriber and logged.
    """

    def __init__(
        self,
        callback: ActionCallback,
        *,
        maxsize: int = 256,
        put_timeout: float = 0.5,
    ) -> None:
        self._callback = callback
        self._queue: queue.Queue[object] = queue.Queue(maxsize=maxsize)
        self._put_timeout = put_timeout
        self.name = _callback_name(callback)
        self.dropped = 0
        self._thread = threading.Thread(
            target=self._run, name=f"empathos-subscriber-{self.name}", daemon=True,
        )
        self._thread.start()

    def __call__(self, action: ActionEvent) -> None:
        try:
            self._queue.put(action, timeout=self._put_timeout)
        except queue.Full:
            self.dropped += 1
            logger.error(
                "dispatcher.backlog_full",
                subscriber=self.name,
                action_id=action.id,
                dropped=self.dropped,
            )

    def close(self, timeout: float = 5.0) -> None:
        """Deliver what is already queued, then stop the worker."""
        try:
            self._queue.put(_STOP, timeout=timeout)
        except queue.Full:
            logger.error("dispatcher.close_timeout", subscriber=self.name)
            return
        # A callback that unsubscribes itself closes from the worker thread.
        if threading.current_thread() is not self._thread:
            self._thread.join(timeout)

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    return
                self._callback(item)  # type: ignore[arg-type]
            except Exception:
                logger.exception("dispatcher.subscriber_error", subscriber=self.name, background=True)
            finally:
                self._queue.task_done()


class Subscription:
    """Disposer returned by :meth:`ActionDispatcher.subscribe`."""

    def __init__(self, dispatcher: ActionDispatcher, subscriber_id: int) -> None:
        self._dispatcher = dispatcher
        self.id = subscriber_id

    def unsubscribe(self) -> bool:
        """Detach the subscriber.  Returns ``False`` if already detached."""
        return self._dispatcher._remove(self.id)

    def __call__(self) -> bool:
        return self.unsubscribe()


# ── Dispatcher ────────────────────────────────────────────────


class ActionDispatcher:
    """Record actions in a bounded history and fan them out to subscribers.

    Each subscriber is invoked independently — a failure in one never
    blocks delivery to the others, nor affects the history.

    Parameters
    ----------
    history_capacity : int
        Number of most recent actions retained (default 100).
    queue_size, put_timeout :
        Defaults for subscribers registered with ``background=True``.
    """

    def __init__(
        self,
        history_capacity: int = 100,
        *,
        queue_size: int = 256,
        put_timeout: float = 0.5,
    ) -> None:
        self._history: BoundedBuffer[ActionEvent] = BoundedBuffer(history_capacity)
        self._subscribers: dict[int, ActionCallback] = {}
        self._ids = itertools.count(1)
        self._lock = threading.RLock()
        self._queue_size = queue_size
        self._put_timeout = put_timeout

    # ── Subscriber management ─────────────────────────────────

    def subscribe(self, callback: ActionCallback, *, background: bool = False) -> Subscription:
        """Register *callback*; the returned handle detaches it again."""
        subscriber: ActionCallback = callback
        if background:
            subscriber = BackgroundSubscriber(
                callback, maxsize=self._queue_size, put_timeout=self._put_timeout,
            )
        with self._lock:
            subscriber_id = next(self._ids)
            self._subscribers[subscriber_id] = subscriber
        logger.debug(
            "dispatcher.subscribed",
            subscriber_id=subscriber_id,
            subscriber=_callback_name(callback),
            background=background,
        )
        return Subscription(self, subscriber_id)

    def _remove(self, subscriber_id: int) -> bool:
        with self._lock:
            subscriber = self._subscribers.pop(subscriber_id, None)
        if subscriber is None:
            return False
        if isinstance(subscriber, BackgroundSubscriber):
            subscriber.close()
        logger.debug("dispatcher.unsubscribed", subscriber_id=subscriber_id)
        return True

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def close(self) -> None:
        """Detach every subscriber, draining background queues."""
        with self._lock:
            ids = list(self._subscribers)
        for subscriber_id in ids:
            self._remove(subscriber_id)

    # ── Dispatch ──────────────────────────────────────────────

    def publish(self, action: ActionEvent) -> DispatchResult:
        """Append *action* to the history, then deliver it to every subscriber."""
        self.record(action)
        return self.deliver(action)

    def record(self, action: ActionEvent) -> None:
        """Append *action* to the history without notifying subscribers."""
        self._history.append(action)

    def deliver(self, action: ActionEvent) -> DispatchResult:
        """Hand *action* to every subscriber in registration order.

        A subscriber that raises is caught, logged, and marked as failed so
        remaining subscribers still run.
        """
        with self._lock:
            subscribers = list(self._subscribers.items())

        delivered: list[int] = []
        failed: list[int] = []
        for subscriber_id, callback in subscribers:
            try:
                callback(action)
                delivered.append(subscriber_id)
            except Exception:
                logger.exception(
                    "dispatcher.subscriber_error",
                    subscriber_id=subscriber_id,
                    subscriber=_callback_name(callback),
                    action_id=action.id,
                )
                failed.append(subscriber_id)

        result = DispatchResult(action_id=action.id, delivered=delivered, failed=failed)
        if result.failed:
            logger.warning(
                "dispatcher.partial_failure",
                action_id=action.id,
                failed=result.failed,
            )
        return result

    def publish_many(self, actions: Iterable[ActionEvent]) -> list[DispatchResult]:
        return [self.publish(a) for a in actions]

    # ── History ───────────────────────────────────────────────

    def get_action_history(self, limit: int | None = None) -> list[ActionEvent]:
        return self._history.recent(limit)

    def clear_history(self) -> None:
        self._history.clear()
