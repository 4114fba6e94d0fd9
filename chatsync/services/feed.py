"""
In-process change feed and live queries.

Writers publish a topic after each store write; live queries listen on a topic
and re-run their query, handing the full ordered sequence to the subscriber.
There is no diffing: every emission replaces the previous one wholesale.

    query = chat_service.watch_messages(room_id)
    subscription = query.subscribe(lambda messages: print(len(messages)))
    ...
    subscription.cancel()  # no callbacks after this returns
"""
import asyncio
import inspect
import logging
from collections import defaultdict
from typing import Any, Awaitable, Callable, Dict, Generic, List, Optional, Set, TypeVar

from chatsync.core.result import Err, Result

logger = logging.getLogger(__name__)

T = TypeVar("T")

Listener = Callable[[Any], Any]


def rooms_topic(user_id: str) -> str:
    return f"rooms:{user_id}"


def messages_topic(chat_room_id: str) -> str:
    return f"messages:{chat_room_id}"


MESSAGE_CREATED = "message_created"


class ChangeFeed:
    def __init__(self):
        self._listeners: Dict[str, List[Listener]] = defaultdict(list)
        self._pending: Set[asyncio.Task] = set()

    def listen(self, topic: str, listener: Listener) -> Callable[[], None]:
        self._listeners[topic].append(listener)

        def remove():
            listeners = self._listeners.get(topic)
            if listeners and listener in listeners:
                listeners.remove(listener)
                if not listeners:
                    del self._listeners[topic]

        return remove

    def listener_count(self, topic: str) -> int:
        return len(self._listeners.get(topic, ()))

    def publish(self, topic: str, payload: Any = None) -> None:
        for listener in list(self._listeners.get(topic, ())):
            outcome = listener(payload)
            if inspect.isawaitable(outcome):
                self.spawn(outcome)

    def spawn(self, coro: Awaitable[None]) -> asyncio.Task:
        task = asyncio.ensure_future(coro)
        self._pending.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Change feed listener failed", exc_info=exc)

    async def drain(self) -> None:
        """Wait until every delivery scheduled so far has finished."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)


class Subscription:
    def __init__(self, remove_listener: Callable[[], None]):
        self._remove_listener = remove_listener
        self._tasks: Set[asyncio.Task] = set()
        self.cancelled = False

    def _track(self, task: asyncio.Task) -> None:
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def cancel(self) -> None:
        if self.cancelled:
            return
        self.cancelled = True
        self._remove_listener()
        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()


class LiveQuery(Generic[T]):
    def __init__(
        self,
        feed: ChangeFeed,
        topic: str,
        fetch: Callable[[], Awaitable["Result[List[T]]"]],
    ):
        self.feed = feed
        self.topic = topic
        self._fetch = fetch

    async def snapshot(self) -> "Result[List[T]]":
        return await self._fetch()

    def subscribe(
        self,
        callback: Callable[[List[T]], Any],
        on_error: Optional[Callable[[Err], Any]] = None,
    ) -> Subscription:
        """Emit the current sequence now and again after every change on the topic."""
        lock = asyncio.Lock()
        subscription: Optional[Subscription] = None

        async def emit(_payload=None):
            async with lock:
                if subscription is None or subscription.cancelled:
                    return
                result = await self._fetch()
                if subscription.cancelled:
                    return
                if isinstance(result, Err):
                    logger.warning("Live query %s failed: %s", self.topic, result.message)
                    if on_error is not None:
                        await _call(on_error, result)
                    return
                await _call(callback, result.value)

        def on_change(payload):
            subscription._track(self.feed.spawn(emit(payload)))

        remove = self.feed.listen(self.topic, on_change)
        subscription = Subscription(remove)
        on_change(None)
        return subscription


async def _call(func: Callable[..., Any], *args) -> None:
    outcome = func(*args)
    if inspect.isawaitable(outcome):
        await outcome
