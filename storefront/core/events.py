"""
Event Bus

In-process publish/subscribe used for two things:
- storage-change events (topic ``storage``) so long-lived holders of stored
  state can reload when another writer changes the same key
- user-facing notifications (topic ``notifications``) emitted by the cart,
  wishlist, address book and checkout

The bus knows nothing about the storage medium; the in-memory store in tests
and the database/Redis stores in production publish the same events.
"""
import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from storefront.core.utils import utcnow

logger = logging.getLogger(__name__)

STORAGE_TOPIC = "storage"
NOTIFICATION_TOPIC = "notifications"

Handler = Callable[[Any], Any]


@dataclass
class StorageEvent:
    """A key was written or deleted."""
    key: str
    new_value: Any = None
    old_value: Any = None
    origin: Optional[str] = None


@dataclass
class Notification:
    """Message meant for the buyer or seller who triggered an action."""
    title: str
    description: Optional[str] = None
    variant: str = "default"  # 'default' or 'destructive'
    user_key: Optional[str] = None
    created_at: Any = field(default_factory=utcnow)


class EventBus:
    """
    Topic-based observer registry.

    Handlers run in subscription order. Coroutine handlers are awaited.
    A failing handler is logged and skipped; it never fails the publisher.
    """

    def __init__(self):
        self._handlers: Dict[str, List[Handler]] = {}

    def subscribe(self, topic: str, handler: Handler) -> Callable[[], None]:
        """Register handler for topic. Returns a callable that unsubscribes it."""
        self._handlers.setdefault(topic, []).append(handler)

        def _unsubscribe():
            self.unsubscribe(topic, handler)

        return _unsubscribe

    def unsubscribe(self, topic: str, handler: Handler) -> bool:
        handlers = self._handlers.get(topic, [])
        if handler in handlers:
            handlers.remove(handler)
            return True
        return False

    async def publish(self, topic: str, event: Any) -> int:
        """Deliver event to every handler of topic. Returns number delivered."""
        delivered = 0
        # Copy so handlers may unsubscribe themselves while running
        for handler in list(self._handlers.get(topic, [])):
            try:
                result = handler(event)
                if inspect.isawaitable(result):
                    await result
                delivered += 1
            except Exception:
                logger.exception(f"Event handler {handler!r} failed on topic '{topic}'")
        return delivered

    async def notify(
        self,
        title: str,
        description: Optional[str] = None,
        variant: str = "default",
        user_key: Optional[str] = None,
    ) -> Notification:
        notification = Notification(
            title=title,
            description=description,
            variant=variant,
            user_key=user_key,
        )
        await self.publish(NOTIFICATION_TOPIC, notification)
        return notification
