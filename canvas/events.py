from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Callable, DefaultDict, List

TOAST = "designer.toast"
BUSY = "designer.busy"
MENU = "designer.menu"
CHANGED = "designer.changed"
TOOL = "designer.tool"

EventCallback = Callable[[Any], None]


@dataclass(frozen=True)
class Notification:
    """Non-blocking message shown to the user as a toast."""

    title: str
    description: str = ""
    variant: str = "default"

    @property
    def is_error(self) -> bool:
        return self.variant == "destructive"


class EventBus:
    """Publish/subscribe hub between the canvas engine and whatever renders it."""

    def __init__(self) -> None:
        self._subscribers: DefaultDict[str, List[EventCallback]] = defaultdict(list)

    def subscribe(self, topic: str, callback: EventCallback) -> Callable[[], None]:
        self._subscribers[topic].append(callback)
        return lambda: self.unsubscribe(topic, callback)

    def unsubscribe(self, topic: str, callback: EventCallback) -> None:
        callbacks = self._subscribers.get(topic)
        if not callbacks or callback not in callbacks:
            return
        callbacks.remove(callback)
        if not callbacks:
            self._subscribers.pop(topic, None)

    def emit(self, topic: str, payload: Any | None = None) -> None:
        for callback in list(self._subscribers.get(topic, ())):
            callback(payload)

    def toast(self, title: str, description: str = "", *, error: bool = False) -> Notification:
        notification = Notification(title, description, "destructive" if error else "default")
        self.emit(TOAST, notification)
        return notification
