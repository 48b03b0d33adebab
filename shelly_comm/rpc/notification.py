"""
Notification routing

Persistent transports (WebSocket, MQTT) deliver unsolicited frames such as
NotifyStatus and NotifyEvent. The router fans them out to general handlers
``(method, params)`` and to handlers registered for one method ``(params)``.
"""

import logging
import threading
from typing import Any, Callable, Dict, List

from shelly_comm.rpc.response import Notification

logger = logging.getLogger(__name__)

NotificationHandler = Callable[[str, Any], None]
MethodNotificationHandler = Callable[[Any], None]


class NotificationRouter:
    """Thread-safe registry of notification handlers"""

    def __init__(self):
        self._lock = threading.RLock()
        self._handlers: List[NotificationHandler] = []
        self._method_handlers: Dict[str, List[MethodNotificationHandler]] = {}

    def on_notification(self, handler: NotificationHandler) -> None:
        if handler is None:
            return
        with self._lock:
            self._handlers.append(handler)

    def on_notification_method(self, method: str, handler: MethodNotificationHandler) -> None:
        if handler is None or not method:
            return
        with self._lock:
            self._method_handlers.setdefault(method, []).append(handler)

    def remove_notification_handlers(self) -> None:
        with self._lock:
            self._handlers = []

    def remove_method_handlers(self, method: str) -> None:
        with self._lock:
            self._method_handlers.pop(method, None)

    def remove_all_handlers(self) -> None:
        with self._lock:
            self._handlers = []
            self._method_handlers = {}

    def route(self, notification: Notification) -> None:
        """Dispatch a notification to general handlers, then to its method handlers

        A failing handler is logged and does not prevent the remaining handlers from running.
        """
        if notification is None:
            return
        with self._lock:
            handlers = list(self._handlers)
            method_handlers = list(self._method_handlers.get(notification.method, []))

        for handler in handlers:
            try:
                handler(notification.method, notification.params)
            except Exception as e:
                logger.error(f"Notification handler failed for {notification.method}: {str(e)}")
        for handler in method_handlers:
            try:
                handler(notification.params)
            except Exception as e:
                logger.error(f"Notification handler failed for {notification.method}: {str(e)}")

    @property
    def has_handlers(self) -> bool:
        with self._lock:
            return bool(self._handlers) or any(self._method_handlers.values())

    def has_method_handlers(self, method: str) -> bool:
        with self._lock:
            return bool(self._method_handlers.get(method))

    @property
    def handler_count(self) -> int:
        with self._lock:
            return len(self._handlers) + sum(len(h) for h in self._method_handlers.values())

    def method_handler_count(self, method: str) -> int:
        with self._lock:
            return len(self._method_handlers.get(method, []))

    @property
    def methods(self) -> List[str]:
        with self._lock:
            return [method for method, handlers in self._method_handlers.items() if handlers]
