"""
NotificationService: the change-event channel.

Events are keyed by staff member id. Subscribers only learn that
something changed for that feed and are expected to re-read.

In-process subscribers are called synchronously after the write has
committed. When Firestore is enabled, the feed document
staff_feed/{feed_id} is merged as well so other instances and devices
see the change; that write is fire-and-forget in a daemon thread.
"""

import logging
import threading
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from housekeeping.db.firestore import get_firestore_client, firestore_enabled, firestore_available

FEED_COLLECTION = "staff_feed"
MANAGERS_FEED = "managers"


class ChangeEvent:
    """Change-event names."""
    ASSIGNMENT_CHANGED = "assignment_changed"
    AWAITING_SUPERVISOR_APPROVAL = "awaiting_supervisor_approval"
    NOTIFY_MANAGERS = "notify_managers"
    ROOM_CHANGED = "room_changed"


Listener = Callable[[Dict[str, Any]], None]


class NotificationService:

    def __init__(self):
        self._client = None
        self._enabled = None
        self._listeners: Dict[str, List[Listener]] = {}
        self._lock = threading.Lock()
        self.logger = logging.getLogger("service.NotificationService")

    @property
    def enabled(self) -> bool:
        if self._enabled is None:
            self._enabled = firestore_enabled() and firestore_available()
        return self._enabled

    @property
    def client(self):
        if self._client is None:
            self._client = get_firestore_client()
        return self._client

    def _run_async(self, func, *args, **kwargs):
        """Fire-and-forget in a daemon thread."""
        def _wrapper():
            try:
                func(*args, **kwargs)
            except Exception as e:
                self.logger.warning(f"Async feed write failed: {e}")

        thread = threading.Thread(target=_wrapper, daemon=True)
        thread.start()
        return True

    def _feed_ref(self, feed_id: str):
        if not self.client:
            return None
        return self.client.collection(FEED_COLLECTION).document(feed_id)

    # -------------------------------------------------------------------------
    # Subscribe
    # -------------------------------------------------------------------------

    def subscribe(self, feed_id, listener: Listener) -> Callable[[], None]:
        """Register an in-process listener. Returns the matching unsubscribe."""
        key = str(feed_id)
        with self._lock:
            self._listeners.setdefault(key, []).append(listener)

        def _unsubscribe():
            with self._lock:
                listeners = self._listeners.get(key, [])
                if listener in listeners:
                    listeners.remove(listener)
                if not listeners:
                    self._listeners.pop(key, None)

        return _unsubscribe

    def listener_count(self, feed_id) -> int:
        with self._lock:
            return len(self._listeners.get(str(feed_id), []))

    def watch_feed(self, feed_id, listener: Listener):
        """
        Watch the Firestore feed document for changes made elsewhere.

        Returns a callable that stops the watch, or None when Firestore is
        disabled.
        """
        if not self.enabled:
            return None

        ref = self._feed_ref(str(feed_id))
        if ref is None:
            return None

        def _on_snapshot(doc_snapshot, changes, read_time):
            for doc in doc_snapshot:
                data = doc.to_dict() or {}
                listener({
                    "event": data.get("last_event", ChangeEvent.ASSIGNMENT_CHANGED),
                    "feed_id": str(feed_id),
                    "payload": data.get("payload") or {},
                    "published_at": data.get("updated_at"),
                })

        watch = ref.on_snapshot(_on_snapshot)
        return watch.unsubscribe

    # -------------------------------------------------------------------------
    # Publish
    # -------------------------------------------------------------------------

    def publish(self, feed_id, event: str, payload: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        key = str(feed_id)
        message = {
            "event": event,
            "feed_id": key,
            "payload": payload or {},
            "published_at": datetime.utcnow().isoformat(),
        }

        with self._lock:
            listeners = list(self._listeners.get(key, []))
        for listener in listeners:
            try:
                listener(message)
            except Exception:
                self.logger.exception(f"Listener failed for feed={key} event={event}")

        if self.enabled:
            self._run_async(self._write_feed, key, message)

        return message

    def notify_managers(self, payload: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return self.publish(MANAGERS_FEED, ChangeEvent.NOTIFY_MANAGERS, payload)

    def _write_feed(self, feed_id: str, message: Dict[str, Any]):
        from google.cloud import firestore

        ref = self._feed_ref(feed_id)
        if ref is None:
            return
        ref.set(
            {
                "last_event": message["event"],
                "payload": message["payload"],
                "updated_at": message["published_at"],
                "version": firestore.Increment(1),
            },
            merge=True,
        )


# Singleton instance
_notification_service: Optional[NotificationService] = None


def get_notification_service() -> NotificationService:
    global _notification_service
    if _notification_service is None:
        _notification_service = NotificationService()
    return _notification_service
