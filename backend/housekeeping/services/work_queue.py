"""
WorkQueueService: read a worker's assignments for a day and prioritize them.

watch() keeps a queue current: every change event on the worker's feed
re-runs the read + prioritize pipeline and hands the result to the
caller. Event payloads are never applied directly.
"""

import logging
import threading
import uuid
from datetime import date
from typing import Any, Callable, List, Optional

from housekeeping.services.notifications import NotificationService, get_notification_service
from housekeeping.services.prioritizer import QueueView, WorkQueuePrioritizer
from housekeeping.services.repository import AssignmentRepository

logger = logging.getLogger("service.WorkQueueService")


class Subscription:
    """Handle returned by watch(). cancel() is safe to call more than once."""

    def __init__(self, feed_id: str, stoppers: List[Callable[[], None]]):
        self.feed_id = feed_id
        self._stoppers = list(stoppers)
        self._lock = threading.Lock()
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self) -> bool:
        with self._lock:
            if not self._active:
                return False
            self._active = False
            stoppers, self._stoppers = self._stoppers, []

        for stop in stoppers:
            stop()
        logger.debug(f"Subscription cancelled feed={self.feed_id}")
        return True


class WorkQueueService:

    def __init__(
        self,
        repository: Optional[AssignmentRepository] = None,
        notifications: Optional[NotificationService] = None,
    ):
        self.repository = repository or AssignmentRepository()
        self.notifications = notifications or get_notification_service()

    def get_queue(
        self,
        actor_id: uuid.UUID,
        work_date: date,
        view: QueueView = QueueView.STANDARD,
        include_completed: bool = False,
    ) -> List[Any]:
        assignments = self.repository.list_for_worker(actor_id, work_date)
        return WorkQueuePrioritizer(view).build(assignments, include_completed)

    def watch(
        self,
        actor_id: uuid.UUID,
        work_date: date,
        on_update: Callable[[List[Any]], None],
        view: QueueView = QueueView.STANDARD,
        include_completed: bool = False,
    ) -> Subscription:
        """
        Subscribe to the worker's change feed.

        on_update receives the freshly read, sorted queue after each event.
        """
        feed_id = str(actor_id)
        subscription: Optional[Subscription] = None

        def _refresh(message):
            if subscription is not None and not subscription.active:
                return
            logger.debug(f"Refreshing queue feed={feed_id} event={message.get('event')}")
            on_update(self.get_queue(actor_id, work_date, view, include_completed))

        stoppers = [self.notifications.subscribe(feed_id, _refresh)]
        remote_stop = self.notifications.watch_feed(feed_id, _refresh)
        if remote_stop is not None:
            stoppers.append(remote_stop)

        subscription = Subscription(feed_id, stoppers)
        return subscription
