"""
Housekeeping services.

- AssignmentRepository: data-store boundary (fresh reads, conditional writes)
- AssignmentStateMachine: start / complete / cancel and field updates
- DNDWorkflow: Do-Not-Disturb mark and retrieve
- SupervisorApprovalService: sign-off on completed rooms
- WorkQueuePrioritizer / WorkQueueService: ordered work queue and refresh
- NotificationService: change-event channel
- EventLogService: append-only audit
- AuthService: bearer token -> Actor
"""

from .repository import AssignmentRepository
from .event_log import EventLogService
from .notifications import ChangeEvent, NotificationService, get_notification_service
from .transition import TransitionResult
from .dnd_workflow import DNDWorkflow
from .state_machine import AssignmentStateMachine
from .supervisor_approval import SupervisorApprovalService
from .prioritizer import Bucket, QueueView, WorkQueuePrioritizer
from .work_queue import Subscription, WorkQueueService
from .auth import AuthService, get_auth_service

__all__ = [
    "AssignmentRepository",
    "EventLogService",
    "ChangeEvent",
    "NotificationService",
    "get_notification_service",
    "TransitionResult",
    "DNDWorkflow",
    "AssignmentStateMachine",
    "SupervisorApprovalService",
    "Bucket",
    "QueueView",
    "WorkQueuePrioritizer",
    "Subscription",
    "WorkQueueService",
    "AuthService",
    "get_auth_service",
]
