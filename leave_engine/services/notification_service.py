"""
Notification dispatch after a successful transition.

Delivery (email, push) is an external collaborator. The engine hands it a
LeaveNotification once the transition has committed; a dispatcher failure is
logged and never reaches the caller, so it cannot undo the transition.
"""
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LeaveNotification:
    event: str  # SUBMITTED, APPROVED, REJECTED, CANCELLED
    leave_request_id: int
    requester_id: int
    recipient_ids: List[int]
    title: str
    message: str
    actor_id: Optional[int] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None


class NotificationDispatcher:
    """Default dispatcher: writes the notification to the log"""

    def send(self, notification: LeaveNotification) -> None:
        logger.info(
            "notification %s: leave_request_id=%s recipients=%s title=%s",
            notification.event,
            notification.leave_request_id,
            notification.recipient_ids,
            notification.title,
        )


@dataclass
class RecordingDispatcher(NotificationDispatcher):
    """Keeps sent notifications in memory; useful for tooling and tests"""
    sent: List[LeaveNotification] = field(default_factory=list)

    def send(self, notification: LeaveNotification) -> None:
        self.sent.append(notification)


_dispatcher: NotificationDispatcher = NotificationDispatcher()


def set_dispatcher(dispatcher: NotificationDispatcher) -> NotificationDispatcher:
    """Install a dispatcher and return the previous one"""
    global _dispatcher
    previous = _dispatcher
    _dispatcher = dispatcher
    return previous


def build_notification(event: str, leave_request, actor_id: Optional[int] = None) -> LeaveNotification:
    requester = leave_request.requester
    period = f"{leave_request.start_date} to {leave_request.end_date}"
    if event == "SUBMITTED":
        recipients = [requester.manager_id] if requester is not None and requester.manager_id else []
        title = "New Leave Request"
        message = f"A leave request for {period} ({leave_request.days_count} days) is awaiting your decision."
    elif event == "APPROVED":
        recipients = [leave_request.requester_id]
        title = "Leave Request Approved"
        message = f"Your leave request from {period} has been approved."
    elif event == "REJECTED":
        recipients = [leave_request.requester_id]
        title = "Leave Request Rejected"
        message = f"Your leave request from {period} was rejected: {leave_request.decision_comment}"
    else:
        recipients = [leave_request.requester_id]
        title = "Leave Request Cancelled"
        message = f"The leave request from {period} has been cancelled."

    return LeaveNotification(
        event=event,
        leave_request_id=leave_request.id,
        requester_id=leave_request.requester_id,
        recipient_ids=[r for r in recipients if r != actor_id],
        title=title,
        message=message,
        actor_id=actor_id,
        start_date=leave_request.start_date,
        end_date=leave_request.end_date,
    )


def dispatch(event: str, leave_request, actor_id: Optional[int] = None) -> bool:
    """
    Fire-and-forget. Returns False when building or sending failed.
    """
    try:
        notification = build_notification(event, leave_request, actor_id)
        if notification.recipient_ids:
            _dispatcher.send(notification)
        return True
    except Exception:
        logger.exception(
            "notification dispatch failed: event=%s leave_request_id=%s",
            event, getattr(leave_request, "id", None),
        )
        return False
