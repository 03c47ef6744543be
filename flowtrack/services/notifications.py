"""In-app notification feed.

Handles:
- Appending notifications addressed to a username
- Outcome notifications for approved and rejected requests
- Listing a user's feed, newest first
- Marking notifications read (idempotent)

Delivery is pull-based: clients poll ``list_for``.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional

from flowtrack.core.config import get_settings
from flowtrack.core.errors import NotFoundError, PermissionDeniedError, ValidationFailedError
from flowtrack.core.workflow.states import RequestStatus
from flowtrack.schemas import AppNotification, SalesRequest, Severity
from flowtrack.store import StaleRecordError, Store

logger = logging.getLogger(__name__)


# Message templates for request outcomes
MESSAGE_TEMPLATES = {
    RequestStatus.APPROVED: (
        Severity.SUCCESS,
        "Request {reference_code} for {customer_name} has been fully approved. "
        "Please submit shipment details to close it.",
    ),
    RequestStatus.REJECTED: (
        Severity.ERROR,
        "Request {reference_code} for {customer_name} was rejected: {rejection_reason}",
    ),
}


class NotificationService:
    """
    Service for the per-user notification feed.
    """

    def __init__(self, store: Store, *, write_retries: Optional[int] = None):
        """
        Initialize notification service.

        Args:
            store: Store holding the notification table
            write_retries: Attempts for a conflicting mark-read write
        """
        self.store = store
        self.write_retries = write_retries or get_settings().write_retries

    def emit(
        self,
        recipient: str,
        message: str,
        severity: Severity = Severity.INFO,
        request_id: Optional[str] = None,
    ) -> AppNotification:
        """
        Append an unread notification for ``recipient``.

        Returns:
            The stored notification
        """
        recipient = (recipient or "").strip()
        if not recipient:
            raise ValidationFailedError("Notification recipient is required", ["recipient: must not be empty"])

        notification = AppNotification(
            id=str(uuid.uuid4()),
            recipient=recipient,
            message=message,
            severity=Severity(severity),
            created_at=datetime.now(timezone.utc),
            request_id=request_id,
        )
        stored = self.store.notifications.upsert(notification, expected_version=0)
        logger.info(f"Notification {stored.id} ({stored.severity.value}) queued for {recipient}")
        return stored

    def notify_request_outcome(self, request: SalesRequest) -> Optional[AppNotification]:
        """
        Notify the creator when a request reaches a final decision.

        Escalations and other statuses produce nothing.
        """
        template = MESSAGE_TEMPLATES.get(request.status)
        if template is None:
            return None

        severity, text = template
        message = text.format(
            reference_code=request.reference_code,
            customer_name=request.customer_name,
            rejection_reason=request.rejection_reason or "No reason provided",
        )
        return self.emit(request.created_by, message, severity, request_id=request.id)

    def list_for(self, recipient: str, *, unread_only: bool = False) -> List[AppNotification]:
        """Get a user's notifications, newest first."""
        return [
            n for n in self.store.notifications.list_all()
            if n.recipient == recipient and not (unread_only and n.read)
        ]

    def unread_count(self, recipient: str) -> int:
        return len(self.list_for(recipient, unread_only=True))

    def mark_read(self, notification_id: str, recipient: Optional[str] = None) -> AppNotification:
        """
        Mark one notification read.

        Re-marking a read notification is a no-op.

        Args:
            notification_id: ID of the notification
            recipient: Acting user; must own the notification when given

        Raises:
            NotFoundError: If the notification does not exist
            PermissionDeniedError: If ``recipient`` does not own it
        """
        for _ in range(self.write_retries):
            notification = self.store.notifications.get(notification_id)
            if notification is None:
                raise NotFoundError("Notification", notification_id)
            if recipient is not None and notification.recipient != recipient:
                raise PermissionDeniedError(f"notification {notification_id} belongs to another user")
            if notification.read:
                return notification

            try:
                return self.store.notifications.upsert(
                    notification.model_copy(update={"read": True}),
                    expected_version=notification.version,
                )
            except StaleRecordError:
                logger.debug(f"Retrying mark-read for notification {notification_id}")

        # Every attempt raced another writer; whatever won, read is idempotent
        return self.store.notifications.get(notification_id)

    def mark_all_read(self, recipient: str) -> int:
        """
        Mark every unread notification of ``recipient`` read.

        Returns:
            Number of notifications that changed
        """
        changed = 0
        for notification in self.list_for(recipient, unread_only=True):
            try:
                self.store.notifications.upsert(
                    notification.model_copy(update={"read": True}),
                    expected_version=notification.version,
                )
                changed += 1
            except StaleRecordError:
                # Marked read concurrently; nothing else writes notifications
                self.mark_read(notification.id, recipient)
        return changed
