"""Notification lifecycle commands + handler.

Create, release, record delivery, cancel and retry. Delivery itself is async
and lives in ``notifications.notification.delivery``; these handlers only
move the audit record through its state machine.
"""

import json

import structlog
from notifications.domain import notifications
from notifications.notification.notification import Notification
from protean.fields import Boolean, DateTime, Identifier, Integer, String, Text
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

logger = structlog.get_logger(__name__)


@notifications.command(part_of="Notification")
class CreateNotification:
    """Compose a broadcast, either immediate or scheduled."""

    title: String(required=True, max_length=200)
    message: Text(required=True)
    target_audience: String(required=True, max_length=20)
    deep_link: String(max_length=500)
    sent_by: Identifier()
    scheduled_for: DateTime()


@notifications.command(part_of="Notification")
class ReleaseNotification:
    """Move a scheduled notification whose time has come back to PENDING."""

    notification_id: Identifier(required=True)


@notifications.command(part_of="Notification")
class RecordDeliveryResult:
    """Store the dispatcher's summary on the notification."""

    notification_id: Identifier(required=True)
    success: Boolean(required=True)
    tokens_sent: Integer(default=0)
    total_attempted: Integer(default=0)
    failure_kind: String(max_length=50)
    failure_reason: Text()
    push_response: Text()  # JSON-encoded DeliverySummary


@notifications.command(part_of="Notification")
class CancelNotification:
    """Request to cancel a pending or scheduled notification."""

    notification_id: Identifier(required=True)
    reason: String(required=True, max_length=500)


@notifications.command(part_of="Notification")
class RetryNotification:
    """Request to retry a failed notification."""

    notification_id: Identifier(required=True)


@notifications.command_handler(part_of=Notification)
class NotificationLifecycleHandler:
    @handle(CreateNotification)
    def create_notification(self, command: CreateNotification):
        notification = Notification.create(
            title=command.title,
            message=command.message,
            target_audience=command.target_audience,
            deep_link=command.deep_link,
            sent_by=command.sent_by,
            scheduled_for=command.scheduled_for,
        )
        current_domain.repository_for(Notification).add(notification)

        logger.info(
            "Notification created",
            notification_id=str(notification.id),
            target_audience=command.target_audience,
            status=notification.status,
        )
        return str(notification.id)

    @handle(ReleaseNotification)
    def release_notification(self, command: ReleaseNotification):
        repo = current_domain.repository_for(Notification)
        notification = repo.get(command.notification_id)
        notification.release()
        repo.add(notification)

    @handle(RecordDeliveryResult)
    def record_delivery_result(self, command: RecordDeliveryResult):
        repo = current_domain.repository_for(Notification)
        notification = repo.get(command.notification_id)
        push_response = json.loads(command.push_response) if command.push_response else None

        if command.success:
            notification.mark_sent(
                tokens_sent=command.tokens_sent,
                total_attempted=command.total_attempted,
                push_response=push_response,
            )
        else:
            notification.mark_failed(
                failure_kind=command.failure_kind,
                reason=command.failure_reason,
                total_attempted=command.total_attempted,
                push_response=push_response,
            )

        repo.add(notification)

        logger.info(
            "Delivery result recorded",
            notification_id=str(notification.id),
            status=notification.status,
            tokens_sent=notification.tokens_sent,
        )

    @handle(CancelNotification)
    def cancel_notification(self, command: CancelNotification):
        repo = current_domain.repository_for(Notification)
        notification = repo.get(command.notification_id)
        notification.cancel(command.reason)
        repo.add(notification)

    @handle(RetryNotification)
    def retry_notification(self, command: RetryNotification):
        repo = current_domain.repository_for(Notification)
        notification = repo.get(command.notification_id)
        notification.retry()
        repo.add(notification)
