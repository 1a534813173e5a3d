"""Async delivery of notification audit records through the push service.

The Protean command handlers are synchronous, so the network send happens
here, between two commands: the record is loaded, the push service delivers
the message, and ``RecordDeliveryResult`` stores the outcome.
"""

import json
from datetime import UTC, datetime

import structlog
from notifications.audience.port import StoreUnavailable
from notifications.gateway.results import FailureKind
from notifications.notification.lifecycle import RecordDeliveryResult, ReleaseNotification
from notifications.notification.notification import Notification, NotificationStatus
from notifications.notification.queries import due_notifications
from notifications.service import PushNotificationService, SendOptions
from notifications.utils.logging import delivery_context
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

logger = structlog.get_logger(__name__)


def _record(notification_id, summary=None, failure_kind=None, reason=None):
    if summary is not None:
        command = RecordDeliveryResult(
            notification_id=notification_id,
            success=summary.success,
            tokens_sent=summary.tokens_sent,
            total_attempted=summary.total_attempted,
            failure_kind=summary.failure.value if summary.failure else None,
            failure_reason=None if summary.success else summary.message,
            push_response=json.dumps(summary.to_dict()),
        )
    else:
        command = RecordDeliveryResult(
            notification_id=notification_id,
            success=False,
            failure_kind=failure_kind.value,
            failure_reason=reason,
        )
    current_domain.process(command, asynchronous=False)


async def deliver_notification(notification_id, service: PushNotificationService):
    """Send a PENDING notification and record the outcome on it.

    Returns the ``DeliverySummary``. ``StoreUnavailable`` is recorded as a
    ``store_unavailable`` failure and then re-raised.
    """
    notification = current_domain.repository_for(Notification).get(notification_id)
    if NotificationStatus(notification.status) != NotificationStatus.PENDING:
        raise ValidationError({"status": [f"Cannot deliver a {notification.status} notification"]})

    with delivery_context(notification_id=str(notification.id), audience=notification.target_audience):
        options = SendOptions(
            title=notification.title,
            message=notification.message,
            target_audience=notification.target_audience,
            deep_link=notification.deep_link,
            data={
                "notificationId": str(notification.id),
                "timestamp": datetime.now(UTC).isoformat(),
            },
        )

        try:
            summary = await service.send(options)
        except StoreUnavailable as exc:
            logger.error("Token store unavailable, notification not sent", error=str(exc))
            _record(notification.id, failure_kind=FailureKind.STORE_UNAVAILABLE, reason=str(exc))
            raise

        _record(notification.id, summary=summary)
        return summary


async def process_scheduled_notifications(service: PushNotificationService, as_of=None) -> int:
    """Release and deliver every scheduled notification due at ``as_of``.

    Notifications are delivered one at a time. Returns how many were processed.
    """
    as_of = as_of or datetime.now(UTC)
    due = due_notifications(as_of)

    processed = 0
    for notification in due:
        current_domain.process(ReleaseNotification(notification_id=notification.id), asynchronous=False)
        summary = await deliver_notification(notification.id, service)
        processed += 1

        logger.info(
            "Scheduled notification delivered",
            notification_id=str(notification.id),
            success=summary.success,
        )

    logger.info("Scheduled notifications processed", processed=processed, as_of=str(as_of))
    return processed
