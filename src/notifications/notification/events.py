"""Domain events for the Notification aggregate."""

from notifications.domain import notifications
from protean.fields import DateTime, Identifier, Integer, String, Text


@notifications.event(part_of="Notification")
class NotificationCreated:
    """An admin composed a push notification, for now or for later."""

    __version__ = 1

    notification_id: Identifier(required=True)
    title: String(required=True)
    target_audience: String(required=True)
    sent_by: Identifier()
    scheduled_for: DateTime()
    created_at: DateTime(required=True)


@notifications.event(part_of="Notification")
class NotificationReleased:
    """A scheduled notification came due and is queued for delivery."""

    __version__ = 1

    notification_id: Identifier(required=True)
    released_at: DateTime(required=True)


@notifications.event(part_of="Notification")
class NotificationSent:
    """The push gateway accepted the broadcast."""

    __version__ = 1

    notification_id: Identifier(required=True)
    target_audience: String(required=True)
    tokens_sent: Integer(required=True)
    total_attempted: Integer(required=True)
    sent_at: DateTime(required=True)


@notifications.event(part_of="Notification")
class NotificationFailed:
    """The broadcast could not be delivered."""

    __version__ = 1

    notification_id: Identifier(required=True)
    target_audience: String(required=True)
    failure_kind: String(required=True)
    reason: Text(required=True)
    retry_count: Integer(required=True)
    max_retries: Integer(required=True)
    failed_at: DateTime(required=True)


@notifications.event(part_of="Notification")
class NotificationCancelled:
    """A pending or scheduled notification was cancelled."""

    __version__ = 1

    notification_id: Identifier(required=True)
    reason: Text(required=True)
    cancelled_at: DateTime(required=True)


@notifications.event(part_of="Notification")
class NotificationRetried:
    """A failed notification was queued for another delivery attempt."""

    __version__ = 1

    notification_id: Identifier(required=True)
    retry_count: Integer(required=True)
    retried_at: DateTime(required=True)
