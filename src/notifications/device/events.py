"""Domain events for the DeviceToken aggregate."""

from notifications.domain import notifications
from protean.fields import Boolean, DateTime, Identifier, String


@notifications.event(part_of="DeviceToken")
class DeviceTokenRegistered:
    """A user registered a device for push notifications for the first time."""

    __version__ = 1

    token_id: Identifier(required=True)
    user_id: Identifier(required=True)
    role: String(required=True)
    device_type: String(required=True)
    registered_at: DateTime(required=True)


@notifications.event(part_of="DeviceToken")
class DeviceTokenRefreshed:
    """A user re-registered, replacing their previous push token."""

    __version__ = 1

    token_id: Identifier(required=True)
    user_id: Identifier(required=True)
    role: String(required=True)
    device_type: String(required=True)
    updated_at: DateTime(required=True)


@notifications.event(part_of="DeviceToken")
class NotificationsToggled:
    """A user switched push notifications on or off."""

    __version__ = 1

    token_id: Identifier(required=True)
    user_id: Identifier(required=True)
    notification_enabled: Boolean(required=True)
    updated_at: DateTime(required=True)
