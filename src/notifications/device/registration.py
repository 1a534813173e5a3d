"""Device token registration commands + handler — register, unregister, opt in/out."""

import structlog
from notifications.device.queries import find_device_token, get_device_token
from notifications.device.token import DeviceToken
from notifications.domain import notifications
from protean.fields import Boolean, Identifier, String
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

logger = structlog.get_logger(__name__)


@notifications.command(part_of="DeviceToken")
class RegisterDeviceToken:
    """Register or replace a user's push token."""

    user_id: Identifier(required=True)
    push_token: String(required=True, max_length=255)
    role: String(default="user", max_length=20)
    platform: String(max_length=20)
    build_type: String(max_length=20)


@notifications.command(part_of="DeviceToken")
class UnregisterDeviceToken:
    """Remove a user's push token."""

    user_id: Identifier(required=True)


@notifications.command(part_of="DeviceToken")
class SetNotificationsEnabled:
    """Turn push notifications on or off for a user."""

    user_id: Identifier(required=True)
    enabled: Boolean(required=True)


@notifications.command_handler(part_of=DeviceToken)
class DeviceTokenRegistrationHandler:
    @handle(RegisterDeviceToken)
    def register_device_token(self, command: RegisterDeviceToken):
        repo = current_domain.repository_for(DeviceToken)
        role = command.role or "user"

        device_token = find_device_token(command.user_id)
        created = device_token is None
        if created:
            device_token = DeviceToken.register(
                user_id=command.user_id,
                push_token=command.push_token,
                role=role,
                platform=command.platform,
                build_type=command.build_type,
            )
        else:
            device_token.refresh(
                push_token=command.push_token,
                role=role,
                platform=command.platform,
                build_type=command.build_type,
            )

        repo.add(device_token)

        logger.info(
            "Push token registered" if created else "Push token updated",
            user_id=str(command.user_id),
            role=role,
        )
        return {"token_id": str(device_token.id), "created": created}

    @handle(UnregisterDeviceToken)
    def unregister_device_token(self, command: UnregisterDeviceToken):
        repo = current_domain.repository_for(DeviceToken)
        device_token = get_device_token(command.user_id)
        repo._dao.delete(device_token)
        logger.info("Push token unregistered", user_id=str(command.user_id))

    @handle(SetNotificationsEnabled)
    def set_notifications_enabled(self, command: SetNotificationsEnabled):
        repo = current_domain.repository_for(DeviceToken)
        device_token = get_device_token(command.user_id)
        device_token.set_notifications_enabled(command.enabled)
        repo.add(device_token)
