"""Token store adapter over the DeviceToken repository."""

import structlog
from notifications.audience.port import StoreUnavailable, TokenRecord, TokenStore
from notifications.device.queries import all_device_tokens

logger = structlog.get_logger(__name__)


class DeviceTokenStore(TokenStore):
    """Reads registrations from the active domain's DeviceToken repository."""

    def list_tokens(
        self,
        roles: set[str] | None = None,
        notification_enabled: bool = True,
    ) -> list[TokenRecord]:
        try:
            device_tokens = all_device_tokens(notification_enabled=notification_enabled)
        except Exception as exc:
            logger.error("Failed to read push tokens", error=str(exc))
            raise StoreUnavailable(f"Failed to fetch push tokens: {exc}") from exc

        return [
            TokenRecord(
                user_id=str(device_token.user_id),
                token=device_token.push_token,
                role=device_token.role,
                notification_enabled=device_token.notification_enabled,
            )
            for device_token in device_tokens
            if roles is None or device_token.role in roles
        ]
