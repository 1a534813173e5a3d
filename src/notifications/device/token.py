"""DeviceToken aggregate — one Expo push token per user.

The token store the audience resolver reads from. A user who logs in to the
mobile app and grants notification permission registers their token; logging
in again from another device replaces it (at most one active token per user).
Unregistering deletes the record.
"""

import re
import uuid
from datetime import UTC, datetime
from enum import Enum

from notifications.audience.resolver import TokenRole, is_valid_push_token
from notifications.config import EXPO_TOKEN_PREFIX
from notifications.device.events import (
    DeviceTokenRefreshed,
    DeviceTokenRegistered,
    NotificationsToggled,
)
from notifications.domain import notifications
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Identifier, String

# Authenticated users only: anonymous app sessions carry non-UUID ids
_USER_ID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE,
)


class DevicePlatform(Enum):
    IOS = "ios"
    ANDROID = "android"


class BuildType(Enum):
    DEVELOPMENT = "development"
    PRODUCTION = "production"
    TESTFLIGHT = "testflight"


def is_valid_user_id(user_id) -> bool:
    if isinstance(user_id, uuid.UUID):
        return True
    return bool(user_id) and bool(_USER_ID_PATTERN.match(str(user_id)))


def _validate_registration(user_id, push_token, role):
    errors = {}
    if not is_valid_user_id(user_id):
        errors["user_id"] = ["Invalid user id format. User must be authenticated."]
    if not is_valid_push_token(push_token, EXPO_TOKEN_PREFIX):
        errors["push_token"] = [f"Invalid push token format. Expected {EXPO_TOKEN_PREFIX}...] format."]
    if role not in {r.value for r in TokenRole}:
        errors["role"] = [f"Unknown role: {role}"]
    if errors:
        raise ValidationError(errors)


def _platform(platform):
    if platform in {p.value for p in DevicePlatform}:
        return platform
    # Expo tokens do not reveal the platform
    return DevicePlatform.IOS.value


def _build_type(build_type):
    if build_type in {b.value for b in BuildType}:
        return build_type
    return BuildType.PRODUCTION.value


@notifications.aggregate
class DeviceToken:
    """A user's registered push token and their notification opt-in."""

    user_id: Identifier(required=True, unique=True)
    push_token: String(required=True, max_length=255)
    role: String(choices=TokenRole, default=TokenRole.USER.value)
    notification_enabled: Boolean(default=True)

    # Device metadata reported by the app
    device_type: String(choices=DevicePlatform, default=DevicePlatform.IOS.value)
    app_build_type: String(choices=BuildType, default=BuildType.PRODUCTION.value)

    registered_at: DateTime()
    updated_at: DateTime()

    @classmethod
    def register(cls, user_id, push_token, role=TokenRole.USER.value, platform=None, build_type=None):
        """Register a device token for a user who has none yet."""
        _validate_registration(user_id, push_token, role)

        now = datetime.now(UTC)
        device_token = cls(
            user_id=str(user_id),
            push_token=push_token,
            role=role,
            notification_enabled=True,
            device_type=_platform(platform),
            app_build_type=_build_type(build_type),
            registered_at=now,
            updated_at=now,
        )

        device_token.raise_(
            DeviceTokenRegistered(
                token_id=str(device_token.id),
                user_id=str(user_id),
                role=role,
                device_type=device_token.device_type,
                registered_at=now,
            )
        )

        return device_token

    def refresh(self, push_token, role=TokenRole.USER.value, platform=None, build_type=None):
        """Replace the stored token on re-registration. Re-enables notifications."""
        _validate_registration(self.user_id, push_token, role)

        now = datetime.now(UTC)
        self.push_token = push_token
        self.role = role
        self.notification_enabled = True
        self.device_type = _platform(platform)
        self.app_build_type = _build_type(build_type)
        self.updated_at = now

        self.raise_(
            DeviceTokenRefreshed(
                token_id=str(self.id),
                user_id=str(self.user_id),
                role=role,
                device_type=self.device_type,
                updated_at=now,
            )
        )

    def set_notifications_enabled(self, enabled):
        if self.notification_enabled == enabled:
            return

        now = datetime.now(UTC)
        self.notification_enabled = enabled
        self.updated_at = now

        self.raise_(
            NotificationsToggled(
                token_id=str(self.id),
                user_id=str(self.user_id),
                notification_enabled=enabled,
                updated_at=now,
            )
        )

    @property
    def is_well_formed(self) -> bool:
        """False for records that were stored before validation, or have decayed."""
        return is_valid_user_id(self.user_id) and is_valid_push_token(self.push_token, EXPO_TOKEN_PREFIX)
