"""Pydantic request/response models for the push notifications API.

API schemas are separate from Protean commands (anti-corruption pattern).
"""

from datetime import datetime

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Request Models
# ---------------------------------------------------------------------------
class SendNotificationRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1)
    target_audience: str = Field(
        ...,
        examples=["all"],
        description="One of: all, admins, users, system_admin",
    )
    deep_link: str | None = Field(None, max_length=500)
    sent_by: str | None = None


class ScheduleNotificationRequest(SendNotificationRequest):
    scheduled_for: datetime


class CancelNotificationRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=500)


class ProcessScheduledRequest(BaseModel):
    as_of: datetime | None = None


class RegisterPushTokenRequest(BaseModel):
    user_id: str
    push_token: str = Field(..., examples=["ExponentPushToken[xxxxxxxxxxxxxxxxxxxxxx]"])
    role: str = "user"
    platform: str | None = Field(None, examples=["ios"])
    build_type: str | None = Field(None, examples=["production"])


class SetNotificationsEnabledRequest(BaseModel):
    enabled: bool


class CleanupTokensRequest(BaseModel):
    requested_by: str | None = None


# ---------------------------------------------------------------------------
# Response Models
# ---------------------------------------------------------------------------
class StatusResponse(BaseModel):
    status: str = "ok"


class NotificationResponse(BaseModel):
    notification_id: str
    title: str
    message: str
    target_audience: str
    deep_link: str | None = None
    status: str
    tokens_sent: int = 0
    total_attempted: int = 0
    failure_kind: str | None = None
    failure_reason: str | None = None
    retry_count: int = 0
    scheduled_for: str | None = None
    sent_at: str | None = None
    created_at: str | None = None


class NotificationListResponse(BaseModel):
    notifications: list[NotificationResponse]


class SendNotificationResponse(BaseModel):
    success: bool
    message: str
    warning: str | None = None
    notification: NotificationResponse
    push_result: dict


class ProcessScheduledResponse(BaseModel):
    status: str = "ok"
    processed: int


class RegisterPushTokenResponse(BaseModel):
    token_id: str
    created: bool


class CleanupTokensResponse(BaseModel):
    total: int
    cleaned: int
    remaining: int
