"""FastAPI routes for push notifications and device token registration.

Thin adapters that translate HTTP requests into domain commands and, for
sends, await the push service. No business logic: schema→command→response.
"""

from fastapi import APIRouter, HTTPException, Request, Response
from notifications.api.schemas import (
    CancelNotificationRequest,
    CleanupTokensRequest,
    CleanupTokensResponse,
    NotificationListResponse,
    NotificationResponse,
    ProcessScheduledRequest,
    ProcessScheduledResponse,
    RegisterPushTokenRequest,
    RegisterPushTokenResponse,
    ScheduleNotificationRequest,
    SendNotificationRequest,
    SendNotificationResponse,
    SetNotificationsEnabledRequest,
    StatusResponse,
)
from notifications.audience.port import StoreUnavailable
from notifications.device.cleanup import CleanupInvalidTokens
from notifications.device.registration import (
    RegisterDeviceToken,
    SetNotificationsEnabled,
    UnregisterDeviceToken,
)
from notifications.notification.delivery import deliver_notification, process_scheduled_notifications
from notifications.notification.lifecycle import CancelNotification, CreateNotification, RetryNotification
from notifications.notification.notification import Notification
from notifications.notification.queries import recent_notifications
from notifications.service import PushNotificationService
from protean.utils.globals import current_domain

router = APIRouter(prefix="/notifications", tags=["notifications"])
push_token_router = APIRouter(prefix="/push-tokens", tags=["push-tokens"])

DELIVERY_FAILED_WARNING = "Notification saved but push delivery failed"


def get_push_service(request: Request) -> PushNotificationService:
    return request.app.state.push_service


def _notification_response(notification: Notification) -> NotificationResponse:
    return NotificationResponse(
        notification_id=str(notification.id),
        title=notification.title,
        message=notification.message,
        target_audience=notification.target_audience,
        deep_link=notification.deep_link,
        status=notification.status,
        tokens_sent=notification.tokens_sent or 0,
        total_attempted=notification.total_attempted or 0,
        failure_kind=notification.failure_kind,
        failure_reason=notification.failure_reason,
        retry_count=notification.retry_count or 0,
        scheduled_for=str(notification.scheduled_for) if notification.scheduled_for else None,
        sent_at=str(notification.sent_at) if notification.sent_at else None,
        created_at=str(notification.created_at) if notification.created_at else None,
    )


async def _deliver(notification_id: str, request: Request, response: Response) -> SendNotificationResponse:
    """Deliver a PENDING notification and shape the HTTP result."""
    try:
        summary = await deliver_notification(notification_id, get_push_service(request))
    except StoreUnavailable as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc

    notification = current_domain.repository_for(Notification).get(notification_id)

    # The record is saved either way; a failed push is reported, not raised
    response.status_code = 201 if summary.success else 200
    return SendNotificationResponse(
        success=summary.success,
        message=summary.message,
        warning=None if summary.success else DELIVERY_FAILED_WARNING,
        notification=_notification_response(notification),
        push_result=summary.to_dict(),
    )


# ---------------------------------------------------------------------------
# Notification history
# ---------------------------------------------------------------------------
@router.get("", response_model=NotificationListResponse)
async def list_notifications(limit: int = 50) -> NotificationListResponse:
    """Most recent notifications, newest first."""
    return NotificationListResponse(
        notifications=[_notification_response(n) for n in recent_notifications(limit=limit)]
    )


# ---------------------------------------------------------------------------
# Sending
# ---------------------------------------------------------------------------
@router.post("/send", status_code=201, response_model=SendNotificationResponse)
async def send_notification(
    body: SendNotificationRequest,
    request: Request,
    response: Response,
) -> SendNotificationResponse:
    """Save a notification and push it to its audience right away."""
    command = CreateNotification(
        title=body.title,
        message=body.message,
        target_audience=body.target_audience,
        deep_link=body.deep_link,
        sent_by=body.sent_by,
    )
    notification_id = current_domain.process(command, asynchronous=False)
    return await _deliver(notification_id, request, response)


@router.post("/schedule", status_code=201, response_model=NotificationResponse)
async def schedule_notification(body: ScheduleNotificationRequest) -> NotificationResponse:
    """Save a notification to be pushed at ``scheduled_for``."""
    command = CreateNotification(
        title=body.title,
        message=body.message,
        target_audience=body.target_audience,
        deep_link=body.deep_link,
        sent_by=body.sent_by,
        scheduled_for=body.scheduled_for,
    )
    notification_id = current_domain.process(command, asynchronous=False)
    notification = current_domain.repository_for(Notification).get(notification_id)
    return _notification_response(notification)


# ---------------------------------------------------------------------------
# Notification lifecycle
# ---------------------------------------------------------------------------
@router.post("/{notification_id}/retry", status_code=201, response_model=SendNotificationResponse)
async def retry_notification(
    notification_id: str,
    request: Request,
    response: Response,
) -> SendNotificationResponse:
    """Retry a failed notification."""
    command = RetryNotification(notification_id=notification_id)
    current_domain.process(command, asynchronous=False)
    return await _deliver(notification_id, request, response)


@router.post("/{notification_id}/cancel", response_model=StatusResponse)
async def cancel_notification(notification_id: str, body: CancelNotificationRequest) -> StatusResponse:
    """Cancel a pending or scheduled notification."""
    command = CancelNotification(
        notification_id=notification_id,
        reason=body.reason,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


# ---------------------------------------------------------------------------
# Maintenance: periodic background job endpoint
# ---------------------------------------------------------------------------
@router.post("/process-scheduled", response_model=ProcessScheduledResponse)
async def process_scheduled(
    request: Request,
    body: ProcessScheduledRequest | None = None,
) -> ProcessScheduledResponse:
    """Deliver due scheduled notifications.

    Meant to be called periodically by an external scheduler. Notifications
    already released are not picked up again.
    """
    try:
        processed = await process_scheduled_notifications(
            get_push_service(request),
            as_of=body.as_of if body else None,
        )
    except StoreUnavailable as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    return ProcessScheduledResponse(processed=processed)


# ---------------------------------------------------------------------------
# Device tokens
# ---------------------------------------------------------------------------
@push_token_router.post("", status_code=201, response_model=RegisterPushTokenResponse)
async def register_push_token(body: RegisterPushTokenRequest, response: Response) -> RegisterPushTokenResponse:
    """Register a device token, or replace the user's existing one."""
    command = RegisterDeviceToken(
        user_id=body.user_id,
        push_token=body.push_token,
        role=body.role,
        platform=body.platform,
        build_type=body.build_type,
    )
    result = current_domain.process(command, asynchronous=False)
    response.status_code = 201 if result["created"] else 200
    return RegisterPushTokenResponse(**result)


@push_token_router.post("/cleanup", response_model=CleanupTokensResponse)
async def cleanup_push_tokens(body: CleanupTokensRequest | None = None) -> CleanupTokensResponse:
    """Delete every malformed device token registration."""
    command = CleanupInvalidTokens(requested_by=body.requested_by if body else None)
    result = current_domain.process(command, asynchronous=False)
    return CleanupTokensResponse(**result)


@push_token_router.delete("/{user_id}", response_model=StatusResponse)
async def unregister_push_token(user_id: str) -> StatusResponse:
    """Remove a user's device token."""
    command = UnregisterDeviceToken(user_id=user_id)
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@push_token_router.put("/{user_id}/notifications", response_model=StatusResponse)
async def set_notifications_enabled(user_id: str, body: SetNotificationsEnabledRequest) -> StatusResponse:
    """Turn push notifications on or off for a user."""
    command = SetNotificationsEnabled(user_id=user_id, enabled=body.enabled)
    current_domain.process(command, asynchronous=False)
    return StatusResponse()
