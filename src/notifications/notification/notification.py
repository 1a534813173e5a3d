"""Notification aggregate — audit record of one admin broadcast.

Each notification is a single message pushed to an audience (all users,
admins, regular users, or system admins). The record keeps the delivery
summary returned by the dispatcher so the dashboard can explain what
happened: nobody had notifications enabled, the push service rejected the
request, or the push service stayed down through every retry.

State Machine (5 states):
    PENDING → SENT
    PENDING → FAILED → (retry) → PENDING
    SCHEDULED → (release) → PENDING
    PENDING | SCHEDULED → CANCELLED
"""

import json
from datetime import UTC, datetime
from enum import Enum

from notifications.audience.resolver import TargetAudience
from notifications.domain import notifications
from notifications.gateway.results import FailureKind
from notifications.notification.events import (
    NotificationCancelled,
    NotificationCreated,
    NotificationFailed,
    NotificationReleased,
    NotificationRetried,
    NotificationSent,
)
from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, Integer, String, Text


class NotificationStatus(Enum):
    PENDING = "Pending"
    SCHEDULED = "Scheduled"
    SENT = "Sent"
    FAILED = "Failed"
    CANCELLED = "Cancelled"


# ---------------------------------------------------------------------------
# State Machine
# ---------------------------------------------------------------------------
_VALID_TRANSITIONS = {
    NotificationStatus.PENDING: {
        NotificationStatus.SENT,
        NotificationStatus.FAILED,
        NotificationStatus.CANCELLED,
    },
    NotificationStatus.SCHEDULED: {
        NotificationStatus.PENDING,  # Via release
        NotificationStatus.CANCELLED,
    },
    NotificationStatus.FAILED: {
        NotificationStatus.PENDING,  # Via retry
    },
    NotificationStatus.SENT: set(),  # Terminal
    NotificationStatus.CANCELLED: set(),  # Terminal
}


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC so they compare with aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@notifications.aggregate
class Notification:
    """A push broadcast composed in the admin dashboard."""

    # Content
    title: String(required=True, max_length=200)
    message: Text(required=True)
    deep_link: String(max_length=500)

    # Audience
    target_audience: String(choices=TargetAudience, required=True)
    sent_by: Identifier()

    # Status
    status: String(choices=NotificationStatus, default=NotificationStatus.PENDING.value)

    # Scheduling
    scheduled_for: DateTime()  # Null means immediate

    # Delivery tracking
    sent_at: DateTime()
    tokens_sent: Integer(default=0)
    total_attempted: Integer(default=0)
    push_response: Text()  # JSON of DeliverySummary.to_dict()
    failure_kind: String(choices=FailureKind)
    failure_reason: String(max_length=500)

    # Retry
    retry_count: Integer(default=0)
    max_retries: Integer(default=3)

    # Timestamps
    created_at: DateTime()
    updated_at: DateTime()

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        title,
        message,
        target_audience,
        deep_link=None,
        sent_by=None,
        scheduled_for=None,
        max_retries=3,
    ):
        """Create a notification: PENDING for immediate sends, SCHEDULED otherwise."""
        now = datetime.now(UTC)

        if scheduled_for is not None:
            scheduled_for = as_utc(scheduled_for)
            if scheduled_for <= now:
                raise ValidationError({"scheduled_for": ["Scheduled time must be in the future"]})

        status = NotificationStatus.SCHEDULED if scheduled_for else NotificationStatus.PENDING

        notification = cls(
            title=title,
            message=message,
            deep_link=deep_link or None,
            target_audience=target_audience,
            sent_by=sent_by,
            status=status.value,
            scheduled_for=scheduled_for,
            tokens_sent=0,
            total_attempted=0,
            retry_count=0,
            max_retries=max_retries,
            created_at=now,
            updated_at=now,
        )

        notification.raise_(
            NotificationCreated(
                notification_id=str(notification.id),
                title=title,
                target_audience=target_audience,
                sent_by=str(sent_by) if sent_by else None,
                scheduled_for=scheduled_for,
                created_at=now,
            )
        )

        return notification

    # -------------------------------------------------------------------
    # State transitions
    # -------------------------------------------------------------------
    def _assert_can_transition(self, target_status):
        """Validate state machine transition."""
        current = NotificationStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise ValidationError({"status": [f"Cannot transition from {current.value} to {target_status.value}"]})

    def is_due(self, as_of) -> bool:
        if NotificationStatus(self.status) != NotificationStatus.SCHEDULED or self.scheduled_for is None:
            return False
        return as_utc(self.scheduled_for) <= as_utc(as_of)

    def release(self):
        """Queue a scheduled notification for delivery."""
        self._assert_can_transition(NotificationStatus.PENDING)
        if NotificationStatus(self.status) != NotificationStatus.SCHEDULED:
            raise ValidationError({"status": ["Only scheduled notifications can be released"]})

        now = datetime.now(UTC)
        self.status = NotificationStatus.PENDING.value
        self.updated_at = now

        self.raise_(NotificationReleased(notification_id=str(self.id), released_at=now))

    def mark_sent(self, tokens_sent, total_attempted, push_response=None, sent_at=None):
        """Record that the push gateway accepted the broadcast."""
        self._assert_can_transition(NotificationStatus.SENT)

        now = sent_at or datetime.now(UTC)
        self.status = NotificationStatus.SENT.value
        self.sent_at = now
        self.tokens_sent = tokens_sent
        self.total_attempted = total_attempted
        self.push_response = json.dumps(push_response) if push_response is not None else None
        self.failure_kind = None
        self.failure_reason = None
        self.updated_at = now

        self.raise_(
            NotificationSent(
                notification_id=str(self.id),
                target_audience=self.target_audience,
                tokens_sent=tokens_sent,
                total_attempted=total_attempted,
                sent_at=now,
            )
        )

    def mark_failed(self, failure_kind, reason, total_attempted=0, push_response=None):
        """Record a delivery failure."""
        self._assert_can_transition(NotificationStatus.FAILED)

        now = datetime.now(UTC)
        self.status = NotificationStatus.FAILED.value
        self.failure_kind = failure_kind
        self.failure_reason = (reason or "")[:500]
        self.tokens_sent = 0
        self.total_attempted = total_attempted
        self.push_response = json.dumps(push_response) if push_response is not None else None
        self.retry_count = self.retry_count + 1
        self.updated_at = now

        self.raise_(
            NotificationFailed(
                notification_id=str(self.id),
                target_audience=self.target_audience,
                failure_kind=failure_kind,
                reason=self.failure_reason,
                retry_count=self.retry_count,
                max_retries=self.max_retries,
                failed_at=now,
            )
        )

    def cancel(self, reason):
        """Cancel a pending or scheduled notification."""
        self._assert_can_transition(NotificationStatus.CANCELLED)

        now = datetime.now(UTC)
        self.status = NotificationStatus.CANCELLED.value
        self.failure_reason = reason
        self.updated_at = now

        self.raise_(
            NotificationCancelled(
                notification_id=str(self.id),
                reason=reason,
                cancelled_at=now,
            )
        )

    def retry(self):
        """Retry a failed notification."""
        if NotificationStatus(self.status) != NotificationStatus.FAILED:
            raise ValidationError({"status": ["Only failed notifications can be retried"]})
        if self.retry_count >= self.max_retries:
            raise ValidationError({"retry_count": ["Maximum retry attempts exceeded"]})

        now = datetime.now(UTC)
        self.status = NotificationStatus.PENDING.value
        self.failure_kind = None
        self.failure_reason = None
        self.updated_at = now

        self.raise_(
            NotificationRetried(
                notification_id=str(self.id),
                retry_count=self.retry_count,
                retried_at=now,
            )
        )

    @property
    def delivery_summary(self) -> dict | None:
        return json.loads(self.push_response) if self.push_response else None
