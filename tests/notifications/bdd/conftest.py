"""Shared BDD fixtures and step definitions for notification lifecycle scenarios."""

from datetime import UTC, datetime, timedelta

import pytest
from notifications.notification.events import (
    NotificationCancelled,
    NotificationCreated,
    NotificationReleased,
    NotificationRetried,
    NotificationSent,
)
from notifications.notification.notification import Notification
from pytest_bdd import given, parsers, then

_NOTIFICATION_EVENT_CLASSES = {
    "NotificationCreated": NotificationCreated,
    "NotificationReleased": NotificationReleased,
    "NotificationSent": NotificationSent,
    "NotificationCancelled": NotificationCancelled,
    "NotificationRetried": NotificationRetried,
}


def _broadcast(audience="all", scheduled_for=None):
    n = Notification.create(
        title="Live music tonight",
        message="The band starts at 8pm",
        target_audience=audience,
        scheduled_for=scheduled_for,
    )
    n._events.clear()
    return n


@pytest.fixture()
def error():
    """Container for captured validation errors."""
    return {"exc": None}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(
    parsers.cfparse('a pending notification for the "{audience}" audience'),
    target_fixture="notification",
)
def pending_notification(audience):
    return _broadcast(audience)


@given("a notification scheduled for later", target_fixture="notification")
def scheduled_notification():
    return _broadcast(scheduled_for=datetime.now(UTC) + timedelta(hours=3))


@given("a sent notification", target_fixture="notification")
def sent_notification():
    n = _broadcast()
    n.mark_sent(tokens_sent=10, total_attempted=10)
    n._events.clear()
    return n


@given(
    parsers.cfparse("a notification that failed {times:d} times"),
    target_fixture="notification",
)
def repeatedly_failed_notification(times):
    n = _broadcast()
    for attempt in range(times):
        if attempt:
            n.retry()
        n.mark_failed("retries_exhausted", "Push service unavailable after 5 attempts")
    n._events.clear()
    return n


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the notification status is "{status}"'))
def notification_status_is(notification, status):
    assert notification.status == status


@then(parsers.cfparse("the notification has {count:d} tokens sent"))
def notification_tokens_sent(notification, count):
    assert notification.tokens_sent == count


@then(parsers.cfparse("the notification retry count is {count:d}"))
def notification_retry_count(notification, count):
    assert notification.retry_count == count


@then(parsers.cfparse("a {event_type} event is raised"))
def notification_event_raised(notification, event_type):
    event_cls = _NOTIFICATION_EVENT_CLASSES[event_type]
    assert any(
        isinstance(e, event_cls) for e in notification._events
    ), f"No {event_type} event found. Events: {[type(e).__name__ for e in notification._events]}"


@then("the action fails with a validation error")
def action_fails(error):
    assert error["exc"] is not None
