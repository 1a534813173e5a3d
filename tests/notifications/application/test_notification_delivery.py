"""Application tests for notification lifecycle commands and async delivery."""

from datetime import UTC, datetime, timedelta

import httpx
import pytest
from notifications.audience.port import StoreUnavailable
from notifications.config import PushConfig
from notifications.gateway.fake_client import NETWORK_ERROR
from notifications.gateway.results import FailureKind
from notifications.notification.delivery import deliver_notification, process_scheduled_notifications
from notifications.notification.lifecycle import (
    CancelNotification,
    CreateNotification,
    RetryNotification,
)
from notifications.notification.notification import Notification, NotificationStatus
from notifications.notification.queries import due_notifications, recent_notifications
from notifications.service import build_push_service
from protean import current_domain
from protean.exceptions import ValidationError

pytestmark = pytest.mark.anyio


@pytest.fixture
def service(token_store, push_client, fake_sleep):
    return build_push_service(PushConfig(), store=token_store, client=push_client, sleep=fake_sleep)


def _create(**overrides):
    defaults = {"title": "Wine tasting", "message": "Thursday at 7pm", "target_audience": "all"}
    defaults.update(overrides)
    return current_domain.process(CreateNotification(**defaults), asynchronous=False)


def _get(notification_id):
    return current_domain.repository_for(Notification).get(notification_id)


def _schedule(minutes_from_now=60, **overrides):
    return _create(scheduled_for=datetime.now(UTC) + timedelta(minutes=minutes_from_now), **overrides)


class TestCreateNotification:
    async def test_create_returns_id_of_pending_record(self):
        notification_id = _create()
        assert _get(notification_id).status == NotificationStatus.PENDING.value

    async def test_schedule_in_past_is_rejected(self):
        with pytest.raises(ValidationError):
            _create(scheduled_for=datetime.now(UTC) - timedelta(hours=1))

    async def test_history_is_newest_first(self):
        first = _create(title="First")
        second = _create(title="Second")

        ids = [str(n.id) for n in recent_notifications()]

        assert ids.index(second) < ids.index(first)


class TestDeliverNotification:
    async def test_successful_delivery_marks_sent(self, service, token_store, push_client):
        token_store.add("u1", "ExponentPushToken[device-one]")
        token_store.add("u2", "ExponentPushToken[device-two]")
        notification_id = _create()

        summary = await deliver_notification(notification_id, service)

        assert summary.success
        stored = _get(notification_id)
        assert stored.status == NotificationStatus.SENT.value
        assert stored.tokens_sent == 2
        assert stored.total_attempted == 2
        assert stored.delivery_summary["tokensSent"] == 2

    async def test_payload_identifies_notification(self, service, token_store, push_client):
        token_store.add("u1", "ExponentPushToken[device-one]")
        notification_id = _create(deep_link="app://events/7")

        await deliver_notification(notification_id, service)

        data = push_client.calls[0]["payload"]["data"]
        assert data["notificationId"] == notification_id
        assert data["deep_link"] == "app://events/7"
        assert "timestamp" in data

    async def test_no_recipients_marks_failed(self, service):
        notification_id = _create()

        summary = await deliver_notification(notification_id, service)

        assert not summary.success
        stored = _get(notification_id)
        assert stored.status == NotificationStatus.FAILED.value
        assert stored.failure_kind == "no_recipients"
        assert stored.failure_reason.startswith("No push tokens found")

    async def test_gateway_outage_marks_failed(self, service, token_store, push_client):
        token_store.add("u1", "ExponentPushToken[device-one]")
        push_client.configure(outcomes=[NETWORK_ERROR] * 5)
        notification_id = _create()

        await deliver_notification(notification_id, service)

        stored = _get(notification_id)
        assert stored.status == NotificationStatus.FAILED.value
        assert stored.failure_kind == "retries_exhausted"
        assert stored.retry_count == 1

    async def test_store_outage_is_recorded_and_raised(self, service, token_store):
        token_store.configure(available=False)
        notification_id = _create()

        with pytest.raises(StoreUnavailable):
            await deliver_notification(notification_id, service)

        stored = _get(notification_id)
        assert stored.status == NotificationStatus.FAILED.value
        assert stored.failure_kind == "store_unavailable"

    async def test_long_gateway_error_is_recorded(self, token_store, fake_sleep):
        token_store.add("u1", "ExponentPushToken[device-one]")
        error = "Invalid request: " + "z" * 300

        def gateway(request):
            return httpx.Response(400, json={"errors": [{"code": "VALIDATION_ERROR", "message": error}]})

        http_client = httpx.AsyncClient(transport=httpx.MockTransport(gateway))
        service = build_push_service(PushConfig(), store=token_store, http_client=http_client, sleep=fake_sleep)
        notification_id = _create()

        summary = await deliver_notification(notification_id, service)

        assert summary.failure == FailureKind.GATEWAY_REJECTED
        stored = _get(notification_id)
        assert stored.status == NotificationStatus.FAILED.value
        assert error in stored.failure_reason

    async def test_long_store_outage_message_still_raises(self, service, token_store):
        token_store.configure(available=False, error="Token store unreachable: " + "s" * 400)
        notification_id = _create()

        with pytest.raises(StoreUnavailable):
            await deliver_notification(notification_id, service)

        stored = _get(notification_id)
        assert stored.status == NotificationStatus.FAILED.value
        assert stored.failure_kind == "store_unavailable"
        assert len(stored.failure_reason) == 425

    async def test_only_pending_notifications_are_delivered(self, service):
        notification_id = _schedule()
        with pytest.raises(ValidationError):
            await deliver_notification(notification_id, service)


class TestRetryAndCancel:
    async def test_retry_then_deliver(self, service, token_store):
        notification_id = _create()
        await deliver_notification(notification_id, service)
        assert _get(notification_id).status == NotificationStatus.FAILED.value

        token_store.add("u1", "ExponentPushToken[device-one]")
        current_domain.process(RetryNotification(notification_id=notification_id), asynchronous=False)
        await deliver_notification(notification_id, service)

        stored = _get(notification_id)
        assert stored.status == NotificationStatus.SENT.value
        assert stored.failure_reason is None

    async def test_cancel_scheduled(self):
        notification_id = _schedule()

        current_domain.process(
            CancelNotification(notification_id=notification_id, reason="Event cancelled"),
            asynchronous=False,
        )

        assert _get(notification_id).status == NotificationStatus.CANCELLED.value


class TestProcessScheduled:
    async def test_delivers_only_due_notifications(self, service, token_store, push_client):
        token_store.add("u1", "ExponentPushToken[device-one]")
        soon = _schedule(minutes_from_now=5, title="Soon")
        later = _schedule(minutes_from_now=120, title="Later")

        processed = await process_scheduled_notifications(service, as_of=datetime.now(UTC) + timedelta(minutes=10))

        assert processed == 1
        assert _get(soon).status == NotificationStatus.SENT.value
        assert _get(later).status == NotificationStatus.SCHEDULED.value
        assert len(push_client.calls) == 1

    async def test_nothing_due(self, service):
        _schedule(minutes_from_now=60)
        assert await process_scheduled_notifications(service) == 0

    async def test_released_notifications_are_not_picked_up_again(self, service, token_store):
        token_store.add("u1", "ExponentPushToken[device-one]")
        _schedule(minutes_from_now=5)
        as_of = datetime.now(UTC) + timedelta(minutes=10)

        assert await process_scheduled_notifications(service, as_of=as_of) == 1
        assert await process_scheduled_notifications(service, as_of=as_of) == 0
        assert due_notifications(as_of) == []

    async def test_every_due_notification_is_found(self):
        for n in range(150):
            _schedule(minutes_from_now=5, title=f"Special #{n}")

        due = due_notifications(datetime.now(UTC) + timedelta(minutes=10))

        assert len(due) == 150
        assert len({str(notification.id) for notification in due}) == 150

    async def test_more_due_than_one_page(self, service, token_store, push_client):
        token_store.add("u1", "ExponentPushToken[device-one]")
        for n in range(120):
            _schedule(minutes_from_now=5, title=f"Happy hour #{n}")

        processed = await process_scheduled_notifications(service, as_of=datetime.now(UTC) + timedelta(minutes=10))

        assert processed == 120
        assert len(push_client.calls) == 120

    async def test_cancelled_notifications_are_skipped(self, service):
        notification_id = _schedule(minutes_from_now=5)
        current_domain.process(
            CancelNotification(notification_id=notification_id, reason="Changed plans"),
            asynchronous=False,
        )

        processed = await process_scheduled_notifications(service, as_of=datetime.now(UTC) + timedelta(minutes=10))

        assert processed == 0
