"""Tests for PushMessage payloads, Receipt parsing and DeliverySummary merging."""

from notifications.gateway.dispatcher import backoff_delay
from notifications.gateway.results import (
    DeliverySummary,
    FailureKind,
    PushMessage,
    Receipt,
    ReceiptStatus,
)


class TestPushMessage:
    def test_payload_carries_tokens_and_defaults(self):
        message = PushMessage(title="Hi", body="There", data={"notificationId": "n-1"})
        payload = message.to_payload(["ExponentPushToken[a]", "ExponentPushToken[b]"])

        assert payload["to"] == ["ExponentPushToken[a]", "ExponentPushToken[b]"]
        assert payload["title"] == "Hi"
        assert payload["body"] == "There"
        assert payload["sound"] == "default"
        assert payload["priority"] == "high"
        assert payload["data"] == {"notificationId": "n-1"}

    def test_deep_link_is_merged_into_data(self):
        message = PushMessage(title="Hi", body="There", deep_link="app://events/42")
        assert message.payload_data() == {"deep_link": "app://events/42"}


class TestReceipt:
    def test_ok_ticket(self):
        receipt = Receipt.from_ticket("tok", {"status": "ok", "id": "abc"})
        assert receipt.ok
        assert receipt.ticket_id == "abc"

    def test_error_ticket_keeps_detail(self):
        receipt = Receipt.from_ticket(
            "tok",
            {"status": "error", "message": "not registered", "details": {"error": "DeviceNotRegistered"}},
        )
        assert receipt.status == ReceiptStatus.ERROR
        assert receipt.error_detail == "not registered"
        assert receipt.error_code == "DeviceNotRegistered"
        assert receipt.to_dict()["details"] == {"error": "DeviceNotRegistered"}

    def test_malformed_ticket_is_an_error(self):
        receipt = Receipt.from_ticket("tok", "garbage")
        assert not receipt.ok


class TestCombine:
    def _accepted(self, sent, attempted):
        receipts = [Receipt(token=f"t{i}", status=ReceiptStatus.OK) for i in range(sent)]
        receipts += [Receipt(token=f"e{i}", status=ReceiptStatus.ERROR) for i in range(attempted - sent)]
        return DeliverySummary(
            success=True,
            message="ok",
            tokens_sent=sent,
            total_attempted=attempted,
            receipts=receipts,
            attempts=1,
        )

    def test_all_batches_accepted(self):
        combined = DeliverySummary.combine([self._accepted(100, 100), self._accepted(20, 25)])

        assert combined.success
        assert combined.tokens_sent == 120
        assert combined.total_attempted == 125
        assert combined.tokens_failed == 5
        assert combined.message == "Push notification sent to 120 devices"

    def test_partial_batch_failure_still_succeeds(self):
        failed = DeliverySummary.failed(FailureKind.RETRIES_EXHAUSTED, "down", total_attempted=30, attempts=5)
        combined = DeliverySummary.combine([self._accepted(100, 100), failed])

        assert combined.success
        assert combined.failure is None
        assert "1 of 2 batches failed" in combined.message
        assert combined.total_attempted == 130

    def test_every_batch_failed(self):
        first = DeliverySummary.failed(FailureKind.GATEWAY_REJECTED, "first", total_attempted=100)
        second = DeliverySummary.failed(FailureKind.RETRIES_EXHAUSTED, "second", total_attempted=10)
        combined = DeliverySummary.combine([first, second])

        assert not combined.success
        assert combined.failure == FailureKind.RETRIES_EXHAUSTED
        assert combined.message == "second"

    def test_to_dict_uses_camel_case(self):
        summary = DeliverySummary.failed(FailureKind.NO_RECIPIENTS, "nobody")
        data = summary.to_dict()

        assert data["success"] is False
        assert data["failure"] == "no_recipients"
        assert data["tokensSent"] == 0
        assert data["tokensFailed"] == 0


class TestBackoff:
    def test_schedule(self):
        assert [backoff_delay(n) for n in range(1, 7)] == [0.0, 1.0, 2.0, 4.0, 8.0, 8.0]
