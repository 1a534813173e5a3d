"""Delivery receipts and the per-send summary returned to callers."""

from dataclasses import dataclass, field
from enum import Enum


class FailureKind(Enum):
    NO_RECIPIENTS = "no_recipients"
    INVALID_MESSAGE = "invalid_message"
    GATEWAY_REJECTED = "gateway_rejected"
    RETRIES_EXHAUSTED = "retries_exhausted"
    DEADLINE_EXCEEDED = "deadline_exceeded"
    STORE_UNAVAILABLE = "store_unavailable"


class ReceiptStatus(Enum):
    OK = "ok"
    ERROR = "error"


@dataclass(frozen=True)
class PushMessage:
    """One message to be fanned out to many devices by the gateway."""

    title: str
    body: str
    data: dict = field(default_factory=dict)
    deep_link: str | None = None
    sound: str | None = "default"
    priority: str = "high"

    def payload_data(self) -> dict:
        data = dict(self.data)
        if self.deep_link:
            data["deep_link"] = self.deep_link
        return data

    def to_payload(self, tokens: list[str]) -> dict:
        """Request body for the gateway's send endpoint."""
        return {
            "to": list(tokens),
            "title": self.title,
            "body": self.body,
            "data": self.payload_data(),
            "sound": self.sound,
            "priority": self.priority,
        }


@dataclass(frozen=True)
class Receipt:
    """Gateway verdict for a single device token."""

    token: str | None
    status: ReceiptStatus
    ticket_id: str | None = None
    error_detail: str | None = None
    error_code: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == ReceiptStatus.OK

    @classmethod
    def from_ticket(cls, token: str | None, ticket) -> "Receipt":
        if not isinstance(ticket, dict):
            return cls(token=token, status=ReceiptStatus.ERROR, error_detail=f"Malformed ticket: {ticket!r}")

        if ticket.get("status") == ReceiptStatus.OK.value:
            return cls(token=token, status=ReceiptStatus.OK, ticket_id=ticket.get("id"))

        details = ticket.get("details") or {}
        return cls(
            token=token,
            status=ReceiptStatus.ERROR,
            ticket_id=ticket.get("id"),
            error_detail=ticket.get("message") or "Unknown delivery error",
            error_code=details.get("error") if isinstance(details, dict) else None,
        )

    def to_dict(self) -> dict:
        result = {"token": self.token, "status": self.status.value}
        if self.ticket_id:
            result["id"] = self.ticket_id
        if self.error_detail:
            result["message"] = self.error_detail
        if self.error_code:
            result["details"] = {"error": self.error_code}
        return result


@dataclass
class DeliverySummary:
    """Outcome of one logical send.

    ``success`` means the gateway accepted the request. Per-device results are
    reported separately (``tokens_sent`` / ``tokens_failed``) so the caller can
    decide whether a partial delivery is good enough.
    """

    success: bool
    message: str
    tokens_sent: int = 0
    total_attempted: int = 0
    receipts: list[Receipt] = field(default_factory=list)
    failure: FailureKind | None = None
    attempts: int = 0
    excluded_count: int = 0
    status_code: int | None = None

    @property
    def tokens_failed(self) -> int:
        return sum(1 for receipt in self.receipts if not receipt.ok)

    @classmethod
    def failed(cls, failure: FailureKind, message: str, **kwargs) -> "DeliverySummary":
        return cls(success=False, message=message, failure=failure, **kwargs)

    @classmethod
    def combine(cls, summaries: list["DeliverySummary"]) -> "DeliverySummary":
        """Merge the summaries of several batches into one."""
        if not summaries:
            return cls.failed(FailureKind.NO_RECIPIENTS, "No recipients")
        if len(summaries) == 1:
            return summaries[0]

        accepted = [s for s in summaries if s.success]
        rejected = [s for s in summaries if not s.success]
        tokens_sent = sum(s.tokens_sent for s in summaries)

        if not accepted:
            last = rejected[-1]
            message = last.message
        elif rejected:
            message = (
                f"Push notification sent to {tokens_sent} devices "
                f"({len(rejected)} of {len(summaries)} batches failed: {rejected[-1].message})"
            )
        else:
            message = f"Push notification sent to {tokens_sent} devices"

        return cls(
            success=bool(accepted),
            message=message,
            tokens_sent=tokens_sent,
            total_attempted=sum(s.total_attempted for s in summaries),
            receipts=[receipt for s in summaries for receipt in s.receipts],
            failure=None if accepted else rejected[-1].failure,
            attempts=sum(s.attempts for s in summaries),
            excluded_count=sum(s.excluded_count for s in summaries),
            status_code=summaries[-1].status_code,
        )

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "message": self.message,
            "tokensSent": self.tokens_sent,
            "tokensFailed": self.tokens_failed,
            "totalAttempted": self.total_attempted,
            "excludedCount": self.excluded_count,
            "attempts": self.attempts,
            "statusCode": self.status_code,
            "failure": self.failure.value if self.failure else None,
            "receipts": [receipt.to_dict() for receipt in self.receipts],
        }
