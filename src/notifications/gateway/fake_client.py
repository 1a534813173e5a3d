"""Fake push gateway client — records batches and replays scripted outcomes.

By default every batch is accepted and every token gets an ``ok`` ticket.
Tests can script a sequence of outcomes per call:

    client.configure(outcomes=[429, 503, 200])
    client.configure(outcomes=["network"] * 5)
    client.configure(rejected_tokens={"ExponentPushToken[dead]"})
"""

from uuid import uuid4

from notifications.gateway.errors import TerminalGatewayError, TransientGatewayError
from notifications.gateway.expo import GatewayResponse, is_retryable_status
from notifications.gateway.port import PushClient

NETWORK_ERROR = "network"


class FakePushClient(PushClient):
    """Push client that never leaves the process."""

    def __init__(self):
        self.calls: list[dict] = []
        self.outcomes: list[int | str] = []
        self.rejected_tokens: set[str] = set()

    def configure(self, outcomes: list[int | str] | None = None, rejected_tokens: set[str] | None = None):
        """Configure the fake client behavior for testing."""
        self.outcomes = list(outcomes or [])
        self.rejected_tokens = set(rejected_tokens or set())

    @property
    def sent_tokens(self) -> list[str]:
        return [token for call in self.calls for token in call["payload"]["to"]]

    async def send(self, payload: dict, timeout: float | None = None) -> GatewayResponse:
        self.calls.append({"payload": payload, "timeout": timeout})

        outcome = self.outcomes.pop(0) if self.outcomes else 200
        if outcome == NETWORK_ERROR:
            raise TransientGatewayError("Network error: ConnectError: connection refused")
        if is_retryable_status(outcome):
            raise TransientGatewayError(f"Push gateway error ({outcome})", status_code=outcome)
        if not 200 <= outcome < 300:
            raise TerminalGatewayError(f"Push gateway error ({outcome})", status_code=outcome)

        tickets = []
        for token in payload["to"]:
            if token in self.rejected_tokens:
                tickets.append(
                    {
                        "status": "error",
                        "message": f'"{token}" is not a registered push notification recipient',
                        "details": {"error": "DeviceNotRegistered"},
                    }
                )
            else:
                tickets.append({"status": "ok", "id": f"ticket-{uuid4().hex[:12]}"})

        return GatewayResponse(status_code=outcome, body={"data": tickets})

    def reset(self):
        """Clear recorded calls (useful between tests)."""
        self.calls.clear()
        self.outcomes = []
        self.rejected_tokens = set()
