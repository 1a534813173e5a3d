"""Dispatcher — delivers one message to many device tokens with retry/backoff.

Attempt loop:
    Idle → Sending → Success
    Sending → RetryWait → Sending        (429 / 5xx / network error)
    Sending → TerminalFailure            (other non-2xx, retries exhausted,
                                          or the deadline would be overrun)

Backoff before attempt n (n ≥ 2) is ``min(base * 2 ** (n - 2), cap)``, which
with the defaults gives 1s, 2s, 4s, 8s. Attempts are strictly sequential.
The dispatcher never raises for gateway failures; it always returns a
``DeliverySummary``.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable, Sequence

import structlog

from notifications.gateway.errors import TerminalGatewayError, TransientGatewayError
from notifications.gateway.expo import GatewayResponse
from notifications.gateway.port import PushClient
from notifications.gateway.results import DeliverySummary, FailureKind, PushMessage, Receipt

logger = structlog.get_logger(__name__)


def backoff_delay(attempt: int, base: float = 1.0, cap: float = 8.0) -> float:
    """Seconds to wait before ``attempt`` (1-based). The first attempt never waits."""
    if attempt <= 1:
        return 0.0
    return min(base * 2 ** (attempt - 2), cap)


class Dispatcher:
    """Sends a message batch through the push gateway, retrying transient failures."""

    def __init__(
        self,
        client: PushClient,
        max_attempts: int = 5,
        base_delay: float = 1.0,
        max_delay: float = 8.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

        self.client = client
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self._sleep = sleep
        self._clock = clock

    async def dispatch(
        self,
        tokens: Sequence[str],
        message: PushMessage,
        deadline: float | None = None,
    ) -> DeliverySummary:
        """Deliver ``message`` to ``tokens``.

        Args:
            tokens: Validated device tokens; all go out in one request.
            message: Title, body and payload data.
            deadline: Optional budget in seconds for the whole retry chain.
        """
        tokens = list(tokens)

        if not tokens:
            return DeliverySummary.failed(
                FailureKind.NO_RECIPIENTS,
                "No recipients: the audience resolved to zero push tokens",
            )

        if not message.title or not message.body:
            return DeliverySummary.failed(
                FailureKind.INVALID_MESSAGE,
                "A push notification needs both a title and a body",
                total_attempted=len(tokens),
            )

        payload = message.to_payload(tokens)
        started = self._clock()
        last_error: TransientGatewayError | None = None

        for attempt in range(1, self.max_attempts + 1):
            if attempt > 1:
                delay = backoff_delay(attempt, self.base_delay, self.max_delay)
                if deadline is not None and (self._clock() - started) + delay >= deadline:
                    return self._deadline_exceeded(tokens, attempt - 1, last_error)

                logger.info(
                    "Retrying push send",
                    attempt=attempt,
                    delay_seconds=delay,
                    error=last_error.message if last_error else None,
                )
                await self._sleep(delay)

            remaining = None
            if deadline is not None:
                remaining = deadline - (self._clock() - started)
                if remaining <= 0:
                    return self._deadline_exceeded(tokens, attempt - 1, last_error)

            logger.info("Push send attempt", attempt=attempt, tokens=len(tokens))

            try:
                response = await self.client.send(payload, timeout=remaining)
            except TransientGatewayError as exc:
                last_error = exc
                logger.warning(
                    "Push gateway transient failure",
                    attempt=attempt,
                    status=exc.status_code,
                    error=exc.message,
                )
                continue
            except TerminalGatewayError as exc:
                logger.error(
                    "Push gateway rejected the request",
                    attempt=attempt,
                    status=exc.status_code,
                    error=exc.message,
                )
                return DeliverySummary.failed(
                    FailureKind.GATEWAY_REJECTED,
                    f"Push service rejected the request: {exc.message}",
                    total_attempted=len(tokens),
                    attempts=attempt,
                    status_code=exc.status_code,
                )

            return self._summarize(tokens, response, attempt)

        logger.error(
            "Push send gave up after retries",
            attempts=self.max_attempts,
            error=last_error.message if last_error else None,
        )
        return DeliverySummary.failed(
            FailureKind.RETRIES_EXHAUSTED,
            f"Push service unavailable after {self.max_attempts} attempts: "
            f"{last_error.message if last_error else 'unknown error'}",
            total_attempted=len(tokens),
            attempts=self.max_attempts,
            status_code=last_error.status_code if last_error else None,
        )

    def _deadline_exceeded(
        self,
        tokens: list[str],
        attempts: int,
        last_error: TransientGatewayError | None,
    ) -> DeliverySummary:
        logger.error("Push send deadline exceeded", attempts=attempts)
        reason = f" (last error: {last_error.message})" if last_error else ""
        return DeliverySummary.failed(
            FailureKind.DEADLINE_EXCEEDED,
            f"Push send deadline exceeded after {attempts} attempts{reason}",
            total_attempted=len(tokens),
            attempts=attempts,
            status_code=last_error.status_code if last_error else None,
        )

    def _summarize(self, tokens: list[str], response: GatewayResponse, attempt: int) -> DeliverySummary:
        """Pair gateway tickets with tokens by position and count the successes."""
        data = response.body.get("data")
        if data is None:
            tickets = []
        elif isinstance(data, list):
            tickets = data
        else:
            tickets = [data]

        receipts = [
            Receipt.from_ticket(tokens[index] if index < len(tokens) else None, ticket)
            for index, ticket in enumerate(tickets)
        ]
        sent = sum(1 for receipt in receipts if receipt.ok)
        failed = len(receipts) - sent

        message = f"Push notification sent to {sent} devices"
        if failed:
            message += f" ({failed} rejected by the push service)"

        logger.info(
            "Push send completed",
            attempt=attempt,
            tokens=len(tokens),
            sent=sent,
            failed=failed,
        )

        return DeliverySummary(
            success=True,
            message=message,
            tokens_sent=sent,
            total_attempted=len(tokens),
            receipts=receipts,
            attempts=attempt,
            status_code=response.status_code,
        )
