"""Expo push gateway client — a single HTTP attempt per call.

Retries are the dispatcher's business; this client only classifies the
outcome of one request:
- 2xx with a JSON body → GatewayResponse
- 429 / 5xx / transport failure → TransientGatewayError
- anything else, including a body httpx cannot decode → TerminalGatewayError
"""

from dataclasses import dataclass

import httpx
import structlog

from notifications.config import EXPO_PUSH_URL
from notifications.gateway.errors import TerminalGatewayError, TransientGatewayError
from notifications.gateway.port import PushClient

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class GatewayResponse:
    status_code: int
    body: dict


def is_retryable_status(status_code: int) -> bool:
    return status_code == 429 or status_code >= 500


def _error_message(response: httpx.Response) -> str:
    """Pull a human-readable message out of a gateway error response."""
    try:
        body = response.json()
    except ValueError:
        body = None

    if isinstance(body, dict):
        errors = body.get("errors")
        if isinstance(errors, list) and errors and isinstance(errors[0], dict) and errors[0].get("message"):
            return errors[0]["message"]
        for key in ("message", "error"):
            if isinstance(body.get(key), str) and body[key]:
                return body[key]

    return f"Push gateway error ({response.status_code})"


class ExpoPushClient(PushClient):
    """Posts message batches to the Expo push send endpoint."""

    def __init__(
        self,
        url: str = EXPO_PUSH_URL,
        access_token: str | None = None,
        timeout: float = 10.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.url = url
        self.access_token = access_token
        self.timeout = timeout
        self._http_client = http_client

    @property
    def headers(self) -> dict[str, str]:
        headers = {
            "accept": "application/json",
            "content-type": "application/json",
        }
        if self.access_token:
            headers["authorization"] = f"Bearer {self.access_token}"
        return headers

    async def send(self, payload: dict, timeout: float | None = None) -> GatewayResponse:
        """POST one batch. ``timeout`` caps this request below the default."""
        request_timeout = self.timeout if timeout is None else min(self.timeout, timeout)

        try:
            if self._http_client is not None:
                response = await self._http_client.post(
                    self.url, json=payload, headers=self.headers, timeout=request_timeout
                )
            else:
                async with httpx.AsyncClient(timeout=request_timeout) as client:
                    response = await client.post(self.url, json=payload, headers=self.headers)
        except httpx.TransportError as exc:
            raise TransientGatewayError(f"Network error: {type(exc).__name__}: {exc}") from exc
        except httpx.RequestError as exc:
            # Undecodable body, redirect loop
            raise TerminalGatewayError(f"Unreadable gateway response: {type(exc).__name__}: {exc}") from exc

        logger.debug(
            "Push gateway responded",
            status=response.status_code,
            tokens=len(payload.get("to") or []),
        )

        if is_retryable_status(response.status_code):
            raise TransientGatewayError(_error_message(response), status_code=response.status_code)

        if not response.is_success:
            raise TerminalGatewayError(_error_message(response), status_code=response.status_code)

        try:
            body = response.json()
        except ValueError as exc:
            raise TerminalGatewayError(
                "Push gateway returned an unreadable response",
                status_code=response.status_code,
            ) from exc

        if not isinstance(body, dict):
            raise TerminalGatewayError(
                "Push gateway returned an unexpected response shape",
                status_code=response.status_code,
            )

        return GatewayResponse(status_code=response.status_code, body=body)
