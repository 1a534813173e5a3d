"""Push client port — abstract interface for one request to the push gateway."""

from abc import ABC, abstractmethod


class PushClient(ABC):
    """Abstract interface for push gateway clients."""

    @abstractmethod
    async def send(self, payload: dict, timeout: float | None = None):
        """POST one message batch to the gateway.

        Returns:
            GatewayResponse for a 2xx response.

        Raises:
            TransientGatewayError: 429, 5xx or a network failure.
            TerminalGatewayError: any other non-2xx response.
        """
        ...
