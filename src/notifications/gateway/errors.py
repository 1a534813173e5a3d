"""Push gateway errors.

These never leave the dispatcher: every gateway failure is converted into a
failed ``DeliverySummary``.
"""


class GatewayError(Exception):
    """Base class for push gateway failures."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class TransientGatewayError(GatewayError):
    """HTTP 429, any 5xx, or a network-level failure. Worth retrying."""


class TerminalGatewayError(GatewayError):
    """Any other non-2xx response. Retrying will not help."""
