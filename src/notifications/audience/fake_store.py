"""In-memory token store — fixed list of registrations for tests and local runs."""

from notifications.audience.port import StoreUnavailable, TokenRecord, TokenStore

UNAVAILABLE_MESSAGE = "In-memory token store is configured as unavailable"


class InMemoryTokenStore(TokenStore):
    """Token store backed by a plain list, configurable to fail."""

    def __init__(self, records: list[TokenRecord] | None = None):
        self.records: list[TokenRecord] = list(records or [])
        self.available = True
        self.error = UNAVAILABLE_MESSAGE
        self.reads = 0

    def add(self, user_id: str, token: str, role: str = "user", notification_enabled: bool = True) -> TokenRecord:
        record = TokenRecord(
            user_id=user_id,
            token=token,
            role=role,
            notification_enabled=notification_enabled,
        )
        self.records.append(record)
        return record

    def configure(self, available: bool = True, error: str = UNAVAILABLE_MESSAGE):
        """Configure the fake store behavior for testing."""
        self.available = available
        self.error = error

    def list_tokens(
        self,
        roles: set[str] | None = None,
        notification_enabled: bool = True,
    ) -> list[TokenRecord]:
        self.reads += 1
        if not self.available:
            raise StoreUnavailable(self.error)

        return [
            record
            for record in self.records
            if record.notification_enabled == notification_enabled and (roles is None or record.role in roles)
        ]

    def reset(self):
        """Clear registrations (useful between tests)."""
        self.records.clear()
        self.available = True
        self.error = UNAVAILABLE_MESSAGE
        self.reads = 0
