"""Token store port — read-only view of registered device tokens.

The audience resolver only ever reads from the store. Adapters:
- DeviceTokenStore (Protean repository, production)
- InMemoryTokenStore (tests and local runs)
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


class StoreUnavailable(Exception):
    """The token store could not be read; no audience can be computed."""


@dataclass(frozen=True)
class TokenRecord:
    """One device token registration as seen by the resolver."""

    user_id: str
    token: str
    role: str
    notification_enabled: bool = True


class TokenStore(ABC):
    """Abstract interface for token store adapters."""

    @abstractmethod
    def list_tokens(
        self,
        roles: set[str] | None = None,
        notification_enabled: bool = True,
    ) -> list[TokenRecord]:
        """Return registrations matching the filter.

        Args:
            roles: Restrict to these roles; None means any role.
            notification_enabled: Match on the notification flag.

        Raises:
            StoreUnavailable: the backing store could not be read.
        """
        ...
