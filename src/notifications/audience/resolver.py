"""Audience resolver — turns an audience selector into deliverable push tokens.

Role mapping:
    all           → every role
    admins        → admin, system_admin
    users         → user
    system_admin  → system_admin

Only notification-enabled registrations are considered. Tokens that do not
carry the provider prefix are stale or corrupt; they are dropped and counted
in ``excluded_count`` so operators can spot decay in the token store.
"""

from dataclasses import dataclass
from enum import Enum

import structlog

from notifications.audience.port import TokenStore
from notifications.config import EXPO_TOKEN_PREFIX

logger = structlog.get_logger(__name__)


class TargetAudience(Enum):
    ALL = "all"
    ADMINS = "admins"
    USERS = "users"
    SYSTEM_ADMIN = "system_admin"


class TokenRole(Enum):
    USER = "user"
    ADMIN = "admin"
    SYSTEM_ADMIN = "system_admin"


AUDIENCE_ROLES: dict[TargetAudience, frozenset[str] | None] = {
    TargetAudience.ALL: None,
    TargetAudience.ADMINS: frozenset({TokenRole.ADMIN.value, TokenRole.SYSTEM_ADMIN.value}),
    TargetAudience.USERS: frozenset({TokenRole.USER.value}),
    TargetAudience.SYSTEM_ADMIN: frozenset({TokenRole.SYSTEM_ADMIN.value}),
}


def is_valid_push_token(token: str | None, prefix: str = EXPO_TOKEN_PREFIX) -> bool:
    """True when the token string carries the provider's documented prefix."""
    return bool(token) and token.startswith(prefix)


@dataclass(frozen=True)
class ResolvedAudience:
    """Deliverable tokens for one audience, plus what was filtered out."""

    audience: TargetAudience
    tokens: list[str]
    found_count: int
    excluded_count: int

    @property
    def is_empty(self) -> bool:
        return not self.tokens


class AudienceResolver:
    """Resolves audience selectors against a read-only token store."""

    def __init__(self, store: TokenStore, token_prefix: str = EXPO_TOKEN_PREFIX):
        self.store = store
        self.token_prefix = token_prefix

    def resolve(self, audience: TargetAudience | str) -> ResolvedAudience:
        """Resolve the audience to validated, enabled, de-duplicated tokens.

        Raises:
            ValueError: unknown audience selector.
            StoreUnavailable: the token store could not be read.
        """
        audience = TargetAudience(audience)
        roles = AUDIENCE_ROLES[audience]

        records = self.store.list_tokens(
            roles=set(roles) if roles is not None else None,
            notification_enabled=True,
        )

        tokens: list[str] = []
        seen: set[str] = set()
        found = 0
        excluded: list[str] = []
        for record in records:
            # Adapters may filter loosely; the guarantee is enforced here
            if not record.notification_enabled:
                continue
            if roles is not None and record.role not in roles:
                continue
            found += 1

            if not is_valid_push_token(record.token, self.token_prefix):
                excluded.append(record.token)
                continue
            if record.token in seen:
                continue

            seen.add(record.token)
            tokens.append(record.token)

        if excluded:
            logger.warning(
                "Excluded malformed push tokens",
                audience=audience.value,
                excluded=len(excluded),
                tokens=excluded,
            )

        logger.info(
            "Audience resolved",
            audience=audience.value,
            found=found,
            deliverable=len(tokens),
        )

        return ResolvedAudience(
            audience=audience,
            tokens=tokens,
            found_count=found,
            excluded_count=len(excluded),
        )

    def resolve_tokens(self, audience: TargetAudience | str) -> list[str]:
        """Resolve the audience and return only the deliverable token strings."""
        return self.resolve(audience).tokens
