"""Push delivery configuration.

Loaded once at process startup (``PushConfig.from_env()``) and handed to
``build_push_service``. Nothing in the delivery path reads the environment
directly.
"""

import os
from dataclasses import dataclass

import structlog

logger = structlog.get_logger(__name__)

EXPO_PUSH_URL = "https://exp.host/--/api/v2/push/send"
EXPO_TOKEN_PREFIX = "ExponentPushToken["

# Expo rejects requests carrying more than 100 messages
EXPO_MAX_BATCH_SIZE = 100


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc


def _env_float(name: str, default: float | None) -> float | None:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc


@dataclass(frozen=True)
class PushConfig:
    """Settings for the push gateway and the retry policy."""

    gateway_url: str = EXPO_PUSH_URL
    access_token: str | None = None
    token_prefix: str = EXPO_TOKEN_PREFIX
    max_attempts: int = 5
    base_backoff: float = 1.0
    max_backoff: float = 8.0
    request_timeout: float = 10.0
    send_deadline: float | None = None
    max_batch_size: int = EXPO_MAX_BATCH_SIZE

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if not 1 <= self.max_batch_size <= EXPO_MAX_BATCH_SIZE:
            raise ValueError(f"max_batch_size must be between 1 and {EXPO_MAX_BATCH_SIZE}")
        if self.send_deadline is not None and self.send_deadline <= 0:
            raise ValueError("send_deadline must be positive")

    @property
    def is_authenticated(self) -> bool:
        return bool(self.access_token)

    @classmethod
    def from_env(cls) -> "PushConfig":
        """Build the configuration from environment variables."""
        config = cls(
            gateway_url=os.getenv("PUSH_GATEWAY_URL") or EXPO_PUSH_URL,
            access_token=os.getenv("EXPO_ACCESS_TOKEN") or None,
            token_prefix=os.getenv("PUSH_TOKEN_PREFIX") or EXPO_TOKEN_PREFIX,
            max_attempts=_env_int("PUSH_MAX_ATTEMPTS", 5),
            request_timeout=_env_float("PUSH_REQUEST_TIMEOUT", 10.0),
            send_deadline=_env_float("PUSH_SEND_DEADLINE", None),
            max_batch_size=_env_int("PUSH_MAX_BATCH_SIZE", EXPO_MAX_BATCH_SIZE),
        )

        if not config.is_authenticated:
            # Expo accepts unauthenticated sends unless enhanced security is on,
            # in which case every request will come back 401.
            logger.warning(
                "EXPO_ACCESS_TOKEN is not set, push requests will be sent unauthenticated",
                gateway_url=config.gateway_url,
            )

        return config
