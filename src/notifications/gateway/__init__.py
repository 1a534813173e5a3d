"""Push gateway wiring.

``build_dispatcher()`` assembles a Dispatcher from a PushConfig:
- ExpoPushClient for real delivery
- FakePushClient when one is passed in (tests, local development)
"""

import asyncio
import time

import httpx

from notifications.config import PushConfig
from notifications.gateway.dispatcher import Dispatcher
from notifications.gateway.expo import ExpoPushClient
from notifications.gateway.port import PushClient


def build_dispatcher(
    config: PushConfig,
    client: PushClient | None = None,
    http_client: httpx.AsyncClient | None = None,
    sleep=asyncio.sleep,
    clock=time.monotonic,
) -> Dispatcher:
    """Create a dispatcher for the configured gateway and retry policy."""
    if client is None:
        client = ExpoPushClient(
            url=config.gateway_url,
            access_token=config.access_token,
            timeout=config.request_timeout,
            http_client=http_client,
        )

    return Dispatcher(
        client,
        max_attempts=config.max_attempts,
        base_delay=config.base_backoff,
        max_delay=config.max_backoff,
        sleep=sleep,
        clock=clock,
    )
