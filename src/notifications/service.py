"""Push notification service — the inbound ``send`` operation.

Resolves the audience, splits the tokens into gateway-sized batches and hands
each batch to the dispatcher in turn. Assembled by ``build_push_service()``
from a ``PushConfig``; there is no module-level instance.
"""

import asyncio
import time
from dataclasses import dataclass, field

import httpx
import structlog

from notifications.audience.port import TokenStore
from notifications.audience.resolver import AudienceResolver, TargetAudience
from notifications.config import EXPO_MAX_BATCH_SIZE, PushConfig
from notifications.gateway import build_dispatcher
from notifications.gateway.dispatcher import Dispatcher
from notifications.gateway.port import PushClient
from notifications.gateway.results import DeliverySummary, FailureKind, PushMessage

logger = structlog.get_logger(__name__)

NO_TOKENS_MESSAGE = (
    "No push tokens found for the target audience. Users need to install the mobile app, "
    "log in, and enable notifications to receive push notifications."
)
NO_VALID_TOKENS_MESSAGE = (
    "No valid push tokens found for the target audience. "
    "Registered tokens are malformed and should be cleaned up."
)


@dataclass(frozen=True)
class SendOptions:
    title: str
    message: str
    target_audience: TargetAudience | str
    deep_link: str | None = None
    data: dict = field(default_factory=dict)


def chunked(tokens: list[str], size: int) -> list[list[str]]:
    return [tokens[start : start + size] for start in range(0, len(tokens), size)]


class PushNotificationService:
    """Sends one message to every deliverable device in an audience."""

    def __init__(
        self,
        resolver: AudienceResolver,
        dispatcher: Dispatcher,
        max_batch_size: int = EXPO_MAX_BATCH_SIZE,
        deadline: float | None = None,
        clock=time.monotonic,
    ):
        self.resolver = resolver
        self.dispatcher = dispatcher
        self.max_batch_size = max_batch_size
        self.deadline = deadline
        self._clock = clock

    async def send(self, options: SendOptions) -> DeliverySummary:
        """Resolve ``options.target_audience`` and deliver the message.

        Raises:
            ValueError: unknown audience selector.
            StoreUnavailable: the token store could not be read.
        """
        audience = self.resolver.resolve(options.target_audience)

        if audience.found_count == 0:
            logger.info("No push tokens for audience", audience=audience.audience.value)
            return DeliverySummary.failed(FailureKind.NO_RECIPIENTS, NO_TOKENS_MESSAGE)

        if audience.is_empty:
            logger.warning(
                "Every push token for the audience is malformed",
                audience=audience.audience.value,
                excluded=audience.excluded_count,
            )
            return DeliverySummary.failed(
                FailureKind.NO_RECIPIENTS,
                NO_VALID_TOKENS_MESSAGE,
                excluded_count=audience.excluded_count,
            )

        message = PushMessage(
            title=options.title,
            body=options.message,
            data=dict(options.data or {}),
            deep_link=options.deep_link,
        )

        batches = chunked(audience.tokens, self.max_batch_size)
        summaries = []
        started = self._clock()
        for index, batch in enumerate(batches, start=1):
            # Later batches get whatever is left of the send deadline
            remaining = None
            if self.deadline is not None:
                remaining = self.deadline - (self._clock() - started)
                if remaining <= 0:
                    logger.error("Push send deadline exceeded before batch", batch=index, batches=len(batches))
                    summaries.append(
                        DeliverySummary.failed(
                            FailureKind.DEADLINE_EXCEEDED,
                            f"Push send deadline exceeded before batch {index} of {len(batches)}",
                            total_attempted=len(batch),
                        )
                    )
                    continue

            if len(batches) > 1:
                logger.info("Dispatching push batch", batch=index, batches=len(batches), tokens=len(batch))
            summaries.append(await self.dispatcher.dispatch(batch, message, deadline=remaining))

        summary = DeliverySummary.combine(summaries)
        summary.excluded_count = audience.excluded_count

        logger.info(
            "Push send finished",
            audience=audience.audience.value,
            success=summary.success,
            tokens_sent=summary.tokens_sent,
            total_attempted=summary.total_attempted,
            failure=summary.failure.value if summary.failure else None,
        )
        return summary


def build_push_service(
    config: PushConfig,
    store: TokenStore | None = None,
    client: PushClient | None = None,
    http_client: httpx.AsyncClient | None = None,
    sleep=asyncio.sleep,
    clock=time.monotonic,
) -> PushNotificationService:
    """Wire resolver, gateway client and dispatcher from ``config``.

    Without a ``store`` the Protean DeviceToken repository is used, which
    needs an active domain context when ``send`` runs.
    """
    if store is None:
        from notifications.audience.repository_store import DeviceTokenStore

        store = DeviceTokenStore()

    return PushNotificationService(
        resolver=AudienceResolver(store, token_prefix=config.token_prefix),
        dispatcher=build_dispatcher(config, client=client, http_client=http_client, sleep=sleep, clock=clock),
        max_batch_size=config.max_batch_size,
        deadline=config.send_deadline,
        clock=clock,
    )
