"""CleanupInvalidTokens command + handler — purge malformed registrations.

Tokens whose push token lacks the provider prefix, or whose user id is not an
authenticated (UUID) user, can never be delivered to. The resolver already
skips them; this job removes them from the store for good.
"""

import structlog
from notifications.device.queries import all_device_tokens
from notifications.device.token import DeviceToken
from notifications.domain import notifications
from protean.fields import String
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

logger = structlog.get_logger(__name__)


@notifications.command(part_of="DeviceToken")
class CleanupInvalidTokens:
    """Request to delete every malformed device token registration."""

    requested_by: String(max_length=100)


@notifications.command_handler(part_of=DeviceToken)
class CleanupInvalidTokensHandler:
    @handle(CleanupInvalidTokens)
    def cleanup_invalid_tokens(self, command: CleanupInvalidTokens):
        repo = current_domain.repository_for(DeviceToken)
        tokens = all_device_tokens()

        invalid = [token for token in tokens if not token.is_well_formed]
        for token in invalid:
            logger.info(
                "Removing malformed push token",
                user_id=str(token.user_id),
                push_token=token.push_token,
            )
            repo._dao.delete(token)

        logger.info(
            "Token cleanup completed",
            total=len(tokens),
            cleaned=len(invalid),
            requested_by=command.requested_by,
        )
        return {
            "total": len(tokens),
            "cleaned": len(invalid),
            "remaining": len(tokens) - len(invalid),
        }
