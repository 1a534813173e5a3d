"""Read helpers over the DeviceToken repository."""

from notifications.device.token import DeviceToken
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

PAGE_SIZE = 500


def find_device_token(user_id) -> DeviceToken | None:
    repo = current_domain.repository_for(DeviceToken)
    tokens = repo._dao.query.filter(user_id=str(user_id)).all().items
    return tokens[0] if tokens else None


def get_device_token(user_id) -> DeviceToken:
    device_token = find_device_token(user_id)
    if device_token is None:
        raise ObjectNotFoundError(f"No push token registered for user {user_id}")
    return device_token


def all_device_tokens(**filters) -> list[DeviceToken]:
    """Read every matching registration, page by page."""
    repo = current_domain.repository_for(DeviceToken)
    results: list[DeviceToken] = []
    offset = 0
    while True:
        query = repo._dao.query.filter(**filters) if filters else repo._dao.query
        page = query.offset(offset).limit(PAGE_SIZE).all()
        results.extend(page.items)
        if not page.has_next:
            break
        offset += PAGE_SIZE
    return results
